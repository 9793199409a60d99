"""
Point-of-sale tests.

Verifies:
- Totals: price overrides, per-line extras, ad-hoc services and discount
- Whole-sale rejection before any write when stock or products are missing
- Cancellation restores stock exactly once
- Profit figures only for owners
"""

import re
from decimal import Decimal

from globos.extensions import db
from globos.models import Product, Sale
from globos.time_utils import utcnow


WALK_IN = {"nombre": "Ana", "telefono": "5551112222"}


def _sale(client, headers, items, **extra):
    body = {"items": items, "datosCliente": WALK_IN}
    body.update(extra)
    return client.post("/api/ventas", headers=headers, json=body)


def _stock(product_id):
    return db.session.get(Product, product_id).stock


class TestCreateSale:

    def test_totals_with_override_extras_services_and_discount(self, client, owner_headers, make_product):
        product = make_product()
        resp = _sale(
            client, owner_headers,
            [{
                "producto": product.id,
                "cantidad": 2,
                "precioUnitario": 8,
                "serviciosAdicionales": [{"nombre": "Inflado con helio", "precio": 5}],
            }],
            serviciosRealizados=[{"tipo": "entrega-local", "precio": 20}],
            descuento=3,
            tipoVenta="con-servicio",
        )
        assert resp.status_code == 201
        venta = resp.json["venta"]
        assert venta["items"][0]["subtotal"] == 21.0
        assert venta["subtotal"] == 41.0
        assert venta["descuento"] == 3.0
        assert venta["total"] == 38.0
        assert venta["estado"] == "completada"
        assert venta["numero"].startswith("V")
        # (8 - 4) x 2 + 5 + 20
        assert venta["ganancia"] == 33.0
        assert _stock(product.id) == 18

    def test_number_format(self, client, employee_headers, make_product):
        product = make_product()
        venta = _sale(client, employee_headers, [{"producto": product.id, "cantidad": 1}]).json["venta"]
        assert re.fullmatch(rf"V{utcnow():%Y%m%d}-\d{{4}}", venta["numero"])

    def test_default_price_is_products_sale_price(self, client, employee_headers, make_product):
        product = make_product(precio_venta=Decimal("12.50"))
        resp = _sale(client, employee_headers, [{"producto": product.id, "cantidad": 3}])
        assert resp.status_code == 201
        assert resp.json["venta"]["total"] == 37.5
        assert resp.json["venta"]["metodoPago"] == "efectivo"
        assert resp.json["venta"]["ganancia"] is None

    def test_item_captures_name_at_sale_time(self, client, employee_headers, make_product):
        product = make_product(nombre="Globo original")
        resp = _sale(client, employee_headers, [{"producto": product.id, "cantidad": 1}])
        product.nombre = "Globo renombrado"
        db.session.commit()

        detail = client.get(f"/api/ventas/{resp.json['venta']['id']}", headers=employee_headers)
        assert detail.json["venta"]["items"][0]["nombre"] == "Globo original"

    def test_discount_larger_than_subtotal_rejected(self, client, employee_headers, make_product):
        product = make_product()
        resp = _sale(client, employee_headers, [{"producto": product.id, "cantidad": 1}], descuento=50)
        assert resp.status_code == 400
        assert resp.json["error"] == "Descuento inválido"
        assert _stock(product.id) == 20
        assert db.session.query(Sale).count() == 0

    def test_walk_in_customer_required_without_client(self, client, employee_headers, make_product):
        product = make_product()
        resp = client.post("/api/ventas", headers=employee_headers, json={
            "items": [{"producto": product.id, "cantidad": 1}],
        })
        assert resp.status_code == 400
        fields = {d["campo"] for d in resp.json["details"]}
        assert fields == {"datosCliente.nombre", "datosCliente.telefono"}

    def test_inactive_client_rejected(self, client, employee_headers, make_product, make_client):
        product = make_product()
        registered = make_client(activo=False)
        resp = client.post("/api/ventas", headers=employee_headers, json={
            "cliente": registered.id,
            "items": [{"producto": product.id, "cantidad": 1}],
        })
        assert resp.status_code == 404

    def test_empty_items_rejected(self, client, employee_headers, db_session):
        resp = _sale(client, employee_headers, [])
        assert resp.status_code == 400

    def test_missing_product(self, client, employee_headers, db_session):
        resp = _sale(client, employee_headers, [{"producto": 999, "cantidad": 1}])
        assert resp.status_code == 400
        assert resp.json["error"] == "Producto no encontrado"

    def test_inactive_product(self, client, employee_headers, make_product):
        product = make_product(activo=False)
        resp = _sale(client, employee_headers, [{"producto": product.id, "cantidad": 1}])
        assert resp.status_code == 400
        assert resp.json["error"] == "Producto inactivo"

    def test_insufficient_stock_touches_nothing(self, client, employee_headers, make_product):
        plenty = make_product(nombre="Con stock", stock=10)
        scarce = make_product(nombre="Escaso", stock=1)
        resp = _sale(client, employee_headers, [
            {"producto": plenty.id, "cantidad": 3},
            {"producto": scarce.id, "cantidad": 2},
        ])
        assert resp.status_code == 400
        assert resp.json["error"] == "Stock insuficiente"
        assert resp.json["details"][0]["disponible"] == 1
        assert _stock(plenty.id) == 10
        assert _stock(scarce.id) == 1
        assert db.session.query(Sale).count() == 0

    def test_repeated_product_checked_in_aggregate(self, client, employee_headers, make_product):
        product = make_product(stock=5)
        resp = _sale(client, employee_headers, [
            {"producto": product.id, "cantidad": 3},
            {"producto": product.id, "cantidad": 3},
        ])
        assert resp.status_code == 400
        assert _stock(product.id) == 5

    def test_requires_sales_permission(self, client, customer_headers, make_product):
        product = make_product()
        resp = _sale(client, customer_headers, [{"producto": product.id, "cantidad": 1}])
        assert resp.status_code == 403


class TestCancelSale:

    def test_cancel_restores_stock_once(self, client, employee_headers, make_product):
        product = make_product()
        sale_id = _sale(client, employee_headers, [{"producto": product.id, "cantidad": 4}]).json["venta"]["id"]
        assert _stock(product.id) == 16

        resp = client.put(f"/api/ventas/{sale_id}/cancelar", headers=employee_headers, json={"motivo": "Error de cobro"})
        assert resp.status_code == 200
        assert resp.json["venta"]["estado"] == "cancelada"
        assert "CANCELADA: Error de cobro" in resp.json["venta"]["notas"]
        assert _stock(product.id) == 20

        again = client.put(f"/api/ventas/{sale_id}/cancelar", headers=employee_headers, json={})
        assert again.status_code == 400
        assert again.json["error"] == "Venta ya cancelada"
        assert _stock(product.id) == 20

    def test_cancel_unknown_sale(self, client, employee_headers, db_session):
        resp = client.put("/api/ventas/999/cancelar", headers=employee_headers, json={})
        assert resp.status_code == 404


class TestSalesQueries:

    def test_list_defaults_to_completed(self, client, employee_headers, make_product):
        product = make_product()
        keep = _sale(client, employee_headers, [{"producto": product.id, "cantidad": 1}]).json["venta"]["id"]
        drop = _sale(client, employee_headers, [{"producto": product.id, "cantidad": 1}]).json["venta"]["id"]
        client.put(f"/api/ventas/{drop}/cancelar", headers=employee_headers, json={})

        resp = client.get("/api/ventas", headers=employee_headers)
        assert [v["id"] for v in resp.json["ventas"]] == [keep]

        resp = client.get("/api/ventas?estado=todos", headers=employee_headers)
        assert resp.json["pagination"]["totalItems"] == 2

    def test_sales_of_day_hides_profit_from_employees(self, client, employee_headers, owner_headers, make_product):
        product = make_product()
        _sale(client, employee_headers, [{"producto": product.id, "cantidad": 2}])

        resp = client.get("/api/ventas/del-dia", headers=employee_headers)
        assert resp.status_code == 200
        assert resp.json["fecha"] == utcnow().date().isoformat()
        assert resp.json["resumen"]["totalVentas"] == 1
        assert resp.json["resumen"]["totalMonto"] == 20.0
        assert resp.json["resumen"]["gananciaTotal"] is None

        resp = client.get("/api/ventas/del-dia", headers=owner_headers)
        assert resp.json["resumen"]["gananciaTotal"] == 12.0

    def test_statistics_require_both_dates(self, client, reporting_headers, db_session):
        resp = client.get("/api/ventas/estadisticas?fechaInicio=2024-01-01", headers=reporting_headers)
        assert resp.status_code == 400

    def test_statistics_require_reports_permission(self, client, employee_headers, db_session):
        today = utcnow().date().isoformat()
        resp = client.get(
            f"/api/ventas/estadisticas?fechaInicio={today}&fechaFin={today}",
            headers=employee_headers,
        )
        assert resp.status_code == 403

    def test_statistics_for_range(self, client, owner_headers, make_product):
        product = make_product()
        _sale(client, owner_headers, [{"producto": product.id, "cantidad": 1}])
        _sale(client, owner_headers, [{"producto": product.id, "cantidad": 3}])

        today = utcnow().date().isoformat()
        resp = client.get(
            f"/api/ventas/estadisticas?fechaInicio={today}&fechaFin={today}",
            headers=owner_headers,
        )
        assert resp.status_code == 200
        stats = resp.json["estadisticas"]
        assert stats["totalVentas"] == 2
        assert stats["totalMonto"] == 40.0
        assert stats["promedioVenta"] == 20.0
        assert stats["gananciaTotal"] == 24.0
        assert stats["margenPromedio"] == 60.0

    def test_sale_detail_profit_for_owner_only(self, client, owner_headers, employee_headers, make_product):
        product = make_product()
        sale_id = _sale(client, employee_headers, [{"producto": product.id, "cantidad": 1}]).json["venta"]["id"]

        assert client.get(f"/api/ventas/{sale_id}", headers=employee_headers).json["ganancia"] is None
        assert client.get(f"/api/ventas/{sale_id}", headers=owner_headers).json["ganancia"] == 6.0
