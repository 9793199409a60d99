"""
Client management tests.

Verifies:
- Phone uniqueness among active clients only
- Soft delete
- Frequent / inactive listings
- Running statistics kept by sale creation and cancellation
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from globos.extensions import db
from globos.models import Client
from globos.time_utils import utcnow


class TestClientCrud:

    def test_create_client(self, client, employee_headers):
        resp = client.post("/api/clientes", headers=employee_headers, json={
            "nombre": "Fiestas Ana",
            "telefono": "555-123-4567",
            "tipoCliente": "evento",
            "preferencias": {"colores": ["rosa", "dorado"]},
        })
        assert resp.status_code == 201
        cliente = resp.json["cliente"]
        assert cliente["telefono"] == "5551234567"
        assert cliente["preferencias"]["colores"] == ["rosa", "dorado"]
        assert cliente["preferencias"]["tiposGlobos"] == []
        assert cliente["numeroVentas"] == 0

    def test_duplicate_phone_rejected(self, client, employee_headers, make_client):
        make_client(telefono="5551234567")
        resp = client.post("/api/clientes", headers=employee_headers, json={
            "nombre": "Otra Persona",
            "telefono": "5551234567",
        })
        assert resp.status_code == 400
        assert resp.json["error"] == "Cliente ya existe"

    def test_phone_of_inactive_client_can_be_reused(self, client, employee_headers, make_client):
        make_client(telefono="5551234567", activo=False)
        resp = client.post("/api/clientes", headers=employee_headers, json={
            "nombre": "Otra Persona",
            "telefono": "5551234567",
        })
        assert resp.status_code == 201

    def test_invalid_phone(self, client, employee_headers, db_session):
        resp = client.post("/api/clientes", headers=employee_headers, json={"nombre": "Ana", "telefono": "12"})
        assert resp.status_code == 400
        assert resp.json["details"][0]["campo"] == "telefono"

    def test_update_client(self, client, employee_headers, make_client):
        existing = make_client()
        resp = client.put(f"/api/clientes/{existing.id}", headers=employee_headers, json={"notas": "Prefiere globos metálicos"})
        assert resp.status_code == 200
        assert resp.json["cliente"]["notas"] == "Prefiere globos metálicos"
        assert resp.json["cliente"]["nombre"] == existing.nombre

    @pytest.mark.parametrize("field", ["tipoCliente", "activo"])
    def test_null_required_field_rejected(self, client, employee_headers, make_client, field):
        existing = make_client()
        resp = client.put(f"/api/clientes/{existing.id}", headers=employee_headers, json={field: None})
        assert resp.status_code == 400
        assert resp.json["details"][0]["campo"] == field
        assert db.session.get(Client, existing.id).tipo_cliente == "individual"

    def test_delete_is_soft(self, client, employee_headers, make_client):
        existing = make_client()
        resp = client.delete(f"/api/clientes/{existing.id}", headers=employee_headers)
        assert resp.status_code == 200
        assert db.session.get(Client, existing.id).activo is False

        listed = client.get("/api/clientes", headers=employee_headers)
        assert listed.json["pagination"]["totalItems"] == 0
        listed_all = client.get("/api/clientes?activo=todos", headers=employee_headers)
        assert listed_all.json["pagination"]["totalItems"] == 1

    def test_requires_clients_permission(self, client, customer_headers):
        resp = client.get("/api/clientes", headers=customer_headers)
        assert resp.status_code == 403


class TestClientListings:

    def test_search(self, client, employee_headers, make_client):
        make_client(nombre="Lucía Pérez")
        make_client(nombre="Mario Díaz")
        resp = client.get("/api/clientes/buscar?q=Lucía", headers=employee_headers)
        assert resp.status_code == 200
        assert [c["nombre"] for c in resp.json["clientes"]] == ["Lucía Pérez"]

    def test_search_matches_underscore_literally(self, client, employee_headers, make_client):
        make_client(nombre="Ana_Lopez")
        make_client(nombre="AnaXLopez")
        resp = client.get("/api/clientes/buscar", query_string={"q": "a_l"}, headers=employee_headers)
        assert resp.status_code == 200
        assert [c["nombre"] for c in resp.json["clientes"]] == ["Ana_Lopez"]

    def test_frequent(self, client, employee_headers, make_client):
        make_client(nombre="Por tipo", tipo_cliente="frecuente")
        make_client(nombre="Por ventas", numero_ventas=5)
        make_client(nombre="Ocasional", numero_ventas=2)
        resp = client.get("/api/clientes/frecuentes", headers=employee_headers)
        assert sorted(c["nombre"] for c in resp.json["clientes"]) == ["Por tipo", "Por ventas"]

    def test_inactive(self, client, employee_headers, make_client):
        make_client(nombre="Olvidado", ultima_compra=utcnow() - timedelta(days=120))
        make_client(nombre="Reciente", ultima_compra=utcnow() - timedelta(days=10))
        resp = client.get("/api/clientes/inactivos?diasInactividad=90", headers=employee_headers)
        assert resp.status_code == 200
        assert [c["nombre"] for c in resp.json["clientes"]] == ["Olvidado"]
        assert resp.json["diasInactividad"] == 90

    def test_inactive_rejects_bad_days(self, client, employee_headers, db_session):
        resp = client.get("/api/clientes/inactivos?diasInactividad=abc", headers=employee_headers)
        assert resp.status_code == 400


class TestClientStatistics:

    def _sell(self, client, headers, product, registered, cantidad=1):
        return client.post("/api/ventas", headers=headers, json={
            "cliente": registered.id,
            "items": [{"producto": product.id, "cantidad": cantidad}],
        })

    def test_sale_and_cancellation_round_trip(self, client, employee_headers, make_product, make_client):
        product = make_product(precio_venta=Decimal("25.00"))
        registered = make_client()

        first = self._sell(client, employee_headers, product, registered, cantidad=2)
        second = self._sell(client, employee_headers, product, registered, cantidad=1)
        assert first.status_code == 201 and second.status_code == 201

        stats = client.get(f"/api/clientes/{registered.id}/estadisticas", headers=employee_headers).json
        assert stats["estadisticas"]["numeroVentas"] == 2
        assert stats["estadisticas"]["totalCompras"] == 75.0
        assert stats["estadisticas"]["promedioCompra"] == 37.5
        assert stats["estadisticas"]["diasDesdeUltimaCompra"] == 0

        client.put(f"/api/ventas/{first.json['venta']['id']}/cancelar", headers=employee_headers, json={})

        stats = client.get(f"/api/clientes/{registered.id}/estadisticas", headers=employee_headers).json
        assert stats["estadisticas"]["numeroVentas"] == 1
        assert stats["estadisticas"]["totalCompras"] == 25.0
        assert stats["estadisticas"]["promedioCompra"] == 25.0

    def test_promoted_to_frequent_at_ten_sales(self, client, employee_headers, make_product, make_client):
        product = make_product(stock=50)
        registered = make_client(numero_ventas=9, total_compras=Decimal("90.00"))

        resp = self._sell(client, employee_headers, product, registered)
        assert resp.status_code == 201
        assert db.session.get(Client, registered.id).tipo_cliente == "frecuente"

    @pytest.mark.parametrize("count", [0, 1])
    def test_statistics_floor_at_zero(self, make_client, count):
        registered = make_client(numero_ventas=count, total_compras=Decimal("5.00"))
        registered.revert_sale(Decimal("20.00"))
        assert registered.numero_ventas == 0
        assert registered.total_compras == Decimal("0.00")
        assert registered.promedio_compra == Decimal("0.00")
