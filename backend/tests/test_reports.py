"""
Report tests.

Verifies:
- 'reportes' gates every report
- Profit and inventory value are null for everyone but owners
- Date validation on the sales report
"""

from datetime import timedelta
from decimal import Decimal

from globos.time_utils import utcnow


def _sell(client, headers, product, cantidad=1, **extra):
    body = {
        "items": [{"producto": product.id, "cantidad": cantidad}],
        "datosCliente": {"nombre": "Ana", "telefono": "5551112222"},
    }
    body.update(extra)
    resp = client.post("/api/ventas", headers=headers, json=body)
    assert resp.status_code == 201
    return resp.json["venta"]


class TestAccess:

    def test_employee_without_reports_is_denied(self, client, employee_headers, db_session):
        for path in ("dashboard", "inventario", "clientes"):
            assert client.get(f"/api/reportes/{path}", headers=employee_headers).status_code == 403

    def test_reporting_employee_sees_no_profit(self, client, reporting_headers, owner_headers, make_product):
        product = make_product()
        _sell(client, owner_headers, product, cantidad=2)

        resp = client.get("/api/reportes/dashboard", headers=reporting_headers)
        assert resp.status_code == 200
        assert resp.json["resumenDiario"]["ventasHoy"] == 1
        assert resp.json["resumenDiario"]["montoHoy"] == 20.0
        assert resp.json["resumenDiario"]["gananciaHoy"] is None
        assert resp.json["resumenMensual"]["gananciaMes"] is None

    def test_owner_sees_profit(self, client, owner_headers, make_product):
        product = make_product()
        _sell(client, owner_headers, product, cantidad=2)

        resp = client.get("/api/reportes/dashboard", headers=owner_headers)
        assert resp.json["resumenDiario"]["gananciaHoy"] == 12.0
        assert resp.json["resumenMensual"]["gananciaMes"] == 12.0


class TestDashboard:

    def test_top_products_and_payment_methods(self, client, owner_headers, make_product):
        popular = make_product(nombre="Popular")
        rare = make_product(nombre="Raro")
        _sell(client, owner_headers, popular, cantidad=5)
        _sell(client, owner_headers, rare, cantidad=1, metodoPago="tarjeta")

        data = client.get("/api/reportes/dashboard", headers=owner_headers).json
        assert [p["nombreProducto"] for p in data["topProductos"]] == ["Popular", "Raro"]
        assert data["topProductos"][0]["cantidadVendida"] == 5
        assert data["topProductos"][0]["ingresoTotal"] == 50.0
        assert data["ventasPorMetodo"] == [
            {"metodo": "efectivo", "cantidad": 1, "total": 50.0},
            {"metodo": "tarjeta", "cantidad": 1, "total": 10.0},
        ]

    def test_low_stock_and_frequent_clients(self, client, owner_headers, make_product, make_client):
        make_product(nombre="Casi agotado", stock=2, stock_minimo=5)
        make_product(nombre="Surtido", stock=50)
        make_client(nombre="Habitual", numero_ventas=4, total_compras=Decimal("400.00"))
        make_client(nombre="Nuevo", numero_ventas=1, total_compras=Decimal("10.00"))

        data = client.get("/api/reportes/dashboard", headers=owner_headers).json
        assert data["inventario"]["productosStockBajo"] == 1
        assert data["inventario"]["listaBajo"][0]["nombre"] == "Casi agotado"
        assert [c["nombre"] for c in data["clientesFrecuentes"]] == ["Habitual"]

    def test_cancelled_sales_are_excluded(self, client, owner_headers, make_product):
        product = make_product()
        venta = _sell(client, owner_headers, product)
        client.put(f"/api/ventas/{venta['id']}/cancelar", headers=owner_headers, json={})

        data = client.get("/api/reportes/dashboard", headers=owner_headers).json
        assert data["resumenDiario"]["ventasHoy"] == 0
        assert data["resumenDiario"]["montoHoy"] == 0.0


class TestSalesReport:

    def test_dates_required(self, client, owner_headers, db_session):
        resp = client.get("/api/reportes/ventas?fechaInicio=2024-01-01", headers=owner_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Fechas requeridas"

    def test_end_before_start(self, client, owner_headers, db_session):
        resp = client.get("/api/reportes/ventas?fechaInicio=2024-02-01&fechaFin=2024-01-01", headers=owner_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Fechas inválidas"

    def test_malformed_date(self, client, owner_headers, db_session):
        resp = client.get("/api/reportes/ventas?fechaInicio=ayer&fechaFin=hoy", headers=owner_headers)
        assert resp.status_code == 400

    def test_grouped_by_day(self, client, owner, owner_headers, make_product):
        product = make_product()
        _sell(client, owner_headers, product, cantidad=1)
        _sell(client, owner_headers, product, cantidad=2)

        today = utcnow().date()
        resp = client.get(
            f"/api/reportes/ventas?fechaInicio={today - timedelta(days=1)}&fechaFin={today}",
            headers=owner_headers,
        )
        assert resp.status_code == 200
        assert resp.json["resumen"]["totalVentas"] == 2
        assert resp.json["resumen"]["montoTotal"] == 30.0
        assert resp.json["resumen"]["promedioVenta"] == 15.0
        assert resp.json["resumen"]["gananciaTotal"] == 18.0

        days = resp.json["ventasPorDia"]
        assert len(days) == 1
        assert days[0]["fecha"] == today.isoformat()
        assert days[0]["cantidad"] == 2
        assert days[0]["ventas"][0]["vendedor"] == owner.nombre


class TestInventoryReport:

    def test_values_for_owner(self, client, owner_headers, make_product):
        make_product(nombre="Globo", precio_compra=Decimal("4.00"), stock=10)
        make_product(nombre="Mantel", categoria="articulos-fiesta", precio_compra=Decimal("2.50"), stock=4, stock_minimo=5)
        make_product(nombre="Descontinuado", activo=False)

        data = client.get("/api/reportes/inventario", headers=owner_headers).json
        assert data["resumen"]["totalProductos"] == 2
        assert data["resumen"]["valorInventarioTotal"] == 50.0
        assert data["resumen"]["productosStockBajo"] == 1

        by_category = {g["categoria"]: g for g in data["productosPorCategoria"]}
        assert by_category["globos"]["valorCategoria"] == 40.0
        assert by_category["articulos-fiesta"]["productos"][0]["stockBajo"] is True
        assert by_category["globos"]["productos"][0]["margen"] == 60.0

    def test_values_hidden_for_reporting_employee(self, client, reporting_headers, make_product):
        make_product()
        data = client.get("/api/reportes/inventario", headers=reporting_headers).json
        assert data["resumen"]["valorInventarioTotal"] is None
        product = data["productosPorCategoria"][0]["productos"][0]
        assert product["precioCompra"] is None
        assert product["valorInventario"] is None
        assert product["margen"] is None
        assert product["precioVenta"] == 10.0

    def test_low_stock_filter(self, client, owner_headers, make_product):
        make_product(nombre="Bajo", stock=1)
        make_product(nombre="Alto", stock=100)
        data = client.get("/api/reportes/inventario?stockBajo=true", headers=owner_headers).json
        assert data["resumen"]["totalProductos"] == 1


class TestClientsReport:

    def test_segments_and_counts(self, client, reporting_headers, make_client):
        make_client(nombre="Empresa grande", tipo_cliente="empresa", numero_ventas=6, total_compras=Decimal("600.00"))
        make_client(nombre="Ocasional", numero_ventas=1, total_compras=Decimal("20.00"))
        make_client(nombre="Sin compras")
        make_client(nombre="Dado de baja", activo=False, numero_ventas=9)

        data = client.get("/api/reportes/clientes", headers=reporting_headers).json
        assert data["resumen"] == {
            "totalClientes": 3,
            "clientesActivos": 2,
            "clientesFrecuentes": 1,
            "clientesNuevos": 1,
        }
        assert data["topClientes"][0]["nombre"] == "Empresa grande"
        tipos = {s["tipo"]: s for s in data["clientesPorTipo"]}
        assert tipos["individual"]["cantidad"] == 2
        assert tipos["empresa"]["montoTotal"] == 600.0

    def test_filter_by_type(self, client, reporting_headers, make_client):
        make_client(tipo_cliente="evento")
        make_client(tipo_cliente="individual")
        data = client.get("/api/reportes/clientes?tipoCliente=evento", headers=reporting_headers).json
        assert data["resumen"]["totalClientes"] == 1
