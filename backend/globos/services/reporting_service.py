# Overview: Read-only rollups over live sales, products and clients for the reports endpoints.

"""
Reports are recomputed from the current rows on every request; nothing is
cached or materialized. Profit uses each product's purchase price as of
now, so historical figures drift when purchase prices are edited.

Every builder takes include_profit; when it is False the profit, margin
and inventory value fields are returned as None.
"""

from __future__ import annotations

from collections import OrderedDict
from decimal import Decimal

from ..errors import ApiError
from ..extensions import db
from ..models import Client, Product
from ..money import ZERO, as_float, safe_ratio
from . import products_service, sales_service
from globos.time_utils import day_bounds, inclusive_range, month_start, to_utc_z, utcnow


TOP_PRODUCTS_LIMIT = 5
DASHBOARD_FREQUENT_MIN_SALES = 3
DASHBOARD_FREQUENT_LIMIT = 5
LOW_STOCK_PREVIEW = 10
TOP_CLIENTS_LIMIT = 10
ACTIVE_CLIENT_MIN_SALES = 1
FREQUENT_CLIENT_MIN_SALES = 5


class ReportError(ApiError):
    """Bad report parameters."""


def _profit_total(sales) -> Decimal:
    return sum((sales_service.sale_profit(sale) for sale in sales), ZERO)


def _amount_total(sales) -> Decimal:
    return sum((sale.total for sale in sales), ZERO)


def _top_products(sales, limit: int = TOP_PRODUCTS_LIMIT) -> list[dict]:
    """Best sellers by units; lines whose product was deleted are grouped by name."""
    rollup: dict = {}
    for sale in sales:
        for item in sale.items:
            key = item.product_id or f"nombre:{item.nombre}"
            entry = rollup.setdefault(key, {
                "producto": item.product_id,
                "nombreProducto": item.nombre,
                "cantidadVendida": 0,
                "ingresoTotal": ZERO,
            })
            entry["cantidadVendida"] += item.cantidad
            entry["ingresoTotal"] += item.subtotal

    ranked = sorted(rollup.values(), key=lambda e: (-e["cantidadVendida"], e["nombreProducto"]))
    return [dict(entry, ingresoTotal=float(entry["ingresoTotal"])) for entry in ranked[:limit]]


def _by_payment_method(sales) -> list[dict]:
    rollup: dict = {}
    for sale in sales:
        entry = rollup.setdefault(sale.metodo_pago, {"metodo": sale.metodo_pago, "cantidad": 0, "total": ZERO})
        entry["cantidad"] += 1
        entry["total"] += sale.total
    ranked = sorted(rollup.values(), key=lambda e: -e["total"])
    return [dict(entry, total=float(entry["total"])) for entry in ranked]


def dashboard(include_profit: bool) -> dict:
    now = utcnow()
    today_start, today_end = day_bounds(now.date())
    first_of_month = month_start(now)

    sales_today = sales_service.sales_between(today_start, today_end)
    sales_month = sales_service.sales_between(first_of_month, today_end)

    low_stock = products_service.low_stock_products()
    frequent = (
        db.session.query(Client)
        .filter(Client.activo.is_(True), Client.numero_ventas >= DASHBOARD_FREQUENT_MIN_SALES)
        .order_by(Client.total_compras.desc(), Client.id.asc())
        .limit(DASHBOARD_FREQUENT_LIMIT)
        .all()
    )

    return {
        "periodo": {"hoy": to_utc_z(today_start), "inicioMes": to_utc_z(first_of_month)},
        "resumenDiario": {
            "ventasHoy": len(sales_today),
            "montoHoy": float(_amount_total(sales_today)),
            "gananciaHoy": float(_profit_total(sales_today)) if include_profit else None,
        },
        "resumenMensual": {
            "ventasMes": len(sales_month),
            "montoMes": float(_amount_total(sales_month)),
            "gananciaMes": float(_profit_total(sales_month)) if include_profit else None,
        },
        "inventario": {
            "productosStockBajo": len(low_stock),
            "listaBajo": [
                {
                    "id": p.id,
                    "nombre": p.nombre,
                    "stock": p.stock,
                    "stockMinimo": p.stock_minimo,
                    "categoria": p.categoria,
                }
                for p in low_stock[:LOW_STOCK_PREVIEW]
            ],
        },
        "topProductos": _top_products(sales_month),
        "clientesFrecuentes": [
            {
                "id": c.id,
                "nombre": c.nombre,
                "telefono": c.telefono,
                "numeroVentas": c.numero_ventas,
                "totalCompras": as_float(c.total_compras),
            }
            for c in frequent
        ],
        "ventasPorMetodo": _by_payment_method(sales_month),
    }


def sales_report(start, end, include_profit: bool) -> dict:
    """Completed sales between two dates grouped by UTC day, oldest first."""
    if start is None or end is None:
        raise ReportError("fechaInicio y fechaFin son requeridas", label="Fechas requeridas")
    if end < start:
        raise ReportError("fechaFin no puede ser anterior a fechaInicio", label="Fechas inválidas")

    range_start, range_end = inclusive_range(start, end)
    sales = sales_service.sales_between(range_start, range_end)

    days: "OrderedDict[str, dict]" = OrderedDict()
    for sale in sorted(sales, key=lambda s: (s.fecha_venta, s.id)):
        key = sale.fecha_venta.date().isoformat()
        bucket = days.setdefault(key, {"fecha": key, "cantidad": 0, "monto": ZERO, "ventas": []})
        bucket["cantidad"] += 1
        bucket["monto"] += sale.total
        bucket["ventas"].append({
            "numero": sale.numero,
            "total": as_float(sale.total),
            "metodoPago": sale.metodo_pago,
            "vendedor": sale.vendedor.nombre if sale.vendedor else None,
        })

    total = _amount_total(sales)
    return {
        "periodo": {"fechaInicio": to_utc_z(start), "fechaFin": to_utc_z(end)},
        "resumen": {
            "totalVentas": len(sales),
            "montoTotal": float(total),
            "promedioVenta": float(safe_ratio(total, len(sales))),
            "gananciaTotal": float(_profit_total(sales)) if include_profit else None,
        },
        "ventasPorDia": [dict(day, monto=float(day["monto"])) for day in days.values()],
    }


def inventory_report(filters: dict, include_profit: bool) -> dict:
    """Active products grouped by category with stock valued at purchase price."""
    query = db.session.query(Product).filter(Product.activo.is_(True))
    categoria = filters.get("categoria")
    if categoria and categoria != "todos":
        query = query.filter(Product.categoria == categoria)
    if filters.get("stockBajo"):
        query = query.filter(Product.stock <= Product.stock_minimo)
    products = query.order_by(Product.categoria.asc(), Product.nombre.asc()).all()

    groups: "OrderedDict[str, dict]" = OrderedDict()
    total_value = ZERO
    for product in products:
        value = product.precio_compra * product.stock
        total_value += value
        group = groups.setdefault(product.categoria, {
            "categoria": product.categoria,
            "productos": [],
            "cantidadProductos": 0,
            "valorCategoria": ZERO,
        })
        group["productos"].append({
            "id": product.id,
            "nombre": product.nombre,
            "stock": product.stock,
            "stockMinimo": product.stock_minimo,
            "precioVenta": as_float(product.precio_venta),
            "precioCompra": as_float(product.precio_compra) if include_profit else None,
            "valorInventario": float(value) if include_profit else None,
            "margen": product.margen if include_profit else None,
            "stockBajo": product.stock_bajo,
        })
        group["cantidadProductos"] += 1
        group["valorCategoria"] += value

    return {
        "resumen": {
            "totalProductos": len(products),
            "valorInventarioTotal": float(total_value) if include_profit else None,
            "productosStockBajo": sum(1 for p in products if p.stock_bajo),
        },
        "productosPorCategoria": [
            dict(group, valorCategoria=float(group["valorCategoria"]) if include_profit else None)
            for group in groups.values()
        ],
    }


def clients_report(filters: dict) -> dict:
    query = db.session.query(Client).filter(Client.activo.is_(True))
    tipo = filters.get("tipoCliente")
    if tipo and tipo != "todos":
        query = query.filter(Client.tipo_cliente == tipo)
    clients = query.order_by(Client.total_compras.desc(), Client.id.asc()).all()

    segments: "OrderedDict[str, dict]" = OrderedDict()
    for client in clients:
        segment = segments.setdefault(client.tipo_cliente, {
            "tipo": client.tipo_cliente,
            "cantidad": 0,
            "ventasTotal": 0,
            "montoTotal": ZERO,
        })
        segment["cantidad"] += 1
        segment["ventasTotal"] += client.numero_ventas
        segment["montoTotal"] += client.total_compras

    return {
        "resumen": {
            "totalClientes": len(clients),
            "clientesActivos": sum(1 for c in clients if c.numero_ventas >= ACTIVE_CLIENT_MIN_SALES),
            "clientesFrecuentes": sum(1 for c in clients if c.numero_ventas >= FREQUENT_CLIENT_MIN_SALES),
            "clientesNuevos": sum(1 for c in clients if c.numero_ventas == 0),
        },
        "clientesPorTipo": [dict(s, montoTotal=float(s["montoTotal"])) for s in segments.values()],
        "topClientes": [
            {
                "id": c.id,
                "nombre": c.nombre,
                "telefono": c.telefono,
                "tipoCliente": c.tipo_cliente,
                "numeroVentas": c.numero_ventas,
                "totalCompras": as_float(c.total_compras),
                "promedioCompra": as_float(c.promedio_compra),
                "ultimaCompra": to_utc_z(c.ultima_compra),
            }
            for c in clients[:TOP_CLIENTS_LIMIT]
        ],
    }
