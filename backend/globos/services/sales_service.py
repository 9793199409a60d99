# Overview: Service-layer operations for sales; encapsulates business logic and database work.

"""
Sale lifecycle.

A sale is created 'completada' in one transaction that inserts the record,
reserves stock and updates the linked client's statistics; any failure
rolls all of it back. Cancelling is one-way and reverses both side effects
exactly once.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from flask import current_app

from ..errors import ApiError, NotFoundError
from ..extensions import db
from ..models import Client, Product, Sale, SaleItem
from ..money import ZERO, safe_ratio
from ..validation import ValidationError
from . import stock_service
from .concurrency import retry_once_on_collision
from .document_service import SALE_PREFIX, next_display_number
from .pagination import paginate
from globos.time_utils import day_bounds, inclusive_range, utcnow


class SaleError(ApiError):
    """Business rule violation on a sale."""


def _amounts_total(entries) -> Decimal:
    return sum((entry["precio"] for entry in entries or []), ZERO)


def _resolve_customer(data: dict) -> tuple[Client | None, dict | None]:
    client_id = data.get("cliente")
    if client_id:
        client = db.session.get(Client, client_id)
        if not client or not client.activo:
            raise NotFoundError("El cliente no existe o está inactivo", label="Cliente no encontrado")
        return client, None

    walk_in = data.get("datosCliente") or {}
    errors = []
    if not walk_in.get("nombre"):
        errors.append({"campo": "datosCliente.nombre",
                       "mensaje": "Nombre del cliente requerido si no hay cliente registrado"})
    if not walk_in.get("telefono"):
        errors.append({"campo": "datosCliente.telefono",
                       "mensaje": "Teléfono del cliente requerido si no hay cliente registrado"})
    if errors:
        raise ValidationError(errors)
    return None, {"nombre": walk_in["nombre"], "telefono": walk_in["telefono"]}


def _serialize_amounts(entries: list[dict]) -> list[dict]:
    """JSON-safe copy of service entries (Decimal -> float)."""
    return [
        {key: (float(value) if key == "precio" else value) for key, value in entry.items() if value is not None}
        for entry in entries or []
    ]


def create_sale(data: dict, seller) -> Sale:
    """
    Create a completed sale from validated data.

    Line price defaults to the product's sale price and may be overridden;
    line subtotal = cantidad x precio + line extras; sale subtotal = sum of
    lines + ad-hoc services; total = subtotal - descuento.
    """
    def _create() -> Sale:
        client, walk_in = _resolve_customer(data)
        lines = stock_service.collect_lines(data["items"])

        sale = Sale(
            numero=next_display_number(Sale, SALE_PREFIX),
            cliente_id=client.id if client else None,
            datos_cliente=walk_in,
            vendedor_id=seller.id,
            metodo_pago=data.get("metodoPago") or "efectivo",
            tipo_venta=data.get("tipoVenta") or "directa",
            estado="completada",
            servicios_realizados=_serialize_amounts(data.get("serviciosRealizados")),
            notas=data.get("notas"),
            fecha_venta=utcnow(),
            fecha_entrega=data.get("fechaEntrega"),
        )

        subtotal = ZERO
        for line in lines:
            unit_price = line.request.get("precioUnitario")
            if unit_price is None:
                unit_price = line.product.precio_venta
            extras = line.request.get("serviciosAdicionales") or []
            line_subtotal = unit_price * line.cantidad + _amounts_total(extras)
            sale.items.append(SaleItem(
                product_id=line.product.id,
                nombre=line.product.nombre,
                cantidad=line.cantidad,
                precio_unitario=unit_price,
                subtotal=line_subtotal,
                servicios_adicionales=_serialize_amounts(extras),
            ))
            subtotal += line_subtotal

        subtotal += _amounts_total(data.get("serviciosRealizados"))
        descuento = data.get("descuento") or ZERO
        if descuento > subtotal:
            raise SaleError(
                "El descuento no puede ser mayor que el subtotal",
                [{"campo": "descuento", "mensaje": f"Máximo permitido: {subtotal}"}],
                label="Descuento inválido",
            )

        sale.subtotal = subtotal
        sale.descuento = descuento
        sale.total = subtotal - descuento

        db.session.add(sale)
        db.session.flush()

        stock_service.reserve((line.product.id, line.cantidad) for line in lines)
        if client:
            client.record_sale(sale.total)

        db.session.commit()
        return sale

    try:
        sale = retry_once_on_collision(_create)
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Created sale %s total=%s", sale.numero, sale.total)
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("La venta no existe", label="Venta no encontrada")
    return sale


def cancel_sale(sale_id: int, motivo: str | None = None) -> Sale:
    """Restore stock and reverse client statistics; one-way."""
    sale = get_sale(sale_id)
    if sale.estado == "cancelada":
        raise SaleError("Esta venta ya fue cancelada anteriormente", label="Venta ya cancelada")

    try:
        stock_service.restore(stock_service.line_pairs(sale.items))
        if sale.cliente_id:
            client = db.session.get(Client, sale.cliente_id)
            if client:
                client.revert_sale(sale.total)

        sale.estado = "cancelada"
        sale.cancelled_at = utcnow()
        reason = motivo or "Sin motivo especificado"
        sale.notas = f"{sale.notas or ''}\n\nCANCELADA: {reason}".strip()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Cancelled sale %s", sale.numero)
    return sale


def _apply_filters(query, filters: dict):
    estado = filters.get("estado") or "completada"
    if estado != "todos":
        query = query.filter(Sale.estado == estado)
    if filters.get("metodoPago"):
        query = query.filter(Sale.metodo_pago == filters["metodoPago"])
    if filters.get("tipoVenta"):
        query = query.filter(Sale.tipo_venta == filters["tipoVenta"])
    if filters.get("vendedor"):
        query = query.filter(Sale.vendedor_id == filters["vendedor"])

    start, end = inclusive_range(filters.get("fechaInicio"), filters.get("fechaFin"))
    if start:
        query = query.filter(Sale.fecha_venta >= start)
    if end:
        query = query.filter(Sale.fecha_venta < end)
    return query


def list_sales(filters: dict, page: int, limit: int) -> tuple[list[Sale], dict]:
    query = _apply_filters(db.session.query(Sale), filters)
    query = query.order_by(Sale.fecha_venta.desc(), Sale.id.desc())
    return paginate(query, page, limit)


def sales_between(start, end, estado: str = "completada") -> list[Sale]:
    """Sales with fecha_venta in [start, end)."""
    query = db.session.query(Sale).filter(Sale.fecha_venta >= start, Sale.fecha_venta < end)
    if estado != "todos":
        query = query.filter(Sale.estado == estado)
    return query.order_by(Sale.fecha_venta.desc(), Sale.id.desc()).all()


def sale_profit(sale: Sale):
    """
    (unit price - current purchase price) x quantity per line, plus line
    extras and ad-hoc services, which carry no purchase cost. Uses the
    product's purchase price as of now, so history drifts with price edits.
    """
    profit = ZERO
    for item in sale.items:
        product = db.session.get(Product, item.product_id) if item.product_id else None
        if product is not None:
            profit += (item.precio_unitario - product.precio_compra) * item.cantidad
        profit += item.extras_total()
    profit += sale.services_total()
    return profit


def summarize(sales: list[Sale], include_profit: bool) -> dict:
    total_ventas = len(sales)
    total_monto = sum((sale.total for sale in sales), ZERO)
    summary = {
        "totalVentas": total_ventas,
        "totalMonto": float(total_monto),
        "promedioVenta": float(safe_ratio(total_monto, total_ventas)),
        "gananciaTotal": None,
        "margenPromedio": None,
    }
    if include_profit:
        profit = sum((sale_profit(sale) for sale in sales), ZERO)
        summary["gananciaTotal"] = float(profit)
        summary["margenPromedio"] = float(safe_ratio(profit * 100, total_monto))
    return summary


def sales_of_day(day: date, include_profit: bool) -> tuple[list[Sale], dict]:
    start, end = day_bounds(day)
    sales = sales_between(start, end)
    summary = summarize(sales, include_profit)
    summary.pop("margenPromedio")
    return sales, summary


def sales_statistics(start, end, include_profit: bool) -> dict:
    start, end = inclusive_range(start, end)
    return summarize(sales_between(start, end), include_profit)
