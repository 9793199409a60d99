# Overview: Service-layer operations for storefront orders; encapsulates business logic and database work.

"""
Order lifecycle.

Orders are placed from the public storefront; stock is reserved in the
same transaction that inserts the order. Status moves through an
admin-controlled state machine:

    en-proceso    -> listo-entrega | entregado | cancelado
    listo-entrega -> en-proceso | entregado | cancelado
    cancelado     -> en-proceso | listo-entrega | entregado   (reactivation)
    entregado     -> (terminal)

Entering 'cancelado' restores stock. Leaving 'cancelado' re-checks every
line and reserves stock again at the original prices, or rejects the
transition with no effect.
"""

from __future__ import annotations

from flask import current_app

from ..errors import InvalidTransitionError, NotFoundError
from ..extensions import db
from ..models import Order, OrderItem
from ..models.auth import ROLE_CUSTOMER
from ..models.orders import (
    ORDER_CANCELLED,
    ORDER_DELIVERED,
    ORDER_IN_PROCESS,
    ORDER_READY,
    ORDER_STATUSES,
)
from ..money import ZERO
from . import stock_service
from .concurrency import retry_once_on_collision
from .document_service import ORDER_PREFIX, generate_tracking_code, next_display_number
from .pagination import paginate
from globos.time_utils import day_bounds, inclusive_range, month_start, utcnow


ALLOWED_TRANSITIONS = {
    ORDER_IN_PROCESS: {ORDER_READY, ORDER_DELIVERED, ORDER_CANCELLED},
    ORDER_READY: {ORDER_IN_PROCESS, ORDER_DELIVERED, ORDER_CANCELLED},
    ORDER_CANCELLED: {ORDER_IN_PROCESS, ORDER_READY, ORDER_DELIVERED},
    ORDER_DELIVERED: set(),
}


class OrderError(InvalidTransitionError):
    """Order state rule violation."""


def create_order(data: dict, user=None) -> Order:
    """
    Place an order at current sale prices (no overrides, no discount).

    A unique collision on tracking code or number reruns the whole creation
    once with fresh draws.
    """
    customer = data["cliente"]

    def _create() -> Order:
        lines = stock_service.collect_lines(data["items"])
        now = utcnow()

        order = Order(
            numero=next_display_number(Order, ORDER_PREFIX),
            codigo_seguimiento=generate_tracking_code(),
            cliente_nombre=customer["nombre"],
            cliente_telefono=customer["telefono"],
            cliente_email=customer.get("email"),
            usuario_id=user.id if user is not None and user.rol == ROLE_CUSTOMER else None,
            estado=ORDER_IN_PROCESS,
            notas_cliente=data.get("notasCliente"),
            fecha_pedido=now,
            fecha_estado_actual=now,
        )

        subtotal = ZERO
        for line in lines:
            line_subtotal = line.product.precio_venta * line.cantidad
            order.items.append(OrderItem(
                product_id=line.product.id,
                nombre=line.product.nombre,
                cantidad=line.cantidad,
                precio_unitario=line.product.precio_venta,
                subtotal=line_subtotal,
                imagen_url=line.product.imagen_url,
            ))
            subtotal += line_subtotal

        order.subtotal = subtotal
        order.total = subtotal

        db.session.add(order)
        db.session.flush()
        stock_service.reserve((line.product.id, line.cantidad) for line in lines)
        db.session.commit()
        return order

    try:
        order = retry_once_on_collision(_create)
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Created order %s (code %s)", order.numero, order.codigo_seguimiento)
    return order


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("El pedido no existe", label="Pedido no encontrado")
    return order


def get_by_tracking_code(codigo: str) -> Order:
    order = db.session.query(Order).filter_by(codigo_seguimiento=codigo).first()
    if not order:
        raise NotFoundError(
            "No se encontró un pedido con ese código de seguimiento",
            label="Pedido no encontrado",
        )
    return order


def update_status(order_id: int, estado: str, notas_admin: str | None = None) -> Order:
    """Admin transition with compensating stock effects."""
    if estado not in ORDER_STATUSES:
        raise OrderError(
            f"Los estados válidos son: {', '.join(ORDER_STATUSES)}",
            label="Estado inválido",
        )

    order = get_order(order_id)
    previous = order.estado

    if estado != previous and estado not in ALLOWED_TRANSITIONS[previous]:
        if previous == ORDER_DELIVERED:
            message = "Un pedido entregado no puede cambiar de estado"
        else:
            message = f"No se puede pasar de {previous} a {estado}"
        raise OrderError(message)

    pairs = stock_service.line_pairs(order.items)
    try:
        if estado == ORDER_CANCELLED and previous != ORDER_CANCELLED:
            stock_service.restore(pairs)
        elif previous == ORDER_CANCELLED and estado != ORDER_CANCELLED:
            stock_service.check_available(pairs)
            stock_service.reserve(pairs)

        order.estado = estado
        order.fecha_estado_actual = utcnow()
        if notas_admin:
            order.notas_admin = notas_admin
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    if previous != estado:
        current_app.logger.info("Order %s: %s -> %s", order.numero, previous, estado)
    return order


def cancel_by_tracking_code(codigo: str, motivo: str | None = None) -> Order:
    """Customer cancellation, allowed while neither cancelled nor delivered."""
    order = get_by_tracking_code(codigo)

    if order.estado == ORDER_DELIVERED:
        raise OrderError(
            "No se puede cancelar un pedido que ya fue entregado",
            label="No se puede cancelar",
        )
    if order.estado == ORDER_CANCELLED:
        raise OrderError("Este pedido ya fue cancelado", label="Pedido ya cancelado")

    try:
        stock_service.restore(stock_service.line_pairs(order.items))
        order.estado = ORDER_CANCELLED
        order.fecha_estado_actual = utcnow()
        if motivo:
            order.notas_cliente = f"{order.notas_cliente or ''}\n\nCANCELADO: {motivo}".strip()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Order %s cancelled by customer", order.numero)
    return order


def list_orders(filters: dict, page: int, limit: int) -> tuple[list[Order], dict]:
    query = db.session.query(Order)

    estado = filters.get("estado")
    if estado and estado != "todos":
        query = query.filter(Order.estado == estado)

    start, end = inclusive_range(filters.get("fechaInicio"), filters.get("fechaFin"))
    if start:
        query = query.filter(Order.fecha_pedido >= start)
    if end:
        query = query.filter(Order.fecha_pedido < end)

    query = query.order_by(Order.fecha_pedido.desc(), Order.id.desc())
    return paginate(query, page, limit)


def order_statistics() -> dict:
    now = utcnow()
    today_start, today_end = day_bounds(now.date())
    first_of_month = month_start(now)

    pedidos_hoy = db.session.query(db.func.count(Order.id)).filter(
        Order.fecha_pedido >= today_start, Order.fecha_pedido < today_end
    ).scalar()

    pedidos_mes, monto_mes = db.session.query(
        db.func.count(Order.id), db.func.coalesce(db.func.sum(Order.total), 0)
    ).filter(Order.fecha_pedido >= first_of_month).one()

    by_status = db.session.query(
        Order.estado, db.func.count(Order.id), db.func.coalesce(db.func.sum(Order.total), 0)
    ).group_by(Order.estado).all()

    return {
        "pedidosHoy": pedidos_hoy or 0,
        "pedidosMes": pedidos_mes or 0,
        "montoTotalMes": float(monto_mes or 0),
        "pedidosPorEstado": {
            estado: {"cantidad": cantidad, "totalMonto": float(total or 0)}
            for estado, cantidad, total in by_status
        },
    }
