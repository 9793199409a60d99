# Overview: Flask API routes for orders operations; parses input and returns JSON responses.

"""
Storefront orders.

Public:
- POST /api/pedidos                      place an order
- GET  /api/pedidos/seguimiento/<codigo>  track by 6-digit code
- PUT  /api/pedidos/cancelar/<codigo>     customer cancellation

Staff (ventas; statistics need reportes):
- GET /api/pedidos/admin, /admin/<id>, /admin/estadisticas
- PUT /api/pedidos/admin/<id>/estado
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import optional_auth, require_auth, require_permission
from ..errors import ApiError, server_error
from ..schemas import ORDER, ORDER_CANCEL, ORDER_STATUS
from ..services import orders_service
from ..validation import parse_date_arg, parse_page_args, require_tracking_code
from globos.time_utils import to_utc_z


orders_bp = Blueprint("orders", __name__, url_prefix="/api/pedidos")


@orders_bp.post("")
@optional_auth
def create_order():
    """A signed-in customer account is linked to the order; anyone may order."""
    try:
        data = ORDER.validate(request.get_json(silent=True))
        order = orders_service.create_order(data, user=g.current_user)
        return jsonify({
            "success": True,
            "message": "Pedido creado exitosamente",
            "pedido": {
                "numero": order.numero,
                "codigoSeguimiento": order.codigo_seguimiento,
                "total": float(order.total),
                "estado": order.estado,
                "fechaPedido": to_utc_z(order.fecha_pedido),
            },
        }), 201

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to create order")
        return server_error(e)


@orders_bp.get("/seguimiento/<codigo>")
def track_order(codigo: str):
    try:
        order = orders_service.get_by_tracking_code(require_tracking_code(codigo))
        return jsonify({"success": True, "pedido": order.to_public_dict()}), 200
    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to track order")
        return server_error(e)


@orders_bp.put("/cancelar/<codigo>")
def cancel_order(codigo: str):
    try:
        data = ORDER_CANCEL.validate(request.get_json(silent=True) or {})
        orders_service.cancel_by_tracking_code(require_tracking_code(codigo), data.get("motivo"))
        return jsonify({"success": True, "message": "Pedido cancelado exitosamente"}), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to cancel order by tracking code")
        return server_error(e)


@orders_bp.get("/admin")
@require_auth
@require_permission("ventas")
def list_orders():
    try:
        page, limit = parse_page_args(request.args)
        filters = {
            "estado": request.args.get("estado"),
            "fechaInicio": parse_date_arg(request.args, "fechaInicio"),
            "fechaFin": parse_date_arg(request.args, "fechaFin"),
        }
        orders, pagination = orders_service.list_orders(filters, page, limit)
        return jsonify({"pedidos": [o.to_dict() for o in orders], "pagination": pagination}), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to list orders")
        return server_error(e)


@orders_bp.get("/admin/estadisticas")
@require_auth
@require_permission("reportes")
def order_statistics():
    try:
        return jsonify(orders_service.order_statistics()), 200
    except Exception as e:
        current_app.logger.exception("Failed to compute order statistics")
        return server_error(e)


@orders_bp.get("/admin/<int:order_id>")
@require_auth
@require_permission("ventas")
def get_order(order_id: int):
    try:
        order = orders_service.get_order(order_id)
        return jsonify({"pedido": order.to_dict()}), 200
    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to get order %s", order_id)
        return server_error(e)


@orders_bp.put("/admin/<int:order_id>/estado")
@require_auth
@require_permission("ventas")
def update_order_status(order_id: int):
    try:
        data = ORDER_STATUS.validate(request.get_json(silent=True))
        order = orders_service.update_status(order_id, data["estado"], data.get("notasAdmin"))
        return jsonify({
            "success": True,
            "message": "Estado actualizado exitosamente",
            "pedido": {
                "id": order.id,
                "numero": order.numero,
                "estado": order.estado,
                "fechaEstadoActual": to_utc_z(order.fecha_estado_actual),
            },
        }), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to update status of order %s", order_id)
        return server_error(e)
