# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""
Point-of-sale routes.

Profit figures ('ganancia', 'gananciaTotal', 'margenPromedio') are only
filled in for callers holding the 'ganancias' capability (owners); for
everyone else they are null.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import ApiError, server_error
from ..permissions import VIEW_PROFIT, has_capability
from ..schemas import CANCEL, SALE
from ..services import sales_service
from ..validation import parse_date_arg, parse_page_args
from globos.time_utils import to_utc_z, utcnow


sales_bp = Blueprint("sales", __name__, url_prefix="/api/ventas")


def _can_see_profit() -> bool:
    return has_capability(g.current_user, VIEW_PROFIT)


@sales_bp.post("")
@require_auth
@require_permission("ventas")
def create_sale():
    try:
        data = SALE.validate(request.get_json(silent=True))
        sale = sales_service.create_sale(data, g.current_user)
        ganancia = sales_service.sale_profit(sale) if _can_see_profit() else None
        return jsonify({"message": "Venta creada exitosamente", "venta": sale.to_dict(ganancia)}), 201

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to create sale")
        return server_error(e)


@sales_bp.get("")
@require_auth
@require_permission("ventas")
def list_sales():
    """
    Query params: estado (default completada, 'todos' for all), metodoPago,
    tipoVenta, vendedor, fechaInicio, fechaFin, page, limit.
    """
    try:
        page, limit = parse_page_args(request.args)
        filters = {
            "estado": request.args.get("estado"),
            "metodoPago": request.args.get("metodoPago"),
            "tipoVenta": request.args.get("tipoVenta"),
            "vendedor": request.args.get("vendedor", type=int),
            "fechaInicio": parse_date_arg(request.args, "fechaInicio"),
            "fechaFin": parse_date_arg(request.args, "fechaFin"),
        }
        sales, pagination = sales_service.list_sales(filters, page, limit)
        return jsonify({"ventas": [s.to_dict() for s in sales], "pagination": pagination}), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to list sales")
        return server_error(e)


@sales_bp.get("/del-dia")
@require_auth
@require_permission("ventas")
def sales_of_day():
    try:
        fecha = parse_date_arg(request.args, "fecha") or utcnow()
        sales, summary = sales_service.sales_of_day(fecha.date(), _can_see_profit())
        return jsonify({
            "fecha": fecha.date().isoformat(),
            "ventas": [s.to_dict() for s in sales],
            "resumen": summary,
        }), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to get sales of day")
        return server_error(e)


@sales_bp.get("/estadisticas")
@require_auth
@require_permission("reportes")
def sales_statistics():
    try:
        start = parse_date_arg(request.args, "fechaInicio", required=True)
        end = parse_date_arg(request.args, "fechaFin", required=True)
        statistics = sales_service.sales_statistics(start, end, _can_see_profit())
        return jsonify({
            "periodo": {"fechaInicio": to_utc_z(start), "fechaFin": to_utc_z(end)},
            "estadisticas": statistics,
        }), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to compute sales statistics")
        return server_error(e)


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("ventas")
def get_sale(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
        ganancia = sales_service.sale_profit(sale) if _can_see_profit() else None
        data = sale.to_dict(ganancia)
        return jsonify({"venta": data, "ganancia": data["ganancia"]}), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to get sale %s", sale_id)
        return server_error(e)


@sales_bp.put("/<int:sale_id>/cancelar")
@require_auth
@require_permission("ventas")
def cancel_sale(sale_id: int):
    try:
        data = CANCEL.validate(request.get_json(silent=True) or {})
        sale = sales_service.cancel_sale(sale_id, data.get("motivo"))
        return jsonify({"message": "Venta cancelada exitosamente", "venta": sale.to_dict()}), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to cancel sale %s", sale_id)
        return server_error(e)
