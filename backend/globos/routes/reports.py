# Overview: Flask API routes for reports; live rollups gated by the 'reportes' permission.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import ApiError, server_error
from ..permissions import VIEW_PROFIT, has_capability
from ..services import reporting_service
from ..validation import parse_bool_arg, parse_date_arg

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reportes")


def _can_see_profit() -> bool:
    return has_capability(g.current_user, VIEW_PROFIT)


@reports_bp.get("/dashboard")
@require_auth
@require_permission("reportes")
def dashboard():
    try:
        return jsonify(reporting_service.dashboard(_can_see_profit())), 200
    except Exception as e:
        current_app.logger.exception("Failed to build dashboard")
        return server_error(e)


@reports_bp.get("/ventas")
@require_auth
@require_permission("reportes")
def sales_report():
    try:
        start = parse_date_arg(request.args, "fechaInicio")
        end = parse_date_arg(request.args, "fechaFin")
        return jsonify(reporting_service.sales_report(start, end, _can_see_profit())), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to build sales report")
        return server_error(e)


@reports_bp.get("/inventario")
@require_auth
@require_permission("reportes")
def inventory_report():
    try:
        filters = {
            "categoria": request.args.get("categoria"),
            "stockBajo": parse_bool_arg(request.args, "stockBajo"),
        }
        return jsonify(reporting_service.inventory_report(filters, _can_see_profit())), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to build inventory report")
        return server_error(e)


@reports_bp.get("/clientes")
@require_auth
@require_permission("reportes")
def clients_report():
    try:
        filters = {"tipoCliente": request.args.get("tipoCliente")}
        return jsonify(reporting_service.clients_report(filters)), 200
    except Exception as e:
        current_app.logger.exception("Failed to build clients report")
        return server_error(e)
