# Overview: Flask API routes for clients operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_permission
from ..errors import ApiError, server_error
from ..schemas import CLIENT
from ..services import clients_service
from ..validation import ValidationError, parse_page_args

clients_bp = Blueprint("clients", __name__, url_prefix="/api/clientes")


@clients_bp.post("")
@require_auth
@require_permission("clientes")
def create_client():
    try:
        data = CLIENT.validate(request.get_json(silent=True))
        client = clients_service.create_client(data)
        return jsonify({"message": "Cliente creado exitosamente", "cliente": client.to_dict()}), 201

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to create client")
        return server_error(e)


@clients_bp.get("")
@require_auth
@require_permission("clientes")
def list_clients():
    """
    Query params: tipoCliente, activo (true | false | todos; default true),
    buscar, ordenar (field name, '-' prefix for descending), page, limit.
    """
    try:
        page, limit = parse_page_args(request.args)
        filters = {
            "tipoCliente": request.args.get("tipoCliente"),
            "activo": request.args.get("activo"),
            "buscar": (request.args.get("buscar") or "").strip() or None,
            "ordenar": request.args.get("ordenar"),
        }
        clients, pagination = clients_service.list_clients(filters, page, limit)
        return jsonify({"clientes": [c.to_dict() for c in clients], "pagination": pagination}), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to list clients")
        return server_error(e)


@clients_bp.get("/buscar")
@require_auth
@require_permission("clientes")
def search_clients():
    try:
        term = (request.args.get("q") or "").strip()
        if not term:
            raise ValidationError([{"campo": "q", "mensaje": "Parámetro de búsqueda requerido"}])

        clients = clients_service.search_clients(term)
        return jsonify({"clientes": [c.to_dict() for c in clients], "total": len(clients), "termino": term}), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to search clients")
        return server_error(e)


@clients_bp.get("/frecuentes")
@require_auth
@require_permission("clientes")
def frequent_clients():
    try:
        clients = clients_service.frequent_clients()
        return jsonify({"clientes": [c.to_dict() for c in clients], "total": len(clients)}), 200
    except Exception as e:
        current_app.logger.exception("Failed to list frequent clients")
        return server_error(e)


@clients_bp.get("/inactivos")
@require_auth
@require_permission("clientes")
def inactive_clients():
    try:
        days = request.args.get("diasInactividad", 90)
        try:
            days = int(days)
        except (TypeError, ValueError):
            raise ValidationError([{"campo": "diasInactividad", "mensaje": "diasInactividad debe ser un número entero"}])
        if days < 1:
            raise ValidationError([{"campo": "diasInactividad", "mensaje": "diasInactividad debe ser mayor que 0"}])

        clients = clients_service.inactive_clients(days)
        return jsonify({
            "clientes": [c.to_dict() for c in clients],
            "total": len(clients),
            "diasInactividad": days,
        }), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to list inactive clients")
        return server_error(e)


@clients_bp.get("/<int:client_id>")
@require_auth
@require_permission("clientes")
def get_client(client_id: int):
    try:
        client = clients_service.get_client(client_id)
        return jsonify({"cliente": client.to_dict()}), 200
    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to get client %s", client_id)
        return server_error(e)


@clients_bp.get("/<int:client_id>/estadisticas")
@require_auth
@require_permission("clientes")
def client_statistics(client_id: int):
    try:
        return jsonify(clients_service.client_statistics(client_id)), 200
    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to get statistics for client %s", client_id)
        return server_error(e)


@clients_bp.put("/<int:client_id>")
@require_auth
@require_permission("clientes")
def update_client(client_id: int):
    try:
        data = CLIENT.validate(request.get_json(silent=True), partial=True)
        client = clients_service.update_client(client_id, data)
        return jsonify({"message": "Cliente actualizado exitosamente", "cliente": client.to_dict()}), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to update client %s", client_id)
        return server_error(e)


@clients_bp.delete("/<int:client_id>")
@require_auth
@require_permission("clientes")
def delete_client(client_id: int):
    try:
        clients_service.deactivate_client(client_id)
        return jsonify({"message": "Cliente desactivado exitosamente"}), 200
    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to deactivate client %s", client_id)
        return server_error(e)
