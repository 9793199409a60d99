# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product management routes.

SECURITY: All routes require authentication.
- Reads are open to any signed-in user (customers get the public view)
- Writes and the low-stock list require the 'productos' permission

Create and update accept either a JSON body or multipart/form-data with an
optional 'imagen' file.
"""
from flask import Blueprint, request, jsonify, current_app, g
from werkzeug.exceptions import RequestEntityTooLarge

from ..decorators import require_auth, require_permission
from ..errors import ApiError, server_error
from ..models.auth import ROLE_CUSTOMER
from ..schemas import PRODUCT
from ..services import products_service
from ..validation import ValidationError, parse_bool_arg, parse_page_args

products_bp = Blueprint("products", __name__, url_prefix="/api/productos")


def _request_payload() -> tuple[dict, object]:
    """(fields, image FileStorage or None) from JSON or multipart."""
    if request.mimetype == "multipart/form-data":
        image = request.files.get("imagen")
        if image is not None and not image.filename:
            image = None
        return request.form.to_dict(), image
    return request.get_json(silent=True), None


def _serialize(product) -> dict:
    if g.current_user.rol == ROLE_CUSTOMER:
        return product.to_public_dict()
    return product.to_dict()


@products_bp.post("")
@require_auth
@require_permission("productos")
def create_product():
    try:
        payload, image = _request_payload()
        data = PRODUCT.validate(payload)
        product = products_service.create_product(data, image=image)
        return jsonify({"message": "Producto creado exitosamente", "producto": product.to_dict()}), 201

    except ApiError as e:
        return e.to_response()
    except RequestEntityTooLarge:
        raise
    except Exception as e:
        current_app.logger.exception("Failed to create product")
        return server_error(e)


@products_bp.get("")
@require_auth
def list_products():
    """
    Query params:
    - categoria: category or 'todos'
    - activo: true | false (omit for both)
    - buscar: accent-insensitive text on name and description
    - stockBajo: true to keep only products at or below their minimum
    - page, limit: pagination (default 20 per page, max 100)
    """
    try:
        page, limit = parse_page_args(request.args)
        filters = {
            "categoria": request.args.get("categoria"),
            "activo": parse_bool_arg(request.args, "activo"),
            "buscar": (request.args.get("buscar") or "").strip() or None,
            "stockBajo": parse_bool_arg(request.args, "stockBajo"),
        }
        products, pagination = products_service.list_products(filters, page, limit)
        return jsonify({
            "productos": [_serialize(p) for p in products],
            "pagination": pagination,
        }), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to list products")
        return server_error(e)


@products_bp.get("/buscar")
@require_auth
def search_products():
    try:
        term = (request.args.get("q") or "").strip()
        if not term:
            raise ValidationError([{"campo": "q", "mensaje": "Parámetro de búsqueda requerido"}])

        products = products_service.search_products(term)
        return jsonify({
            "productos": [_serialize(p) for p in products],
            "total": len(products),
            "termino": term,
        }), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to search products")
        return server_error(e)


@products_bp.get("/stock-bajo")
@require_auth
@require_permission("productos")
def low_stock_products():
    try:
        products = products_service.low_stock_products()
        return jsonify({"productos": [p.to_dict() for p in products], "total": len(products)}), 200
    except Exception as e:
        current_app.logger.exception("Failed to list low stock products")
        return server_error(e)


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    try:
        product = products_service.get_product(product_id)
        return jsonify({"producto": _serialize(product)}), 200
    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to get product %s", product_id)
        return server_error(e)


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("productos")
def update_product(product_id: int):
    try:
        payload, image = _request_payload()
        data = PRODUCT.validate(payload, partial=True)
        product = products_service.update_product(product_id, data, image=image)
        return jsonify({"message": "Producto actualizado exitosamente", "producto": product.to_dict()}), 200

    except ApiError as e:
        return e.to_response()
    except RequestEntityTooLarge:
        raise
    except Exception as e:
        current_app.logger.exception("Failed to update product %s", product_id)
        return server_error(e)


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("productos")
def delete_product(product_id: int):
    try:
        outcome = products_service.delete_product(product_id)
        if outcome == "desactivado":
            message = "Producto desactivado: tiene ventas o pedidos asociados"
        else:
            message = "Producto eliminado exitosamente"
        return jsonify({"message": message, "resultado": outcome}), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to delete product %s", product_id)
        return server_error(e)
