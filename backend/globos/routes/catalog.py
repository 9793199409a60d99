# Overview: Public storefront catalog; active products with customer-facing fields only.

from flask import Blueprint, request, jsonify, current_app

from ..errors import ApiError, server_error
from ..services import products_service
from ..validation import parse_page_args

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


@catalog_bp.get("")
def list_catalog():
    try:
        page, limit = parse_page_args(request.args, default_limit=12)
        products, pagination = products_service.catalog(
            request.args.get("categoria"),
            (request.args.get("buscar") or "").strip() or None,
            page,
            limit,
        )
        return jsonify({
            "productos": [p.to_public_dict() for p in products],
            "pagination": pagination,
        }), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to list catalog")
        return server_error(e)


@catalog_bp.get("/<int:product_id>")
def get_catalog_product(product_id: int):
    try:
        product = products_service.get_product(product_id)
        if not product.activo:
            return jsonify({"error": "Producto no encontrado", "message": "El producto no está disponible"}), 404
        return jsonify({"producto": product.to_public_dict()}), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to get catalog product %s", product_id)
        return server_error(e)
