# Overview: Service-layer operations for products; encapsulates business logic and database work.

from __future__ import annotations

from flask import current_app

from ..errors import ImageUploadError, NotFoundError
from ..extensions import db
from ..models import OrderItem, Product, SaleItem
from ..models.inventory import BALLOON_SIZES, BALLOON_TYPES, SERVICE_TYPES, fold_text
from ..validation import ValidationError
from . import image_service
from .pagination import LIKE_ESCAPE, contains_pattern, paginate


# request key -> column
FIELD_MAP = {
    "nombre": "nombre",
    "descripcion": "descripcion",
    "categoria": "categoria",
    "precioCompra": "precio_compra",
    "precioVenta": "precio_venta",
    "stock": "stock",
    "stockMinimo": "stock_minimo",
    "color": "color",
    "activo": "activo",
}

_ENUMS = {
    "tipoGlobo": ("tipo_globo", BALLOON_TYPES, "El tipo de globo"),
    "tamano": ("tamano", BALLOON_SIZES, "El tamaño"),
    "tipoServicio": ("tipo_servicio", SERVICE_TYPES, "El tipo de servicio"),
}


def _canonical_choice(value: str | None, choices: tuple) -> str | None:
    """Match 'metalico' to 'metálico', 'Pequeno' to 'pequeño'."""
    if value is None:
        return None
    folded = fold_text(value)
    for choice in choices:
        if fold_text(choice) == folded:
            return choice
    return None


def apply_category_rules(product: Product, data: dict) -> None:
    """
    Set category-conditional attributes.

    tipoGlobo and tamano are required for 'globos' and cleared otherwise;
    tipoServicio is required for 'servicios' and cleared otherwise.
    """
    errors = []
    for key, (column, choices, label) in _ENUMS.items():
        if key in data:
            raw = data[key]
            canonical = _canonical_choice(raw, choices)
            if raw is not None and canonical is None:
                errors.append({"campo": key, "mensaje": f"{label} debe ser uno de: {', '.join(choices)}"})
                continue
            setattr(product, column, canonical)

    if product.categoria == "globos":
        if not product.tipo_globo:
            errors.append({"campo": "tipoGlobo", "mensaje": "El tipo de globo es obligatorio para globos"})
        if not product.tamano:
            errors.append({"campo": "tamano", "mensaje": "El tamaño es obligatorio para globos"})
    else:
        product.tipo_globo = None
        product.tamano = None

    if product.categoria == "servicios":
        if not product.tipo_servicio:
            errors.append({"campo": "tipoServicio", "mensaje": "El tipo de servicio es obligatorio para servicios"})
    else:
        product.tipo_servicio = None

    if errors:
        raise ValidationError(errors)


def _validate_image(image) -> None:
    if not image_service.is_allowed_image(image):
        raise ValidationError(
            [{"campo": "imagen", "mensaje": "Solo se permiten imágenes (jpeg, jpg, png, gif, webp)"}]
        )
    image.stream.seek(0, 2)
    size = image.stream.tell()
    image.stream.seek(0)
    if size > image_service.MAX_IMAGE_BYTES:
        raise ValidationError([{"campo": "imagen", "mensaje": "La imagen no puede exceder 5MB"}])


def _upload(image) -> dict:
    result = image_service.upload_image(image)
    if not result.get('success'):
        current_app.logger.warning("Image upload failed: %s", result.get('error'))
        raise ImageUploadError("No se pudo subir la imagen", status_code=500)
    return result


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("El producto no existe", label="Producto no encontrado")
    return product


def create_product(data: dict, image=None) -> Product:
    """
    Create a product from validated data; optional image is uploaded first
    and destroyed again if the database write fails.
    """
    product = Product()
    for key, column in FIELD_MAP.items():
        if key in data and data[key] is not None:
            setattr(product, column, data[key])
    if product.activo is None:
        product.activo = True
    apply_category_rules(product, data)

    uploaded = None
    if image is not None:
        _validate_image(image)
        uploaded = _upload(image)
        product.imagen_url = uploaded['url']
        product.imagen_public_id = uploaded['public_id']

    product.refresh_search_key()
    try:
        db.session.add(product)
        db.session.commit()
    except Exception:
        db.session.rollback()
        if uploaded:
            image_service.delete_image(uploaded['public_id'])
        raise

    current_app.logger.info("Created product %s (%s)", product.id, product.nombre)
    return product


def update_product(product_id: int, data: dict, image=None) -> Product:
    """
    Partial update. A new image replaces the stored one; the old image is
    removed best-effort after the row is saved.
    """
    product = get_product(product_id)

    errors = []
    for key in ("nombre", "categoria", "precioCompra", "precioVenta", "stock", "activo"):
        if key in data and data[key] is None:
            errors.append({"campo": key, "mensaje": f"{key} no puede estar vacío"})
    if errors:
        raise ValidationError(errors)

    for key, column in FIELD_MAP.items():
        if key in data:
            setattr(product, column, data[key])
    if product.stock_minimo is None:
        product.stock_minimo = 5
    apply_category_rules(product, data)

    previous_public_id = None
    uploaded = None
    if image is not None:
        _validate_image(image)
        uploaded = _upload(image)
        previous_public_id = product.imagen_public_id
        product.imagen_url = uploaded['url']
        product.imagen_public_id = uploaded['public_id']

    product.refresh_search_key()
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        if uploaded:
            image_service.delete_image(uploaded['public_id'])
        raise

    if previous_public_id:
        image_service.delete_image(previous_public_id)
    return product


def delete_product(product_id: int) -> str:
    """
    Hard delete (with image cleanup) when no sale or order line refers to
    the product; otherwise deactivate it so history stays intact.

    Returns 'eliminado' or 'desactivado'.
    """
    product = get_product(product_id)

    referenced = (
        db.session.query(SaleItem.id).filter_by(product_id=product.id).first() is not None
        or db.session.query(OrderItem.id).filter_by(product_id=product.id).first() is not None
    )
    if referenced:
        product.activo = False
        db.session.commit()
        current_app.logger.info("Deactivated referenced product %s", product.id)
        return "desactivado"

    public_id = product.imagen_public_id
    db.session.delete(product)
    db.session.commit()
    image_service.delete_image(public_id)
    current_app.logger.info("Deleted product %s", product_id)
    return "eliminado"


def _search_filter(term: str):
    like = contains_pattern(fold_text(term))
    return Product.search_key.like(like, escape=LIKE_ESCAPE)


def list_products(filters: dict, page: int, limit: int) -> tuple[list[Product], dict]:
    query = db.session.query(Product)

    categoria = filters.get("categoria")
    if categoria and categoria != "todos":
        query = query.filter(Product.categoria == categoria)
    if filters.get("activo") is not None:
        query = query.filter(Product.activo.is_(filters["activo"]))
    if filters.get("buscar"):
        query = query.filter(_search_filter(filters["buscar"]))
    if filters.get("stockBajo"):
        query = query.filter(Product.stock <= Product.stock_minimo)

    query = query.order_by(Product.created_at.desc(), Product.id.desc())
    return paginate(query, page, limit)


def search_products(term: str, limit: int = 50) -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.activo.is_(True), _search_filter(term))
        .order_by(Product.nombre.asc())
        .limit(limit)
        .all()
    )


def low_stock_products(limit: int | None = None) -> list[Product]:
    query = (
        db.session.query(Product)
        .filter(Product.activo.is_(True), Product.stock <= Product.stock_minimo)
        .order_by(Product.stock.asc(), Product.nombre.asc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def catalog(categoria: str | None, buscar: str | None, page: int, limit: int) -> tuple[list[Product], dict]:
    """Public storefront listing: active products only."""
    query = db.session.query(Product).filter(Product.activo.is_(True))
    if categoria and categoria != "todos":
        query = query.filter(Product.categoria == categoria)
    if buscar:
        query = query.filter(_search_filter(buscar))
    query = query.order_by(Product.categoria.asc(), Product.nombre.asc())
    return paginate(query, page, limit)
