# Overview: Service-layer operations for clients; encapsulates business logic and database work.

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import or_

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import Client
from ..models.customers import FREQUENT_LISTING_THRESHOLD, default_preferences
from ..validation import ValidationError
from .pagination import LIKE_ESCAPE, contains_pattern, paginate
from globos.time_utils import utcnow


FIELD_MAP = {
    "nombre": "nombre",
    "telefono": "telefono",
    "email": "email",
    "direccion": "direccion",
    "tipoCliente": "tipo_cliente",
    "notas": "notas",
    "activo": "activo",
}

# ordenar query values -> column; a leading '-' means descending
SORTABLE = {
    "ultimaCompra": Client.ultima_compra,
    "nombre": Client.nombre,
    "totalCompras": Client.total_compras,
    "numeroVentas": Client.numero_ventas,
    "fechaRegistro": Client.fecha_registro,
}


def _ensure_phone_free(telefono: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Client.id).filter(Client.telefono == telefono, Client.activo.is_(True))
    if exclude_id is not None:
        query = query.filter(Client.id != exclude_id)
    if query.first():
        raise ConflictError("Ya existe un cliente con este número de teléfono", label="Cliente ya existe")


def _merge_preferences(current: dict | None, incoming: dict | None) -> dict:
    merged = default_preferences()
    merged.update(current or {})
    if incoming:
        merged.update({k: v for k, v in incoming.items() if v is not None})
    return merged


def get_client(client_id: int) -> Client:
    client = db.session.get(Client, client_id)
    if not client:
        raise NotFoundError("El cliente no existe", label="Cliente no encontrado")
    return client


def create_client(data: dict) -> Client:
    _ensure_phone_free(data["telefono"])

    client = Client(preferencias=_merge_preferences(None, data.get("preferencias")))
    for key, column in FIELD_MAP.items():
        if key in data and data[key] is not None:
            setattr(client, column, data[key])
    client.activo = True

    db.session.add(client)
    db.session.commit()
    return client


def update_client(client_id: int, data: dict) -> Client:
    client = get_client(client_id)

    for key in ("nombre", "telefono", "tipoCliente", "activo"):
        if key in data and data[key] is None:
            raise ValidationError([{"campo": key, "mensaje": f"{key} no puede estar vacío"}])

    becomes_active = data.get("activo", client.activo)
    new_phone = data.get("telefono", client.telefono)
    if becomes_active and (new_phone != client.telefono or not client.activo):
        _ensure_phone_free(new_phone, exclude_id=client.id)

    for key, column in FIELD_MAP.items():
        if key in data:
            setattr(client, column, data[key])
    if "preferencias" in data:
        client.preferencias = _merge_preferences(client.preferencias, data["preferencias"])

    db.session.commit()
    return client


def deactivate_client(client_id: int) -> Client:
    """Soft delete; sales keep pointing at the row."""
    client = get_client(client_id)
    client.activo = False
    db.session.commit()
    return client


def _text_filter(term: str):
    like = contains_pattern(term)
    return or_(
        Client.nombre.ilike(like, escape=LIKE_ESCAPE),
        Client.telefono.ilike(like, escape=LIKE_ESCAPE),
        Client.email.ilike(like, escape=LIKE_ESCAPE),
    )


def _sort_clause(ordenar: str | None):
    ordenar = ordenar or "-ultimaCompra"
    descending = ordenar.startswith("-")
    column = SORTABLE.get(ordenar.lstrip("-"), Client.ultima_compra)
    if descending:
        return column.desc().nulls_last()
    return column.asc().nulls_last()


def list_clients(filters: dict, page: int, limit: int) -> tuple[list[Client], dict]:
    """
    filters: tipoCliente ('todos' = any), activo ('true' | 'false' | 'todos',
    default 'true'), buscar, ordenar.
    """
    query = db.session.query(Client)

    tipo = filters.get("tipoCliente")
    if tipo and tipo != "todos":
        query = query.filter(Client.tipo_cliente == tipo)

    activo = filters.get("activo") or "true"
    if activo != "todos":
        query = query.filter(Client.activo.is_(activo == "true"))

    if filters.get("buscar"):
        query = query.filter(_text_filter(filters["buscar"]))

    query = query.order_by(_sort_clause(filters.get("ordenar")), Client.id.desc())
    return paginate(query, page, limit)


def search_clients(term: str, limit: int = 50) -> list[Client]:
    return (
        db.session.query(Client)
        .filter(Client.activo.is_(True), _text_filter(term))
        .order_by(Client.nombre.asc())
        .limit(limit)
        .all()
    )


def frequent_clients() -> list[Client]:
    return (
        db.session.query(Client)
        .filter(
            Client.activo.is_(True),
            or_(Client.tipo_cliente == "frecuente", Client.numero_ventas >= FREQUENT_LISTING_THRESHOLD),
        )
        .order_by(Client.ultima_compra.desc().nulls_last())
        .all()
    )


def inactive_clients(days: int = 90) -> list[Client]:
    """Active clients whose last purchase is older than days."""
    cutoff = utcnow() - timedelta(days=days)
    return (
        db.session.query(Client)
        .filter(Client.activo.is_(True), Client.ultima_compra < cutoff)
        .order_by(Client.ultima_compra.desc())
        .all()
    )


def client_statistics(client_id: int) -> dict:
    client = get_client(client_id)
    data = client.to_dict()
    return {
        "cliente": {"id": client.id, "nombre": client.nombre, "telefono": client.telefono},
        "estadisticas": {
            "totalCompras": data["totalCompras"],
            "numeroVentas": client.numero_ventas,
            "promedioCompra": data["promedioCompra"],
            "ultimaCompra": data["ultimaCompra"],
            "esFrecuente": client.es_frecuente,
            "diasDesdeUltimaCompra": client.dias_desde_ultima_compra(),
            "tipoCliente": client.tipo_cliente,
        },
    }
