from __future__ import annotations

import unicodedata

from ..extensions import db
from globos.money import as_float
from globos.time_utils import to_utc_z


CATEGORIES = ("globos", "decoraciones", "articulos-fiesta", "servicios", "otros")
BALLOON_TYPES = ("latex", "foil", "metálico", "transparente", "biodegradable", "otros")
BALLOON_SIZES = ("pequeño", "mediano", "grande", "gigante")
SERVICE_TYPES = ("inflado", "decoracion-basica", "entrega-local", "arreglo-globos")

DEFAULT_MIN_STOCK = 5


def fold_text(value: str | None) -> str:
    """Lowercase and strip accents so 'Metálico' matches 'metalico'."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).lower().strip()


class Product(db.Model):
    """
    Sellable item or service.

    Balloon attributes (tipo_globo, tamano) only exist for category 'globos';
    tipo_servicio only for 'servicios'. search_key holds the accent-folded
    name and description for accent-insensitive search.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_nonneg"),
        db.CheckConstraint("precio_compra >= 0", name="ck_products_cost_nonneg"),
        db.CheckConstraint("precio_venta >= 0", name="ck_products_price_nonneg"),
        db.Index("ix_products_categoria_activo", "categoria", "activo"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    nombre = db.Column(db.String(100), nullable=False)
    descripcion = db.Column(db.String(500), nullable=True)
    categoria = db.Column(db.String(32), nullable=False, index=True)

    precio_compra = db.Column(db.Numeric(12, 2), nullable=False)
    precio_venta = db.Column(db.Numeric(12, 2), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0, index=True)
    stock_minimo = db.Column(db.Integer, nullable=False, default=DEFAULT_MIN_STOCK)

    imagen_url = db.Column(db.String(512), nullable=True)
    imagen_public_id = db.Column(db.String(255), nullable=True)

    activo = db.Column(db.Boolean, nullable=False, default=True, index=True)

    tipo_globo = db.Column(db.String(32), nullable=True)
    color = db.Column(db.String(50), nullable=True)
    tamano = db.Column(db.String(16), nullable=True)
    tipo_servicio = db.Column(db.String(32), nullable=True)

    search_key = db.Column(db.String(700), nullable=False, default="", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def refresh_search_key(self) -> None:
        self.search_key = f"{fold_text(self.nombre)} {fold_text(self.descripcion)}".strip()

    @property
    def stock_bajo(self) -> bool:
        return self.stock <= self.stock_minimo

    @property
    def ganancia_unitaria(self):
        return self.precio_venta - self.precio_compra

    @property
    def margen(self) -> float:
        if not self.precio_venta:
            return 0.0
        return round(float((self.precio_venta - self.precio_compra) / self.precio_venta * 100), 2)

    def to_public_dict(self) -> dict:
        """Storefront view: no purchase price, no stock thresholds."""
        return {
            "id": self.id,
            "nombre": self.nombre,
            "descripcion": self.descripcion,
            "categoria": self.categoria,
            "precioVenta": as_float(self.precio_venta),
            "stock": self.stock,
            "imagenUrl": self.imagen_url or "",
            "tipoGlobo": self.tipo_globo,
            "color": self.color,
            "tamaño": self.tamano,
            "tipoServicio": self.tipo_servicio,
        }

    def to_dict(self) -> dict:
        data = self.to_public_dict()
        data.update({
            "precioCompra": as_float(self.precio_compra),
            "stockMinimo": self.stock_minimo,
            "stockBajo": self.stock_bajo,
            "imagenPublicId": self.imagen_public_id or "",
            "activo": self.activo,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        })
        return data
