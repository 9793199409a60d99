from __future__ import annotations

from ..extensions import db
from globos.money import ZERO, as_float, safe_ratio
from globos.time_utils import to_utc_z, utcnow


CLIENT_TYPES = ("individual", "frecuente", "evento", "empresa")

# Sale count at which a client is promoted to 'frecuente'
FREQUENT_PROMOTION_THRESHOLD = 10
# Sale count at which a client is listed as frequent even without the type
FREQUENT_LISTING_THRESHOLD = 5


def default_preferences() -> dict:
    return {"colores": [], "tiposGlobos": [], "ocasionesFrecuentes": []}


class Client(db.Model):
    """
    Registered shop client.

    Running statistics (total_compras, numero_ventas, promedio_compra,
    ultima_compra) are maintained by record_sale / revert_sale, which the
    sale lifecycle calls inside its own transaction.
    """
    __tablename__ = "clients"
    __table_args__ = (
        # Phone is unique among active clients only
        db.Index(
            "uq_clients_active_phone",
            "telefono",
            unique=True,
            sqlite_where=db.text("activo = 1"),
            postgresql_where=db.text("activo"),
        ),
        db.Index("ix_clients_tipo_activo", "tipo_cliente", "activo"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    nombre = db.Column(db.String(100), nullable=False)
    telefono = db.Column(db.String(15), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    direccion = db.Column(db.String(200), nullable=True)
    tipo_cliente = db.Column(db.String(16), nullable=False, default="individual")
    preferencias = db.Column(db.JSON, nullable=False, default=default_preferences)
    notas = db.Column(db.String(500), nullable=True)

    total_compras = db.Column(db.Numeric(12, 2), nullable=False, default=ZERO)
    numero_ventas = db.Column(db.Integer, nullable=False, default=0)
    promedio_compra = db.Column(db.Numeric(12, 2), nullable=False, default=ZERO)
    ultima_compra = db.Column(db.DateTime(timezone=True), nullable=True)

    activo = db.Column(db.Boolean, nullable=False, default=True, index=True)
    fecha_registro = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def record_sale(self, amount) -> None:
        self.numero_ventas = (self.numero_ventas or 0) + 1
        self.total_compras = (self.total_compras or ZERO) + amount
        self.promedio_compra = safe_ratio(self.total_compras, self.numero_ventas)
        self.ultima_compra = utcnow()
        if self.numero_ventas >= FREQUENT_PROMOTION_THRESHOLD:
            self.tipo_cliente = "frecuente"

    def revert_sale(self, amount) -> None:
        self.numero_ventas = max(0, (self.numero_ventas or 0) - 1)
        self.total_compras = max(ZERO, (self.total_compras or ZERO) - amount)
        self.promedio_compra = safe_ratio(self.total_compras, self.numero_ventas)

    @property
    def es_frecuente(self) -> bool:
        return self.tipo_cliente == "frecuente" or self.numero_ventas >= FREQUENT_LISTING_THRESHOLD

    def dias_desde_ultima_compra(self) -> int | None:
        if not self.ultima_compra:
            return None
        return (utcnow() - self.ultima_compra.replace(tzinfo=None)).days

    def to_summary_dict(self) -> dict:
        return {
            "id": self.id,
            "nombre": self.nombre,
            "telefono": self.telefono,
            "email": self.email,
        }

    def to_dict(self) -> dict:
        preferences = default_preferences()
        preferences.update(self.preferencias or {})
        return {
            "id": self.id,
            "nombre": self.nombre,
            "telefono": self.telefono,
            "email": self.email,
            "direccion": self.direccion,
            "tipoCliente": self.tipo_cliente,
            "preferencias": preferences,
            "notas": self.notas,
            "totalCompras": as_float(self.total_compras),
            "numeroVentas": self.numero_ventas,
            "promedioCompra": as_float(self.promedio_compra),
            "ultimaCompra": to_utc_z(self.ultima_compra),
            "activo": self.activo,
            "fechaRegistro": to_utc_z(self.fecha_registro),
        }
