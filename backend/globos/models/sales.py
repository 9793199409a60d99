from __future__ import annotations

from ..extensions import db
from globos.money import ZERO, as_float, to_decimal
from globos.time_utils import to_utc_z


PAYMENT_METHODS = ("efectivo", "tarjeta", "transferencia", "mixto")
SALE_STATUSES = ("pendiente", "completada", "cancelada")
SALE_TYPES = ("directa", "con-servicio", "solo-servicio")
PERFORMED_SERVICE_TYPES = ("inflado", "decoracion-basica", "entrega-local", "arreglo-globos")


class Sale(db.Model):
    """
    Point-of-sale record.

    Created as 'completada'; the only transition is to 'cancelada', which
    reverses stock and client statistics exactly once.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("numero", name="uq_sales_numero"),
        db.Index("ix_sales_estado_fecha", "estado", "fecha_venta"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    numero = db.Column(db.String(32), nullable=False)

    cliente_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=True, index=True)
    # Walk-in snapshot {nombre, telefono} when no registered client is linked
    datos_cliente = db.Column(db.JSON, nullable=True)
    vendedor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    descuento = db.Column(db.Numeric(12, 2), nullable=False, default=ZERO)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    metodo_pago = db.Column(db.String(16), nullable=False, index=True)
    estado = db.Column(db.String(16), nullable=False, default="completada")
    tipo_venta = db.Column(db.String(16), nullable=False, default="directa")
    # [{tipo, descripcion, precio, tiempoEmpleado}]
    servicios_realizados = db.Column(db.JSON, nullable=False, default=list)
    notas = db.Column(db.Text, nullable=True)

    fecha_venta = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    fecha_entrega = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    cliente = db.relationship("Client", backref=db.backref("sales", lazy=True))
    vendedor = db.relationship("User")
    items = db.relationship(
        "SaleItem",
        backref="sale",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
    )

    def services_total(self):
        return sum((json_amount(s.get("precio")) for s in self.servicios_realizados or []), ZERO)

    def to_dict(self, ganancia=None) -> dict:
        return {
            "id": self.id,
            "numero": self.numero,
            "cliente": self.cliente.to_summary_dict() if self.cliente else None,
            "datosCliente": self.datos_cliente,
            "vendedor": {"id": self.vendedor.id, "nombre": self.vendedor.nombre} if self.vendedor else None,
            "items": [item.to_dict() for item in self.items],
            "subtotal": as_float(self.subtotal),
            "descuento": as_float(self.descuento),
            "total": as_float(self.total),
            "metodoPago": self.metodo_pago,
            "estado": self.estado,
            "tipoVenta": self.tipo_venta,
            "serviciosRealizados": self.servicios_realizados or [],
            "notas": self.notas,
            "fechaVenta": to_utc_z(self.fecha_venta),
            "fechaEntrega": to_utc_z(self.fecha_entrega),
            "fechaCancelacion": to_utc_z(self.cancelled_at),
            "ganancia": as_float(ganancia),
        }


class SaleItem(db.Model):
    """Captured line of a sale (name and price frozen at sale time)."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("cantidad >= 1", name="ck_sale_items_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    nombre = db.Column(db.String(100), nullable=False)
    cantidad = db.Column(db.Integer, nullable=False)
    precio_unitario = db.Column(db.Numeric(12, 2), nullable=False)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    # [{nombre, precio}]
    servicios_adicionales = db.Column(db.JSON, nullable=False, default=list)

    product = db.relationship("Product")

    def extras_total(self):
        return sum((json_amount(s.get("precio")) for s in self.servicios_adicionales or []), ZERO)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "producto": self.product_id,
            "nombre": self.nombre,
            "cantidad": self.cantidad,
            "precioUnitario": as_float(self.precio_unitario),
            "subtotal": as_float(self.subtotal),
            "serviciosAdicionales": self.servicios_adicionales or [],
        }


def json_amount(value):
    """Decimal from a JSON-stored amount (missing -> 0)."""
    if value is None:
        return ZERO
    return to_decimal(value)
