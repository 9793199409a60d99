from __future__ import annotations

from ..extensions import db
from globos.money import as_float
from globos.time_utils import to_utc_z


ORDER_IN_PROCESS = "en-proceso"
ORDER_CANCELLED = "cancelado"
ORDER_READY = "listo-entrega"
ORDER_DELIVERED = "entregado"
ORDER_STATUSES = (ORDER_IN_PROCESS, ORDER_CANCELLED, ORDER_READY, ORDER_DELIVERED)


class Order(db.Model):
    """
    Storefront order placed without staff involvement.

    codigo_seguimiento is the customer's only credential for viewing or
    cancelling the order.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("numero", name="uq_orders_numero"),
        db.UniqueConstraint("codigo_seguimiento", name="uq_orders_tracking_code"),
        db.Index("ix_orders_estado_fecha", "estado", "fecha_pedido"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    numero = db.Column(db.String(32), nullable=False)
    codigo_seguimiento = db.Column(db.String(6), nullable=False)

    cliente_nombre = db.Column(db.String(100), nullable=False)
    cliente_telefono = db.Column(db.String(15), nullable=False)
    cliente_email = db.Column(db.String(255), nullable=True)
    # Set when a logged-in customer account placed the order
    usuario_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    estado = db.Column(db.String(16), nullable=False, default=ORDER_IN_PROCESS, index=True)
    notas_cliente = db.Column(db.Text, nullable=True)
    notas_admin = db.Column(db.Text, nullable=True)

    fecha_pedido = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    fecha_estado_actual = db.Column(db.DateTime(timezone=True), nullable=False)

    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    def cliente_dict(self) -> dict:
        return {
            "nombre": self.cliente_nombre,
            "telefono": self.cliente_telefono,
            "email": self.cliente_email,
        }

    def to_public_dict(self) -> dict:
        return {
            "numero": self.numero,
            "codigoSeguimiento": self.codigo_seguimiento,
            "cliente": self.cliente_dict(),
            "items": [item.to_dict() for item in self.items],
            "total": as_float(self.total),
            "estado": self.estado,
            "fechaPedido": to_utc_z(self.fecha_pedido),
            "fechaEstadoActual": to_utc_z(self.fecha_estado_actual),
            "notasCliente": self.notas_cliente,
            "notasAdmin": self.notas_admin,
        }

    def to_dict(self) -> dict:
        data = self.to_public_dict()
        data.update({
            "id": self.id,
            "usuario": self.usuario_id,
            "subtotal": as_float(self.subtotal),
        })
        return data


class OrderItem(db.Model):
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("cantidad >= 1", name="ck_order_items_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    nombre = db.Column(db.String(100), nullable=False)
    cantidad = db.Column(db.Integer, nullable=False)
    precio_unitario = db.Column(db.Numeric(12, 2), nullable=False)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    imagen_url = db.Column(db.String(512), nullable=True)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "producto": self.product_id,
            "nombre": self.nombre,
            "cantidad": self.cantidad,
            "precioUnitario": as_float(self.precio_unitario),
            "subtotal": as_float(self.subtotal),
            "imagenUrl": self.imagen_url or "",
        }
