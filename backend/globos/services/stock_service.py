# Overview: Stock checks, reservations and restorations shared by sales and orders.

"""
Stock protocol shared by the sale and order lifecycles.

1. collect_lines() loads every requested product and rejects the whole
   request before any write if a product is missing, inactive or short.
   Quantities of a product that appears on several lines are checked in
   aggregate.
2. reserve() decrements each product with a single conditional UPDATE
   (stock = stock - q WHERE stock >= q). A zero row count means a
   concurrent writer took the stock first; StockError is raised and the
   caller's transaction is rolled back, so nothing is oversold.
3. restore() increments stock back on cancellation.

None of these functions commit; the calling service owns the transaction.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass

from flask import current_app
from sqlalchemy import update

from ..errors import ProductUnavailableError, StockError
from ..extensions import db
from ..models import Product


@dataclass
class StockLine:
    product: Product
    cantidad: int
    request: dict


def _totals(pairs) -> "OrderedDict[int, int]":
    totals: OrderedDict[int, int] = OrderedDict()
    for product_id, cantidad in pairs:
        totals[product_id] = totals.get(product_id, 0) + cantidad
    return totals


def collect_lines(items: list[dict]) -> list[StockLine]:
    """
    Resolve requested items ({'producto': id, 'cantidad': n, ...}) to
    products, validating existence, active flag and stock.
    """
    products: dict[int, Product] = {}
    missing = []
    for item in items:
        product_id = item["producto"]
        if product_id in products:
            continue
        product = db.session.get(Product, product_id)
        if product is None:
            missing.append(product_id)
            continue
        products[product_id] = product

    if missing:
        raise ProductUnavailableError(
            f"El producto con ID {missing[0]} no existe",
            [{"producto": pid, "mensaje": "Producto no encontrado"} for pid in missing],
            label="Producto no encontrado",
        )

    inactive = [p for p in products.values() if not p.activo]
    if inactive:
        raise ProductUnavailableError(
            f"El producto {inactive[0].nombre} está inactivo",
            [{"producto": p.id, "nombre": p.nombre, "mensaje": "Producto inactivo"} for p in inactive],
            label="Producto inactivo",
        )

    totals = _totals((item["producto"], item["cantidad"]) for item in items)
    shortfalls = []
    for product_id, requested in totals.items():
        product = products[product_id]
        if product.stock < requested:
            shortfalls.append({
                "producto": product.id,
                "nombre": product.nombre,
                "disponible": product.stock,
                "solicitado": requested,
            })
    if shortfalls:
        first = shortfalls[0]
        raise StockError(
            f"Stock insuficiente para {first['nombre']}. "
            f"Disponible: {first['disponible']}, Solicitado: {first['solicitado']}",
            shortfalls,
        )

    return [StockLine(product=products[item["producto"]], cantidad=item["cantidad"], request=item) for item in items]


def check_available(pairs) -> None:
    """
    Re-validate stock for (product_id, cantidad) pairs before re-reserving,
    e.g. when a cancelled order is reactivated.
    """
    shortfalls = []
    for product_id, requested in _totals(pairs).items():
        product = db.session.get(Product, product_id) if product_id else None
        available = product.stock if product else 0
        if product is None or available < requested:
            shortfalls.append({
                "producto": product_id,
                "nombre": product.nombre if product else f"producto {product_id}",
                "disponible": available,
                "necesario": requested,
            })
    if shortfalls:
        first = shortfalls[0]
        raise StockError(
            f"No hay suficiente stock para {first['nombre']}. "
            f"Disponible: {first['disponible']}, Necesario: {first['necesario']}",
            shortfalls,
        )


def reserve(pairs) -> None:
    """Conditionally decrement stock for (product_id, cantidad) pairs."""
    for product_id, quantity in _totals(pairs).items():
        result = db.session.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            product = db.session.get(Product, product_id)
            db.session.refresh(product)
            raise StockError(
                f"Stock insuficiente para {product.nombre}. "
                f"Disponible: {product.stock}, Solicitado: {quantity}",
                [{"producto": product_id, "nombre": product.nombre,
                  "disponible": product.stock, "solicitado": quantity}],
            )
        _expire_stock(product_id)


def restore(pairs) -> None:
    """Increment stock back; products deleted since are logged and skipped."""
    for product_id, quantity in _totals(pairs).items():
        if product_id is None:
            current_app.logger.warning("Skipping stock restore for a line without product (qty %s)", quantity)
            continue
        result = db.session.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current_app.logger.warning("Product %s no longer exists; %s units not restored", product_id, quantity)
            continue
        _expire_stock(product_id)


def _expire_stock(product_id: int) -> None:
    product = db.session.identity_map.get(db.session.identity_key(Product, product_id))
    if product is not None:
        db.session.expire(product, ["stock"])


def line_pairs(lines) -> list[tuple[int, int]]:
    """(product_id, cantidad) pairs from persisted SaleItem/OrderItem rows."""
    return [(line.product_id, line.cantidad) for line in lines]
