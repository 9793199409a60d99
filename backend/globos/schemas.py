# Overview: Request schemas, one per endpoint body, validated by globos.validation.

from __future__ import annotations

from decimal import Decimal

from .models.auth import PERMISSION_FLAGS
from .models.customers import CLIENT_TYPES
from .models.inventory import BALLOON_SIZES, BALLOON_TYPES, CATEGORIES, SERVICE_TYPES
from .models.orders import ORDER_STATUSES
from .models.sales import PAYMENT_METHODS, PERFORMED_SERVICE_TYPES, SALE_TYPES
from .validation import FieldSpec, Schema

ZERO = Decimal("0")
PASSWORD_MIN = 6


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

REGISTER = Schema({
    "nombre": FieldSpec("str", required=True, min_len=2, max_len=50, label="El nombre"),
    "email": FieldSpec("email", required=True, label="El email"),
    "password": FieldSpec("text", required=True, min_len=PASSWORD_MIN, label="La contraseña"),
    "telefono": FieldSpec("phone", label="El teléfono"),
    "rol": FieldSpec("choice", choices=("propietario", "empleado"), label="El rol"),
})

REGISTER_CUSTOMER = Schema({
    "nombre": FieldSpec("str", required=True, min_len=2, max_len=50, label="El nombre"),
    "email": FieldSpec("email", required=True, label="El email"),
    "password": FieldSpec("text", required=True, min_len=PASSWORD_MIN, label="La contraseña"),
    "telefono": FieldSpec("phone", required=True, label="El teléfono"),
})

LOGIN = Schema({
    "email": FieldSpec("email", required=True, label="El email"),
    "password": FieldSpec("text", required=True, label="La contraseña"),
})

PROFILE_UPDATE = Schema({
    "nombre": FieldSpec("str", required=True, min_len=2, max_len=50, label="El nombre"),
    "email": FieldSpec("email", required=True, label="El email"),
    "telefono": FieldSpec("phone", label="El teléfono"),
})

CHANGE_PASSWORD = Schema({
    "passwordActual": FieldSpec("text", required=True, label="La contraseña actual"),
    "passwordNueva": FieldSpec("text", required=True, min_len=PASSWORD_MIN, label="La nueva contraseña"),
})

VERIFY_EMAIL = Schema({
    "email": FieldSpec("email", required=True, label="El email"),
    "codigo": FieldSpec("str", required=True, min_len=6, max_len=6, label="El código"),
})

RESEND_CODE = Schema({
    "email": FieldSpec("email", required=True, label="El email"),
    "tipo": FieldSpec("choice", choices=("verificacion", "recuperacion"), default="verificacion", label="El tipo"),
})

RECOVER_PASSWORD = Schema({
    "email": FieldSpec("email", required=True, label="El email"),
})

RESET_PASSWORD = Schema({
    "email": FieldSpec("email", required=True, label="El email"),
    "codigo": FieldSpec("str", required=True, min_len=6, max_len=6, label="El código"),
    "nuevaPassword": FieldSpec("text", required=True, min_len=PASSWORD_MIN, label="La nueva contraseña"),
})

USER_PERMISSIONS = Schema({
    flag: FieldSpec("bool") for flag in PERMISSION_FLAGS
})


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

_PRODUCT_FIELDS = {
    "nombre": FieldSpec("str", required=True, min_len=2, max_len=100, label="El nombre"),
    "descripcion": FieldSpec("str", max_len=500, label="La descripción"),
    "categoria": FieldSpec("choice", required=True, choices=CATEGORIES, label="La categoría"),
    "precioCompra": FieldSpec("decimal", required=True, min_value=ZERO, label="El precio de compra"),
    "precioVenta": FieldSpec("decimal", required=True, min_value=ZERO, label="El precio de venta"),
    "stock": FieldSpec("int", required=True, min_value=0, label="El stock"),
    "stockMinimo": FieldSpec("int", min_value=0, default=5, label="El stock mínimo"),
    "tipoGlobo": FieldSpec("str", label="El tipo de globo"),
    "color": FieldSpec("str", max_len=50, label="El color"),
    "tamano": FieldSpec("str", aliases=("tamaño",), label="El tamaño"),
    "tipoServicio": FieldSpec("str", label="El tipo de servicio"),
    "activo": FieldSpec("bool", label="activo"),
}

PRODUCT = Schema(dict(_PRODUCT_FIELDS))

# Enumerations that accept accent-free spellings are checked in the service
PRODUCT_ENUMS = {
    "tipoGlobo": BALLOON_TYPES,
    "tamano": BALLOON_SIZES,
    "tipoServicio": SERVICE_TYPES,
}


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

PREFERENCES = Schema({
    "colores": FieldSpec("list"),
    "tiposGlobos": FieldSpec("list"),
    "ocasionesFrecuentes": FieldSpec("list"),
})

CLIENT = Schema({
    "nombre": FieldSpec("str", required=True, min_len=2, max_len=100, label="El nombre"),
    "telefono": FieldSpec("phone", required=True, label="El teléfono"),
    "email": FieldSpec("email", label="El email"),
    "direccion": FieldSpec("str", max_len=200, label="La dirección"),
    "tipoCliente": FieldSpec("choice", choices=CLIENT_TYPES, default="individual", label="El tipo de cliente"),
    "preferencias": FieldSpec("dict", item=PREFERENCES, label="preferencias"),
    "notas": FieldSpec("str", max_len=500, label="Las notas"),
    "activo": FieldSpec("bool", label="activo"),
})


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------

EXTRA_SERVICE = Schema({
    "nombre": FieldSpec("str", required=True, max_len=100, label="El nombre del servicio"),
    "precio": FieldSpec("decimal", required=True, min_value=ZERO, label="El precio del servicio"),
})

SALE_ITEM = Schema({
    "producto": FieldSpec("int", required=True, min_value=1, label="El producto"),
    "cantidad": FieldSpec("int", required=True, min_value=1, label="La cantidad"),
    "precioUnitario": FieldSpec("decimal", min_value=ZERO, label="El precio unitario"),
    "serviciosAdicionales": FieldSpec("list", item=EXTRA_SERVICE, default=list),
})

PERFORMED_SERVICE = Schema({
    "tipo": FieldSpec("choice", choices=PERFORMED_SERVICE_TYPES, label="El tipo de servicio"),
    "descripcion": FieldSpec("str", max_len=200),
    "precio": FieldSpec("decimal", required=True, min_value=ZERO, label="El precio del servicio"),
    "tiempoEmpleado": FieldSpec("int", min_value=0, label="El tiempo empleado"),
})

WALK_IN_CUSTOMER = Schema({
    "nombre": FieldSpec("str", required=True, max_len=100, label="El nombre del cliente"),
    "telefono": FieldSpec("str", required=True, max_len=20, label="El teléfono del cliente"),
})

SALE = Schema({
    "items": FieldSpec("list", required=True, min_len=1, item=SALE_ITEM, label="items"),
    "cliente": FieldSpec("int", min_value=1, label="El cliente"),
    "datosCliente": FieldSpec("dict", item=WALK_IN_CUSTOMER, label="datosCliente"),
    "descuento": FieldSpec("decimal", min_value=ZERO, default=ZERO, label="El descuento"),
    "metodoPago": FieldSpec("choice", choices=PAYMENT_METHODS, default="efectivo", label="El método de pago"),
    "tipoVenta": FieldSpec("choice", choices=SALE_TYPES, default="directa", label="El tipo de venta"),
    "serviciosRealizados": FieldSpec("list", item=PERFORMED_SERVICE, default=list),
    "notas": FieldSpec("str", max_len=500, label="Las notas"),
    "fechaEntrega": FieldSpec("datetime", label="La fecha de entrega"),
})

CANCEL = Schema({
    "motivo": FieldSpec("str", max_len=200, label="El motivo"),
})


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

ORDER_CUSTOMER = Schema({
    "nombre": FieldSpec("str", required=True, min_len=2, max_len=100, label="El nombre"),
    "telefono": FieldSpec("phone", required=True, label="El teléfono"),
    "email": FieldSpec("email", label="El email"),
})

ORDER_ITEM = Schema({
    "producto": FieldSpec("int", required=True, min_value=1, label="El producto"),
    "cantidad": FieldSpec("int", required=True, min_value=1, label="La cantidad"),
})

ORDER = Schema({
    "cliente": FieldSpec("dict", required=True, item=ORDER_CUSTOMER, label="Los datos del cliente"),
    "items": FieldSpec("list", required=True, min_len=1, item=ORDER_ITEM, label="items"),
    "notasCliente": FieldSpec("str", max_len=500, label="Las notas"),
})

ORDER_STATUS = Schema({
    "estado": FieldSpec("choice", required=True, choices=ORDER_STATUSES, label="El estado"),
    "notasAdmin": FieldSpec("str", max_len=500, label="Las notas"),
})

ORDER_CANCEL = CANCEL
