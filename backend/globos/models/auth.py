from __future__ import annotations

from ..extensions import db
from globos.time_utils import to_utc_z


PERMISSION_FLAGS = ("ventas", "productos", "clientes", "servicios", "reportes", "configuracion")

ROLE_OWNER = "propietario"
ROLE_EMPLOYEE = "empleado"
ROLE_CUSTOMER = "cliente"
ROLES = (ROLE_OWNER, ROLE_EMPLOYEE, ROLE_CUSTOMER)

EMPLOYEE_DEFAULT_PERMISSIONS = {
    "ventas": True,
    "productos": False,
    "clientes": True,
    "servicios": True,
    "reportes": False,
    "configuracion": False,
}


class User(db.Model):
    """
    Staff or customer account.

    Owners (propietario) implicitly hold every permission flag; employees
    hold the flags stored on the row; customers (cliente) hold none and can
    only use the public surface plus their own profile.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    nombre = db.Column(db.String(50), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    rol = db.Column(db.String(16), nullable=False, default=ROLE_EMPLOYEE, index=True)
    telefono = db.Column(db.String(15), nullable=True)

    activo = db.Column(db.Boolean, nullable=False, default=True)
    email_verificado = db.Column(db.Boolean, nullable=False, default=False)

    perm_ventas = db.Column(db.Boolean, nullable=False, default=False)
    perm_productos = db.Column(db.Boolean, nullable=False, default=False)
    perm_clientes = db.Column(db.Boolean, nullable=False, default=False)
    perm_servicios = db.Column(db.Boolean, nullable=False, default=False)
    perm_reportes = db.Column(db.Boolean, nullable=False, default=False)
    perm_configuracion = db.Column(db.Boolean, nullable=False, default=False)

    ultimo_acceso = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    @property
    def es_propietario(self) -> bool:
        return self.rol == ROLE_OWNER

    def get_permissions(self) -> dict[str, bool]:
        return {flag: bool(getattr(self, f"perm_{flag}")) for flag in PERMISSION_FLAGS}

    def set_permissions(self, permissions: dict[str, bool]) -> None:
        for flag in PERMISSION_FLAGS:
            if flag in permissions:
                setattr(self, f"perm_{flag}", bool(permissions[flag]))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nombre": self.nombre,
            "email": self.email,
            "rol": self.rol,
            "telefono": self.telefono,
            "activo": self.activo,
            "emailVerificado": self.email_verificado,
            "permisos": self.get_permissions(),
            "ultimoAcceso": to_utc_z(self.ultimo_acceso),
            "createdAt": to_utc_z(self.created_at),
        }


class SessionToken(db.Model):
    """
    Opaque bearer token. Only the SHA-256 hash of the token is stored.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(128), nullable=True)

    user_agent = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))


class VerificationCode(db.Model):
    """Six-digit email code for account verification or password recovery."""
    __tablename__ = "verification_codes"
    __table_args__ = (
        db.Index("ix_verification_codes_lookup", "email", "tipo", "usado"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False)
    codigo = db.Column(db.String(6), nullable=False)
    tipo = db.Column(db.String(16), nullable=False)  # verificacion | recuperacion
    usado = db.Column(db.Boolean, nullable=False, default=False)
    intentos = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
