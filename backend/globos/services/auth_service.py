# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication and account service.

Passwords are hashed with bcrypt (cost factor 12). The first account ever
created becomes the shop owner (propietario); later staff accounts take
the requested role or default to employee. Customer accounts (cliente)
come from the storefront sign-up and hold no staff permissions.
Users are never deleted, only deactivated.
"""

import bcrypt
from flask import current_app

from ..errors import ApiError, AuthError, ConflictError, NotFoundError
from ..extensions import db
from ..models import User
from ..models.auth import (
    EMPLOYEE_DEFAULT_PERMISSIONS,
    PERMISSION_FLAGS,
    ROLE_CUSTOMER,
    ROLE_EMPLOYEE,
    ROLE_OWNER,
)
from . import email_service, session_service, verification_service
from globos.time_utils import utcnow


MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(ApiError):
    label = "Contraseña muy corta"


def validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres"
        )


def hash_password(password: str) -> str:
    """Validate then hash with bcrypt (cost 12); stored as a str."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _ensure_email_free(email: str, exclude_user_id: int | None = None) -> None:
    query = db.session.query(User).filter(User.email == email)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    if query.first():
        raise ConflictError("Ya existe una cuenta con este email", label="Usuario ya existe")


def _apply_role_defaults(user: User) -> None:
    if user.rol == ROLE_EMPLOYEE:
        user.set_permissions(EMPLOYEE_DEFAULT_PERMISSIONS)
    else:
        # Owners bypass flags; customers hold none
        user.set_permissions({flag: False for flag in PERMISSION_FLAGS})


def register_user(data: dict) -> tuple[User, bool]:
    """
    Staff sign-up. Returns (user, is_first_user).

    The first user ever becomes propietario regardless of the requested role.
    """
    email = data["email"]
    _ensure_email_free(email)

    is_first_user = db.session.query(User.id).count() == 0
    role = ROLE_OWNER if is_first_user else (data.get("rol") or ROLE_EMPLOYEE)

    user = User(
        nombre=data["nombre"],
        email=email,
        password_hash=hash_password(data["password"]),
        telefono=data.get("telefono"),
        rol=role,
        activo=True,
        email_verificado=False,
    )
    _apply_role_defaults(user)
    db.session.add(user)
    db.session.flush()

    current_app.logger.info("Registered user %s with role %s", user.email, user.rol)
    return user, is_first_user


def register_customer(data: dict) -> tuple[User, dict]:
    """
    Storefront sign-up for a customer account.

    Issues an email verification code; delivery is best-effort and reported
    back as the second element.
    """
    email = data["email"]
    _ensure_email_free(email)

    user = User(
        nombre=data["nombre"],
        email=email,
        password_hash=hash_password(data["password"]),
        telefono=data["telefono"],
        rol=ROLE_CUSTOMER,
        activo=True,
        email_verificado=False,
    )
    _apply_role_defaults(user)
    db.session.add(user)
    db.session.flush()

    code = verification_service.issue_code(email, "verificacion")
    db.session.commit()

    delivery = email_service.send_verification_email(user.email, user.nombre, code.codigo)
    return user, delivery


def authenticate(email: str, password: str) -> User:
    """
    Check credentials and stamp ultimo_acceso.

    Raises AuthError (401) for unknown email, deactivated account or bad
    password.
    """
    user = db.session.query(User).filter_by(email=email).first()
    if not user:
        raise AuthError("Email o contraseña incorrectos", label="Credenciales inválidas")

    if not user.activo:
        raise AuthError(
            "Tu cuenta ha sido desactivada. Contacta al administrador",
            label="Cuenta desactivada",
        )

    if not verify_password(password, user.password_hash):
        raise AuthError("Email o contraseña incorrectos", label="Credenciales inválidas")

    user.ultimo_acceso = utcnow()
    return user


def login(email: str, password: str, user_agent: str | None = None, ip_address: str | None = None) -> tuple[User, str]:
    user = authenticate(email, password)
    _session, token = session_service.create_session(user, user_agent=user_agent, ip_address=ip_address)
    return user, token


def update_profile(user: User, data: dict) -> User:
    """Edit own nombre/email/telefono; email must stay unique."""
    if "email" in data and data["email"] != user.email:
        _ensure_email_free(data["email"], exclude_user_id=user.id)
        user.email = data["email"]
        user.email_verificado = False
    if data.get("nombre"):
        user.nombre = data["nombre"]
    if "telefono" in data:
        user.telefono = data["telefono"]
    db.session.commit()
    return user


def change_password(user: User, current_password: str, new_password: str, keep_session_id: int | None = None) -> None:
    """Requires the current password; other sessions are revoked afterwards."""
    if not verify_password(current_password, user.password_hash):
        raise AuthError("La contraseña actual no es correcta", label="Contraseña incorrecta")

    user.password_hash = hash_password(new_password)
    db.session.commit()
    session_service.revoke_all_user_sessions(user.id, "Password changed", except_session_id=keep_session_id)


def verify_email(email: str, codigo: str) -> User:
    user = db.session.query(User).filter_by(email=email).first()
    if not user:
        raise NotFoundError("No existe una cuenta con este email", label="Usuario no encontrado")

    verification_service.consume_code(email, "verificacion", codigo)
    user.email_verificado = True
    db.session.commit()
    return user


def resend_code(email: str, tipo: str) -> dict:
    user = db.session.query(User).filter_by(email=email).first()
    if not user:
        raise NotFoundError("No existe una cuenta con este email", label="Usuario no encontrado")
    if tipo == "verificacion" and user.email_verificado:
        raise ApiError("El email ya fue verificado", label="Email ya verificado")

    code = verification_service.issue_code(email, tipo)
    db.session.commit()

    if tipo == "recuperacion":
        return email_service.send_recovery_email(user.email, user.nombre, code.codigo)
    return email_service.send_verification_email(user.email, user.nombre, code.codigo)


def request_password_recovery(email: str) -> dict | None:
    """
    Issue a recovery code if the account exists.

    Unknown emails return None so callers can answer identically either way.
    """
    user = db.session.query(User).filter_by(email=email).first()
    if not user or not user.activo:
        current_app.logger.info("Password recovery requested for unknown or inactive email")
        return None

    code = verification_service.issue_code(email, "recuperacion")
    db.session.commit()
    return email_service.send_recovery_email(user.email, user.nombre, code.codigo)


def reset_password(email: str, codigo: str, new_password: str) -> User:
    user = db.session.query(User).filter_by(email=email).first()
    if not user:
        raise NotFoundError("No existe una cuenta con este email", label="Usuario no encontrado")

    validate_password_strength(new_password)
    verification_service.consume_code(email, "recuperacion", codigo)
    user.password_hash = hash_password(new_password)
    db.session.commit()
    session_service.revoke_all_user_sessions(user.id, "Password reset")
    return user


def list_users(include_customers: bool = False) -> list[User]:
    query = db.session.query(User)
    if not include_customers:
        query = query.filter(User.rol != ROLE_CUSTOMER)
    return query.order_by(User.created_at.asc(), User.id.asc()).all()


def _get_staff_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("El usuario no existe", label="Usuario no encontrado")
    return user


def update_permissions(user_id: int, permissions: dict) -> User:
    user = _get_staff_user(user_id)
    if user.rol != ROLE_EMPLOYEE:
        raise ApiError("Solo se pueden editar permisos de empleados", label="Operación no permitida")
    user.set_permissions(permissions)
    db.session.commit()
    return user


def set_active(user_id: int, active: bool, acting_user: User) -> User:
    user = _get_staff_user(user_id)
    if user.id == acting_user.id and not active:
        raise ApiError("No puedes desactivar tu propia cuenta", label="Operación no permitida")

    user.activo = active
    db.session.commit()
    if not active:
        session_service.revoke_all_user_sessions(user.id, "User account deactivated")
    return user


def create_owner(nombre: str, email: str, password: str) -> User:
    """Bootstrap helper for the CLI."""
    email = email.strip().lower()
    _ensure_email_free(email)
    user = User(
        nombre=nombre,
        email=email,
        password_hash=hash_password(password),
        rol=ROLE_OWNER,
        activo=True,
        email_verificado=True,
    )
    _apply_role_defaults(user)
    db.session.add(user)
    db.session.commit()
    return user
