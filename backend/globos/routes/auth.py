# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Staff and customer sign-up, login/logout with opaque session tokens
- Own profile and password management
- Email verification and password recovery codes
- Owner-only staff administration (permissions, activation)
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..errors import ApiError, server_error
from ..models.auth import ROLE_OWNER
from ..permissions import effective_permissions
from ..schemas import (
    CHANGE_PASSWORD,
    LOGIN,
    PROFILE_UPDATE,
    RECOVER_PASSWORD,
    REGISTER,
    REGISTER_CUSTOMER,
    RESEND_CODE,
    RESET_PASSWORD,
    USER_PERMISSIONS,
    VERIFY_EMAIL,
)
from ..services import auth_service, session_service
from ..validation import ValidationError, parse_bool_arg


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _client_info() -> tuple[str | None, str | None]:
    return request.headers.get("User-Agent"), request.remote_addr


def _user_payload(user) -> dict:
    data = user.to_dict()
    data["permisosEfectivos"] = effective_permissions(user)
    return data


@auth_bp.post("/registro")
def register_route():
    """
    Staff sign-up. The first account ever created becomes the owner.

    Returns a session token so the new user is logged in immediately.
    """
    try:
        data = REGISTER.validate(request.get_json(silent=True))
        user, is_first_user = auth_service.register_user(data)

        user_agent, ip_address = _client_info()
        _session, token = session_service.create_session(user, user_agent=user_agent, ip_address=ip_address)

        return jsonify({
            "message": "Usuario registrado exitosamente",
            "token": token,
            "user": _user_payload(user),
            "esPrimerUsuario": is_first_user,
        }), 201

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to register user")
        return server_error(e)


@auth_bp.post("/registroCliente")
@auth_bp.post("/registro-cliente")
def register_customer_route():
    """Storefront account; the verification email result is non-fatal."""
    try:
        data = REGISTER_CUSTOMER.validate(request.get_json(silent=True))
        user, delivery = auth_service.register_customer(data)

        user_agent, ip_address = _client_info()
        _session, token = session_service.create_session(user, user_agent=user_agent, ip_address=ip_address)

        return jsonify({
            "message": "Cuenta creada exitosamente",
            "token": token,
            "user": user.to_dict(),
            "emailVerificacion": delivery,
        }), 201

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to register customer")
        return server_error(e)


@auth_bp.post("/login")
def login_route():
    try:
        data = LOGIN.validate(request.get_json(silent=True))
        user_agent, ip_address = _client_info()
        user, token = auth_service.login(data["email"], data["password"], user_agent, ip_address)

        return jsonify({
            "message": "Login exitoso",
            "token": token,
            "user": _user_payload(user),
        }), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to login user")
        return server_error(e)


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        token = request.headers.get("Authorization", "").split(" ", 1)[1]
        session_service.revoke_session(token)
        return jsonify({"message": "Sesión cerrada exitosamente"}), 200
    except Exception as e:
        current_app.logger.exception("Failed to logout user")
        return server_error(e)


@auth_bp.get("/perfil")
@require_auth
def profile_route():
    return jsonify({"user": _user_payload(g.current_user)}), 200


@auth_bp.put("/perfil")
@require_auth
def update_profile_route():
    try:
        data = PROFILE_UPDATE.validate(request.get_json(silent=True))
        user = auth_service.update_profile(g.current_user, data)
        return jsonify({
            "message": "Perfil actualizado exitosamente",
            "user": _user_payload(user),
        }), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to update profile")
        return server_error(e)


@auth_bp.put("/cambiar-password")
@require_auth
def change_password_route():
    """Other sessions of the user are revoked; the current one stays valid."""
    try:
        data = CHANGE_PASSWORD.validate(request.get_json(silent=True))
        auth_service.change_password(
            g.current_user,
            data["passwordActual"],
            data["passwordNueva"],
            keep_session_id=g.session_token.id,
        )
        return jsonify({"message": "Contraseña actualizada exitosamente"}), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to change password")
        return server_error(e)


@auth_bp.get("/verificar-token")
@require_auth
def verify_token_route():
    return jsonify({"valid": True, "user": _user_payload(g.current_user)}), 200


@auth_bp.post("/verificar-email")
def verify_email_route():
    try:
        data = VERIFY_EMAIL.validate(request.get_json(silent=True))
        user = auth_service.verify_email(data["email"], data["codigo"])
        return jsonify({"message": "Email verificado exitosamente", "user": user.to_dict()}), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to verify email")
        return server_error(e)


@auth_bp.post("/reenviar-codigo")
def resend_code_route():
    try:
        data = RESEND_CODE.validate(request.get_json(silent=True))
        delivery = auth_service.resend_code(data["email"], data["tipo"])
        return jsonify({"message": "Código enviado", "envio": delivery}), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to resend verification code")
        return server_error(e)


@auth_bp.post("/recuperar-password")
def recover_password_route():
    """Same answer whether or not the email has an account."""
    try:
        data = RECOVER_PASSWORD.validate(request.get_json(silent=True))
        auth_service.request_password_recovery(data["email"])
        return jsonify({
            "message": "Si el email está registrado, recibirás un código de recuperación",
        }), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to start password recovery")
        return server_error(e)


@auth_bp.post("/resetear-password")
def reset_password_route():
    try:
        data = RESET_PASSWORD.validate(request.get_json(silent=True))
        auth_service.reset_password(data["email"], data["codigo"], data["nuevaPassword"])
        return jsonify({"message": "Contraseña restablecida exitosamente"}), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to reset password")
        return server_error(e)


# Staff administration (owner only)

@auth_bp.get("/usuarios")
@require_auth
@require_role(ROLE_OWNER)
def list_users_route():
    try:
        include_customers = bool(parse_bool_arg(request.args, "incluirClientes"))
        users = auth_service.list_users(include_customers=include_customers)
        return jsonify({"usuarios": [_user_payload(u) for u in users]}), 200
    except Exception as e:
        current_app.logger.exception("Failed to list users")
        return server_error(e)


@auth_bp.put("/usuarios/<int:user_id>/permisos")
@require_auth
@require_role(ROLE_OWNER)
def update_permissions_route(user_id: int):
    try:
        data = USER_PERMISSIONS.validate(request.get_json(silent=True), partial=True)
        permissions = {flag: value for flag, value in data.items() if value is not None}
        if not permissions:
            raise ValidationError([{"campo": "permisos", "mensaje": "No se enviaron permisos para actualizar"}])

        user = auth_service.update_permissions(user_id, permissions)
        return jsonify({"message": "Permisos actualizados", "user": _user_payload(user)}), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to update permissions for user %s", user_id)
        return server_error(e)


@auth_bp.put("/usuarios/<int:user_id>/estado")
@require_auth
@require_role(ROLE_OWNER)
def set_user_active_route(user_id: int):
    try:
        payload = request.get_json(silent=True) or {}
        if not isinstance(payload.get("activo"), bool):
            raise ValidationError([{"campo": "activo", "mensaje": "activo debe ser verdadero o falso"}])

        user = auth_service.set_active(user_id, payload["activo"], g.current_user)
        message = "Usuario activado" if user.activo else "Usuario desactivado"
        return jsonify({"message": message, "user": user.to_dict()}), 200

    except ApiError as e:
        return e.to_response()
    except Exception as e:
        current_app.logger.exception("Failed to change active flag for user %s", user_id)
        return server_error(e)
