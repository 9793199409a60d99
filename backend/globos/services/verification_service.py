# Overview: Service-layer operations for email verification and recovery codes.

from __future__ import annotations

import secrets
from datetime import timedelta

from flask import current_app

from ..errors import ApiError
from ..extensions import db
from ..models import VerificationCode
from globos.time_utils import utcnow


CODE_TYPES = ("verificacion", "recuperacion")


class VerificationError(ApiError):
    label = "Código inválido"


def generate_code() -> str:
    """Six random digits, 100000-999999."""
    return str(secrets.randbelow(900000) + 100000)


def purge_expired_codes() -> int:
    removed = db.session.query(VerificationCode).filter(
        VerificationCode.expires_at < utcnow()
    ).delete(synchronize_session=False)
    return removed


def issue_code(email: str, tipo: str) -> VerificationCode:
    """
    Create a fresh code for (email, tipo).

    Earlier unused codes of the same type are invalidated so only the
    latest one can be redeemed. Caller commits.
    """
    if tipo not in CODE_TYPES:
        raise ValueError(f"Unknown code type: {tipo}")

    purge_expired_codes()
    db.session.query(VerificationCode).filter_by(email=email, tipo=tipo, usado=False).update(
        {"usado": True}, synchronize_session=False
    )

    now = utcnow()
    ttl = timedelta(minutes=current_app.config.get("VERIFICATION_CODE_TTL_MINUTES", 15))
    code = VerificationCode(
        email=email,
        codigo=generate_code(),
        tipo=tipo,
        usado=False,
        intentos=0,
        created_at=now,
        expires_at=now + ttl,
    )
    db.session.add(code)
    db.session.flush()
    return code


def consume_code(email: str, tipo: str, codigo: str) -> VerificationCode:
    """
    Redeem a code. Raises VerificationError when there is no live code,
    when it has expired, when attempts are exhausted or on mismatch (the
    attempt is counted and committed in that case).
    """
    max_attempts = current_app.config.get("VERIFICATION_MAX_ATTEMPTS", 3)

    record = (
        db.session.query(VerificationCode)
        .filter_by(email=email, tipo=tipo, usado=False)
        .order_by(VerificationCode.created_at.desc(), VerificationCode.id.desc())
        .first()
    )
    if not record or record.expires_at.replace(tzinfo=None) < utcnow():
        raise VerificationError("El código ha expirado o no existe. Solicita uno nuevo.")

    if record.intentos >= max_attempts:
        raise VerificationError("Demasiados intentos fallidos. Solicita un nuevo código.")

    if not secrets.compare_digest(record.codigo, codigo):
        record.intentos += 1
        db.session.commit()
        remaining = max(0, max_attempts - record.intentos)
        raise VerificationError(
            f"Código incorrecto. Intentos restantes: {remaining}",
        )

    record.usado = True
    return record
