# Overview: API banner and health endpoint.

import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import SessionToken, User
from globos.time_utils import utcnow

system_bp = Blueprint("system", __name__)

API_NAME = "Globos y Fiesta API"
API_VERSION = "1.0.0"

ENDPOINTS = {
    "auth": "/api/auth",
    "productos": "/api/productos",
    "catalogo": "/api/catalog",
    "clientes": "/api/clientes",
    "ventas": "/api/ventas",
    "pedidos": "/api/pedidos",
    "reportes": "/api/reportes",
    "health": "/health",
}


def check_database_health() -> dict:
    """Round-trip a couple of cheap queries and time them."""
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"users": user_count, "active_sessions": active_sessions},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/")
def index():
    return {
        "message": f"{API_NAME} funcionando",
        "version": API_VERSION,
        "endpoints": ENDPOINTS,
    }, 200


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200 with status OK when the database answers
    - 503 otherwise
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    response = {
        "status": "OK" if healthy else "ERROR",
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database_health},
    }
    return response, 200 if healthy else 503
