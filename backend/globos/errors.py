# Overview: Error types shared by services and routes, and the JSON error shape.

from __future__ import annotations

from flask import current_app, jsonify


def error_response(label: str, message: str, status: int, details: list | None = None):
    body = {"error": label, "message": message}
    if details:
        body["details"] = details
    return jsonify(body), status


class ApiError(Exception):
    """Business or input problem that routes translate into a JSON response."""

    status_code = 400
    label = "Solicitud inválida"

    def __init__(self, message: str, details: list | None = None, *, label: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or []
        if label is not None:
            self.label = label
        if status_code is not None:
            self.status_code = status_code

    def to_response(self):
        return error_response(self.label, self.message, self.status_code, self.details)


class NotFoundError(ApiError):
    status_code = 404
    label = "No encontrado"


class ConflictError(ApiError):
    """Duplicate unique field (email, phone)."""
    label = "Registro duplicado"


class AuthError(ApiError):
    status_code = 401
    label = "No autorizado"


class StockError(ApiError):
    label = "Stock insuficiente"


class ProductUnavailableError(ApiError):
    label = "Producto no disponible"


class InvalidTransitionError(ApiError):
    label = "Transición inválida"


class ImageUploadError(ApiError):
    label = "Error al subir imagen"


def server_error(exc: Exception | None = None):
    """Generic 500; the exception text is only exposed in DEBUG."""
    message = "Ocurrió un error inesperado"
    if exc is not None and current_app.debug:
        message = str(exc)
    return error_response("Error interno del servidor", message, 500)
