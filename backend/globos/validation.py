from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from globos.errors import ApiError
from globos.money import to_decimal
from globos.time_utils import parse_iso_datetime


# Maximum monetary amount accepted on any field
MAX_AMOUNT = Decimal("9999999.99")

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_RE = re.compile(r"^\d{8,15}$")
TRACKING_CODE_RE = re.compile(r"^\d{6}$")


class ValidationError(ApiError):
    """400-level input problem with per-field details."""

    label = "Datos de entrada inválidos"

    def __init__(self, details: list[dict], message: str | None = None):
        super().__init__(message or details[0]["mensaje"], details)


@dataclass(frozen=True)
class FieldSpec:
    """
    Declarative rule for one request field.

    kind: str | text | email | phone | int | decimal | bool | choice |
          datetime | list | dict
    item: nested Schema applied to each element of a 'list' of objects
    aliases: alternative request keys accepted for the same field
    """
    kind: str = "str"
    required: bool = False
    min_len: int | None = None
    max_len: int | None = None
    min_value: Any = None
    max_value: Any = None
    choices: tuple | None = None
    default: Any = None
    item: "Schema | None" = None
    aliases: tuple = ()
    label: str | None = None


@dataclass
class Schema:
    fields: dict[str, FieldSpec] = field(default_factory=dict)

    def validate(self, payload: Any, *, partial: bool = False) -> dict:
        """
        Return a cleaned dict of the known fields present in payload.

        partial=True (updates) skips required checks and defaults, so only
        the fields the caller sent are returned.
        """
        errors: list[dict] = []
        cleaned = self._validate(payload, partial, "", errors)
        if errors:
            raise ValidationError(errors)
        return cleaned

    def _validate(self, payload, partial: bool, prefix: str, errors: list) -> dict:
        if not isinstance(payload, dict):
            errors.append({"campo": prefix or "body", "mensaje": "Se esperaba un objeto JSON"})
            return {}

        cleaned: dict = {}
        for name, spec in self.fields.items():
            path = f"{prefix}{name}"
            present, raw = _lookup(payload, name, spec.aliases)

            if not present or raw is None or (isinstance(raw, str) and not raw.strip() and spec.kind != "text"):
                if spec.required and (present or not partial):
                    errors.append({"campo": path, "mensaje": f"{spec.label or name} es obligatorio"})
                elif present and partial:
                    cleaned[name] = None
                elif not partial and spec.default is not None:
                    cleaned[name] = spec.default() if callable(spec.default) else spec.default
                continue

            try:
                cleaned[name] = _coerce(spec, raw, path, partial, errors)
            except ValueError as exc:
                errors.append({"campo": path, "mensaje": str(exc)})
        return cleaned


def _lookup(payload: dict, name: str, aliases: tuple) -> tuple[bool, Any]:
    for key in (name, *aliases):
        if key in payload:
            return True, payload[key]
    return False, None


def _coerce(spec: FieldSpec, value: Any, path: str, partial: bool, errors: list):
    label = spec.label or path
    kind = spec.kind

    if kind in ("str", "text", "email", "phone", "choice"):
        if not isinstance(value, (str, int)) or isinstance(value, bool):
            raise ValueError(f"{label} debe ser texto")
        text = str(value).strip()
        if kind == "email":
            text = text.lower()
            if not EMAIL_RE.match(text):
                raise ValueError(f"{label} no es un email válido")
        if kind == "phone":
            text = re.sub(r"[\s\-()+]", "", text)
            if not PHONE_RE.match(text):
                raise ValueError(f"{label} debe tener entre 8 y 15 dígitos")
        if kind == "choice" and text not in spec.choices:
            raise ValueError(f"{label} debe ser uno de: {', '.join(spec.choices)}")
        if spec.min_len is not None and len(text) < spec.min_len:
            raise ValueError(f"{label} debe tener al menos {spec.min_len} caracteres")
        if spec.max_len is not None and len(text) > spec.max_len:
            raise ValueError(f"{label} no puede exceder {spec.max_len} caracteres")
        return text

    if kind == "int":
        if isinstance(value, bool):
            raise ValueError(f"{label} debe ser un número entero")
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError(f"{label} debe ser un número entero")
            value = int(value)
        if isinstance(value, str):
            stripped = value.strip()
            if not re.fullmatch(r"-?\d+", stripped):
                raise ValueError(f"{label} debe ser un número entero")
            value = int(stripped)
        if not isinstance(value, int):
            raise ValueError(f"{label} debe ser un número entero")
        _check_range(spec, value, label)
        return value

    if kind == "decimal":
        try:
            amount = to_decimal(value)
        except ValueError:
            raise ValueError(f"{label} debe ser un número")
        if not amount.is_finite():
            raise ValueError(f"{label} debe ser un número")
        _check_range(spec, amount, label)
        if amount > MAX_AMOUNT:
            raise ValueError(f"{label} excede el máximo permitido")
        return amount

    if kind == "bool":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "1", "si", "sí", "false", "0", "no"):
            return value.strip().lower() in ("true", "1", "si", "sí")
        if isinstance(value, int):
            return bool(value)
        raise ValueError(f"{label} debe ser verdadero o falso")

    if kind == "datetime":
        if not isinstance(value, str):
            raise ValueError(f"{label} debe ser una fecha ISO-8601")
        try:
            return parse_iso_datetime(value)
        except ValueError:
            raise ValueError(f"{label} debe ser una fecha ISO-8601")

    if kind == "list":
        if not isinstance(value, list):
            raise ValueError(f"{label} debe ser una lista")
        if spec.min_len is not None and len(value) < spec.min_len:
            raise ValueError(f"{label} debe tener al menos {spec.min_len} elemento(s)")
        if spec.item is None:
            return [str(v).strip() for v in value if str(v).strip()]
        return [
            spec.item._validate(element, partial=False, prefix=f"{path}[{index}].", errors=errors)
            for index, element in enumerate(value)
        ]

    if kind == "dict":
        if not isinstance(value, dict):
            raise ValueError(f"{label} debe ser un objeto")
        if spec.item is None:
            return value
        return spec.item._validate(value, partial=partial, prefix=f"{path}.", errors=errors)

    raise ValueError(f"Tipo de campo desconocido: {kind}")


def _check_range(spec: FieldSpec, value, label: str) -> None:
    if spec.min_value is not None and value < spec.min_value:
        raise ValueError(f"{label} no puede ser menor que {spec.min_value}")
    if spec.max_value is not None and value > spec.max_value:
        raise ValueError(f"{label} no puede ser mayor que {spec.max_value}")


def require_tracking_code(codigo: str) -> str:
    if not TRACKING_CODE_RE.match(codigo or ""):
        raise ValidationError(
            [{"campo": "codigo", "mensaje": "El código de seguimiento debe tener 6 dígitos"}],
        )
    return codigo


def parse_page_args(args, default_limit: int = 20, max_limit: int = 100) -> tuple[int, int]:
    """page/limit query params, 1-based page, clamped limit."""
    try:
        page = max(1, int(args.get("page", 1)))
        limit = int(args.get("limit", default_limit))
    except (TypeError, ValueError):
        raise ValidationError([{"campo": "page", "mensaje": "page y limit deben ser números enteros"}])
    return page, min(max(1, limit), max_limit)


def parse_date_arg(args, name: str, required: bool = False):
    raw = args.get(name)
    if not raw:
        if required:
            raise ValidationError([{"campo": name, "mensaje": f"{name} es obligatorio"}])
        return None
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError([{"campo": name, "mensaje": f"{name} debe ser una fecha ISO-8601"}])


def parse_bool_arg(args, name: str):
    raw = args.get(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in ("true", "1", "si", "sí")
