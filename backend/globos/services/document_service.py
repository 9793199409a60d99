# Overview: Display numbers and tracking codes for sales and orders.

from __future__ import annotations

import secrets

from ..extensions import db
from globos.time_utils import utcnow


SALE_PREFIX = "V"
ORDER_PREFIX = "P"


def next_display_number(model, prefix: str, pad: int = 4) -> str:
    """
    '<prefix><yyyymmdd>-<count+1>' where count is every existing record of
    that type. The unique constraint on numero catches concurrent draws.
    """
    count = db.session.query(db.func.count(model.id)).scalar() or 0
    today = utcnow().strftime("%Y%m%d")
    return f"{prefix}{today}-{str(count + 1).zfill(pad)}"


def generate_tracking_code() -> str:
    """Six ASCII digits in [100000, 999999]."""
    return str(100000 + secrets.randbelow(900000))
