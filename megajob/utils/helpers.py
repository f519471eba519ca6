"""Helper utilities."""

import math
import re
import secrets
from datetime import datetime
from typing import Dict, Iterable

from megajob.utils.constants import SERVER_OWNED_FIELDS


def utcnow() -> datetime:
    """Current UTC time. Patched in tests that need to move the clock."""
    return datetime.utcnow()


def generate_otp() -> str:
    """Six-digit numeric one-time code."""
    return str(100000 + secrets.randbelow(900000))


def contains_pattern(text: str) -> Dict[str, str]:
    """Case-insensitive substring match for a Mongo ``$regex`` filter."""
    return {"$regex": re.escape(text), "$options": "i"}


def strip_operator_keys(data: Dict, protected: Iterable[str] = SERVER_OWNED_FIELDS) -> Dict:
    """Drop keys Mongo would read as operators or dotted paths, and server-assigned fields."""
    protected = set(protected)
    return {
        k: v for k, v in data.items()
        if k not in protected and not k.startswith("$") and "." not in k
    }


def paginate(page: int = 1, limit: int = 20) -> int:
    """Number of documents to skip for a 1-based page."""
    return (max(page, 1) - 1) * limit


def pagination_meta(page: int, limit: int, total: int) -> Dict[str, int]:
    """Pagination block returned by list endpoints."""
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }
