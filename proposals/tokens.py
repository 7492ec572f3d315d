# Copyright (C) 2024 RompMusic Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Token value generation and default expiry."""

import base64
import secrets
from datetime import datetime, timezone

from proposals.config import settings

# Characters that are URL-unsafe or easy to misread, and their replacements
_AMBIGUOUS = "+/=lIO0"
_REPLACEMENTS = "pqrsxyz"
_TRANSLATION = str.maketrans(_AMBIGUOUS, _REPLACEMENTS)


def generate_token(nbytes: int | None = None) -> str:
    """Random base64 token with +/=lIO0 remapped to pqrsxyz (20 chars for 15 bytes)."""
    raw = secrets.token_bytes(nbytes or settings.token_random_bytes)
    return base64.b64encode(raw).decode("ascii").translate(_TRANSLATION)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite returns them without tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def default_expiry(now: datetime | None = None) -> datetime:
    """now plus settings.token_lifetime_years calendar years."""
    now = now or utcnow()
    year = now.year + settings.token_lifetime_years
    try:
        return now.replace(year=year)
    except ValueError:
        # Feb 29 into a non-leap year
        return now.replace(year=year, day=28)
