# src/churnwatch/data/validation.py
from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Mapping, Optional

import pandas as pd

from churnwatch.common.time import as_utc
from churnwatch.data.schemas import NEVER, SCHEMA

_TRUE_FLAGS = {"yes", "y", "true", "t", "1"}


class InvalidInputError(ValueError):
    pass


def parse_number(value: Any, default: float) -> float:
    """
    Lenient float parse. Anything that is not a finite number
    (None, "", "Never", "abc", NaN, inf, booleans, containers)
    yields `default`.
    A trailing "%" is tolerated so "75%" and 75 read the same.
    """
    if value is None or isinstance(value, (bool, list, tuple, dict, set)):
        return default
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
        if not value:
            return default
    try:
        out = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(out):
        return default
    return out


def parse_count(value: Any, default: int = 0) -> int:
    """Integer counts; fractional inputs are truncated toward zero."""
    return int(parse_number(value, float(default)))


def parse_days(value: Any) -> float:
    """'days since' fields: missing / unparsable / "Never" -> NEVER (999)."""
    return parse_number(value, NEVER)


def parse_flag(value: Any) -> bool:
    """yes/no-style flags from the upstream API ("Yes", "true", 1, True, ...)."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in _TRUE_FLAGS


def account_age_days(created_at: Any, now: datetime) -> int:
    """
    Whole days between created_at and now (floored).
    Unparsable or future created_at -> 0. Depends on `now`.
    """
    if not isinstance(created_at, (str, datetime)):
        return 0
    ts = pd.to_datetime(created_at, utc=True, errors="coerce")
    if pd.isna(ts):
        return 0
    age = (pd.Timestamp(as_utc(now)) - ts).days
    return max(int(age), 0)


def require_user_id(user: Mapping[str, Any]) -> Any:
    uid = user.get(SCHEMA.USER_ID)
    if uid is None or (isinstance(uid, str) and not uid.strip()):
        raise InvalidInputError(f"User record is missing required field '{SCHEMA.USER_ID}'")
    return uid


def display_name(user: Mapping[str, Any]) -> Optional[str]:
    name = user.get(SCHEMA.NAME)
    if name:
        return str(name)
    parts = [str(user.get(k) or "") for k in (SCHEMA.FIRST_NAME, SCHEMA.LAST_NAME)]
    joined = " ".join(parts).strip()
    return joined or None
