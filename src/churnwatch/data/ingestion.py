# src/churnwatch/data/ingestion.py
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional


class PayloadError(ValueError):
    pass


def _first_page(payload: Any) -> Any:
    # The churn endpoint is usually proxied as a one-element list of pages.
    if isinstance(payload, list) and payload and isinstance(payload[0], Mapping) and "data" in payload[0]:
        return payload[0]
    return payload


def _raw_records(payload: Any) -> List[Any]:
    page = _first_page(payload)

    if isinstance(page, Mapping):
        if "data" not in page:
            raise PayloadError(f"Payload has no 'data' key. Found keys: {sorted(page.keys())}")
        users = page["data"]
    else:
        users = page

    if users is None:
        return []
    if not isinstance(users, list):
        raise PayloadError(f"Expected a list of user records, got {type(users).__name__}")
    return users


def extract_users(payload: Any) -> List[Dict[str, Any]]:
    """
    Accepts any of:
      [{"data": [...], "meta": {...}}]
      {"data": [...], "meta": {...}}
      [...]  (bare list of user records)

    Non-mapping entries are dropped; scoring handles partial records.
    """
    return [dict(u) for u in _raw_records(payload) if isinstance(u, Mapping)]


def record_count(payload: Any) -> int:
    """Number of entries upstream sent, before non-mapping entries are dropped."""
    return len(_raw_records(payload))


def next_page_url(payload: Any) -> Optional[str]:
    page = _first_page(payload)
    if not isinstance(page, Mapping):
        return None
    meta = page.get("meta") or {}
    if not isinstance(meta, Mapping):
        return None
    return meta.get("next_page_url") or None
