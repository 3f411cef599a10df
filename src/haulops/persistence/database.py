"""Supabase access for houses, employee positions, profiles and assignments."""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Optional, Sequence

from ..db.supabase import get_supabase_client
from ..models.domain import FieldWorker, ServiceLocation
from .cache import TTLCache


def _require_client():
    supabase = get_supabase_client()
    if not supabase:
        raise ValueError(
            "Supabase not configured. Set HAULOPS_SUPABASE_URL and HAULOPS_SUPABASE_KEY environment variables."
        )
    return supabase


def _coerce_coordinate(value: Any) -> float:
    """Numeric columns may arrive as strings; unusable values become NaN and get filtered later."""

    if value is None or value == "":
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def fetch_houses() -> list[ServiceLocation]:
    supabase = _require_client()
    try:
        response = supabase.table("houses").select("id, address, latitude, longitude").execute()
    except Exception as exc:
        logging.error(f"Failed to load houses: {exc}")
        raise RuntimeError(f"Failed to load houses: {exc}") from exc

    return [
        ServiceLocation(
            id=str(row["id"]),
            latitude=_coerce_coordinate(row.get("latitude")),
            longitude=_coerce_coordinate(row.get("longitude")),
            address=row.get("address") or "",
        )
        for row in (response.data or [])
    ]


def fetch_active_assignment_house_ids(statuses: Sequence[str]) -> set[str]:
    """House ids that already have an assignment in one of ``statuses``."""

    supabase = _require_client()
    try:
        response = (
            supabase.table("assignments")
            .select("house_id")
            .in_("status", list(statuses))
            .execute()
        )
    except Exception as exc:
        logging.error(f"Failed to load existing assignments: {exc}")
        raise RuntimeError(f"Failed to load existing assignments: {exc}") from exc

    return {str(row["house_id"]) for row in (response.data or []) if row.get("house_id")}


def fetch_online_workers() -> list[FieldWorker]:
    supabase = _require_client()
    try:
        response = (
            supabase.table("employee_locations")
            .select("employee_id, latitude, longitude, is_online")
            .eq("is_online", True)
            .execute()
        )
    except Exception as exc:
        logging.error(f"Failed to load employee locations: {exc}")
        raise RuntimeError(f"Failed to load employee locations: {exc}") from exc

    return [
        FieldWorker(
            employee_id=str(row["employee_id"]),
            latitude=_coerce_coordinate(row.get("latitude")),
            longitude=_coerce_coordinate(row.get("longitude")),
            is_online=bool(row.get("is_online", True)),
        )
        for row in (response.data or [])
    ]


def fetch_worker_names(
    employee_ids: Iterable[str],
    cache: Optional[TTLCache[str]] = None,
) -> dict[str, str]:
    """Display names from ``profiles`` (full name, else email).

    Lookup failures are logged and leave the affected ids out; previews then
    show them as unknown.
    """
    names: dict[str, str] = {}
    missing: list[str] = []
    for employee_id in dict.fromkeys(employee_ids):
        cached = cache.get(employee_id) if cache is not None else None
        if cached is not None:
            names[employee_id] = cached
        else:
            missing.append(employee_id)

    if not missing:
        return names

    supabase = get_supabase_client()
    if not supabase:
        return names

    try:
        response = supabase.table("profiles").select("id, full_name, email").in_("id", missing).execute()
    except Exception as exc:
        logging.warning(f"Failed to load employee names: {exc}")
        return names

    for row in response.data or []:
        name = row.get("full_name") or row.get("email")
        if not name:
            continue
        employee_id = str(row["id"])
        names[employee_id] = name
        if cache is not None:
            cache.set(employee_id, name)
    return names


def insert_assignments(records: Sequence[dict[str, Any]]) -> int:
    """Insert assignment rows in one request. Returns the number of rows sent."""

    if not records:
        return 0
    supabase = _require_client()
    try:
        supabase.table("assignments").insert(list(records)).execute()
    except Exception as exc:
        logging.error(f"Failed to insert {len(records)} assignments: {exc}")
        raise RuntimeError(f"Failed to insert assignments: {exc}") from exc
    logging.info(f"Inserted {len(records)} assignments")
    return len(records)
