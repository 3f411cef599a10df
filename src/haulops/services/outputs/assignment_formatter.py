"""Serializers for auto-assignment outputs."""

from __future__ import annotations

import csv
import io

from ...schemas.assignment import AutoAssignResponse


def assignment_run_to_json(response: AutoAssignResponse) -> dict:
    return response.model_dump()


def assignment_run_to_csv(response: AutoAssignResponse) -> str:
    """One row per stop, in route order, with the owning route's totals."""

    buffer = io.StringIO()
    fieldnames = [
        "employee_id",
        "employee_name",
        "cluster_id",
        "route_order",
        "location_id",
        "address",
        "latitude",
        "longitude",
        "stop_count",
        "total_distance_miles",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()

    cluster_ids = {item.employee_id: item.cluster_id for item in response.assignments}
    for preview in response.previews:
        for route_order, stop in enumerate(preview.stops):
            writer.writerow(
                {
                    "employee_id": preview.employee_id,
                    "employee_name": preview.employee_name,
                    "cluster_id": cluster_ids.get(preview.employee_id, ""),
                    "route_order": route_order,
                    "location_id": stop.id,
                    "address": stop.address,
                    "latitude": stop.latitude,
                    "longitude": stop.longitude,
                    "stop_count": preview.stop_count,
                    "total_distance_miles": preview.total_distance_miles,
                }
            )
    return buffer.getvalue()
