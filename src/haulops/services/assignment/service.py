"""Auto-assign orchestration: load candidates, plan routes, preview or commit."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
import logging
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import FieldWorker, ServiceLocation
from ...persistence import database
from ...persistence.cache import TTLCache
from ...persistence.filesystem import FileStorage
from ...schemas.assignment import (
    AutoAssignRequest,
    AutoAssignResponse,
    ClusterAssignmentModel,
    LocationModel,
    OptimizeRequest,
    RoutePreviewModel,
)
from ..outputs.assignment_formatter import assignment_run_to_csv, assignment_run_to_json
from .engine import Sequencer, assign_locations_to_workers
from .eligibility import exclude_assigned, filter_available_workers, filter_valid_locations, restrict_to_ids
from .preview import build_route_previews
from .sequence_solver import refine_route

NO_WORK_MESSAGE = "No unassigned properties available. All properties have existing assignments."
NO_CAPACITY_MESSAGE = (
    "No online employees available for assignment. Make sure employees have their location sharing enabled."
)


def _resolve_sequencer(strategy: Optional[str]) -> Optional[Sequencer]:
    strategy = strategy or settings.sequence_strategy
    if strategy == "ortools":
        return refine_route
    return None


def plan_assignment(
    locations: Sequence[ServiceLocation],
    workers: Sequence[FieldWorker],
    *,
    worker_names: Optional[dict[str, str]] = None,
    sequence_strategy: Optional[str] = None,
) -> AutoAssignResponse:
    """Run the engine on eligible candidates and package the result."""

    if not locations:
        return AutoAssignResponse(
            status="no_work",
            message=NO_WORK_MESSAGE,
            unassigned_count=0,
            available_worker_count=len(workers),
        )
    if not workers:
        return AutoAssignResponse(
            status="no_capacity",
            message=NO_CAPACITY_MESSAGE,
            unassigned_count=len(locations),
            available_worker_count=0,
        )

    strategy = sequence_strategy or settings.sequence_strategy
    assignments = assign_locations_to_workers(locations, workers, sequencer=_resolve_sequencer(strategy))
    previews = build_route_previews(assignments, locations, worker_names)
    total_distance = sum(preview.total_distance for preview in previews)

    return AutoAssignResponse(
        status="ok",
        message=f"Assigned {len(assignments)} stops to {len(previews)} employees with optimized ordering",
        unassigned_count=len(locations),
        available_worker_count=len(workers),
        total_distance_miles=total_distance,
        assignments=[ClusterAssignmentModel(**asdict(item)) for item in assignments],
        previews=[
            RoutePreviewModel(
                employee_id=preview.employee_id,
                employee_name=preview.employee_name,
                stop_count=preview.stop_count,
                total_distance_miles=preview.total_distance,
                stops=[LocationModel(**asdict(stop)) for stop in preview.locations],
            )
            for preview in previews
        ],
        metadata={"sequence_strategy": strategy},
    )


def optimize_candidates(payload: OptimizeRequest) -> AutoAssignResponse:
    """Plan routes for caller-supplied locations and workers; nothing is read or written."""

    raw_locations = [ServiceLocation(**item.model_dump()) for item in payload.locations]
    raw_workers = [FieldWorker(**item.model_dump()) for item in payload.workers]
    locations = filter_valid_locations(raw_locations)
    workers = filter_available_workers(raw_workers)

    response = plan_assignment(
        locations,
        workers,
        worker_names={worker.employee_id: worker.name for worker in workers if worker.name},
        sequence_strategy=payload.sequence_strategy,
    )
    kept = {location.id for location in locations}
    skipped = [location.id for location in raw_locations if location.id not in kept]
    if skipped:
        response.metadata["skipped_location_ids"] = skipped
    return response


def load_candidates(payload: AutoAssignRequest) -> tuple[list[ServiceLocation], list[FieldWorker]]:
    """Unassigned houses and online employees, narrowed by the request and sanity-checked."""

    houses = database.fetch_houses()
    taken = database.fetch_active_assignment_house_ids(settings.active_assignment_statuses)
    unassigned = exclude_assigned(houses, taken)
    unassigned = restrict_to_ids(unassigned, payload.location_ids, attribute="id")
    locations = filter_valid_locations(unassigned)

    online = database.fetch_online_workers()
    online = restrict_to_ids(online, payload.employee_ids, attribute="employee_id")
    workers = filter_available_workers(online)

    logging.info(
        f"Auto-assign candidates: {len(locations)} of {len(houses)} houses unassigned, {len(workers)} employees online"
    )
    return locations, workers


def _plan_from_database(payload: AutoAssignRequest, name_cache: Optional[TTLCache[str]]) -> AutoAssignResponse:
    locations, workers = load_candidates(payload)
    worker_names: dict[str, str] = {}
    if locations and workers:
        worker_names = database.fetch_worker_names((w.employee_id for w in workers), cache=name_cache)
    return plan_assignment(
        locations,
        workers,
        worker_names=worker_names,
        sequence_strategy=payload.sequence_strategy,
    )


def _annotate(response: AutoAssignResponse, payload: AutoAssignRequest) -> None:
    if payload.run_label:
        response.metadata["run_label"] = payload.run_label
    if payload.requested_by:
        response.metadata["author"] = payload.requested_by
    if payload.notes:
        response.metadata["notes"] = payload.notes


def preview_auto_assignment(
    payload: AutoAssignRequest,
    *,
    name_cache: Optional[TTLCache[str]] = None,
) -> AutoAssignResponse:
    response = _plan_from_database(payload, name_cache)
    _annotate(response, payload)
    return response


def commit_auto_assignment(
    payload: AutoAssignRequest,
    *,
    name_cache: Optional[TTLCache[str]] = None,
) -> AutoAssignResponse:
    """Plan and insert the assignments, all stamped with the same ``optimized_at``."""

    response = _plan_from_database(payload, name_cache)
    if response.status != "ok":
        raise ValueError(f"Cannot assign: {response.message}")

    optimized_at = datetime.now(timezone.utc).isoformat()
    records = [
        {
            "house_id": item.location_id,
            "employee_id": item.employee_id,
            "status": settings.committed_assignment_status,
            "route_order": item.route_order,
            "cluster_id": item.cluster_id,
            "optimized_at": optimized_at,
        }
        for item in response.assignments
    ]
    inserted = database.insert_assignments(records)

    _annotate(response, payload)
    response.metadata["optimized_at"] = optimized_at
    response.metadata["inserted"] = inserted

    if payload.persist:
        try:
            storage = FileStorage()
            run_dir = storage.make_run_directory(prefix="auto_assign")
            storage.write_json(run_dir / "summary.json", assignment_run_to_json(response))
            storage.write_csv(run_dir / "assignments.csv", assignment_run_to_csv(response))
            response.metadata["output_dir"] = str(run_dir)
        except OSError as exc:
            # Assignments are already committed; artifacts are best-effort.
            logging.warning(f"Failed to write auto-assign artifacts: {exc}")

    return response
