"""Auto-assignment request/response schemas."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

SequenceStrategy = Literal["greedy", "ortools"]
RunStatus = Literal["ok", "no_work", "no_capacity"]


class LocationModel(BaseModel):
    id: str
    latitude: float
    longitude: float
    address: str = ""


class WorkerModel(BaseModel):
    employee_id: str
    latitude: float
    longitude: float
    is_online: bool = True
    name: Optional[str] = None


class ClusterAssignmentModel(BaseModel):
    location_id: str
    employee_id: str
    route_order: int = Field(..., ge=0, description="0-based position in the employee's route.")
    cluster_id: int = Field(..., ge=0)


class RoutePreviewModel(BaseModel):
    employee_id: str
    employee_name: str
    stop_count: int
    total_distance_miles: float
    stops: List[LocationModel]


class AutoAssignRequest(BaseModel):
    location_ids: Optional[List[str]] = Field(
        default=None,
        description="Restrict the run to these houses. Omitted means every unassigned house; an empty list selects none.",
    )
    employee_ids: Optional[List[str]] = Field(
        default=None,
        description="Restrict the run to these employees. Omitted means every online employee; an empty list selects none.",
    )
    sequence_strategy: Optional[SequenceStrategy] = Field(
        default=None,
        description="Override the configured stop ordering strategy.",
    )
    persist: bool = Field(default=True, description="Write run artifacts to disk on commit.")
    requested_by: Optional[str] = Field(default=None, description="Person or system requesting the run.")
    run_label: Optional[str] = Field(default=None, description="Friendly name for persisted outputs.")
    notes: Optional[str] = Field(default=None, description="Free-form notes captured with the run.")


class OptimizeRequest(BaseModel):
    """Stateless planning: caller supplies the candidates directly."""

    locations: List[LocationModel]
    workers: List[WorkerModel]
    sequence_strategy: Optional[SequenceStrategy] = None


class AutoAssignResponse(BaseModel):
    status: RunStatus
    message: str
    unassigned_count: int
    available_worker_count: int
    total_distance_miles: float = 0.0
    assignments: List[ClusterAssignmentModel] = Field(default_factory=list)
    previews: List[RoutePreviewModel] = Field(default_factory=list)
    metadata: dict = Field(default_factory=dict)
