"""Domain models for service locations, field workers and route assignments."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(slots=True, frozen=True)
class ServiceLocation:
    """A house/stop that needs a visit. Read-only for a planning run."""

    id: str
    latitude: float
    longitude: float
    address: str = ""


@dataclass(slots=True, frozen=True)
class FieldWorker:
    """Snapshot of an employee's last reported position."""

    employee_id: str
    latitude: float
    longitude: float
    is_online: bool = True
    name: Optional[str] = None


@dataclass(slots=True, frozen=True)
class ClusterAssignment:
    location_id: str
    employee_id: str
    route_order: int
    cluster_id: int


@dataclass(slots=True)
class RoutePreview:
    """Per-worker view of an assignment, stops in visiting order."""

    employee_id: str
    employee_name: str
    stop_count: int
    total_distance: float
    locations: List[ServiceLocation] = field(default_factory=list)
