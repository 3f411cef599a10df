"""Route auto-assignment: nearest-worker clustering and stop ordering."""

from .engine import assign_locations_to_workers, calculate_route_distance, order_route
from .preview import build_route_previews

__all__ = [
    "assign_locations_to_workers",
    "build_route_previews",
    "calculate_route_distance",
    "order_route",
]
