"""Auto-assignment endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, status

from ...schemas.assignment import AutoAssignRequest, AutoAssignResponse, OptimizeRequest
from ...services.assignment.service import (
    commit_auto_assignment,
    optimize_candidates,
    preview_auto_assignment,
)

router = APIRouter(prefix="/assignments", tags=["assignments"])


def _name_cache(request: Request):
    return getattr(request.app.state, "worker_name_cache", None)


@router.post("/optimize", response_model=AutoAssignResponse, status_code=status.HTTP_200_OK)
def optimize(payload: OptimizeRequest) -> AutoAssignResponse:
    """Plan routes for the posted locations and workers without touching the database."""
    try:
        return optimize_candidates(payload)
    except Exception as exc:
        logging.exception(f"Error planning routes: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to plan routes: {str(exc)}"
        ) from exc


@router.post("/auto/preview", response_model=AutoAssignResponse, status_code=status.HTTP_200_OK)
def preview(payload: AutoAssignRequest, request: Request) -> AutoAssignResponse:
    try:
        return preview_auto_assignment(payload, name_cache=_name_cache(request))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error previewing auto-assignment: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to preview auto-assignment: {str(exc)}"
        ) from exc


@router.post("/auto/commit", response_model=AutoAssignResponse, status_code=status.HTTP_200_OK)
def commit(payload: AutoAssignRequest, request: Request) -> AutoAssignResponse:
    """Assign every unassigned house to the nearest online employee and save the routes."""
    try:
        return commit_auto_assignment(payload, name_cache=_name_cache(request))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error committing auto-assignment: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to assign routes: {str(exc)}"
        ) from exc
