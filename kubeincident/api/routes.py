"""Read-only query routes over the incident store."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from kubeincident.api.schemas import (
    ErrorResponse,
    EventSchema,
    HealthResponse,
    IncidentDetailResponse,
    IncidentListResponse,
    IncidentSummary,
    LogsResponse,
)
from kubeincident.models.incidents import release_name_from_incident_id
from kubeincident.store.incidents import IncidentStore, LogsNotFoundError

router = APIRouter()


def _store(request: Request) -> IncidentStore:
    return request.app.state.store  # type: ignore[no-any-return]


def _state_label(store: IncidentStore, incident_id: str) -> str:
    return "RESOLVED" if store.is_resolved(incident_id) else "ONGOING"


def _summaries(store: IncidentStore, incident_ids: list[str]) -> list[IncidentSummary]:
    summaries = []
    for incident_id in incident_ids:
        reason, message = store.latest_reason_and_message(incident_id)
        summaries.append(
            IncidentSummary(
                id=incident_id,
                release_name=release_name_from_incident_id(incident_id),
                latest_state=_state_label(store, incident_id),  # type: ignore[arg-type]
                latest_reason=reason,
                latest_message=message,
            )
        )
    return summaries


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    from kubeincident import __version__

    return HealthResponse(
        version=__version__,
        cluster=request.app.state.cluster_name,
        incidents=len(_store(request).list_incident_ids()),
    )


@router.get("/incidents", response_model=IncidentListResponse)
async def list_incidents(request: Request) -> IncidentListResponse:
    store = _store(request)
    return IncidentListResponse(incidents=_summaries(store, store.list_incident_ids()))


@router.get("/releases/{namespace}/{release_name}/incidents", response_model=IncidentListResponse)
async def list_release_incidents(request: Request, namespace: str, release_name: str) -> IncidentListResponse:
    store = _store(request)
    return IncidentListResponse(incidents=_summaries(store, store.incidents_for_release(release_name, namespace)))


@router.get(
    "/incidents/{incident_id}",
    response_model=IncidentDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_incident(request: Request, incident_id: str) -> IncidentDetailResponse | JSONResponse:
    store = _store(request)
    incident = store.get(incident_id)
    if incident is None:
        return JSONResponse(
            status_code=404,
            content=ErrorResponse(error="INCIDENT_NOT_FOUND", detail="invalid incident ID").model_dump(),
        )

    reason, message = store.latest_reason_and_message(incident_id)
    return IncidentDetailResponse(
        incident_id=incident_id,
        release_name=release_name_from_incident_id(incident_id),
        namespace=incident.namespace,
        latest_state=_state_label(store, incident_id),  # type: ignore[arg-type]
        latest_reason=reason,
        latest_message=message,
        events=[EventSchema.model_validate(event.to_dict()) for event in incident.events],
        log_ids=list(incident.log_ids),
    )


@router.get("/logs/{log_id}", response_model=LogsResponse, responses={404: {"model": ErrorResponse}})
async def get_logs(request: Request, log_id: str) -> LogsResponse | JSONResponse:
    try:
        contents = _store(request).get_logs(log_id)
    except LogsNotFoundError:
        return JSONResponse(
            status_code=404,
            content=ErrorResponse(error="LOGS_NOT_FOUND", detail="no such logs").model_dump(),
        )
    return LogsResponse(contents=contents)
