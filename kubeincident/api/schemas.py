"""Pydantic response models for the query API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

IncidentStateLabel = Literal["ONGOING", "RESOLVED"]


class ErrorResponse(BaseModel):
    error: str
    detail: str = ""


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    cluster: str = ""
    incidents: int = 0


class EventSchema(BaseModel):
    resource_type: str
    name: str
    namespace: str
    cluster: str = ""
    owner_name: str = ""
    owner_type: str = ""
    release_name: str = ""
    message: str = ""
    reason: str = ""
    critical: bool
    timestamp: str
    event_type: str
    pod_phase: str = ""
    pod_status: str = ""


class IncidentSummary(BaseModel):
    id: str
    release_name: str
    latest_state: IncidentStateLabel
    latest_reason: str = ""
    latest_message: str = ""


class IncidentListResponse(BaseModel):
    incidents: list[IncidentSummary] = Field(default_factory=list)


class IncidentDetailResponse(BaseModel):
    incident_id: str
    release_name: str
    namespace: str
    latest_state: IncidentStateLabel
    latest_reason: str = ""
    latest_message: str = ""
    events: list[EventSchema] = Field(default_factory=list)
    log_ids: list[str] = Field(default_factory=list)


class LogsResponse(BaseModel):
    contents: str
