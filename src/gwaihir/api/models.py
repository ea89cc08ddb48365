"""Pydantic request/response models for the Gwaihir API."""

from typing import Optional

from pydantic import BaseModel, Field


class WakeRequest(BaseModel):
    machine_id: str = Field(min_length=1)


class MachineResponse(BaseModel):
    id: str
    name: str
    mac: str
    broadcast: str


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str


class VersionResponse(BaseModel):
    version: str
    build_time: Optional[str] = None
    git_commit: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    build_time: Optional[str] = None
    git_commit: Optional[str] = None
    timestamp: str
    uptime_seconds: int
    configured_machines: int
    checks: dict[str, str]
