"""
Health Models
=============

Pydantic models describing health check results.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """Health status of a check or of the whole application."""

    OK = "ok"
    DEGRADED = "degraded"
    DOWN = "down"


class CheckResult(BaseModel):
    """Result of a single health check."""

    name: str = Field(..., description="Checker name")
    status: HealthStatus = Field(..., description="Check status")
    message: Optional[str] = Field(None, description="Human readable detail")
    critical: bool = Field(default=False, description="Whether a failure takes the app down")
    duration_ms: float = Field(default=0.0, description="Check duration in milliseconds")
    details: Dict[str, Any] = Field(default_factory=dict, description="Checker specific data")
    checked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class HealthReport(BaseModel):
    """Aggregated result of every registered check."""

    status: HealthStatus = Field(..., description="Overall status")
    version: str = Field(..., description="Application version")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    uptime: float = Field(default=0.0, description="Seconds since the health service started")
    checks: Dict[str, CheckResult] = Field(default_factory=dict)
