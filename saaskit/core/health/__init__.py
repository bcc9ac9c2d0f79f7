"""
Health checks: checker interface, built-in checkers and the aggregating service.
"""

from .checkers import Checker, CustomChecker, DiskChecker, SSEHubChecker
from .models import CheckResult, HealthReport, HealthStatus
from .service import HealthService

__all__ = [
    "Checker",
    "CustomChecker",
    "DiskChecker",
    "SSEHubChecker",
    "CheckResult",
    "HealthReport",
    "HealthStatus",
    "HealthService",
]
