"""Health access error taxonomy and user-facing notices."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from vitalsync.domains.health.domain_logic.metric_models import Metric


# ------------------------------------------------------------------
# Exceptions
# ------------------------------------------------------------------

class HealthAccessError(Exception):
    """Base exception for the authorization and aggregation flow."""


class HealthSourceUnavailableError(HealthAccessError):
    """The health data service is not present on the device."""


class AuthorizationDeniedError(HealthAccessError):
    """The user declined the permission prompt."""


class AuthorizationFlowError(HealthAccessError):
    """A platform call failed while checking or requesting permission."""


class MetricFetchError(HealthAccessError):
    """A single metric's aggregated query could not be completed."""

    def __init__(self, metric: Metric, message: str) -> None:
        super().__init__(message)
        self.metric = metric


class MalformedRecordError(MetricFetchError):
    """A platform record did not have a timestamp and a numeric value."""


class PlatformCallError(Exception):
    """A platform operation invoked its failure callback or raised."""

    def __init__(self, operation: str, detail: Any = None) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")


# ------------------------------------------------------------------
# Notices
# ------------------------------------------------------------------

class NoticeKind(str, Enum):
    UNAVAILABLE = "unavailable"
    AUTHORIZATION_DENIED = "authorization_denied"
    AUTHORIZATION_ERROR = "authorization_error"
    REMEDIATION_OPENED = "remediation_opened"
    REMEDIATION_FAILED = "remediation_failed"
    ALREADY_AUTHORIZED = "already_authorized"
    AUTHORIZATION_GRANTED = "authorization_granted"
    METRIC_FETCH_FAILED = "metric_fetch_failed"


_INFO_KINDS = {
    NoticeKind.REMEDIATION_OPENED,
    NoticeKind.ALREADY_AUTHORIZED,
    NoticeKind.AUTHORIZATION_GRANTED,
}


@dataclass(frozen=True)
class Notice:
    """A user-facing event; the presentation layer decides how to render it."""

    kind: NoticeKind
    message: str
    metric: Metric | None = None
    detail: str | None = None

    @property
    def level(self) -> str:
        return "info" if self.kind in _INFO_KINDS else "error"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "level": self.level,
            "message": self.message,
            "metric": self.metric.value if self.metric else None,
            "detail": self.detail,
        }
