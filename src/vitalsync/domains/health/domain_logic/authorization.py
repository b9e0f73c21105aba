"""Authorization controller: gates health data reads on availability and consent.

One run per platform-ready event::

    CHECKING ── unavailable ──────────────────────────▶ UNAVAILABLE
       │
       ├── already authorized ────────────────────────▶ AUTHORIZED → load
       │
       └── request ── granted ────────────────────────▶ AUTHORIZED → load
                  └── denied ─────────────────────────▶ DENIED

    any platform call failing ────────────────────────▶ ERROR (+ remediation)

Each platform check is issued at most once per run. There are no retries
and no timeouts beyond what the platform call itself enforces.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable

from vitalsync.domains.health.domain_logic.errors import (
    AuthorizationDeniedError,
    AuthorizationFlowError,
    HealthSourceUnavailableError,
    Notice,
    NoticeKind,
    PlatformCallError,
)
from vitalsync.domains.health.domain_logic.metric_models import (
    READ_SCOPE,
    AuthorizationScope,
)
from vitalsync.domains.health.platform import has_remediation

if TYPE_CHECKING:
    from vitalsync.domains.health.platform import HealthPlatform

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "Google Fit / Apple Health / Health Connect not available."
DENIED_MESSAGE = "Authorization denied by user."
ERROR_PREFIX = "Error during health access: "


class AuthorizationState(str, Enum):
    UNKNOWN = "unknown"
    CHECKING = "checking"
    AUTHORIZED = "authorized"
    DENIED = "denied"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


class AuthorizationController:
    """Drives the availability → permission flow and triggers the data load.

    The controller never fetches data itself; on success it awaits
    ``on_authorized``. Outcomes reach the user as ``Notice`` events through
    ``notify``; ``error`` holds the plain message of the last failed run.
    """

    def __init__(
        self,
        platform: HealthPlatform,
        *,
        on_authorized: Callable[[], Awaitable[object]],
        notify: Callable[[Notice], None],
        scope: AuthorizationScope = READ_SCOPE,
    ) -> None:
        self._platform = platform
        self._on_authorized = on_authorized
        self._notify = notify
        self._scope = scope
        self.state = AuthorizationState.UNKNOWN
        self.error: str | None = None

    @property
    def is_authorized(self) -> bool:
        return self.state is AuthorizationState.AUTHORIZED

    async def run(self) -> AuthorizationState:
        """Run the state machine once and return the terminal state."""
        self.error = None
        self._transition(AuthorizationState.CHECKING)

        try:
            already_authorized = await self._authorize()
        except HealthSourceUnavailableError as exc:
            self._fail(AuthorizationState.UNAVAILABLE, NoticeKind.UNAVAILABLE, str(exc))
            return self.state
        except AuthorizationDeniedError as exc:
            self._fail(
                AuthorizationState.DENIED, NoticeKind.AUTHORIZATION_DENIED, str(exc)
            )
            return self.state
        except AuthorizationFlowError as exc:
            self._fail(
                AuthorizationState.ERROR,
                NoticeKind.AUTHORIZATION_ERROR,
                f"{ERROR_PREFIX}{exc}",
                detail=str(exc),
            )
            await self._remediate()
            return self.state

        self._transition(AuthorizationState.AUTHORIZED)
        if already_authorized:
            message = "Already authorized. Loading steps, distance, heart rate and calories data..."
            kind = NoticeKind.ALREADY_AUTHORIZED
        else:
            message = "Permission granted. Loading steps, distance, heart rate and calories data..."
            kind = NoticeKind.AUTHORIZATION_GRANTED
        self._notify(Notice(kind=kind, message=message))

        await self._on_authorized()
        return self.state

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _authorize(self) -> bool:
        """Return True if permission was already held, False if just granted."""
        platform = self._platform
        if not await self._call("isAvailable", platform.is_available):
            raise HealthSourceUnavailableError(UNAVAILABLE_MESSAGE)

        if await self._call("isAuthorized", platform.is_authorized, self._scope):
            return True

        granted = await self._call(
            "requestAuthorization", platform.request_authorization, self._scope
        )
        if not granted:
            raise AuthorizationDeniedError(DENIED_MESSAGE)
        return False

    async def _call(
        self,
        operation: str,
        method: Callable[..., Awaitable[bool]],
        *args: object,
    ) -> bool:
        try:
            return bool(await method(*args))
        except Exception as exc:
            detail = exc.detail if isinstance(exc, PlatformCallError) else exc
            logger.exception("Health platform call %s failed", operation)
            raise AuthorizationFlowError(str(detail)) from exc

    async def _remediate(self) -> None:
        """Best-effort: send the user to install or enable the health service."""
        if not has_remediation(self._platform):
            return
        try:
            await self._platform.get_health_connect_from_store()
        except Exception as exc:
            detail = exc.detail if isinstance(exc, PlatformCallError) else exc
            logger.warning("Remediation action failed: %s", detail)
            self._notify(Notice(
                kind=NoticeKind.REMEDIATION_FAILED,
                message=f"Failed to open Play Store: {detail}",
                detail=str(detail),
            ))
        else:
            logger.info("Remediation action opened the health service store page")
            self._notify(Notice(
                kind=NoticeKind.REMEDIATION_OPENED,
                message="Opened Health Connect in Play Store.",
            ))

    def _transition(self, state: AuthorizationState) -> None:
        logger.debug("Authorization state %s -> %s", self.state.value, state.value)
        self.state = state

    def _fail(
        self,
        state: AuthorizationState,
        kind: NoticeKind,
        message: str,
        *,
        detail: str | None = None,
    ) -> None:
        self._transition(state)
        self.error = message
        logger.warning("Health access stopped in state %s: %s", state.value, message)
        self._notify(Notice(kind=kind, message=message, detail=detail))
