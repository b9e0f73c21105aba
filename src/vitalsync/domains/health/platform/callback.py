"""Adapter for callback-style health plugins.

Mobile health plugins expose each operation as
``operation(*args, success_callback, failure_callback)``. This adapter turns
every call into an awaitable that resolves on the first callback fired:
success resolves with the callback's argument, failure raises
``PlatformCallError`` carrying the plugin's error payload.

Callbacks may fire synchronously, later on the event loop, or from a plugin
thread; all three are funnelled through ``call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from vitalsync.domains.health.domain_logic.errors import PlatformCallError
from vitalsync.domains.health.domain_logic.metric_models import AuthorizationScope
from vitalsync.domains.health.platform import AggregatedQuery

logger = logging.getLogger(__name__)

_REMEDIATION_OPERATION = "getHealthConnectFromStore"


class CallbackHealthPlatform:
    """HealthPlatform backed by a callback-style plugin object.

    Usage::

        platform = CallbackHealthPlatform(cordova_plugins_health)
        if await platform.is_available():
            granted = await platform.request_authorization(READ_SCOPE)
    """

    def __init__(self, plugin: Any, *, name: str = "cordova") -> None:
        self._plugin = plugin
        self._name = name
        # The remediation hook only exists when the plugin offers it.
        if callable(getattr(plugin, _REMEDIATION_OPERATION, None)):
            self.get_health_connect_from_store = self._open_store

    @property
    def name(self) -> str:
        return self._name

    async def is_available(self) -> bool:
        return bool(await self._call("isAvailable"))

    async def is_authorized(self, scope: AuthorizationScope) -> bool:
        return bool(await self._call("isAuthorized", scope.as_dict()))

    async def request_authorization(self, scope: AuthorizationScope) -> bool:
        return bool(await self._call("requestAuthorization", scope.as_dict()))

    async def query_aggregated(self, query: AggregatedQuery) -> list[Any]:
        result = await self._call("queryAggregated", query.as_dict())
        if result is None:
            return []
        if not isinstance(result, list):
            raise PlatformCallError(
                "queryAggregated",
                f"expected a list of records, got {type(result).__name__}",
            )
        return result

    async def _open_store(self) -> None:
        await self._call(_REMEDIATION_OPERATION)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _call(self, operation: str, *args: Any) -> Any:
        """Invoke ``operation`` and wait for whichever callback fires first."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()

        def _resolve(value: Any) -> None:
            if not future.done():
                future.set_result(value)

        def _reject(detail: Any) -> None:
            if not future.done():
                future.set_exception(PlatformCallError(operation, detail))

        def success(value: Any = None) -> None:
            loop.call_soon_threadsafe(_resolve, value)

        def failure(detail: Any = None) -> None:
            loop.call_soon_threadsafe(_reject, detail)

        logger.debug("Calling health plugin %s", operation)
        try:
            getattr(self._plugin, operation)(*args, success, failure)
        except Exception as exc:
            raise PlatformCallError(operation, exc) from exc

        return await future
