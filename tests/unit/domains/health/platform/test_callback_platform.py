"""Tests for the callback-style plugin adapter."""

from __future__ import annotations

import asyncio
import threading
from datetime import datetime, timezone

import pytest

from vitalsync.domains.health.domain_logic.errors import PlatformCallError
from vitalsync.domains.health.domain_logic.metric_models import READ_SCOPE, Metric
from vitalsync.domains.health.platform import AggregatedQuery, has_remediation
from vitalsync.domains.health.platform.callback import CallbackHealthPlatform


def _run(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class FakePlugin:
    """Mimics a cordova health plugin: every method ends in (success, failure)."""

    def __init__(self, *, available=True, authorized=False, records=None, error=None):
        self.available = available
        self.authorized = authorized
        self.records = records if records is not None else []
        self.error = error
        self.received: list[tuple[str, tuple]] = []

    def _settle(self, value, success, failure):
        if self.error is not None:
            failure(self.error)
        else:
            success(value)

    def isAvailable(self, success, failure):
        self.received.append(("isAvailable", ()))
        self._settle(self.available, success, failure)

    def isAuthorized(self, scope, success, failure):
        self.received.append(("isAuthorized", (scope,)))
        self._settle(self.authorized, success, failure)

    def requestAuthorization(self, scope, success, failure):
        self.received.append(("requestAuthorization", (scope,)))
        self._settle(True, success, failure)

    def queryAggregated(self, query, success, failure):
        self.received.append(("queryAggregated", (query,)))
        self._settle(self.records, success, failure)


class StorePlugin(FakePlugin):
    def __init__(self, *, store_error=None, **kwargs):
        super().__init__(**kwargs)
        self.store_error = store_error
        self.store_opened = False

    def getHealthConnectFromStore(self, success, failure):
        if self.store_error:
            failure(self.store_error)
        else:
            self.store_opened = True
            success()


def _query() -> AggregatedQuery:
    end = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
    return AggregatedQuery(
        start_date=datetime(2026, 10, 12, 12, 0, tzinfo=timezone.utc),
        end_date=end,
        data_type=Metric.STEPS,
    )


class TestSuccessCallbacks:
    def test_is_available(self):
        platform = CallbackHealthPlatform(FakePlugin(available=False))
        assert _run(platform.is_available()) is False

    def test_scope_passed_as_wire_dict(self):
        plugin = FakePlugin(authorized=True)
        platform = CallbackHealthPlatform(plugin)
        assert _run(platform.is_authorized(READ_SCOPE)) is True
        assert plugin.received == [("isAuthorized", (READ_SCOPE.as_dict(),))]

    def test_query_passed_in_camel_case(self):
        records = [{"startDate": "2026-10-18T00:00:00Z", "value": 10}]
        plugin = FakePlugin(records=records)
        platform = CallbackHealthPlatform(plugin)

        assert _run(platform.query_aggregated(_query())) == records
        (_, (sent,)), = plugin.received
        assert sent["dataType"] == "steps"
        assert sent["bucket"] == "day"
        assert set(sent) == {"startDate", "endDate", "dataType", "bucket"}

    def test_none_result_becomes_empty_list(self):
        plugin = FakePlugin()
        plugin.records = None
        platform = CallbackHealthPlatform(plugin)
        assert _run(platform.query_aggregated(_query())) == []

    def test_non_list_result_rejected(self):
        plugin = FakePlugin()
        plugin.records = {"value": 3}
        platform = CallbackHealthPlatform(plugin)
        with pytest.raises(PlatformCallError, match="list of records"):
            _run(platform.query_aggregated(_query()))

    def test_callback_from_plugin_thread(self):
        class ThreadedPlugin(FakePlugin):
            def isAvailable(self, success, failure):
                threading.Thread(target=success, args=(True,)).start()

        platform = CallbackHealthPlatform(ThreadedPlugin())
        assert _run(platform.is_available()) is True

    def test_only_first_callback_counts(self):
        class ChattyPlugin(FakePlugin):
            def isAvailable(self, success, failure):
                success(True)
                failure("late error")

        platform = CallbackHealthPlatform(ChattyPlugin())
        assert _run(platform.is_available()) is True


class TestFailureCallbacks:
    def test_failure_raises_platform_call_error(self):
        platform = CallbackHealthPlatform(FakePlugin(error="permission service crashed"))
        with pytest.raises(PlatformCallError) as excinfo:
            _run(platform.request_authorization(READ_SCOPE))
        assert excinfo.value.operation == "requestAuthorization"
        assert excinfo.value.detail == "permission service crashed"

    def test_plugin_raising_is_wrapped(self):
        class BrokenPlugin(FakePlugin):
            def isAvailable(self, success, failure):
                raise RuntimeError("bridge not ready")

        platform = CallbackHealthPlatform(BrokenPlugin())
        with pytest.raises(PlatformCallError, match="bridge not ready"):
            _run(platform.is_available())

    def test_missing_operation_is_wrapped(self):
        platform = CallbackHealthPlatform(object())
        with pytest.raises(PlatformCallError, match="isAvailable"):
            _run(platform.is_available())


class TestRemediationHook:
    def test_absent_when_plugin_lacks_it(self):
        assert not has_remediation(CallbackHealthPlatform(FakePlugin()))

    def test_present_and_invokes_plugin(self):
        plugin = StorePlugin()
        platform = CallbackHealthPlatform(plugin)
        assert has_remediation(platform)
        _run(platform.get_health_connect_from_store())
        assert plugin.store_opened

    def test_store_failure_raises(self):
        platform = CallbackHealthPlatform(StorePlugin(store_error="no play store"))
        with pytest.raises(PlatformCallError, match="no play store"):
            _run(platform.get_health_connect_from_store())
