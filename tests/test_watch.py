import asyncio
import logging
import threading
import time
from unittest import mock

import kopf
import pytest

from habitat_operator.errors import ClusterAPIError
from habitat_operator.lifetime import Lifetime
from habitat_operator.models import EventKind
from habitat_operator.watch import ServiceGroupWatch

from fakes import DyingWatch, make_body


@pytest.fixture
def events():
    return []


@pytest.fixture
def watch(events):
    return ServiceGroupWatch(events.append, resync_period=0)


def test_each_watch_owns_its_registry(events):
    first = ServiceGroupWatch(events.append)
    second = ServiceGroupWatch(events.append)

    assert isinstance(first.registry, kopf.OperatorRegistry)
    assert first.registry is not second.registry


def test_initial_listing_is_delivered_as_added(watch, events):
    watch.deliver(None, make_body(name="web"))

    [event] = events
    assert event.kind is EventKind.ADDED
    assert event.obj.name == "web"
    assert event.old is None


def test_modification_carries_previous_object(watch, events):
    watch.deliver("ADDED", make_body(name="web", count=1))
    watch.deliver("MODIFIED", make_body(name="web", count=5))

    added, modified = events
    assert added.kind is EventKind.ADDED
    assert modified.kind is EventKind.MODIFIED
    assert modified.old.count == 1
    assert modified.obj.count == 5


def test_modification_of_unknown_object_is_an_add(watch, events):
    watch.deliver("MODIFIED", make_body(name="web"))

    [event] = events
    assert event.kind is EventKind.ADDED


def test_deletion_forgets_the_object(watch, events):
    watch.deliver("ADDED", make_body(name="web"))
    watch.deliver("DELETED", make_body(name="web"))
    watch.resync()

    assert [e.kind for e in events] == [EventKind.ADDED, EventKind.DELETED]


def test_resync_redelivers_known_objects_as_added(watch, events):
    watch.deliver("ADDED", make_body(name="web"))
    watch.deliver("ADDED", make_body(name="api"))
    events.clear()

    watch.resync()

    assert sorted(e.obj.name for e in events) == ["api", "web"]
    assert all(e.kind is EventKind.ADDED for e in events)


def test_same_name_in_other_namespace_is_distinct(watch, events):
    watch.deliver("ADDED", make_body(name="web", namespace="a"))
    watch.deliver("ADDED", make_body(name="web", namespace="b"))

    assert [e.kind for e in events] == [EventKind.ADDED, EventKind.ADDED]


def test_unknown_object_is_dropped(watch, events, caplog):
    body = make_body()
    body["kind"] = "Pod"

    with caplog.at_level(logging.ERROR, logger="habitat_operator.watch"):
        watch.deliver("ADDED", body)

    assert events == []
    assert "unknown event type" in caplog.text


def test_unknown_event_type_is_ignored(watch, events):
    watch.deliver("BOOKMARK", make_body())
    assert events == []


class _ReadyWatch(ServiceGroupWatch):
    async def _serve(self, stop_flag):
        self._ready_flag.set()
        await asyncio.to_thread(stop_flag.wait)


class _BrokenWatch(ServiceGroupWatch):
    async def _serve(self, stop_flag):
        raise RuntimeError("login failed")


def test_start_runs_until_lifetime_is_cancelled(events):
    watch = _ReadyWatch(events.append)
    lifetime = Lifetime()

    assert watch.start(lifetime) is watch
    assert watch.running

    lifetime.cancel()
    watch.join(5)
    assert not watch.running


def test_start_twice_is_an_error(events):
    watch = _ReadyWatch(events.append)
    lifetime = Lifetime()
    watch.start(lifetime)
    try:
        with pytest.raises(RuntimeError):
            watch.start(lifetime)
    finally:
        lifetime.cancel()
        watch.join(5)


def test_startup_failure_is_a_cluster_api_error(events):
    watch = _BrokenWatch(events.append)

    with pytest.raises(ClusterAPIError) as exc_info:
        watch.start(Lifetime())

    assert isinstance(exc_info.value.cause, RuntimeError)
    assert "login failed" in str(exc_info.value)


def test_failure_after_ready_cancels_the_lifetime(events):
    watch = DyingWatch(events.append)
    lifetime = Lifetime()

    watch.start(lifetime)

    assert lifetime.wait(5)
    watch.join(5)
    assert isinstance(lifetime.reason, RuntimeError)
    assert "watch stream closed" in str(lifetime.reason)


class _ReturningWatch(ServiceGroupWatch):
    async def _serve(self, stop_flag):
        self._ready_flag.set()


def test_unexpected_stop_after_ready_cancels_the_lifetime(events):
    watch = _ReturningWatch(events.append)
    lifetime = Lifetime()

    watch.start(lifetime)

    assert lifetime.wait(5)
    assert isinstance(lifetime.reason, RuntimeError)


def _registered(handlers, name):
    [handler] = [h for h in handlers if h.fn.__name__ == name]
    return handler.fn


def test_registered_event_handler_translates_raw_events(watch, events):
    on_event = _registered(watch.registry._watching.get_all_handlers(), "service_group_event")

    on_event(event={"type": None, "object": make_body(name="web")})
    on_event(event={"type": "MODIFIED", "object": make_body(name="web", count=5)})
    on_event(event={"type": "DELETED", "object": make_body(name="web")})

    assert [e.kind for e in events] == [EventKind.ADDED, EventKind.MODIFIED, EventKind.DELETED]
    assert events[1].obj.count == 5


def test_startup_activity_configures_sequential_silent_handling(watch):
    configure = _registered(watch.registry._activities.get_all_handlers(), "configure")
    settings = kopf.OperatorSettings()

    configure(settings=settings)

    assert settings.execution.max_workers == 1
    assert settings.posting.enabled is False


def test_login_activity_uses_kubernetes_client_credentials(watch):
    login = _registered(watch.registry._activities.get_all_handlers(), "login")

    with mock.patch.object(kopf, "login_via_client", return_value="credentials") as via_client:
        assert login(logger=logging.getLogger("test")) == "credentials"
    via_client.assert_called_once()


@pytest.mark.parametrize(
    "namespace,clusterwide,namespaces",
    [("", True, []), ("prod", False, ["prod"])],
)
def test_serve_runs_kopf_on_the_private_registry(events, namespace, clusterwide, namespaces):
    watch = ServiceGroupWatch(events.append, namespace=namespace, resync_period=0)
    stop_flag = threading.Event()
    operator = mock.AsyncMock(return_value=None)

    with mock.patch.object(kopf, "operator", operator):
        asyncio.run(watch._serve(stop_flag))

    operator.assert_awaited_once_with(
        registry=watch.registry,
        standalone=True,
        clusterwide=clusterwide,
        namespaces=namespaces,
        stop_flag=stop_flag,
        ready_flag=watch._ready_flag,
    )


def test_serve_resyncs_while_kopf_runs_and_stops_with_it(events):
    watch = ServiceGroupWatch(events.append, resync_period=0.01)
    watch.deliver("ADDED", make_body(name="web"))
    events.clear()

    async def operator(**kwargs):
        await asyncio.sleep(0.1)

    with mock.patch.object(kopf, "operator", operator):
        asyncio.run(watch._serve(threading.Event()))

    resynced = len(events)
    assert resynced >= 1
    time.sleep(0.05)
    assert len(events) == resynced


def test_resync_forever_redelivers_periodically(events):
    watch = ServiceGroupWatch(events.append, resync_period=0.01)
    watch.deliver("ADDED", make_body(name="web"))
    events.clear()

    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(asyncio.wait_for(watch._resync_forever(), 0.1))

    assert len(events) >= 2
    assert all(e.kind is EventKind.ADDED and e.obj.name == "web" for e in events)
