"""ServiceGroup watch subscription built on Kopf.

Each ServiceGroupWatch owns a private Kopf registry instead of registering
handlers on the process-wide default one, and runs the operator machinery in
a background thread that stops with the Lifetime it was started with.

Raw watch events are used (``kopf.on.event``) so Kopf never writes
finalizers, annotations or status back to the ServiceGroup.
"""

import asyncio
import contextlib
import logging
import threading

import kopf

from . import crd
from .errors import ClusterAPIError, UnknownEventTypeError
from .models import EventKind, ServiceGroup, ServiceGroupEvent

logger = logging.getLogger(__name__)

# How often start() re-checks the background thread while waiting for Kopf
_READY_POLL_INTERVAL = 0.1


class ServiceGroupWatch:
    """List-and-watch subscription delivering typed ServiceGroupEvents.

    Keeps the last seen object per (namespace, name) so that modifications
    carry the previous object and periodic resyncs can redeliver every known
    ServiceGroup as an ADDED event.
    """

    def __init__(self, handler, namespace="", resync_period=60.0):
        self._handler = handler
        self.namespace = namespace
        self.resync_period = resync_period

        self._store = {}
        self._store_lock = threading.Lock()
        self._ready_flag = threading.Event()
        self._thread = None
        self._failure = None

        self.registry = kopf.OperatorRegistry()
        self._register_handlers()

    def _register_handlers(self):
        """Register login, startup and event handlers on the private registry."""

        @kopf.on.login(registry=self.registry)
        def login(**kwargs):
            """Authenticate with the kubernetes client's credentials."""
            return kopf.login_via_client(**kwargs)

        @kopf.on.startup(registry=self.registry)
        def configure(settings: kopf.OperatorSettings, **kwargs):
            """Configure Kopf for sequential, side-effect-free handling."""
            # One worker: handlers never run concurrently.
            settings.execution.max_workers = 1
            settings.posting.enabled = False
            logger.info(f"Watching {crd.PLURAL} in {self.namespace or 'all namespaces'}")

        @kopf.on.event(crd.GROUP, crd.VERSION, crd.PLURAL, registry=self.registry)
        def service_group_event(event, **kwargs):
            """Forward a raw watch event to deliver()."""
            self.deliver(event.get("type"), event.get("object"))

    def deliver(self, event_type, body):
        """Translate a raw watch event and hand it to the handler.

        ``event_type`` is ``None`` for objects from the initial listing.
        """
        try:
            obj = ServiceGroup.from_body(body)
        except UnknownEventTypeError as e:
            logger.error(f"Dropping event: {e}")
            return

        key = (obj.namespace, obj.name)
        with self._store_lock:
            old = self._store.get(key)
            if event_type == "DELETED":
                self._store.pop(key, None)
                event = ServiceGroupEvent(EventKind.DELETED, obj)
            elif event_type in (None, "ADDED", "MODIFIED"):
                self._store[key] = obj
                if old is None:
                    event = ServiceGroupEvent(EventKind.ADDED, obj)
                else:
                    event = ServiceGroupEvent(EventKind.MODIFIED, obj, old=old)
            else:
                logger.debug(f"Ignoring {event_type} event for {obj.link}")
                return

        self._handler(event)

    def resync(self):
        """Redeliver every known ServiceGroup as an ADDED event."""
        with self._store_lock:
            known = list(self._store.values())
        logger.debug(f"Resyncing {len(known)} ServiceGroup(s)")
        for obj in known:
            self._handler(ServiceGroupEvent(EventKind.ADDED, obj))

    async def _resync_forever(self):
        """Call resync every resync_period seconds until cancelled."""
        while True:
            await asyncio.sleep(self.resync_period)
            await asyncio.to_thread(self.resync)

    async def _serve(self, stop_flag):
        """Run Kopf, with the resync task alongside, until stop_flag is set."""
        resync_task = None
        if self.resync_period > 0:
            resync_task = asyncio.create_task(self._resync_forever())
        try:
            await kopf.operator(
                registry=self.registry,
                standalone=True,
                clusterwide=not self.namespace,
                namespaces=[self.namespace] if self.namespace else [],
                stop_flag=stop_flag,
                ready_flag=self._ready_flag,
            )
        finally:
            if resync_task is not None:
                resync_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await resync_task

    def _run(self, lifetime):
        """Serve until the lifetime's stop flag is set.

        A watch that dies after becoming ready cancels the lifetime with the
        failure as its reason.
        """
        try:
            asyncio.run(self._serve(lifetime.stop_flag))
        except Exception as e:
            self._failure = e
            logger.error(f"ServiceGroup watch stopped: {e}", exc_info=True)
            if self._ready_flag.is_set():
                lifetime.cancel(e)
            return

        if self._ready_flag.is_set() and not lifetime.cancelled:
            logger.error("ServiceGroup watch stopped unexpectedly")
            lifetime.cancel(RuntimeError("ServiceGroup watch stopped unexpectedly"))

    @property
    def running(self):
        """Whether the background thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def start(self, lifetime):
        """Start watching in the background until ``lifetime`` is cancelled.

        Returns once the watch is established. Raises ClusterAPIError if it
        stops before that.
        """
        if self._thread is not None:
            raise RuntimeError("ServiceGroup watch already started")

        self._thread = threading.Thread(
            target=self._run,
            args=(lifetime,),
            name="servicegroup-watch",
            daemon=True,
        )
        self._thread.start()

        while not self._ready_flag.wait(_READY_POLL_INTERVAL):
            if lifetime.cancelled:
                break
            if not self._thread.is_alive():
                cause = self._failure or RuntimeError("watch exited before becoming ready")
                raise ClusterAPIError(
                    "watch", crd.PLURAL, self.namespace or "*", cause
                ) from cause
        return self

    def join(self, timeout=None):
        """Wait for the background thread to finish."""
        if self._thread is not None:
            self._thread.join(timeout)
