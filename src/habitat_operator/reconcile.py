"""Core reconciliation logic."""

import logging
import threading

from . import crd
from .config import Settings
from .errors import ClusterAPIError, ConfigurationError, ValidationError
from .models import EventKind
from .naming import config_map_name, workload_name
from .templates import (
    create_config_map_manifest,
    create_deployment_manifest,
    create_owner_reference,
)
from .validation import validate_service_group

logger = logging.getLogger(__name__)

# Upper bound on waiting for the watch thread after cancellation
_WATCH_STOP_TIMEOUT = 10.0


class HabitatController:
    """Materializes ServiceGroups as a Deployment plus a peer watch ConfigMap.

    Per-event failures are logged and the event is dropped; nothing is retried
    and nothing is written back to the ServiceGroup. Only ``run`` can fail
    outright, when the watch cannot be registered.
    """

    def __init__(self, gateway, settings=None):
        """Check collaborators; a bad config is a ConfigurationError."""
        if gateway is None:
            raise ConfigurationError("invalid controller config: no cluster gateway")
        settings = settings if settings is not None else Settings()
        if settings.resync_period < 0:
            raise ConfigurationError(
                f"invalid controller config: negative resync period {settings.resync_period}"
            )
        if not settings.workload_namespace:
            raise ConfigurationError("invalid controller config: no workload namespace")

        self.gateway = gateway
        self.settings = settings
        self._lock = threading.Lock()
        self._watch = None

    def run(self, lifetime):
        """Watch ServiceGroups until ``lifetime`` is cancelled.

        Returns the cancellation reason: None when stopped gracefully, or the
        error that killed the watch. Raises ClusterAPIError if the watch
        cannot be registered.
        """
        logger.info("Watching ServiceGroup objects")

        try:
            self._watch = self.gateway.list_watch_service_groups(
                self.handle,
                namespace=self.settings.namespace,
                resync_period=self.settings.resync_period,
            )
            self._watch.start(lifetime)
        except ClusterAPIError as e:
            logger.error(f"Failed to register watch for ServiceGroup resource: {e}")
            raise

        lifetime.wait()

        self._watch.join(_WATCH_STOP_TIMEOUT)
        logger.info(f"Stopped watching ServiceGroup objects (reason: {lifetime.reason})")
        return lifetime.reason

    def handle(self, event):
        """Dispatch a ServiceGroupEvent to its handler, one event at a time."""
        with self._lock:
            try:
                if event.kind is EventKind.ADDED:
                    self.on_add(event.obj)
                elif event.kind is EventKind.MODIFIED:
                    self.on_update(event.old, event.obj)
                elif event.kind is EventKind.DELETED:
                    self.on_delete(event.obj)
            except Exception as e:
                logger.error(
                    f"Unexpected error handling {event.kind.value} for {event.obj.link}: {e}",
                    exc_info=True,
                )

    def on_add(self, sg):
        """Create the Deployment, then its peer watch ConfigMap."""
        logger.debug(f"onAdd {sg.link}")

        try:
            validate_service_group(sg)
        except ValidationError as e:
            logger.error(
                f"Validation error for ServiceGroup {sg.name} in namespace {sg.namespace}: "
                f"{e.message} (key: {e.key})"
            )
            return

        logger.debug(f"Validated ServiceGroup {sg.name}")

        namespace = self.settings.workload_namespace
        deployment = create_deployment_manifest(sg, namespace)
        try:
            workload = self.gateway.create_workload(deployment, namespace)
        except ClusterAPIError as e:
            if e.already_exists:
                # Expected on every resync of a materialized ServiceGroup.
                logger.warning(
                    f"Deployment {workload_name(sg)} already exists in namespace {namespace}, "
                    f"skipping ServiceGroup {sg.name}"
                )
                return
            logger.error(
                f"Failed to create Deployment {workload_name(sg)} in namespace {namespace} "
                f"for ServiceGroup {sg.name}: {e.cause}"
            )
            return

        logger.info(f"Created Deployment {workload.name} in namespace {workload.namespace}")

        config_map = create_config_map_manifest(
            sg, namespace, owner_refs=[create_owner_reference(workload)]
        )
        try:
            self.gateway.create_config_artifact(config_map, namespace)
        except ClusterAPIError as e:
            # No rollback: the Deployment stays until the ServiceGroup is deleted.
            logger.error(
                f"Failed to create ConfigMap {config_map_name(sg)} in namespace {namespace} "
                f"for ServiceGroup {sg.name}: {e.cause}; "
                f"Deployment {workload.name} (uid {workload.uid}) was left in place"
            )
            return

        logger.info(f"Created ConfigMap {config_map_name(sg)} in namespace {namespace}")

    def on_update(self, old, new):
        """Log the transition; derived resources are left as they are."""
        logger.info(f"onUpdate oldObj: {old.link if old else None}, newObj: {new.link}")

    def on_delete(self, sg):
        """Delete the Deployment; its ConfigMap follows by owner reference."""
        logger.debug(f"onDelete {sg.link}")

        name = workload_name(sg)
        try:
            # The ConfigMap goes with the Deployment through its owner reference.
            self.gateway.delete_workload(
                name, sg.namespace, propagation_policy=crd.PROPAGATION_BACKGROUND
            )
        except ClusterAPIError as e:
            logger.error(
                f"Failed to delete Deployment {name} in namespace {sg.namespace}: {e.cause}"
            )
            return

        logger.info(f"Deleted Deployment {name} in namespace {sg.namespace}")
