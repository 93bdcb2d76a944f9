"""Kubernetes client helpers and the cluster gateway."""

import abc
import logging

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from . import crd
from .errors import ClusterAPIError, ConfigurationError
from .models import ObjectIdentity
from .watch import ServiceGroupWatch

logger = logging.getLogger(__name__)


def load_config(kubeconfig=None):
    """Load cluster credentials.

    An explicit kubeconfig path wins; otherwise in-cluster config is tried
    first and the default kubeconfig is the fallback.
    """
    try:
        if kubeconfig:
            config.load_kube_config(config_file=kubeconfig)
            logger.info(f"Loaded kubeconfig from {kubeconfig}")
            return
        try:
            config.load_incluster_config()
            logger.info("Loaded in-cluster Kubernetes config")
        except config.ConfigException:
            config.load_kube_config()
            logger.info("Loaded kubeconfig")
    except (config.ConfigException, OSError) as e:
        raise ConfigurationError(f"Could not load Kubernetes config: {e}") from e


def init_clients(kubeconfig=None):
    """Initialize Kubernetes clients."""
    load_config(kubeconfig)
    return client.AppsV1Api(), client.CoreV1Api()


def _identity(obj, namespace):
    metadata = obj.metadata
    return ObjectIdentity(
        name=metadata.name,
        namespace=metadata.namespace or namespace,
        uid=metadata.uid or "",
    )


class ClusterGateway(abc.ABC):
    """Mutations and watches against the cluster.

    Implementations perform no retries; every failure surfaces as
    ClusterAPIError.
    """

    @abc.abstractmethod
    def create_workload(self, deployment, namespace):
        """Create a Deployment and return its identity."""

    @abc.abstractmethod
    def delete_workload(self, name, namespace, propagation_policy=crd.PROPAGATION_BACKGROUND):
        """Delete a Deployment, propagating to its dependents."""

    @abc.abstractmethod
    def create_config_artifact(self, config_map, namespace):
        """Create a ConfigMap and return its identity."""

    @abc.abstractmethod
    def list_watch_service_groups(self, handler, namespace="", resync_period=60.0):
        """Return a watch subscription delivering ServiceGroupEvents to ``handler``."""


class KubernetesGateway(ClusterGateway):
    """ClusterGateway backed by the official Kubernetes Python client."""

    def __init__(self, apps_api, core_api):
        """Wrap already configured API clients."""
        if apps_api is None:
            raise ConfigurationError("invalid gateway config: no AppsV1Api client")
        if core_api is None:
            raise ConfigurationError("invalid gateway config: no CoreV1Api client")
        self.apps_api = apps_api
        self.core_api = core_api

    @classmethod
    def from_kubeconfig(cls, kubeconfig=None):
        """Build a gateway from loaded cluster credentials."""
        apps_api, core_api = init_clients(kubeconfig)
        return cls(apps_api, core_api)

    def create_workload(self, deployment, namespace):
        """Create a Deployment and return its identity."""
        name = deployment.metadata.name
        try:
            created = self.apps_api.create_namespaced_deployment(
                namespace=namespace, body=deployment
            )
        except ApiException as e:
            raise ClusterAPIError("create Deployment", name, namespace, e, e.status) from e
        except HTTPError as e:
            raise ClusterAPIError("create Deployment", name, namespace, e) from e
        return _identity(created, namespace)

    def delete_workload(self, name, namespace, propagation_policy=crd.PROPAGATION_BACKGROUND):
        """Delete a Deployment without waiting for its dependents."""
        # Dependents are removed by the garbage collector; we don't wait for it.
        body = client.V1DeleteOptions(propagation_policy=propagation_policy)
        try:
            self.apps_api.delete_namespaced_deployment(
                name=name, namespace=namespace, body=body
            )
        except ApiException as e:
            raise ClusterAPIError("delete Deployment", name, namespace, e, e.status) from e
        except HTTPError as e:
            raise ClusterAPIError("delete Deployment", name, namespace, e) from e

    def create_config_artifact(self, config_map, namespace):
        """Create a ConfigMap and return its identity."""
        name = config_map.metadata.name
        try:
            created = self.core_api.create_namespaced_config_map(
                namespace=namespace, body=config_map
            )
        except ApiException as e:
            raise ClusterAPIError("create ConfigMap", name, namespace, e, e.status) from e
        except HTTPError as e:
            raise ClusterAPIError("create ConfigMap", name, namespace, e) from e
        return _identity(created, namespace)

    def list_watch_service_groups(self, handler, namespace="", resync_period=60.0):
        """Return an unstarted ServiceGroupWatch feeding ``handler``."""
        return ServiceGroupWatch(handler, namespace=namespace, resync_period=resync_period)
