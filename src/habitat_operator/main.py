"""Main operator entrypoint."""

import argparse
import logging
import signal
import sys

from .config import Settings
from .errors import ClusterAPIError, ConfigurationError
from .k8s import KubernetesGateway
from .lifetime import Lifetime
from .reconcile import HabitatController

logger = logging.getLogger(__name__)


def parse_args(argv=None, defaults=None):
    defaults = defaults if defaults is not None else Settings()
    parser = argparse.ArgumentParser(
        description="Habitat operator: materializes ServiceGroups as Deployments",
    )
    parser.add_argument(
        "--kubeconfig",
        default=defaults.kubeconfig,
        help="Path to a kubeconfig file (default: in-cluster config, then ~/.kube/config)",
    )
    parser.add_argument(
        "--namespace",
        default=defaults.namespace,
        help="Namespace to watch for ServiceGroups (default: all namespaces)",
    )
    parser.add_argument(
        "--workload-namespace",
        default=defaults.workload_namespace,
        help="Namespace for the Deployments and ConfigMaps (default: %(default)s)",
    )
    parser.add_argument(
        "--resync-period",
        type=float,
        default=defaults.resync_period,
        help="Seconds between full resyncs, 0 to disable (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        default=defaults.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Log level (default: %(default)s)",
    )
    args = parser.parse_args(argv)

    return Settings(
        namespace=args.namespace,
        workload_namespace=args.workload_namespace,
        resync_period=args.resync_period,
        log_level=args.log_level,
        kubeconfig=args.kubeconfig,
    )


def install_signal_handlers(lifetime):
    def _cancel(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, shutting down")
        lifetime.cancel()

    signal.signal(signal.SIGINT, _cancel)
    signal.signal(signal.SIGTERM, _cancel)


def main(argv=None):
    settings = parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        gateway = KubernetesGateway.from_kubeconfig(settings.kubeconfig)
        controller = HabitatController(gateway, settings)
    except ConfigurationError as e:
        logger.error(f"Could not start operator: {e}")
        return 1

    lifetime = Lifetime()
    install_signal_handlers(lifetime)

    try:
        reason = controller.run(lifetime)
    except ClusterAPIError:
        return 1

    if reason is not None:
        logger.error(f"Operator stopped: {reason}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
