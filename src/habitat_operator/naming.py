"""Names of the resources derived from a ServiceGroup."""

from . import crd


def _name_of(service_group):
    return service_group if isinstance(service_group, str) else service_group.name


def workload_name(service_group):
    """The Deployment takes the ServiceGroup's own name."""
    return _name_of(service_group)


def config_map_name(service_group):
    """Name of the ConfigMap holding the peer watch file."""
    return f"{_name_of(service_group)}{crd.PEER_FILE_SUFFIX}"
