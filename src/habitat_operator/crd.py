"""CRD schema constants and helpers."""

# CRD Group, Version, and Kind
GROUP = "habitat.sh"
VERSION = "v1"
PLURAL = "servicegroups"
KIND = "ServiceGroup"

# API version string
API_VERSION = f"{GROUP}/{VERSION}"

# Derived workload
WORKLOAD_API_VERSION = "apps/v1"
WORKLOAD_KIND = "Deployment"
CONTAINER_NAME = "habitat-service"
HABITAT_LABEL = {"habitat": "true"}
SERVICE_GROUP_LABEL = "habitat-service-group"

# Peer watch file
PEER_FILE_SUFFIX = "-peer-file"
PEER_WATCH_FILE_KEY = "peer-watch-file"
CONFIG_VOLUME_NAME = "config"
CONFIG_MOUNT_PATH = "/kubernetes-configmap"

# Deletion propagation
PROPAGATION_BACKGROUND = "Background"

# 32-bit signed upper bound for replica counts
MAX_REPLICAS = 2**31 - 1
