"""Kubernetes operator materializing Habitat ServiceGroups as Deployments."""

__version__ = "0.1.0"
