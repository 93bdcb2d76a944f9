"""ServiceGroup spec validation."""

from . import crd
from .errors import ValidationError


def validate_service_group(sg):
    """Validate a ServiceGroup before any derived resource is built.

    Raises ValidationError naming the offending field.
    """
    if not sg.name:
        raise ValidationError("metadata.name", "name must not be empty")
    if not sg.namespace:
        raise ValidationError("metadata.namespace", "namespace must not be empty")

    if not isinstance(sg.image, str) or not sg.image.strip():
        raise ValidationError("spec.image", "image must be a non-empty string")

    # bool is an int subclass, but `count: true` is not a replica count
    if isinstance(sg.count, bool) or not isinstance(sg.count, int):
        raise ValidationError("spec.count", f"count must be an integer, got {sg.count!r}")
    if sg.count < 0:
        raise ValidationError("spec.count", f"count must be non-negative, got {sg.count}")
    if sg.count > crd.MAX_REPLICAS:
        raise ValidationError("spec.count", f"count must not exceed {crd.MAX_REPLICAS}, got {sg.count}")
