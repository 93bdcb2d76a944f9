"""Typed views of ServiceGroup resources and their watch events."""

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from . import crd
from .errors import UnknownEventTypeError


@dataclass(frozen=True)
class ObjectIdentity:
    name: str
    namespace: str
    uid: str = ""


@dataclass(frozen=True)
class ServiceGroup:
    """Read-only snapshot of a ServiceGroup custom resource.

    ``count`` and ``image`` are kept exactly as found in the body; the
    validator decides whether they are acceptable.
    """

    identity: ObjectIdentity
    count: Any = 0
    image: Any = ""
    self_link: str = ""

    @property
    def name(self):
        return self.identity.name

    @property
    def namespace(self):
        return self.identity.namespace

    @property
    def uid(self):
        return self.identity.uid

    @property
    def link(self):
        """Self link for log messages, derived when the server omits it."""
        if self.self_link:
            return self.self_link
        return f"/apis/{crd.API_VERSION}/namespaces/{self.namespace}/{crd.PLURAL}/{self.name}"

    @classmethod
    def from_body(cls, body):
        """Build a ServiceGroup from a raw resource body.

        Raises UnknownEventTypeError when the body is not a ServiceGroup.
        """
        if not isinstance(body, Mapping):
            raise UnknownEventTypeError(f"unknown event type: {type(body).__name__}")

        kind = body.get("kind")
        if kind is not None and kind != crd.KIND:
            raise UnknownEventTypeError(f"unknown event type: {kind}")

        metadata = body.get("metadata") or {}
        spec = body.get("spec") or {}
        if not isinstance(metadata, Mapping) or not isinstance(spec, Mapping):
            raise UnknownEventTypeError("unknown event type: malformed body")

        return cls(
            identity=ObjectIdentity(
                name=metadata.get("name") or "",
                namespace=metadata.get("namespace") or "",
                uid=metadata.get("uid") or "",
            ),
            count=spec.get("count", 0),
            image=spec.get("image", ""),
            self_link=metadata.get("selfLink") or "",
        )


class EventKind(enum.Enum):
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


@dataclass(frozen=True)
class ServiceGroupEvent:
    """A watch event whose payload is known to be a ServiceGroup."""

    kind: EventKind
    obj: ServiceGroup
    old: Optional[ServiceGroup] = None
