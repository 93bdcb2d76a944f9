"""Error types raised by the operator."""


class HabitatOperatorError(Exception):
    """Base class for operator errors."""


class ConfigurationError(HabitatOperatorError):
    """A required collaborator or setting is missing or invalid."""


class ValidationError(HabitatOperatorError):
    """A ServiceGroup spec is malformed.

    ``key`` names the offending field, e.g. ``spec.count``.
    """

    def __init__(self, key, message):
        super().__init__(f"{key}: {message}")
        self.key = key
        self.message = message


class UnknownEventTypeError(HabitatOperatorError):
    """A delivered object is not a ServiceGroup."""


class ClusterAPIError(HabitatOperatorError):
    """A call against the cluster API failed.

    The underlying exception is kept in ``cause`` (and chained as ``__cause__``
    by the gateway).
    """

    def __init__(self, operation, name, namespace, cause, status=None):
        super().__init__(
            f"{operation} {name!r} in namespace {namespace!r} failed: {cause}"
        )
        self.operation = operation
        self.name = name
        self.namespace = namespace
        self.cause = cause
        self.status = status

    @property
    def already_exists(self):
        return self.status == 409

    @property
    def not_found(self):
        return self.status == 404
