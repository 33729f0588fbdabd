"""Error taxonomy shared by services, adapters and the API layer."""


class FooptraError(Exception):
    """Base class for errors local to a single user action."""

    kind = "error"
    retryable = False


class ValidationError(FooptraError):
    """Malformed input; the offending operation is blocked and state is kept."""

    kind = "validation_error"


class NotFoundError(FooptraError):
    """Requested thing does not exist, or no food was recognized in an image."""

    kind = "not_found"


class ResourceLimitError(FooptraError):
    """Input exceeds a configured bound and was rejected up front."""

    kind = "resource_limit"


class RemoteOperationError(FooptraError):
    """Record store, auth or model failure. Safe to retry."""

    kind = "remote_operation_failed"
    retryable = True


class ConsistencyConflict(FooptraError):
    """A concurrent write already produced the requested state."""

    kind = "conflict"


class PermissionDenied(FooptraError):
    """The acting user is not allowed to touch the record."""

    kind = "permission_denied"
