"""Shared exceptions module."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from paymirror.core.shared_models import EntityKind
    from paymirror.schemas.sync import SyncReport


class PayMirrorException(Exception):
    """Base exception for billing mirror services."""

    pass


class NotFoundException(PayMirrorException):
    """Exception raised when an object is not found.

    Local lookups return ``None`` instead of raising; this is reserved for the
    places where a miss has to travel up a call stack.
    """

    def __init__(self, message: Optional[str] = "Object not found"):
        """Create a new NotFoundException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class RemoteRecordNotFound(NotFoundException):
    """Raised when the provider has no (or only a deleted) record for an external id."""

    def __init__(self, kind: "EntityKind", external_id: str):
        """Create a new RemoteRecordNotFound instance."""
        self.kind = kind
        self.external_id = external_id
        super().__init__(f"{kind.value} {external_id} not found at provider")


class ExternalServiceError(PayMirrorException):
    """Exception raised when an external service fails."""

    def __init__(self, service_name: str, message: Optional[str] = "External service failed"):
        """Create a new ExternalServiceError instance.

        Args:
        ----
            service_name (str): The name of the external service.
            message (str, optional): The error message. Has default message.

        """
        self.service_name = service_name
        self.message = message
        super().__init__(f"{service_name}: {message}")


class TransportError(ExternalServiceError):
    """The provider was unreachable or returned a malformed page.

    Never retried internally; surfaced to the sync caller for the entity kind.
    """

    pass


class ConversionError(PayMirrorException):
    """A remote record could not be converted into the mirror's shape."""

    def __init__(self, record_id: Optional[str], message: str):
        """Create a new ConversionError instance.

        Args:
        ----
            record_id (Optional[str]): External id of the offending record, if known.
            message (str): What was wrong with the record.

        """
        self.record_id = record_id
        self.message = message
        super().__init__(f"{record_id or '<unknown>'}: {message}")


class UnresolvedReferenceError(ConversionError):
    """A converted record links to a mirror row that does not exist (yet)."""

    pass


class ConstraintViolation(PayMirrorException):
    """A write violated a storage constraint (duplicate external identity or foreign key)."""

    def __init__(self, table: str, provider: str, provider_id: str):
        """Create a new ConstraintViolation instance."""
        self.table = table
        self.provider = provider
        self.provider_id = provider_id
        super().__init__(f"Constraint violated writing {table} ({provider}, {provider_id})")


class WebhookRejectedError(PayMirrorException):
    """A webhook request was rejected before anything was persisted (HTTP 400)."""

    def __init__(self, message: Optional[str] = "Webhook rejected"):
        """Create a new WebhookRejectedError instance."""
        self.message = message
        super().__init__(self.message)


class SignatureError(WebhookRejectedError):
    """The webhook signature (or the signed payload) could not be verified."""

    pass


class PayloadTooLargeError(WebhookRejectedError):
    """The webhook body exceeded the configured size cap."""

    pass


class LedgerWriteError(PayMirrorException):
    """The webhook event could not be recorded; the provider is expected to retry (HTTP 500)."""

    def __init__(self, event_id: str, message: Optional[str] = "Failed to record webhook event"):
        """Create a new LedgerWriteError instance."""
        self.event_id = event_id
        self.message = message
        super().__init__(f"{event_id}: {message}")


class WebhookBackpressureError(LedgerWriteError):
    """The webhook queue stayed full for longer than the enqueue timeout."""

    pass


class EntitySyncError(PayMirrorException):
    """Syncing one entity kind failed."""

    def __init__(self, kind: "EntityKind", cause: Exception):
        """Create a new EntitySyncError instance.

        Args:
        ----
            kind (EntityKind): The entity kind whose pass failed.
            cause (Exception): The underlying error, usually a ``TransportError``.

        """
        self.kind = kind
        self.cause = cause
        super().__init__(f"Error syncing {kind.value}: {cause}")


class MirrorSyncError(PayMirrorException):
    """A full sync finished with one or more failed entity kinds.

    Kinds that succeeded stay committed; ``report`` carries their statistics.
    """

    def __init__(self, failures: list[EntitySyncError], report: "SyncReport"):
        """Create a new MirrorSyncError instance."""
        self.failures = failures
        self.report = report
        kinds = ", ".join(failure.kind.value for failure in failures)
        super().__init__(f"Sync failed for: {kinds}")
