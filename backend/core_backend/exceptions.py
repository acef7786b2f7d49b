"""
Error taxonomy shared by the order, payment and table services.

Every error carries a machine-readable ``kind`` and a human-readable message.
Views never see database-specific exceptions: services translate them into one
of these before they leave the service layer.
"""
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler
import logging

logger = logging.getLogger(__name__)


class EngineError(Exception):
    """Base exception for order engine errors."""

    kind = "engine_error"
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message=None, **details):
        if message is None:
            message = self.default_message()
        super().__init__(message)
        self.message = message
        self.details = details

    def default_message(self):
        return "The request could not be processed."

    def as_dict(self):
        payload = {"kind": self.kind, "message": self.message}
        if self.details:
            payload["details"] = {key: str(value) for key, value in self.details.items()}
        return payload


class NotFoundError(EngineError):
    """Raised when an entity id does not resolve."""

    kind = "not_found"
    http_status = status.HTTP_404_NOT_FOUND

    def __init__(self, entity, entity_id, message=None):
        self.entity = entity
        self.entity_id = entity_id
        if message is None:
            message = f"{entity} '{entity_id}' not found"
        super().__init__(message)


class InvalidStateError(EngineError):
    """Raised when an operation violates the entity's current lifecycle state."""

    kind = "invalid_state"
    http_status = status.HTTP_409_CONFLICT


class ValidationFailedError(EngineError):
    """Raised for malformed input (non-positive amounts, unknown enum values, ...)."""

    kind = "validation_error"
    http_status = status.HTTP_400_BAD_REQUEST


class ConflictError(EngineError):
    """Raised when an optimistic write lost a race against another writer."""

    kind = "conflict"
    http_status = status.HTTP_409_CONFLICT

    def default_message(self):
        return "The record was modified by another request. Please retry."


class AlreadySplitError(InvalidStateError):
    """Raised when splitting an order that is already part of a split."""

    def __init__(self, order_number, message=None):
        self.order_number = order_number
        if message is None:
            message = f"Order {order_number} is already split"
        super().__init__(message)


class NotAvailableError(InvalidStateError):
    """Raised when reserving a table that is not available."""

    def __init__(self, table_number, current_status, message=None):
        self.table_number = table_number
        self.current_status = current_status
        if message is None:
            message = f"Table {table_number} is {current_status} and cannot be reserved"
        super().__init__(message)


class NotReservedError(InvalidStateError):
    """Raised when cancelling a reservation on a table that is not reserved."""

    def __init__(self, table_number, message=None):
        self.table_number = table_number
        if message is None:
            message = f"Table {table_number} is not reserved"
        super().__init__(message)


FRAMEWORK_ERROR_KINDS = {
    status.HTTP_400_BAD_REQUEST: ValidationFailedError.kind,
    status.HTTP_404_NOT_FOUND: NotFoundError.kind,
    status.HTTP_409_CONFLICT: ConflictError.kind,
}


def engine_exception_handler(exc, context):
    """
    Render errors as ``{"error": {"kind", "message", "details"?}}``.

    EngineError subclasses carry their own kind. Framework exceptions
    (serializer validation, authentication, 404s) are rendered by DRF's
    default handler first and then wrapped in the same envelope.
    """
    request = context.get("request")

    if isinstance(exc, EngineError):
        body = {"error": exc.as_dict()}
        if isinstance(exc, ConflictError):
            body["error"]["retryable"] = True

        logger.info(
            f"Engine error {exc.kind} on {getattr(request, 'method', '?')} "
            f"{getattr(request, 'path', '?')}: {exc.message}"
        )
        return Response(body, status=exc.http_status)

    response = exception_handler(exc, context)
    if response is None:
        return None

    kind = FRAMEWORK_ERROR_KINDS.get(
        response.status_code, getattr(exc, "default_code", "error")
    )
    detail = response.data
    if isinstance(detail, dict) and set(detail) == {"detail"}:
        message, details = str(detail["detail"]), None
    else:
        message, details = "Invalid request data.", detail

    response.data = {"error": {"kind": kind, "message": message}}
    if details is not None:
        response.data["error"]["details"] = details
    return response
