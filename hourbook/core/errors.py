from typing import Any, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError


M = TypeVar("M", bound=BaseModel)


class HourbookError(Exception):
    """Base class for every error raised by the billing core."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(HourbookError):
    """Malformed or contradictory input. Raised before any mutation."""

    status_code = 400


class NotFoundError(HourbookError):
    status_code = 404

    def __init__(self, kind: str, ident: str) -> None:
        super().__init__(f"{kind} not found: {ident}")
        self.kind = kind
        self.ident = ident


class PersistenceError(HourbookError):
    """A store operation failed. Never retried automatically."""

    status_code = 500


class ConflictError(PersistenceError):
    """A unique index rejected the write."""

    status_code = 409


class PartialFailureError(HourbookError):
    """A multi-step operation stopped after its first step was committed.

    ``invoice_id`` names the invoice that exists but whose time entries may
    not all be marked as billed; ``mark_entries_invoiced`` is safe to retry.
    """

    status_code = 500

    def __init__(self, message: str, *, invoice_id: str) -> None:
        super().__init__(message)
        self.invoice_id = invoice_id


class DeliveryError(HourbookError):
    status_code = 502


def parse_model(model: Type[M], data: Any) -> M:
    """Validate ``data`` into ``model``, raising our ValidationError on failure."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'value'}: {err['msg']}" for err in exc.errors()
        )
        raise ValidationError(problems) from exc
