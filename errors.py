# Biller error kinds.
# Every error aborts the whole spend run; the caller decides whether to retry.


class BillerError(Exception):
    """Base class for all spend-run failures."""


class ConversionError(BillerError, ValueError):
    """A numeric input could not be represented exactly as a decimal."""


class SpendArithmeticError(BillerError, ArithmeticError):
    """A decimal multiply/add raised a trapped signal under the fixed context."""


class _StageError(BillerError):
    """Failure of a gateway call, tagged with the stage and entity it hit."""

    def __init__(self, stage: str, entity_id: str = "", cause: Exception = None):
        self.stage = stage
        self.entity_id = entity_id
        self.cause = cause
        msg = stage
        if entity_id:
            msg = f"{msg} ({entity_id})"
        if cause is not None:
            msg = f"{msg}: {cause}"
        super().__init__(msg)


class QueryError(_StageError):
    """A listing call to the persistence gateway failed."""


class PersistenceError(_StageError):
    """An upsert of a spend rollup failed."""


class CancellationError(BillerError):
    """The run context was cancelled or its deadline passed."""
