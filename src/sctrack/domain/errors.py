class AppError(Exception):
    """Base app error."""

    kind = "error"


class ValidationError(AppError):
    kind = "validation"


class AlreadyExistsError(AppError):
    kind = "already_exists"


class NotFoundError(AppError):
    kind = "not_found"


class StorageError(AppError):
    """The ledger read or write itself did not happen."""

    kind = "storage"
