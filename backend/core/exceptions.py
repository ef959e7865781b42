from fastapi import status


class ServiceError(Exception):
    """Base class for errors reported to API callers as ``{success: false}``."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class PermissionDeniedError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class TableAlreadyActiveError(ServiceError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, table_number: int):
        super().__init__(
            f"Table {table_number} already has an active session. Expire it before generating a new one."
        )
        self.table_number = table_number
