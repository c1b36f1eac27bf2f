from fastapi import HTTPException, status

from ..domain.errors import (
    AlreadyCancelled,
    BookingError,
    CapacityExceeded,
    Forbidden,
    InvalidInput,
    InvalidRange,
    NotFound,
    RoomUnavailable,
    TooLateToCancel,
    TransientStoreError,
)

# Checked in order; ConflictError is caught by its RoomUnavailable base.
_STATUS_BY_ERROR: tuple[tuple[type[BookingError], int], ...] = (
    (InvalidRange, status.HTTP_400_BAD_REQUEST),
    (InvalidInput, status.HTTP_400_BAD_REQUEST),
    (CapacityExceeded, status.HTTP_400_BAD_REQUEST),
    (AlreadyCancelled, status.HTTP_400_BAD_REQUEST),
    (TooLateToCancel, status.HTTP_400_BAD_REQUEST),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Forbidden, status.HTTP_403_FORBIDDEN),
    (RoomUnavailable, status.HTTP_409_CONFLICT),
    (TransientStoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def to_http_exception(exc: BookingError) -> HTTPException:
    for error_cls, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            headers = {"Retry-After": "1"} if isinstance(exc, TransientStoreError) else None
            return HTTPException(status_code=status_code, detail=str(exc), headers=headers)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="unexpected booking error")


def audit_failed() -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="failed to record audit log")
