from fastapi import HTTPException, status

from app.services.claim_lifecycle import (
    ApprovalConflict,
    ApprovalNotFound,
    ClaimLifecycleError,
    ClaimNotFound,
    ClaimValidationError,
    InvalidTransition,
    NotAuthorized,
    UserNotFound,
)

_STATUS_CODES = {
    ClaimNotFound: status.HTTP_404_NOT_FOUND,
    ApprovalNotFound: status.HTTP_404_NOT_FOUND,
    UserNotFound: status.HTTP_404_NOT_FOUND,
    NotAuthorized: status.HTTP_403_FORBIDDEN,
    InvalidTransition: status.HTTP_409_CONFLICT,
    ApprovalConflict: status.HTTP_409_CONFLICT,
}


def to_http_exception(exc: ClaimLifecycleError) -> HTTPException:
    """Map a lifecycle error onto the response the API returns for it."""
    if isinstance(exc, ClaimValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": exc.message, "errors": exc.errors},
        )
    return HTTPException(
        status_code=_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST),
        detail=str(exc),
    )
