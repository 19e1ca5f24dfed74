"""Translation of domain errors into HTTP errors for the route handlers."""

from __future__ import annotations

from fastapi import HTTPException, status

from src.legalsaas.admin.service import (
    ApiConfigExistsError,
    ApiConfigNotFoundError,
    RegistrationKeyError,
    RegistrationKeyNotFoundError,
    TenantNotFoundError,
)
from src.legalsaas.auth.service import (
    DuplicateEmailError,
    InactiveTenantError,
    InvalidCredentialsError,
    UserLimitError,
)
from src.legalsaas.billing.service import BillingError
from src.legalsaas.pipeline.stages import (
    DuplicateStageError,
    InvalidStageTransitionError,
    UnknownStageError,
)
from src.legalsaas.pipeline.store import RecordNotFoundError

_STATUS_BY_ERROR: tuple[tuple[type[ValueError], int], ...] = (
    (RecordNotFoundError, status.HTTP_404_NOT_FOUND),
    (TenantNotFoundError, status.HTTP_404_NOT_FOUND),
    (RegistrationKeyNotFoundError, status.HTTP_404_NOT_FOUND),
    (ApiConfigNotFoundError, status.HTTP_404_NOT_FOUND),
    (UnknownStageError, 422),
    (InvalidStageTransitionError, status.HTTP_409_CONFLICT),
    (DuplicateStageError, status.HTTP_409_CONFLICT),
    (BillingError, status.HTTP_409_CONFLICT),
    (ApiConfigExistsError, status.HTTP_409_CONFLICT),
    (DuplicateEmailError, status.HTTP_409_CONFLICT),
    (UserLimitError, status.HTTP_409_CONFLICT),
    (InvalidCredentialsError, status.HTTP_401_UNAUTHORIZED),
    (InactiveTenantError, status.HTTP_403_FORBIDDEN),
    (RegistrationKeyError, status.HTTP_400_BAD_REQUEST),
)


def to_http(exc: ValueError) -> HTTPException:
    """Map a domain error to an HTTPException; anything unlisted is a 400."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            break
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return HTTPException(status_code=status_code, detail=str(exc), headers=headers)
