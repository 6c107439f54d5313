"""Course access: single-use enrollment tokens and enrollment."""

from courseware.access.usecases import EnrollInput, EnrollUseCase
from courseware.access.vault import (
    ALREADY_ENROLLED,
    EXPIRED,
    INVALID,
    AccessRepoProtocol,
    AccessTokenVault,
    Course,
    IssuedToken,
    RedemptionResult,
    TokenRecord,
)

__all__ = [
    "ALREADY_ENROLLED",
    "EXPIRED",
    "INVALID",
    "AccessRepoProtocol",
    "AccessTokenVault",
    "Course",
    "EnrollInput",
    "EnrollUseCase",
    "IssuedToken",
    "RedemptionResult",
    "TokenRecord",
]
