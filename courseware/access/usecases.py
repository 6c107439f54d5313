"""
Enrollment use case: free courses enroll directly, priced courses need a code.

Permissions:
    Caller must be authenticated; the web adapter supplies `user_id`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from courseware.access.vault import ALREADY_ENROLLED, EXPIRED, INVALID, AccessRepoProtocol, AccessTokenVault
from courseware.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

REDEMPTION_MESSAGES = {
    INVALID: "Invalid access code",
    EXPIRED: "Access code expired",
}


@dataclass(frozen=True)
class EnrollInput:
    user_id: str
    course_id: str
    access_code: Optional[str] = None


class EnrollUseCase:
    def __init__(self, repo: AccessRepoProtocol, vault: AccessTokenVault) -> None:
        self._repo = repo
        self._vault = vault

    def execute(self, inp: EnrollInput) -> dict:
        if not isinstance(inp.course_id, str) or not inp.course_id.strip():
            raise ValidationError("missing_course_id", "courseId is required")
        course = self._repo.get_course(inp.course_id)
        if course is None:
            raise NotFoundError("course_not_found", "Course not found")
        if self._repo.is_enrolled(inp.user_id, course.id):
            raise ConflictError("already_enrolled", "Already enrolled")

        if course.is_free:
            if not self._repo.enroll(inp.user_id, course.id):
                raise ConflictError("already_enrolled", "Already enrolled")
            logger.info("access.enrollment.created course_id=%s via=free", course.id)
            return {"courseId": course.id, "enrolled": True}

        code = (inp.access_code or "").strip()
        if not code:
            raise ValidationError("access_code_required", "Access code is required")
        result = self._vault.redeem(course.id, code, inp.user_id)
        if not result.ok:
            reason = result.reason or INVALID
            if reason == ALREADY_ENROLLED:
                raise ConflictError("already_enrolled", "Already enrolled")
            raise ForbiddenError(reason.lower(), REDEMPTION_MESSAGES.get(reason, "Invalid access code"))
        logger.info("access.enrollment.created course_id=%s via=token", course.id)
        return {"courseId": course.id, "enrolled": True}
