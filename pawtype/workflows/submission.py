# pawtype/workflows/submission.py
from __future__ import annotations

from typing import Optional

from pawtype.app.errors import SessionStateError
from pawtype.app.identity import IdentityProvider, require_owner_id
from pawtype.app.logging import get_logger
from pawtype.db.gateway import SubmissionGateway
from pawtype.db.models import Submission
from pawtype.questionnaire.catalogue import get_profile
from pawtype.questionnaire.survey import (
    SurveyResponse,
    SurveyValidator,
    get_survey_questions,
    sanitize_response,
)
from .session import QuizSession, SessionStatus

logger = get_logger(__name__)


class SubmissionService:
    """
    Turns a completed quiz plus follow-up survey into a stored Submission.

    Order matters: identity gate, validation, sanitization, then a single
    create() against the gateway. Any failure leaves the session untouched so
    the caller can fix the input and retry.
    """

    def __init__(
        self,
        gateway: SubmissionGateway,
        identity: IdentityProvider,
        validator: Optional[SurveyValidator] = None,
    ):
        self.gateway = gateway
        self.identity = identity
        self.validator = validator or SurveyValidator(get_survey_questions())

    def submit(self, session: QuizSession, survey: SurveyResponse) -> Submission:
        if session.status is not SessionStatus.COMPLETED or session.category_code is None:
            raise SessionStateError("The questionnaire must be completed before submitting.")

        owner_id = require_owner_id(self.identity)
        self.validator.check(survey)

        profile = get_profile(session.category_code)
        submission = Submission.create(
            category_code=profile.code,
            nickname=profile.nickname,
            survey=sanitize_response(survey),
        )
        self.gateway.create(submission, owner_id)
        logger.info(
            "Survey submitted",
            extra={"session_id": session.session_id, "category_code": profile.code},
        )
        return submission
