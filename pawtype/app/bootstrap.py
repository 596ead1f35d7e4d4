from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from pawtype.db.repository import SQLiteRepository
from pawtype.questionnaire.survey import SurveyValidator, get_survey_questions
from pawtype.reporting.aggregation import AggregationEngine
from pawtype.workflows.session import QuizSession
from pawtype.workflows.submission import SubmissionService
from .config import Settings
from .identity import AdminGate, SaltedIdentityProvider, require_owner_id
from .logging import get_logger, setup_logging

logger = get_logger(__name__)


@dataclass
class App:
    settings: Settings
    repository: SQLiteRepository
    identity: SaltedIdentityProvider
    submissions: SubmissionService
    admin: AdminGate

    def new_session(self, on_expired: Optional[Callable[[QuizSession], None]] = None) -> QuizSession:
        return QuizSession(timeout_seconds=self.settings.session_timeout_seconds, on_expired=on_expired)

    def admin_engine(self) -> AggregationEngine:
        # Admin view over the current identity's submissions, following live updates.
        self.admin.require()
        engine = AggregationEngine(
            self.repository,
            require_owner_id(self.identity),
            expert_delimiter=self.settings.expert_delimiter,
        )
        engine.attach()
        return engine


def build_app(settings: Optional[Settings] = None, configure_logging: bool = True) -> App:
    settings = settings or Settings.from_env()
    if configure_logging:
        setup_logging(settings.log_level, settings.log_json)

    repository = SQLiteRepository(settings.db_path)
    identity = SaltedIdentityProvider(settings.owner_id_salt)
    validator = SurveyValidator(
        get_survey_questions(
            text_max_length=settings.text_max_length,
            expert_delimiter=settings.expert_delimiter,
        )
    )

    logger.info("pawtype ready", extra={"db_path": settings.db_path})
    return App(
        settings=settings,
        repository=repository,
        identity=identity,
        submissions=SubmissionService(repository, identity, validator),
        admin=AdminGate(settings.admin_passphrase),
    )
