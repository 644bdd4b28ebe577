"""
Final scoring and hand-off of the interview result.
"""
import logging
import random
from typing import Optional

from .capabilities import PersistenceService, Scorer
from .models import SessionState, SessionSummary

logger = logging.getLogger("summary")


class PlaceholderScorer:
    """Stand-in for real answer evaluation: 70 plus a random 0..30, inclusive."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def score(self, state: SessionState) -> int:
        return 70 + self.rng.randint(0, 30)


class SessionSummaryBuilder:
    """Turns the final session state into the result the platform stores."""

    def __init__(self, persistence: PersistenceService, scorer: Optional[Scorer] = None):
        self.persistence = persistence
        self.scorer = scorer or PlaceholderScorer()

    def build(self, state: SessionState, application_id: str, completed: bool = True) -> SessionSummary:
        """Pure view of a scored session."""
        if state.final_score is None:
            raise ValueError("Session has not been scored")
        return SessionSummary(
            application_id=application_id,
            transcript=tuple(state.transcript),
            final_score=state.final_score,
            completed=completed,
        )

    def finalize(self, state: SessionState, application_id: str, completed: bool = True) -> SessionSummary:
        """Score the session (once), mark it ended and build the summary."""
        if state.final_score is None:
            state.final_score = self.scorer.score(state)
            logger.info(f"Final score: {state.final_score}")
        state.ended = True
        return self.build(state, application_id, completed)

    def submit(self, summary: SessionSummary) -> None:
        """Blocking call to the persistence service; errors propagate."""
        logger.info(f"Submitting result for application {summary.application_id}")
        self.persistence.submit_interview_result(
            summary.application_id, summary.final_score, list(summary.transcript)
        )
