"""
Interview script: the fixed question bank and the driver that walks it.
"""
import logging
from typing import Callable, List, Optional, Sequence

from .arbiter import TurnArbiter
from .errors import ScriptError, SubmissionError
from .models import JobPosting, ScriptSegment, SegmentKind, SessionState

logger = logging.getLogger("script")


QUESTIONS = [
    "Tell me about yourself and your professional background.",
    "What are your greatest professional strengths?",
    "What do you consider to be your weaknesses?",
    "Why are you interested in this position?",
    "Where do you see yourself professionally in five years?",
    "Describe your ideal work environment.",
    "How do you handle stress and pressure in the workplace?",
    "Tell me about a time you demonstrated leadership skills.",
    "How do you prioritize work when handling multiple projects?",
    "How do you stay updated with the latest trends in your field?",
    "What achievement are you most proud of in your career?",
    "How do you handle feedback and criticism?",
]

ACKNOWLEDGMENTS = [
    "Thank you for sharing that. Your background is interesting.",
    "Those are valuable strengths for this position.",
    "That's a great example of self-awareness and growth mindset.",
    "Your interest in this role aligns well with what we're looking for.",
    "I appreciate your long-term vision and ambition.",
    "That helps us understand how you would fit into our team culture.",
    "Your approach to stress management is important for this role.",
    "That's a good example of your leadership capabilities.",
    "Effective prioritization is crucial in our fast-paced environment.",
    "Continuous learning is highly valued in our organization.",
    "That's an impressive achievement that demonstrates your capabilities.",
    "Your approach to feedback shows maturity and professionalism.",
]

INTRO_TEMPLATE = (
    "Hello {candidate}! I'm your AI interviewer for the {title} position at {company}. "
    "Let's get started with the first question."
)

CLOSING = (
    "Thank you for completing this interview. I've recorded all your responses and will "
    "share them with the hiring team. They'll be in touch soon with next steps."
)


class QuestionBank:
    """Script source backed by the fixed question bank."""

    def __init__(self, question_count: int = len(QUESTIONS),
                 questions: Sequence[str] = QUESTIONS,
                 acknowledgments: Sequence[str] = ACKNOWLEDGMENTS):
        if question_count < 0:
            raise ScriptError("question_count cannot be negative")
        self.questions = list(questions)[:question_count]
        self.acknowledgments = list(acknowledgments)

    def build_script(self, job: JobPosting, candidate_name: str) -> List[ScriptSegment]:
        """
        Lay out intro, each question followed by its acknowledgment, then closing.

        Clip ids follow the prerecorded clip names (intro, question1.., closing).
        """
        texts = [(SegmentKind.INTRO, INTRO_TEMPLATE.format(
            candidate=candidate_name or "there", title=job.title, company=job.company_name), "intro")]
        for number, question in enumerate(self.questions, start=1):
            texts.append((SegmentKind.QUESTION, question, f"question{number}"))
            ack = self.acknowledgments[(number - 1) % len(self.acknowledgments)]
            texts.append((SegmentKind.ACK, ack, None))
        texts.append((SegmentKind.CLOSING, CLOSING, "closing"))

        return [ScriptSegment(index=i, kind=kind, text=text, fallback_clip_id=clip_id)
                for i, (kind, text, clip_id) in enumerate(texts)]


def validate_script(segments: Sequence[ScriptSegment]) -> None:
    """Reject scripts the driver cannot run."""
    if not segments:
        raise ScriptError("Interview script is empty")
    for position, segment in enumerate(segments):
        if segment.index != position:
            raise ScriptError(f"Segment at position {position} has index {segment.index}")
        if not segment.text.strip():
            raise ScriptError(f"Segment {position} has no text")
    if segments[-1].kind is not SegmentKind.CLOSING:
        raise ScriptError("The last script segment must be the closing")


class ScriptDriver:
    """Walks the script one answer at a time, asking the arbiter to speak."""

    def __init__(self,
                 segments: Sequence[ScriptSegment],
                 arbiter: TurnArbiter,
                 state: SessionState,
                 on_advance: Optional[Callable[[], None]] = None):
        validate_script(segments)
        self.segments = list(segments)
        self.arbiter = arbiter
        self.state = state
        self.on_advance = on_advance
        self.on_complete: Optional[Callable[[], None]] = None
        self.started = False
        self.closing_requested = False
        self.completed = False
        arbiter.on_segment_finished = self.segment_finished

    @property
    def current_segment(self) -> ScriptSegment:
        return self.segments[self.state.current_segment_index]

    @property
    def question_count(self) -> int:
        return sum(1 for s in self.segments if s.kind is SegmentKind.QUESTION)

    @property
    def questions_asked(self) -> int:
        return sum(1 for s in self.segments[:self.state.current_segment_index + 1]
                   if s.kind is SegmentKind.QUESTION)

    def begin(self) -> None:
        """Request the intro and everything up to the first question."""
        if self.started:
            return
        self.started = True
        self._request_through_next_prompt(0)

    def submit_answer(self, text: str) -> None:
        """
        Accept the candidate's answer and move to the next question.

        Raises:
            SubmissionError: The answer is empty or no question is awaiting one
        """
        answer = (text or "").strip()
        if not answer:
            raise SubmissionError("Answer is empty")
        self._check_accepting()
        self.arbiter.record_answer(answer)
        self._advance()

    def force_advance(self, text: Optional[str] = None) -> None:
        """Skip ahead; a non-empty ``text`` is still recorded."""
        self._check_accepting()
        answer = (text or "").strip()
        if answer:
            self.arbiter.record_answer(answer)
        self._advance()

    def segment_finished(self, segment: ScriptSegment) -> None:
        if segment.kind is not SegmentKind.CLOSING or self.completed:
            return
        logger.info("Closing segment finished; script complete")
        self.completed = True
        if self.on_complete is not None:
            self.on_complete()

    def _check_accepting(self) -> None:
        if self.state.ended or self.arbiter.ended:
            raise SubmissionError("The interview has already ended")
        if not self.started:
            raise SubmissionError("The interview has not started")
        if self.closing_requested:
            raise SubmissionError("No question is awaiting an answer")

    def _advance(self) -> None:
        self._request_through_next_prompt(self.state.current_segment_index + 1)
        if self.on_advance is not None:
            self.on_advance()

    def _request_through_next_prompt(self, start: int) -> None:
        last = start
        for segment in self.segments[start:]:
            last = segment.index
            self.arbiter.request_segment(segment)
            if segment.kind is SegmentKind.QUESTION:
                break
            if segment.kind is SegmentKind.CLOSING:
                self.closing_requested = True
                break
        self.state.advance_to(last)
        logger.info(f"Script at segment {last} ({self.segments[last].kind.value})")
