"""Dialogue policy: decides the next conversational action.

Nothing here is stateful. Every decision is recomputed from the transcript
(and, in natural mode, the coverage report derived from it), so repeated calls
on an unchanged transcript return the same decision.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from leadbot import coverage as coverage_analyzer
from leadbot.config import config
from leadbot.logging_config import get_logger
from leadbot.models import (
    BusinessProfile,
    CoverageReport,
    DialoguePhase,
    Progress,
    QuestionSpec,
    QuestionType,
    Role,
)
from leadbot.transcript import Transcript

logger = get_logger(__name__)

GENERIC_CLOSING = (
    "Thank you for sharing all of that! Our team will review your details "
    "and get in touch with you shortly."
)


class Action(str, Enum):
    ASK_QUESTION = "ask_question"
    ACKNOWLEDGE = "acknowledge"
    OPEN_TURN = "open_turn"
    COMPLETE = "complete"


@dataclass(frozen=True)
class PolicyDecision:
    action: Action
    text: Optional[str] = None
    options: tuple[str, ...] = ()
    question_type: Optional[QuestionType] = None
    question_index: Optional[int] = None
    phase: Optional[DialoguePhase] = None
    missing: tuple[str, ...] = ()
    # Acknowledgment of the final scripted answer, spoken before the closing line.
    acknowledgment: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.action == Action.COMPLETE


def closing_decision(acknowledgment: Optional[str] = None) -> PolicyDecision:
    return PolicyDecision(action=Action.COMPLETE, text=GENERIC_CLOSING, acknowledgment=acknowledgment)


def derive_phase(transcript_length: int, report: CoverageReport, threshold: int) -> DialoguePhase:
    """Conversation phase from exchange count and coverage."""
    exchanges = transcript_length // 2
    if exchanges <= 2:
        return DialoguePhase.OPENING
    if exchanges <= 4:
        return DialoguePhase.RAPPORT_BUILDING
    if report.count < threshold:
        return DialoguePhase.DISCOVERY
    if report.count < report.total:
        return DialoguePhase.DEEP_QUALIFICATION
    return DialoguePhase.CLOSING


def render_acknowledgment(template: str, answer: str) -> str:
    # Plain replace: braces or quotes in the answer stay literal.
    return template.replace("{answer}", answer.strip())


class ScriptedPolicy:
    """Walks the profile's question list.

    Each question contributes a ``question`` step, followed by an
    ``acknowledge`` step when it defines an acknowledgment template. The
    position in that plan is the number of assistant turns emitted so far.
    """

    def __init__(self, questions: Iterable[QuestionSpec]):
        self.questions = list(questions)
        self.steps: list[tuple[Action, int]] = []
        for index, question in enumerate(self.questions):
            self.steps.append((Action.ASK_QUESTION, index))
            if question.acknowledgment_template:
                self.steps.append((Action.ACKNOWLEDGE, index))

    @staticmethod
    def answered_count(transcript: Transcript) -> int:
        """User turns that came after the first assistant turn.

        A user message sent before any question was asked is a greeting,
        not an answer.
        """
        seen_assistant = False
        answered = 0
        for turn in transcript.turns():
            if turn.role == Role.ASSISTANT:
                seen_assistant = True
            elif seen_assistant:
                answered += 1
        return answered

    def progress(self, transcript: Transcript) -> Progress:
        total = len(self.questions)
        return Progress(
            questions_answered=min(self.answered_count(transcript), total),
            total_questions=total,
        )

    def is_complete(self, transcript: Transcript) -> bool:
        return self.answered_count(transcript) >= len(self.questions)

    def decide(self, transcript: Transcript) -> PolicyDecision:
        if not self.questions:
            logger.warning("scripted_policy_without_questions")
            return closing_decision()

        if self.is_complete(transcript):
            last_question = self.questions[-1]
            ack = None
            last_user = transcript.last(Role.USER)
            if last_question.acknowledgment_template and last_user:
                ack = render_acknowledgment(last_question.acknowledgment_template, last_user.content)
            return closing_decision(acknowledgment=ack)

        pointer = transcript.assistant_turn_count()
        if pointer >= len(self.steps):
            logger.warning("scripted_pointer_out_of_range", pointer=pointer, steps=len(self.steps))
            return closing_decision()

        action, index = self.steps[pointer]
        question = self.questions[index]

        if action == Action.ACKNOWLEDGE:
            last_user = transcript.last(Role.USER)
            answer = last_user.content if last_user else ""
            return PolicyDecision(
                action=Action.ACKNOWLEDGE,
                text=render_acknowledgment(question.acknowledgment_template, answer),
                question_index=index,
            )

        return PolicyDecision(
            action=Action.ASK_QUESTION,
            text=question.text,
            options=tuple(question.options) if question.is_choice else (),
            question_type=QuestionType.BUTTONS if question.is_choice else QuestionType.TEXT,
            question_index=index,
        )


class NaturalPolicy:
    """Open-ended generated questions, steered by coverage.

    Completion is any of: enough criteria covered, the transcript reached
    ``hard_cap`` turns, or the last generated reply signals closing intent.
    Only the hard cap is a strict guarantee.
    """

    def __init__(self, hard_cap: int, coverage_threshold: int, closing_markers: Iterable[str]):
        self.hard_cap = hard_cap
        self.coverage_threshold = coverage_threshold
        self.closing_markers = tuple(m.lower() for m in closing_markers)

    def threshold_for(self, report: CoverageReport) -> int:
        return min(self.coverage_threshold, report.total)

    def decide(self, transcript: Transcript, report: CoverageReport) -> PolicyDecision:
        if report.total == 0:
            logger.warning("natural_policy_without_criteria")
            return closing_decision()
        if len(transcript) >= self.hard_cap:
            return closing_decision()
        phase = derive_phase(len(transcript), report, self.threshold_for(report))
        return PolicyDecision(action=Action.OPEN_TURN, phase=phase, missing=tuple(report.missing))

    def has_closing_intent(self, transcript: Transcript) -> bool:
        last_reply = transcript.last(Role.ASSISTANT)
        if last_reply is None:
            return False
        text = last_reply.content.lower()
        return any(marker in text for marker in self.closing_markers)

    def is_complete(self, transcript: Transcript, report: CoverageReport) -> bool:
        if len(transcript) >= self.hard_cap:
            return True
        if report.total and report.count >= self.threshold_for(report):
            return True
        return self.has_closing_intent(transcript)


class DialoguePolicy:
    """Mode-dispatching facade used by the engine.

    Never raises: if coverage or configuration is unusable the decision is a
    generic closing, so the conversation ends cleanly instead of failing.
    """

    def __init__(
        self,
        profile: BusinessProfile,
        mode: Optional[str] = None,
        hard_cap: Optional[int] = None,
        coverage_threshold: Optional[int] = None,
        closing_markers: Optional[Iterable[str]] = None,
    ):
        self.profile = profile
        self.mode = (mode or config.CONVERSATION_MODE).lower()
        self.scripted = ScriptedPolicy(profile.questions if profile else [])
        self.natural = NaturalPolicy(
            hard_cap=hard_cap if hard_cap is not None else config.MAX_TRANSCRIPT_TURNS,
            coverage_threshold=coverage_threshold if coverage_threshold is not None else config.COVERAGE_THRESHOLD,
            closing_markers=closing_markers if closing_markers is not None else config.CLOSING_MARKERS,
        )

    @property
    def is_scripted(self) -> bool:
        return self.mode == "scripted"

    def coverage(self, transcript: Transcript) -> CoverageReport:
        criteria = coverage_analyzer.build_criteria(self.profile)
        return coverage_analyzer.analyze(transcript, criteria)

    def decide(self, transcript: Transcript) -> PolicyDecision:
        try:
            if self.is_scripted:
                return self.scripted.decide(transcript)
            return self.natural.decide(transcript, self.coverage(transcript))
        except Exception as e:
            logger.warning("policy_fallback_to_closing", mode=self.mode, error=str(e))
            return closing_decision()

    def is_complete(self, transcript: Transcript) -> bool:
        try:
            if self.is_scripted:
                return self.scripted.is_complete(transcript)
            return self.natural.is_complete(transcript, self.coverage(transcript))
        except Exception as e:
            logger.warning("policy_completion_check_failed", mode=self.mode, error=str(e))
            return True

    def progress(self, transcript: Transcript) -> Optional[Progress]:
        if not self.is_scripted:
            return None
        return self.scripted.progress(transcript)
