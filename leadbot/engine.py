"""
Conversation engine: one instance per conversation.

Per message: validate → evaluate the policy against the transcript plus the
pending user turn → scripted text or (prompt → generation → sanitize) → commit
the turns → re-check completion → classify and record once complete.

Turns are committed only after the assistant reply exists, so a failed
generation leaves the transcript exactly as it was.
"""

from typing import Optional

from leadbot.classifier import LeadClassifier
from leadbot.config import config
from leadbot.errors import ErrorCode, GenerationServiceError, ValidationError
from leadbot.llm_client import GenerationService
from leadbot.logging_config import get_logger, preview
from leadbot.models import BusinessProfile, Classification, QuestionType, Role, Turn, TurnResult
from leadbot.policy import GENERIC_CLOSING, Action, DialoguePolicy, PolicyDecision
from leadbot.prompts import build_conversation_prompt
from leadbot.recorder import LeadRecorder
from leadbot.sanitizer import sanitize_reply
from leadbot.sinks import NullLeadSink
from leadbot.transcript import Transcript

logger = get_logger(__name__)

DEFAULT_GREETING = (
    "Hello! I'm here to help you find your perfect property. "
    "Let me ask you a few quick questions to better understand your needs."
)

# Used when a generated reply is empty after sanitization.
FALLBACK_FOLLOW_UP = "Could you tell me a little more about what you're looking for?"


class ConversationEngine:
    """Drives a single conversation. Not safe to share between concurrent callers."""

    def __init__(
        self,
        profile: BusinessProfile,
        service: GenerationService,
        policy: Optional[DialoguePolicy] = None,
        classifier: Optional[LeadClassifier] = None,
        recorder: Optional[LeadRecorder] = None,
        transcript: Optional[Transcript] = None,
        max_message_chars: Optional[int] = None,
    ):
        self.profile = profile
        self.service = service
        self.policy = policy or DialoguePolicy(profile)
        self.classifier = classifier or LeadClassifier(service)
        self.recorder = recorder or LeadRecorder(NullLeadSink(), profile.qualification_criteria)
        self.transcript = transcript if transcript is not None else Transcript()
        self.max_message_chars = max_message_chars or config.MAX_MESSAGE_CHARS
        self.classification: Optional[Classification] = None
        self._terminal: Optional[TurnResult] = None

    @property
    def is_complete(self) -> bool:
        return self._terminal is not None

    def reset(self) -> None:
        self.transcript.reset()
        self.classification = None
        self._terminal = None
        logger.info("conversation_reset")

    # -- opening ---------------------------------------------------------

    def start(self) -> TurnResult:
        """Emit the opening assistant turn (first scripted question or greeting)."""
        if self._terminal is not None:
            return self._terminal
        if len(self.transcript):
            last = self.transcript.last(Role.ASSISTANT)
            return self._result(reply=last.content if last else None)

        decision = self.policy.decide(self.transcript) if self.policy.is_scripted else None
        if decision is not None and decision.action == Action.ASK_QUESTION:
            self.transcript.add(Role.ASSISTANT, decision.text)
            return self._result(reply=decision.text, decision=decision)

        greeting = self.profile.greeting or DEFAULT_GREETING
        self.transcript.add(Role.ASSISTANT, greeting)
        return self._result(reply=greeting)

    # -- turns -----------------------------------------------------------

    def validate_message(self, message) -> str:
        if not isinstance(message, str) or not message.strip():
            raise ValidationError("Message cannot be empty", ErrorCode.EMPTY_MESSAGE)
        text = message.strip()
        if len(text) > self.max_message_chars:
            raise ValidationError(
                f"Message is too long (max {self.max_message_chars} characters)",
                ErrorCode.MESSAGE_TOO_LONG,
            )
        return text

    def process_message(self, message) -> TurnResult:
        """Handle one user message and return the reply for the caller."""
        if self._terminal is not None:
            return self._terminal

        try:
            text = self.validate_message(message)
        except ValidationError as e:
            logger.info("message_rejected", code=e.code.value)
            return self._failure(str(e), e.code)

        user_turn = Turn(role=Role.USER, content=text)
        pending = self.transcript.extended(user_turn)
        staged: list[Turn] = [user_turn]
        replies: list[str] = []

        decision = self.policy.decide(pending)
        if decision.action == Action.ACKNOWLEDGE:
            ack = Turn(role=Role.ASSISTANT, content=decision.text)
            staged.append(ack)
            replies.append(ack.content)
            pending = pending.extended(ack)
            decision = self.policy.decide(pending)

        if decision.action == Action.ASK_QUESTION:
            staged.append(Turn(role=Role.ASSISTANT, content=decision.text))
            replies.append(decision.text)
        elif decision.action == Action.OPEN_TURN:
            try:
                reply = self._generate_reply(pending, decision)
            except GenerationServiceError as e:
                logger.warning("turn_aborted", code=e.code.value, kind=e.kind, status=e.status)
                return self._failure(e.user_message, e.code)
            staged.append(Turn(role=Role.ASSISTANT, content=reply))
            replies.append(reply)

        for turn in staged:
            self.transcript.append(turn)
        self._log_turns(staged)

        if decision.action == Action.COMPLETE:
            return self._finalize(decision, replies)
        if self.policy.is_complete(self.transcript):
            return self._finalize(None, replies)

        return self._result(reply=" ".join(replies), decision=decision)

    def _generate_reply(self, pending: Transcript, decision: PolicyDecision) -> str:
        prompt = build_conversation_prompt(pending, self.profile, decision.phase, decision.missing)
        result = self.service.generate(
            prompt,
            config.CONVERSATION_MAX_TOKENS,
            config.CONVERSATION_TEMPERATURE,
        )
        reply = sanitize_reply(result.text)
        if not reply:
            logger.warning("generated_reply_empty_after_sanitize", raw_chars=len(result.text))
            return FALLBACK_FOLLOW_UP
        return reply

    # -- completion ------------------------------------------------------

    def _finalize(self, decision: Optional[PolicyDecision], replies: list[str]) -> TurnResult:
        classification = self.classifier.classify(self.transcript, self.profile)
        self.classification = classification

        if decision is not None:
            # Completion decided before any reply was produced this turn.
            closing = self.profile.closing_message(classification.status.value) or decision.text or GENERIC_CLOSING
            if decision.acknowledgment:
                closing = f"{decision.acknowledgment} {closing}"
            self.transcript.add(Role.ASSISTANT, closing)
            self._log_turns([self.transcript.last()])
            replies = replies + [closing]

        recorded = self.recorder.record(self.transcript, classification)
        logger.info(
            "conversation_complete",
            status=classification.status.value,
            confidence=classification.confidence,
            transcript_length=len(self.transcript),
            lead_recorded=recorded,
        )
        self._terminal = self._result(
            reply=" ".join(replies),
            is_complete=True,
            classification=classification,
            lead_recorded=recorded,
        )
        return self._terminal

    # -- helpers ---------------------------------------------------------

    def _result(self, reply: Optional[str], decision: Optional[PolicyDecision] = None, **fields) -> TurnResult:
        options = None
        question_type = None
        phase = None
        if decision is not None:
            if decision.action == Action.ASK_QUESTION:
                question_type = decision.question_type or QuestionType.TEXT
                options = list(decision.options) or None
            phase = decision.phase
        return TurnResult(
            success=True,
            reply=reply,
            progress=self.policy.progress(self.transcript),
            options=options,
            question_type=question_type,
            phase=phase,
            transcript_length=len(self.transcript),
            **fields,
        )

    def _failure(self, message: str, code: ErrorCode) -> TurnResult:
        return TurnResult(
            success=False,
            error=message,
            code=code.value,
            transcript_length=len(self.transcript),
        )

    def _log_turns(self, turns) -> None:
        if not config.LOG_CONVERSATION_TRANSCRIPT:
            return
        for turn in turns:
            logger.info("conversation_turn", role=turn.role.value, text=preview(turn.content))
