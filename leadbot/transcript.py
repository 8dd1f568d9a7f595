"""Per-conversation dialogue log."""

from typing import Iterable, Optional

from leadbot.errors import ErrorCode, ValidationError
from leadbot.models import Role, Turn


class Transcript:
    """Ordered turns of exactly one conversation.

    Owned by a single ConversationEngine. Nothing derived from the turns is
    cached here; every reader recomputes from ``turns()``.
    """

    def __init__(self, turns: Optional[Iterable[Turn]] = None):
        self._turns: list[Turn] = []
        for turn in turns or ():
            self.append(turn)

    def append(self, turn: Turn) -> Turn:
        if not turn.content or not turn.content.strip():
            raise ValidationError("Turn content cannot be empty", ErrorCode.EMPTY_MESSAGE)
        self._turns.append(turn)
        return turn

    def add(self, role: Role, content: str) -> Turn:
        return self.append(Turn(role=role, content=content))

    def extended(self, turn: Turn) -> "Transcript":
        """Copy of this transcript with ``turn`` appended; ``self`` is untouched."""
        copy = Transcript(self._turns)
        copy.append(turn)
        return copy

    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    def user_turn_count(self) -> int:
        return sum(1 for t in self._turns if t.role == Role.USER)

    def assistant_turn_count(self) -> int:
        return sum(1 for t in self._turns if t.role == Role.ASSISTANT)

    def last(self, role: Optional[Role] = None) -> Optional[Turn]:
        for turn in reversed(self._turns):
            if role is None or turn.role == role:
                return turn
        return None

    def as_text(self) -> str:
        """All turn contents as one lowercased blob."""
        return " ".join(t.content for t in self._turns).lower()

    def reset(self) -> None:
        self._turns.clear()

    def __len__(self) -> int:
        return len(self._turns)
