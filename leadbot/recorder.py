"""Serialize finalized conversations into lead rows.

Persistence is best-effort: a failed append is logged and reported to the
caller, never retried, and never changes the classification.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from leadbot.errors import PersistenceFailure
from leadbot.logging_config import get_logger
from leadbot.models import Classification
from leadbot.transcript import Transcript

logger = get_logger(__name__)

# Cells starting with these are evaluated as formulas by spreadsheet tools.
_FORMULA_PREFIXES = ("=", "+", "-", "@")


def escape_field(value) -> str:
    """Make a value safe for a quoted, row-oriented text format.

    Newlines become spaces, double quotes are doubled and a leading formula
    character is neutralized with an apostrophe.
    """
    text = "" if value is None else str(value)
    text = " ".join(text.replace("\r", "\n").split("\n")).strip()
    text = text.replace('"', '""')
    if text.startswith(_FORMULA_PREFIXES):
        text = "'" + text
    return text


def serialize_transcript(transcript: Transcript) -> str:
    return " | ".join(f"{turn.role.value.upper()}: {turn.content}" for turn in transcript.turns())


def build_row(
    transcript: Transcript,
    classification: Classification,
    criteria: Iterable[str],
    recorded_at: Optional[datetime] = None,
) -> dict[str, str]:
    """One escaped lead row. Column order is stable for a given criteria list."""
    recorded_at = recorded_at or datetime.now(timezone.utc)
    row = {
        "timestamp": recorded_at.isoformat(),
        "status": classification.status.value,
        "confidence": f"{classification.confidence:.2f}",
        "reasoning": classification.reasoning,
    }
    for name in criteria:
        row[name] = classification.metadata.get(name) or ""
    row["transcriptLength"] = str(len(transcript))
    row["serializedTranscript"] = serialize_transcript(transcript)
    return {key: escape_field(value) for key, value in row.items()}


class LeadRecorder:
    def __init__(self, sink, criteria: Iterable[str] = ()):
        self.sink = sink
        self.criteria = list(criteria)

    def record(self, transcript: Transcript, classification: Classification) -> bool:
        row = build_row(transcript, classification, self.criteria)
        try:
            if not self.sink.append(row):
                raise PersistenceFailure(f"{type(self.sink).__name__} rejected the row")
        except Exception as e:
            logger.error(
                "lead_persistence_failed",
                sink=type(self.sink).__name__,
                status=classification.status.value,
                error=str(e),
            )
            return False

        logger.info(
            "lead_recorded",
            sink=type(self.sink).__name__,
            status=classification.status.value,
            transcript_length=len(transcript),
        )
        return True
