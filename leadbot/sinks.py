"""Append-only lead sinks.

Rows arrive already escaped by ``leadbot.recorder``; a sink only decides where
they go. ``append`` returns True when the row was stored.
"""

import json
from pathlib import Path
from typing import Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from leadbot.config import config
from leadbot.logging_config import get_logger
from leadbot.models import LeadStatus

logger = get_logger(__name__)

_FIXED_COLUMNS = ("timestamp", "status", "confidence", "reasoning", "transcriptLength", "serializedTranscript")


class LeadSink(Protocol):
    def append(self, row: dict[str, str]) -> bool:
        ...


class CsvLeadSink:
    """Quoted CSV file; a header row is written when the file is new."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or config.LEADS_CSV_PATH)

    @staticmethod
    def _line(values) -> str:
        return ",".join(f'"{v}"' for v in values) + "\n"

    def append(self, row: dict[str, str]) -> bool:
        is_new = not self.path.exists() or self.path.stat().st_size == 0
        if self.path.parent and not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8", newline="") as f:
            if is_new:
                f.write(self._line(row.keys()))
            f.write(self._line(row.values()))
        return True


class DatabaseLeadSink:
    """Stores each row in the ``lead_records`` table."""

    def __init__(self, session_factory=None):
        if session_factory is None:
            from leadbot.database import SessionLocal
            session_factory = SessionLocal
        self.session_factory = session_factory

    def append(self, row: dict[str, str]) -> bool:
        from leadbot.db_models import DBLeadRecord

        extracted = {k: (v or None) for k, v in row.items() if k not in _FIXED_COLUMNS}
        record = DBLeadRecord(
            status=LeadStatus(row["status"]),
            confidence=float(row["confidence"]),
            reasoning=row.get("reasoning", ""),
            extracted_data=json.dumps(extracted, ensure_ascii=False),
            transcript_length=int(row.get("transcriptLength") or 0),
            transcript=row.get("serializedTranscript", ""),
            recorded_at=row.get("timestamp"),
        )
        db = self.session_factory()
        try:
            db.add(record)
            db.commit()
            db.refresh(record)
            logger.debug("lead_record_saved", record_id=record.id)
            return True
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("lead_record_save_failed", error=str(e))
            return False
        finally:
            db.close()


class NullLeadSink:
    """Discards rows (persistence disabled)."""

    def append(self, row: dict[str, str]) -> bool:
        logger.debug("lead_sink_disabled", status=row.get("status"))
        return True


def create_lead_sink(kind: Optional[str] = None) -> LeadSink:
    kind = (kind or config.LEAD_SINK).lower()
    if kind == "database":
        return DatabaseLeadSink()
    if kind in ("none", "null", "off"):
        return NullLeadSink()
    return CsvLeadSink()
