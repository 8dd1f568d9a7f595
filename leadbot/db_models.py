"""
SQLAlchemy database models.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum as SQLEnum, Float, Integer, String, Text

from leadbot.database import Base
from leadbot.models import LeadStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DBLeadRecord(Base):
    """A finalized, classified conversation."""
    __tablename__ = "lead_records"

    id = Column(Integer, primary_key=True, index=True)
    status = Column(SQLEnum(LeadStatus), nullable=False, index=True)
    confidence = Column(Float, nullable=False)
    reasoning = Column(Text)

    # Criterion -> extracted value, as a JSON object
    extracted_data = Column(Text)

    transcript_length = Column(Integer, default=0)
    transcript = Column(Text)  # "ROLE: content | ROLE: content"

    recorded_at = Column(String(40))  # ISO timestamp from the lead row
    created_at = Column(DateTime, default=_utcnow)
