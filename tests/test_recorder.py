"""Tests for lead row serialization and the lead sinks."""

import json
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from leadbot.database import init_db
from leadbot.db_models import DBLeadRecord
from leadbot.models import Classification, LeadStatus, Role
from leadbot.recorder import LeadRecorder, build_row, escape_field, serialize_transcript
from leadbot.sinks import CsvLeadSink, DatabaseLeadSink, NullLeadSink, create_lead_sink
from leadbot.transcript import Transcript

CRITERIA = ["budget", "location"]


@pytest.fixture
def transcript():
    t = Transcript()
    t.add(Role.ASSISTANT, "Which city?")
    t.add(Role.USER, 'Mumbai, "near the sea"\nideally')
    return t


@pytest.fixture
def classification():
    return Classification(
        status=LeadStatus.WARM,
        confidence=0.756,
        reasoning="Has a location, budget unclear",
        metadata={"budget": None, "location": "Mumbai"},
    )


@pytest.fixture
def memory_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingSink:
    def __init__(self, result=True, error=None):
        self.rows = []
        self.result = result
        self.error = error

    def append(self, row):
        if self.error:
            raise self.error
        self.rows.append(row)
        return self.result


@pytest.mark.parametrize("value,expected", [
    ("plain", "plain"),
    ("line one\nline two", "line one line two"),
    ('say "hi"', 'say ""hi""'),
    ("=SUM(A1:A9)", "'=SUM(A1:A9)"),
    ("+91 98765", "'+91 98765"),
    ("-5", "'-5"),
    ("@handle", "'@handle"),
    (None, ""),
])
def test_escape_field(value, expected):
    assert escape_field(value) == expected


def test_serialize_transcript(transcript):
    assert serialize_transcript(transcript).startswith("ASSISTANT: Which city? | USER: Mumbai")


def test_build_row_columns(transcript, classification):
    at = datetime(2024, 5, 1, 10, 30, tzinfo=timezone.utc)
    row = build_row(transcript, classification, CRITERIA, recorded_at=at)

    assert list(row) == [
        "timestamp", "status", "confidence", "reasoning",
        "budget", "location", "transcriptLength", "serializedTranscript",
    ]
    assert row["timestamp"] == "2024-05-01T10:30:00+00:00"
    assert row["status"] == "warm"
    assert row["confidence"] == "0.76"
    assert row["budget"] == ""
    assert row["location"] == "Mumbai"
    assert row["transcriptLength"] == "2"
    assert "\n" not in row["serializedTranscript"]
    assert '""near the sea""' in row["serializedTranscript"]


def test_record_success(transcript, classification):
    sink = RecordingSink()
    assert LeadRecorder(sink, CRITERIA).record(transcript, classification) is True
    assert sink.rows[0]["status"] == "warm"


@pytest.mark.parametrize("sink", [RecordingSink(result=False), RecordingSink(error=OSError("disk full"))])
def test_record_failure_is_reported_not_raised(sink, transcript, classification):
    assert LeadRecorder(sink, CRITERIA).record(transcript, classification) is False


def test_csv_sink_writes_header_once(tmp_path, transcript, classification):
    path = tmp_path / "out" / "leads.csv"
    recorder = LeadRecorder(CsvLeadSink(str(path)), CRITERIA)

    assert recorder.record(transcript, classification)
    assert recorder.record(transcript, classification)

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 3
    assert lines[0].startswith('"timestamp","status","confidence"')
    assert lines[1].split(",")[1] == '"warm"'


def test_database_sink_stores_row(memory_session_factory, transcript, classification):
    recorder = LeadRecorder(DatabaseLeadSink(memory_session_factory), CRITERIA)
    assert recorder.record(transcript, classification)

    db = memory_session_factory()
    try:
        stored = db.query(DBLeadRecord).all()
    finally:
        db.close()

    assert len(stored) == 1
    assert stored[0].status == LeadStatus.WARM
    assert stored[0].confidence == pytest.approx(0.76)
    assert stored[0].transcript_length == 2
    assert json.loads(stored[0].extracted_data) == {"budget": None, "location": "Mumbai"}


def test_create_lead_sink_kinds():
    assert isinstance(create_lead_sink("none"), NullLeadSink)
    assert isinstance(create_lead_sink("csv"), CsvLeadSink)
    assert isinstance(create_lead_sink("database"), DatabaseLeadSink)
