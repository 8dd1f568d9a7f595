"""In-memory conversation sessions for the HTTP layer.

Each session id owns an independent ConversationEngine (and so its own
Transcript). A request without a session id gets a freshly minted one and never
shares another caller's conversation. Sessions do not survive process restarts.
"""

import threading
import uuid
from functools import lru_cache
from typing import Callable, Dict

from leadbot.classifier import LeadClassifier
from leadbot.engine import ConversationEngine
from leadbot.llm_client import OpenAIGenerationService
from leadbot.logging_config import get_logger
from leadbot.policy import DialoguePolicy
from leadbot.profile import load_business_profile
from leadbot.recorder import LeadRecorder
from leadbot.sinks import create_lead_sink

logger = get_logger(__name__)


class SessionStore:
    """Engines keyed by session id.

    Route handlers run in FastAPI's threadpool, so the registry is guarded by
    a lock and each session has its own turn lock: two requests for the same
    session run one after the other, different sessions run in parallel.
    """

    def __init__(self, engine_factory: Callable[[], ConversationEngine]):
        self._engine_factory = engine_factory
        self._engines: Dict[str, ConversationEngine] = {}
        self._turn_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    @staticmethod
    def new_session_id() -> str:
        return uuid.uuid4().hex

    def get(self, session_id: str) -> ConversationEngine:
        with self._lock:
            engine = self._engines.get(session_id)
            if engine is None:
                engine = self._engine_factory()
                self._engines[session_id] = engine
                logger.info("session_created", session_id=session_id, active_sessions=len(self._engines))
            return engine

    def turn_lock(self, session_id: str) -> threading.Lock:
        with self._lock:
            return self._turn_locks.setdefault(session_id, threading.Lock())

    def reset(self, session_id: str) -> bool:
        """Drop the session's conversation. Returns False if it did not exist."""
        with self._lock:
            engine = self._engines.pop(session_id, None)
            self._turn_locks.pop(session_id, None)
        if engine is None:
            return False
        engine.reset()
        return True

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._engines

    def __len__(self) -> int:
        return len(self._engines)


def build_engine_factory() -> Callable[[], ConversationEngine]:
    """Share the profile, generation client and sink; give every engine its own transcript."""
    profile = load_business_profile()
    service = OpenAIGenerationService()
    sink = create_lead_sink()
    criteria = list(profile.qualification_criteria)

    def factory() -> ConversationEngine:
        return ConversationEngine(
            profile=profile,
            service=service,
            policy=DialoguePolicy(profile),
            classifier=LeadClassifier(service),
            recorder=LeadRecorder(sink, criteria),
        )

    return factory


@lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
    """FastAPI dependency; tests override it through ``app.dependency_overrides``."""
    return SessionStore(build_engine_factory())
