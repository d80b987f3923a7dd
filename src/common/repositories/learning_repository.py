"""
Learning Repository

Stores outreach feedback (the outcome of asking a connector, together with
the score breakdown of the path that was used) and the versioned weight
profiles learned from it. Exactly one profile is active at a time.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from pymongo import DESCENDING

from src.services.scout.models import ScoreBreakdown, utcnow
from src.services.scout.weights import OutreachOutcome, ScoutWeights

from .base import AtlasRepositoryBase

logger = logging.getLogger(__name__)

DEFAULT_FEEDBACK_LIMIT = 25


class LearningFeedback(BaseModel):
    """One recorded outreach outcome."""
    id: str
    run_id: str
    connector_path_id: str
    outcome: OutreachOutcome
    note: Optional[str] = None
    source: str = "manual"
    score_breakdown: Optional[ScoreBreakdown] = None
    created_at: datetime = Field(default_factory=utcnow)


class LearningRepositoryInterface(ABC):
    """
    Abstract interface for learning feedback and weight profiles.

    Implementations:
    - InMemoryLearningRepository: process-local (tests, CLI)
    - AtlasLearningRepository: MongoDB collections
    """

    @abstractmethod
    def record_feedback(
        self,
        run_id: str,
        connector_path_id: str,
        outcome: OutreachOutcome,
        score_breakdown: Optional[ScoreBreakdown] = None,
        note: Optional[str] = None,
        source: str = "manual",
    ) -> LearningFeedback:
        pass

    @abstractmethod
    def list_feedback(self, limit: Optional[int] = DEFAULT_FEEDBACK_LIMIT) -> List[LearningFeedback]:
        """Newest feedback first; ``limit=None`` returns everything."""
        pass

    @abstractmethod
    def save_profile(self, profile: ScoutWeights, activate: bool = True) -> ScoutWeights:
        """
        Store a weight profile, assigning an id when it has none.

        Activating a profile deactivates the previously active one.
        """
        pass

    @abstractmethod
    def get_active_profile(self) -> Optional[ScoutWeights]:
        pass


class InMemoryLearningRepository(LearningRepositoryInterface):
    """List-backed learning store."""

    def __init__(self):
        self._lock = threading.Lock()
        self._feedback: List[LearningFeedback] = []
        self._profiles: Dict[str, ScoutWeights] = {}
        self._active_id: Optional[str] = None

    def record_feedback(
        self,
        run_id: str,
        connector_path_id: str,
        outcome: OutreachOutcome,
        score_breakdown: Optional[ScoreBreakdown] = None,
        note: Optional[str] = None,
        source: str = "manual",
    ) -> LearningFeedback:
        feedback = LearningFeedback(
            id=str(uuid.uuid4()),
            run_id=run_id,
            connector_path_id=connector_path_id,
            outcome=outcome,
            note=note,
            source=source,
            score_breakdown=score_breakdown,
        )
        with self._lock:
            self._feedback.append(feedback)
        return feedback

    def list_feedback(self, limit: Optional[int] = DEFAULT_FEEDBACK_LIMIT) -> List[LearningFeedback]:
        with self._lock:
            newest_first = list(reversed(self._feedback))
        return newest_first if limit is None else newest_first[:max(1, int(limit))]

    def save_profile(self, profile: ScoutWeights, activate: bool = True) -> ScoutWeights:
        stored = profile if profile.id else profile.model_copy(update={"id": str(uuid.uuid4())})
        with self._lock:
            self._profiles[stored.id] = stored
            if activate:
                self._active_id = stored.id
        return stored

    def get_active_profile(self) -> Optional[ScoutWeights]:
        with self._lock:
            return self._profiles.get(self._active_id) if self._active_id else None


class AtlasLearningRepository(AtlasRepositoryBase, LearningRepositoryInterface):
    """
    MongoDB implementation of the learning store.

    Collections: learning_feedback, learning_weight_profiles.
    """

    FEEDBACK = "learning_feedback"
    PROFILES = "learning_weight_profiles"

    def __init__(self, mongodb_uri: Optional[str] = None, database: str = "warmpath"):
        super().__init__(mongodb_uri, database)

    def record_feedback(
        self,
        run_id: str,
        connector_path_id: str,
        outcome: OutreachOutcome,
        score_breakdown: Optional[ScoreBreakdown] = None,
        note: Optional[str] = None,
        source: str = "manual",
    ) -> LearningFeedback:
        feedback = LearningFeedback(
            id=str(uuid.uuid4()),
            run_id=run_id,
            connector_path_id=connector_path_id,
            outcome=outcome,
            note=note,
            source=source,
            score_breakdown=score_breakdown,
        )
        document = feedback.model_dump(exclude={"id"})
        document["_id"] = feedback.id
        document["outcome"] = feedback.outcome.value
        if feedback.score_breakdown is not None:
            document["score_breakdown"] = feedback.score_breakdown.model_dump(mode="json")
        self._get_collection(self.FEEDBACK).insert_one(document)
        return feedback

    def list_feedback(self, limit: Optional[int] = DEFAULT_FEEDBACK_LIMIT) -> List[LearningFeedback]:
        cursor = self._get_collection(self.FEEDBACK).find({}).sort("created_at", DESCENDING)
        if limit is not None:
            cursor = cursor.limit(max(1, int(limit)))

        feedback = []
        for document in cursor:
            data: Dict[str, Any] = {key: value for key, value in document.items() if key != "_id"}
            data["id"] = document["_id"]
            feedback.append(LearningFeedback.model_validate(data))
        return feedback

    def save_profile(self, profile: ScoutWeights, activate: bool = True) -> ScoutWeights:
        stored = profile if profile.id else profile.model_copy(update={"id": str(uuid.uuid4())})
        profiles = self._get_collection(self.PROFILES)

        if activate:
            profiles.update_many({"is_active": True}, {"$set": {"is_active": False}})

        document = stored.model_dump(mode="json", exclude={"id"})
        document.update({"is_active": activate, "activated_at": utcnow()})
        profiles.replace_one({"_id": stored.id}, document, upsert=True)
        logger.info(f"Saved weight profile {stored.id} v{stored.version} (active={activate})")
        return stored

    def get_active_profile(self) -> Optional[ScoutWeights]:
        document = self._get_collection(self.PROFILES).find_one(
            {"is_active": True}, sort=[("activated_at", DESCENDING)]
        )
        if document is None:
            return None
        data = {key: value for key, value in document.items() if key not in ("_id", "is_active", "activated_at")}
        data["id"] = document["_id"]
        return ScoutWeights.model_validate(data)
