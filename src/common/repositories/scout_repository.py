"""
Scout Repository

Persistence for scout runs and everything scoped by a run id: targets,
connector paths (with score breakdowns), diagnostics and terminal events.

Diagnostics are a full snapshot: every save replaces the adapter attempts
of the run (delete, then re-insert in order), it never appends.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pymongo import ASCENDING, DESCENDING

from src.common.utils import clamp
from src.services.scout.models import (
    AdapterAttempt,
    AdapterStatus,
    ConnectorPath,
    DiagnosticsSummary,
    DiscoveredTarget,
    ScoredConnectorPath,
    ScoutEvent,
    ScoutRun,
    ScoutRunDiagnostics,
    ScoutRunStats,
    ScoutRunStatus,
    ScoutTarget,
    utcnow,
)

from .base import AtlasRepositoryBase, WriteResult

logger = logging.getLogger(__name__)

# Stored confidence for targets that reach persistence without one
PERSISTED_DEFAULT_CONFIDENCE = 0.6


def _new_id() -> str:
    return str(uuid.uuid4())


def build_scout_targets(run_id: str, targets: Iterable[DiscoveredTarget]) -> List[ScoutTarget]:
    """Assign ids and clamp confidence for persistence."""
    saved = []
    for target in targets:
        confidence = PERSISTED_DEFAULT_CONFIDENCE if target.confidence is None else target.confidence
        saved.append(
            ScoutTarget(
                **target.model_dump(exclude={"confidence"}),
                id=_new_id(),
                run_id=run_id,
                confidence=clamp(confidence, 0.0, 1.0),
            )
        )
    return saved


def build_connector_path_records(run_id: str, paths: Iterable[ScoredConnectorPath]) -> List[ConnectorPath]:
    """Assign ids and clamp strength/score for persistence."""
    saved = []
    for path in paths:
        data = path.model_dump(exclude={"connector_strength", "path_score", "score_breakdown"})
        saved.append(
            ConnectorPath(
                **data,
                score_breakdown=path.score_breakdown,
                id=_new_id(),
                run_id=run_id,
                connector_strength=clamp(path.connector_strength, 0.0, 1.0),
                path_score=clamp(path.path_score, 0.0, 100.0),
            )
        )
    return saved


def summarize_attempts(source: str, attempts: List[AdapterAttempt]) -> DiagnosticsSummary:
    return DiagnosticsSummary(
        source=source,
        adapter_count=len(attempts),
        success_count=sum(1 for a in attempts if a.status == AdapterStatus.SUCCESS),
        error_count=sum(1 for a in attempts if a.status == AdapterStatus.ERROR),
        not_configured_count=sum(1 for a in attempts if a.status == AdapterStatus.NOT_CONFIGURED),
    )


def _target_order(target: ScoutTarget):
    return (-target.confidence, target.full_name)


def _path_order(path: ConnectorPath):
    return (-path.path_score, -path.connector_strength)


class ScoutRepositoryInterface(ABC):
    """
    Abstract interface for scout run persistence.

    Implementations:
    - InMemoryScoutRepository: process-local (tests, CLI)
    - AtlasScoutRepository: MongoDB collections
    """

    @abstractmethod
    def create_run(
        self,
        run_id: str,
        target_company: str,
        source: str,
        status: ScoutRunStatus,
        target_function: Optional[str] = None,
        target_title: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ScoutRun:
        """Create a run record. Raises if the run cannot be stored."""
        pass

    @abstractmethod
    def update_run_status(
        self,
        run_id: str,
        status: ScoutRunStatus,
        notes: Optional[str] = None,
        source: Optional[str] = None,
    ) -> WriteResult:
        """
        Set the run status. ``notes`` and ``source`` are only overwritten when
        provided; ``updated_at`` always moves forward.
        """
        pass

    @abstractmethod
    def save_targets(self, run_id: str, targets: List[DiscoveredTarget]) -> List[ScoutTarget]:
        """Persist normalized targets; returns them with ids assigned."""
        pass

    @abstractmethod
    def save_connector_paths(self, run_id: str, paths: List[ScoredConnectorPath]) -> List[ConnectorPath]:
        """Persist scored connector paths (and their breakdowns)."""
        pass

    @abstractmethod
    def save_diagnostics(self, diagnostics: ScoutRunDiagnostics) -> None:
        """Upsert the diagnostics snapshot, replacing all adapter attempts."""
        pass

    @abstractmethod
    def get_run(self, run_id: str) -> Optional[ScoutRun]:
        """
        Load a run with its targets (confidence desc, name asc) and connector
        paths (score desc, strength desc).
        """
        pass

    @abstractmethod
    def get_diagnostics(self, run_id: str) -> Optional[ScoutRunDiagnostics]:
        pass

    @abstractmethod
    def list_runs(self, limit: int = 20) -> List[ScoutRun]:
        """Most recent runs first, without targets or paths."""
        pass

    @abstractmethod
    def get_run_stats(self) -> ScoutRunStats:
        pass

    @abstractmethod
    def list_diagnostics_summaries(self, run_ids: List[str]) -> Dict[str, DiagnosticsSummary]:
        """Attempt counts per run; runs without diagnostics are omitted."""
        pass

    @abstractmethod
    def delete_run(self, run_id: str) -> WriteResult:
        """Delete a run and everything scoped by it."""
        pass

    @abstractmethod
    def save_event(self, event: ScoutEvent) -> None:
        pass

    @abstractmethod
    def list_events(self, run_id: Optional[str] = None) -> List[ScoutEvent]:
        pass


class InMemoryScoutRepository(ScoutRepositoryInterface):
    """Dictionary-backed scout store. Safe to share between concurrent runs."""

    def __init__(self):
        self._lock = threading.RLock()
        self._runs: Dict[str, ScoutRun] = {}
        self._sequence: Dict[str, int] = {}
        self._targets: Dict[str, List[ScoutTarget]] = {}
        self._paths: Dict[str, List[ConnectorPath]] = {}
        self._diagnostics: Dict[str, ScoutRunDiagnostics] = {}
        self._events: List[ScoutEvent] = []

    def create_run(
        self,
        run_id: str,
        target_company: str,
        source: str,
        status: ScoutRunStatus,
        target_function: Optional[str] = None,
        target_title: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ScoutRun:
        now = utcnow()
        run = ScoutRun(
            id=run_id,
            target_company=target_company,
            target_function=target_function,
            target_title=target_title,
            status=status,
            source=source,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            if run_id in self._runs:
                raise ValueError(f"Scout run {run_id} already exists")
            self._runs[run_id] = run
            self._sequence[run_id] = len(self._sequence)
        return run.model_copy(deep=True)

    def update_run_status(
        self,
        run_id: str,
        status: ScoutRunStatus,
        notes: Optional[str] = None,
        source: Optional[str] = None,
    ) -> WriteResult:
        with self._lock:
            run = self._runs.get(run_id)
            if run is None:
                return WriteResult(matched_count=0, modified_count=0)
            update: Dict[str, Any] = {"status": status, "updated_at": utcnow()}
            if notes is not None:
                update["notes"] = notes
            if source is not None:
                update["source"] = source
            self._runs[run_id] = run.model_copy(update=update)
        return WriteResult(matched_count=1, modified_count=1)

    def save_targets(self, run_id: str, targets: List[DiscoveredTarget]) -> List[ScoutTarget]:
        saved = build_scout_targets(run_id, targets)
        with self._lock:
            self._targets.setdefault(run_id, []).extend(saved)
        return saved

    def save_connector_paths(self, run_id: str, paths: List[ScoredConnectorPath]) -> List[ConnectorPath]:
        saved = build_connector_path_records(run_id, paths)
        with self._lock:
            self._paths.setdefault(run_id, []).extend(saved)
        return saved

    def save_diagnostics(self, diagnostics: ScoutRunDiagnostics) -> None:
        with self._lock:
            self._diagnostics[diagnostics.run_id] = diagnostics.model_copy(deep=True)

    def get_run(self, run_id: str) -> Optional[ScoutRun]:
        with self._lock:
            run = self._runs.get(run_id)
            if run is None:
                return None
            return run.model_copy(
                update={
                    "targets": sorted(self._targets.get(run_id, []), key=_target_order),
                    "connector_paths": sorted(self._paths.get(run_id, []), key=_path_order),
                },
                deep=True,
            )

    def get_diagnostics(self, run_id: str) -> Optional[ScoutRunDiagnostics]:
        with self._lock:
            diagnostics = self._diagnostics.get(run_id)
            return diagnostics.model_copy(deep=True) if diagnostics else None

    def list_runs(self, limit: int = 20) -> List[ScoutRun]:
        with self._lock:
            runs = sorted(
                self._runs.values(),
                key=lambda run: (run.created_at, self._sequence[run.id]),
                reverse=True,
            )
            return [run.model_copy(deep=True) for run in runs[:max(1, int(limit))]]

    def get_run_stats(self) -> ScoutRunStats:
        with self._lock:
            runs = list(self._runs.values())
        return ScoutRunStats(
            total=len(runs),
            by_status=dict(Counter(run.status.value for run in runs)),
            by_source=dict(Counter(run.source for run in runs)),
            latest_run_at=max((run.created_at for run in runs), default=None),
        )

    def list_diagnostics_summaries(self, run_ids: List[str]) -> Dict[str, DiagnosticsSummary]:
        summaries = {}
        with self._lock:
            for run_id in run_ids:
                diagnostics = self._diagnostics.get(run_id)
                if diagnostics is None or not diagnostics.adapter_attempts:
                    continue
                summaries[run_id] = summarize_attempts(diagnostics.source, diagnostics.adapter_attempts)
        return summaries

    def delete_run(self, run_id: str) -> WriteResult:
        with self._lock:
            if run_id not in self._runs:
                return WriteResult(matched_count=0, modified_count=0)
            del self._runs[run_id]
            self._targets.pop(run_id, None)
            self._paths.pop(run_id, None)
            self._diagnostics.pop(run_id, None)
            self._events = [event for event in self._events if event.run_id != run_id]
        return WriteResult(matched_count=1, modified_count=0, deleted_count=1)

    def save_event(self, event: ScoutEvent) -> None:
        with self._lock:
            self._events.append(event)

    def list_events(self, run_id: Optional[str] = None) -> List[ScoutEvent]:
        with self._lock:
            return [event for event in self._events if run_id is None or event.run_id == run_id]


class AtlasScoutRepository(AtlasRepositoryBase, ScoutRepositoryInterface):
    """
    MongoDB implementation of the scout store.

    Collections: scout_runs, scout_targets, connector_paths,
    scout_run_diagnostics, scout_adapter_attempts, scout_events.
    """

    RUNS = "scout_runs"
    TARGETS = "scout_targets"
    PATHS = "connector_paths"
    DIAGNOSTICS = "scout_run_diagnostics"
    ATTEMPTS = "scout_adapter_attempts"
    EVENTS = "scout_events"

    def __init__(self, mongodb_uri: Optional[str] = None, database: str = "warmpath"):
        super().__init__(mongodb_uri, database)

    @staticmethod
    def _strip_id(document: Dict[str, Any]) -> Dict[str, Any]:
        data = {key: value for key, value in document.items() if key != "_id"}
        data["id"] = document["_id"]
        return data

    def create_run(
        self,
        run_id: str,
        target_company: str,
        source: str,
        status: ScoutRunStatus,
        target_function: Optional[str] = None,
        target_title: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ScoutRun:
        now = utcnow()
        run = ScoutRun(
            id=run_id,
            target_company=target_company,
            target_function=target_function,
            target_title=target_title,
            status=status,
            source=source,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        document = run.model_dump(mode="python", exclude={"id", "targets", "connector_paths"})
        document["_id"] = run_id
        document["status"] = status.value
        try:
            self._get_collection(self.RUNS).insert_one(document)
        except Exception as e:
            logger.error(f"Error inserting scout run {run_id}: {e}")
            raise
        return run

    def update_run_status(
        self,
        run_id: str,
        status: ScoutRunStatus,
        notes: Optional[str] = None,
        source: Optional[str] = None,
    ) -> WriteResult:
        fields: Dict[str, Any] = {"status": ScoutRunStatus(status).value, "updated_at": utcnow()}
        if notes is not None:
            fields["notes"] = notes
        if source is not None:
            fields["source"] = source

        result = self._get_collection(self.RUNS).update_one({"_id": run_id}, {"$set": fields})
        return WriteResult(matched_count=result.matched_count, modified_count=result.modified_count)

    def save_targets(self, run_id: str, targets: List[DiscoveredTarget]) -> List[ScoutTarget]:
        saved = build_scout_targets(run_id, targets)
        if saved:
            documents = []
            for target in saved:
                document = target.model_dump(exclude={"id"})
                document["_id"] = target.id
                documents.append(document)
            self._get_collection(self.TARGETS).insert_many(documents)
        return saved

    def save_connector_paths(self, run_id: str, paths: List[ScoredConnectorPath]) -> List[ConnectorPath]:
        saved = build_connector_path_records(run_id, paths)
        if saved:
            documents = []
            for path in saved:
                document = path.model_dump(mode="json", exclude={"id"})
                document["_id"] = path.id
                documents.append(document)
            self._get_collection(self.PATHS).insert_many(documents)
        return saved

    def save_diagnostics(self, diagnostics: ScoutRunDiagnostics) -> None:
        header = diagnostics.model_dump(mode="json", exclude={"run_id", "adapter_attempts"})
        header["updated_at"] = utcnow()
        self._get_collection(self.DIAGNOSTICS).update_one(
            {"_id": diagnostics.run_id},
            {"$set": header, "$setOnInsert": {"created_at": utcnow()}},
            upsert=True,
        )

        attempts = self._get_collection(self.ATTEMPTS)
        attempts.delete_many({"run_id": diagnostics.run_id})
        if diagnostics.adapter_attempts:
            attempts.insert_many(
                [
                    {
                        "_id": _new_id(),
                        "run_id": diagnostics.run_id,
                        "position": position,
                        **attempt.model_dump(mode="json"),
                    }
                    for position, attempt in enumerate(diagnostics.adapter_attempts)
                ]
            )

    def _load_attempts(self, run_id: str) -> List[AdapterAttempt]:
        cursor = self._get_collection(self.ATTEMPTS).find({"run_id": run_id}).sort("position", ASCENDING)
        return [
            AdapterAttempt(
                adapter=document["adapter"],
                status=document["status"],
                result_count=document.get("result_count", 0),
                error=document.get("error"),
            )
            for document in cursor
        ]

    def get_run(self, run_id: str) -> Optional[ScoutRun]:
        document = self._get_collection(self.RUNS).find_one({"_id": run_id})
        if document is None:
            return None

        targets = [
            ScoutTarget.model_validate(self._strip_id(target))
            for target in self._get_collection(self.TARGETS).find({"run_id": run_id})
        ]
        paths = [
            ConnectorPath.model_validate(self._strip_id(path))
            for path in self._get_collection(self.PATHS).find({"run_id": run_id})
        ]

        data = self._strip_id(document)
        data["targets"] = sorted(targets, key=_target_order)
        data["connector_paths"] = sorted(paths, key=_path_order)
        return ScoutRun.model_validate(data)

    def get_diagnostics(self, run_id: str) -> Optional[ScoutRunDiagnostics]:
        document = self._get_collection(self.DIAGNOSTICS).find_one({"_id": run_id})
        if document is None:
            return None
        return ScoutRunDiagnostics(
            run_id=run_id,
            source=document["source"],
            used_seed_targets=bool(document.get("used_seed_targets")),
            requested_limit=document["requested_limit"],
            effective_limit=document["effective_limit"],
            min_confidence=document["min_confidence"],
            adapter_attempts=self._load_attempts(run_id),
        )

    def list_runs(self, limit: int = 20) -> List[ScoutRun]:
        cursor = (
            self._get_collection(self.RUNS)
            .find({})
            .sort("created_at", DESCENDING)
            .limit(max(1, int(limit)))
        )
        return [ScoutRun.model_validate(self._strip_id(document)) for document in cursor]

    def get_run_stats(self) -> ScoutRunStats:
        runs = self._get_collection(self.RUNS)
        by_status = {
            row["_id"]: row["count"]
            for row in runs.aggregate([{"$group": {"_id": "$status", "count": {"$sum": 1}}}])
        }
        by_source = {
            row["_id"]: row["count"]
            for row in runs.aggregate([{"$group": {"_id": "$source", "count": {"$sum": 1}}}])
        }
        latest = runs.find_one({}, {"created_at": 1}, sort=[("created_at", DESCENDING)])
        latest_run_at: Optional[datetime] = latest.get("created_at") if latest else None

        return ScoutRunStats(
            total=runs.count_documents({}),
            by_status=by_status,
            by_source=by_source,
            latest_run_at=latest_run_at,
        )

    def list_diagnostics_summaries(self, run_ids: List[str]) -> Dict[str, DiagnosticsSummary]:
        if not run_ids:
            return {}

        sources = {
            document["_id"]: document["source"]
            for document in self._get_collection(self.DIAGNOSTICS).find(
                {"_id": {"$in": run_ids}}, {"source": 1}
            )
        }

        summaries = {}
        for run_id, source in sources.items():
            attempts = self._load_attempts(run_id)
            if attempts:
                summaries[run_id] = summarize_attempts(source, attempts)
        return summaries

    def delete_run(self, run_id: str) -> WriteResult:
        for collection in (self.TARGETS, self.PATHS, self.ATTEMPTS, self.EVENTS):
            self._get_collection(collection).delete_many({"run_id": run_id})
        self._get_collection(self.DIAGNOSTICS).delete_one({"_id": run_id})
        result = self._get_collection(self.RUNS).delete_one({"_id": run_id})
        return WriteResult(
            matched_count=result.deleted_count,
            modified_count=0,
            deleted_count=result.deleted_count,
        )

    def save_event(self, event: ScoutEvent) -> None:
        document = event.model_dump()
        document["_id"] = _new_id()
        self._get_collection(self.EVENTS).insert_one(document)

    def list_events(self, run_id: Optional[str] = None) -> List[ScoutEvent]:
        query = {"run_id": run_id} if run_id else {}
        cursor = self._get_collection(self.EVENTS).find(query).sort("occurred_at", ASCENDING)
        return [
            ScoutEvent(name=document["name"], run_id=document["run_id"], occurred_at=document["occurred_at"])
            for document in cursor
        ]
