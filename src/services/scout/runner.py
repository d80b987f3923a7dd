"""
Scout run state machine.

    running -> completed | needs_adapter | failed

A run is persisted as ``running`` before discovery starts, so even a crash
mid-run leaves a record with a diagnostics snapshot behind. Every outcome
after the run exists (including unexpected exceptions) is recorded on the
run and returned; only failing to create or reload the run itself raises.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from src.common.config import Config
from src.common.error_handling import ScoutPersistenceError, describe_exception, log_on_exception
from src.common.logger import ScoutLogger, get_logger
from src.common.repositories import (
    ContactRepositoryInterface,
    ScoutRepositoryInterface,
    get_contact_repository,
    get_scout_repository,
)
from src.services.scout.models import (
    DEFAULT_REQUEST_LIMIT,
    AdapterStatus,
    MAX_REQUEST_LIMIT,
    ScoutEvent,
    ScoutRequest,
    ScoutRunDiagnostics,
    ScoutRunResult,
    ScoutRunStatus,
    validate_scout_request,
)
from src.services.scout.orchestrator import (
    SEED_TARGETS_SOURCE,
    build_provider_failure_message,
    create_initial_diagnostics,
    discover_targets,
    normalize_provider_chain,
)
from src.services.scout.providers import ScoutProvider
from src.services.scout.scorer import build_connector_paths
from src.services.scout.weights import ScoutWeights, resolve_weights

RUN_STARTED_NOTE = "Scout run started."
NO_MATCHES_NOTE = "No matching second-degree targets found for the current query."
NEEDS_ADAPTER_NOTE = "No targets discovered. Provide seed_targets or configure at least one scout provider."

EVENT_COMPLETED = "scout_run_completed"
EVENT_FAILED = "scout_run_failed"
EVENT_NEEDS_ADAPTER = "scout_needs_adapter"

TERMINAL_EVENTS = {
    ScoutRunStatus.COMPLETED: EVENT_COMPLETED,
    ScoutRunStatus.FAILED: EVENT_FAILED,
    ScoutRunStatus.NEEDS_ADAPTER: EVENT_NEEDS_ADAPTER,
}


@dataclass
class ScoutRunOptions:
    """
    Per-run overrides.

    Attributes:
        min_target_confidence: Confidence floor (default: SCOUT_MIN_TARGET_CONFIDENCE, 0.45)
        weights: Full weight profile, or a partial dict merged onto the env profile
        guardrail_penalty: Points deducted per guardrail adjustment (default 4)
        now: Reference time for connector strength
    """
    min_target_confidence: Optional[float] = None
    weights: Union[ScoutWeights, Mapping[str, Any], None] = None
    guardrail_penalty: Optional[float] = None
    now: Optional[datetime] = None


def clamp_limit(limit: Optional[float]) -> int:
    """Floor and clamp the requested limit to [1, 100]; None means 25."""
    if limit is None or isinstance(limit, bool) or not math.isfinite(limit):
        return DEFAULT_REQUEST_LIMIT
    return max(1, min(MAX_REQUEST_LIMIT, math.floor(limit)))


def resolve_min_confidence(value: Optional[float]) -> float:
    if value is None or not math.isfinite(value):
        return Config.min_target_confidence()
    return max(0.0, min(1.0, value))


def _record_event(
    repository: ScoutRepositoryInterface,
    status: ScoutRunStatus,
    run_id: str,
    log: ScoutLogger,
) -> None:
    name = TERMINAL_EVENTS[status]
    try:
        repository.save_event(ScoutEvent(name=name, run_id=run_id))
    except Exception as e:
        log.warning(f"Could not record event {name}: {e}")


def _reload(
    repository: ScoutRepositoryInterface,
    run_id: str,
    diagnostics: ScoutRunDiagnostics,
    context: str,
) -> ScoutRunResult:
    run = repository.get_run(run_id)
    if run is None:
        raise ScoutPersistenceError(f"Scout run not found {context}")
    return ScoutRunResult(run=run, diagnostics=diagnostics)


async def run_scout(
    request: Union[ScoutRequest, Dict[str, Any]],
    providers: Union[ScoutProvider, Iterable[ScoutProvider], None] = None,
    repository: Optional[ScoutRepositoryInterface] = None,
    contacts: Optional[ContactRepositoryInterface] = None,
    options: Optional[ScoutRunOptions] = None,
) -> ScoutRunResult:
    """
    Execute one scout run end to end.

    Args:
        request: ScoutRequest, or a raw payload validated into one
        providers: One provider or an ordered chain (default: noop)
        repository: Scout run store (default: get_scout_repository())
        contacts: Connector pool (default: get_contact_repository())
        options: Per-run overrides

    Returns:
        ScoutRunResult with the reloaded run and its diagnostics

    Raises:
        ScoutValidationError: If a raw payload is invalid
        ScoutPersistenceError: If the run cannot be created or reloaded
    """
    if not isinstance(request, ScoutRequest):
        request = validate_scout_request(request)

    options = options or ScoutRunOptions()
    repository = repository if repository is not None else get_scout_repository()
    contacts = contacts if contacts is not None else get_contact_repository()

    run_id = str(uuid.uuid4())
    log = get_logger(__name__, run_id=run_id, layer="scout")

    limit = clamp_limit(request.limit)
    min_confidence = resolve_min_confidence(options.min_target_confidence)
    weights = resolve_weights(options.weights)
    guardrail_penalty = (
        Config.SCOUT_GUARDRAIL_PENALTY if options.guardrail_penalty is None else options.guardrail_penalty
    )
    chain = normalize_provider_chain(providers)
    used_seed_targets = bool(request.seed_targets)
    initial_source = SEED_TARGETS_SOURCE if used_seed_targets else chain[0].name

    diagnostics = create_initial_diagnostics(
        run_id=run_id,
        source=initial_source,
        used_seed_targets=used_seed_targets,
        requested_limit=request.limit or limit,
        effective_limit=limit,
        min_confidence=min_confidence,
        providers=chain,
    )

    try:
        with log_on_exception(log, "create scout run", level=logging.ERROR):
            repository.create_run(
                run_id=run_id,
                target_company=request.target_company,
                target_function=request.target_function,
                target_title=request.target_title,
                source=initial_source,
                status=ScoutRunStatus.RUNNING,
                notes=RUN_STARTED_NOTE,
            )
    except Exception as e:
        raise ScoutPersistenceError(f"Could not create scout run: {describe_exception(e)}") from e

    log.info(
        f"Scout started for '{request.target_company}' "
        f"(limit={limit}, min_confidence={min_confidence}, providers={[p.name for p in chain]})"
    )

    try:
        discovery = await discover_targets(request, chain, limit, min_confidence, run_id)
        diagnostics = discovery.diagnostics

        if not discovery.targets and discovery.all_queried_providers_errored:
            raise RuntimeError(build_provider_failure_message(diagnostics.adapter_attempts))

        if not discovery.targets:
            has_configured_adapter = diagnostics.used_seed_targets or any(
                attempt.status != AdapterStatus.NOT_CONFIGURED for attempt in diagnostics.adapter_attempts
            )
            status = ScoutRunStatus.COMPLETED if has_configured_adapter else ScoutRunStatus.NEEDS_ADAPTER
            notes = NO_MATCHES_NOTE if has_configured_adapter else NEEDS_ADAPTER_NOTE

            repository.save_diagnostics(diagnostics)
            repository.update_run_status(run_id, status, notes=notes, source=diagnostics.source)
            log.info(f"Scout finished as {status.value}: {notes}")
            _record_event(repository, status, run_id, log)
            return _reload(repository, run_id, diagnostics, "after creation")

        scoring_log = log.bind("scoring")
        with log_on_exception(scoring_log, "save scout targets", level=logging.ERROR):
            saved_targets = repository.save_targets(run_id, discovery.targets)

        connector_paths = build_connector_paths(
            request.target_company,
            request.target_function,
            saved_targets,
            contacts,
            weights,
            guardrail_penalty=guardrail_penalty,
            now=options.now,
        )
        scoring_log.debug(f"Scored {len(connector_paths)} connector paths with weights v{weights.version}")

        with log_on_exception(scoring_log, "save connector paths", level=logging.ERROR):
            repository.save_connector_paths(run_id, connector_paths)
        repository.save_diagnostics(diagnostics)

        notes = (
            f"Scouted {len(saved_targets)} potential targets and mapped "
            f"{len(connector_paths)} connector paths using {diagnostics.source}."
        )
        repository.update_run_status(run_id, ScoutRunStatus.COMPLETED, notes=notes, source=diagnostics.source)
        log.info(notes)
        _record_event(repository, ScoutRunStatus.COMPLETED, run_id, log)
        return _reload(repository, run_id, diagnostics, "after completion")

    except Exception as e:
        message = describe_exception(e)
        log.error(f"Scout run failed: {message}")
        repository.update_run_status(run_id, ScoutRunStatus.FAILED, notes=message, source=diagnostics.source)
        repository.save_diagnostics(diagnostics)
        _record_event(repository, ScoutRunStatus.FAILED, run_id, log)

        run = repository.get_run(run_id)
        if run is None:
            raise ScoutPersistenceError("Scout run failed and could not be loaded") from e
        return ScoutRunResult(run=run, diagnostics=diagnostics)
