"""
Provider chain orchestration.

Seed targets supplied with the request short-circuit discovery entirely.
Otherwise every provider in the chain is tried in order, sequentially:
unconfigured providers are recorded and skipped, each queried provider is
asked only for the targets still missing, and a provider failure is recorded
as an ``error`` attempt without stopping the chain. The pooled candidates are
normalized once at the end.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Union

from src.common.error_handling import ErrorCollector, build_failure_message, describe_exception
from src.services.scout.models import (
    MAX_REQUEST_LIMIT,
    MAX_SEED_TARGETS,
    AdapterAttempt,
    AdapterStatus,
    DiscoveredTarget,
    ScoutRequest,
    ScoutRunDiagnostics,
    ScoutSeedTarget,
)
from src.services.scout.normalizer import normalize_and_filter_targets
from src.services.scout.providers import NoopScoutProvider, ScoutProvider

logger = logging.getLogger(__name__)

SEED_TARGETS_SOURCE = "seed_targets"
SEED_TARGET_MATCH_REASON = "seed_target"


@dataclass
class DiscoveryOutcome:
    """Result of one pass over the seeds or the provider chain."""
    targets: List[DiscoveredTarget]
    diagnostics: ScoutRunDiagnostics
    all_queried_providers_errored: bool = False


def normalize_provider_chain(
    providers: Union[ScoutProvider, Iterable[ScoutProvider], None],
) -> List[ScoutProvider]:
    """
    Accept one provider or a sequence; drop later providers whose name was
    already seen. An empty chain becomes ``[NoopScoutProvider()]``.
    """
    if providers is None:
        provider_list: List[ScoutProvider] = []
    elif isinstance(providers, ScoutProvider):
        provider_list = [providers]
    else:
        provider_list = list(providers)

    unique: List[ScoutProvider] = []
    for provider in provider_list:
        if any(candidate.name == provider.name for candidate in unique):
            continue
        unique.append(provider)

    return unique or [NoopScoutProvider()]


def build_provider_failure_message(attempts: Sequence[AdapterAttempt]) -> str:
    """
    "All configured scout providers failed: a (err), b (err)"; bare
    "All configured scout providers failed." when no attempt errored.
    """
    failed = [
        f"{attempt.adapter} ({attempt.error})" if attempt.error else attempt.adapter
        for attempt in attempts
        if attempt.status == AdapterStatus.ERROR
    ]
    return build_failure_message(failed)


def create_initial_diagnostics(
    run_id: str,
    source: str,
    used_seed_targets: bool,
    requested_limit: int,
    effective_limit: int,
    min_confidence: float,
    providers: Sequence[ScoutProvider],
) -> ScoutRunDiagnostics:
    """Diagnostics persisted if the run fails before discovery finishes."""
    return ScoutRunDiagnostics(
        run_id=run_id,
        source=source,
        used_seed_targets=used_seed_targets,
        requested_limit=requested_limit,
        effective_limit=effective_limit,
        min_confidence=min_confidence,
        adapter_attempts=[
            AdapterAttempt(
                adapter=provider.name,
                status=AdapterStatus.NO_RESULTS if provider.is_configured() else AdapterStatus.NOT_CONFIGURED,
            )
            for provider in providers
        ],
    )


def _seed_to_target(seed: ScoutSeedTarget) -> DiscoveredTarget:
    return DiscoveredTarget(
        full_name=seed.full_name,
        current_title=seed.current_title,
        current_company=seed.current_company,
        linkedin_url=seed.linkedin_url,
        confidence=seed.confidence,
        match_reason=SEED_TARGET_MATCH_REASON,
    )


async def discover_targets(
    request: ScoutRequest,
    providers: Sequence[ScoutProvider],
    limit: int,
    min_confidence: float,
    run_id: str,
) -> DiscoveryOutcome:
    """
    Discover targets for ``request`` from its seeds or the provider chain.

    Args:
        request: Validated scout request
        providers: Normalized provider chain (see normalize_provider_chain)
        limit: Run limit, already clamped to [1, 100]
        min_confidence: Confidence floor applied by the normalizer
        run_id: Run the diagnostics belong to

    Returns:
        DiscoveryOutcome with normalized targets, the diagnostics snapshot and
        whether every provider that was actually queried raised.
    """
    effective_limit = min(limit, MAX_REQUEST_LIMIT)
    requested_limit = request.limit or limit
    attempts: List[AdapterAttempt] = []

    if request.seed_targets:
        seeds = request.seed_targets[:min(effective_limit, MAX_SEED_TARGETS)]
        targets = normalize_and_filter_targets(
            [_seed_to_target(seed) for seed in seeds], min_confidence, effective_limit
        )
        attempts.append(
            AdapterAttempt(
                adapter=SEED_TARGETS_SOURCE,
                status=AdapterStatus.SUCCESS if targets else AdapterStatus.NO_RESULTS,
                result_count=len(targets),
            )
        )
        logger.info(f"Using {len(targets)} of {len(seeds)} seed targets for run {run_id}")
        return DiscoveryOutcome(
            targets=targets,
            diagnostics=ScoutRunDiagnostics(
                run_id=run_id,
                source=SEED_TARGETS_SOURCE,
                used_seed_targets=True,
                requested_limit=requested_limit,
                effective_limit=effective_limit,
                min_confidence=min_confidence,
                adapter_attempts=attempts,
            ),
            all_queried_providers_errored=False,
        )

    discovered: List[DiscoveredTarget] = []
    contributors: List[str] = []
    errors = ErrorCollector()
    queried = 0

    for provider in providers:
        if not provider.is_configured():
            attempts.append(AdapterAttempt(adapter=provider.name, status=AdapterStatus.NOT_CONFIGURED))
            logger.debug(f"Provider {provider.name} not configured, skipping")
            continue

        remaining = effective_limit - len(discovered)
        if remaining <= 0:
            break

        queried += 1
        try:
            found = await provider.search(
                request.target_company,
                target_function=request.target_function,
                target_title=request.target_title,
                limit=remaining,
            )
        except Exception as e:
            failure = errors.add(provider.name, e)
            attempts.append(
                AdapterAttempt(adapter=provider.name, status=AdapterStatus.ERROR, error=describe_exception(e))
            )
            logger.warning(f"Provider {provider.name} failed for run {run_id}: {failure.message}")
            continue

        attempts.append(
            AdapterAttempt(
                adapter=provider.name,
                status=AdapterStatus.SUCCESS if found else AdapterStatus.NO_RESULTS,
                result_count=len(found),
            )
        )
        logger.info(f"Provider {provider.name} returned {len(found)} candidates")
        if found:
            contributors.append(provider.name)
            discovered.extend(found)

    targets = normalize_and_filter_targets(discovered, min_confidence, effective_limit)
    default_source = providers[0].name if providers else NoopScoutProvider.name
    source = "+".join(contributors) if targets and contributors else default_source

    return DiscoveryOutcome(
        targets=targets,
        diagnostics=ScoutRunDiagnostics(
            run_id=run_id,
            source=source,
            used_seed_targets=False,
            requested_limit=requested_limit,
            effective_limit=effective_limit,
            min_confidence=min_confidence,
            adapter_attempts=attempts,
        ),
        all_queried_providers_errored=queried > 0 and len(errors) == queried,
    )
