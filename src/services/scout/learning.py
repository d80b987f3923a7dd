"""
Learning loop for connector-path weights.

Record how outreach through a connector path went, then periodically learn
a new weight profile from those outcomes. The learned profile becomes the
active one and is what later runs are scored with.
"""

import logging
from typing import Optional, Union

from src.common.repositories.learning_repository import (
    LearningFeedback,
    LearningRepositoryInterface,
)
from src.services.scout.models import ConnectorPath
from src.services.scout.weights import (
    DEFAULT_AUTO_TUNE_MIN_SAMPLES,
    OutreachOutcome,
    ScoutWeights,
    auto_tune,
    load_weights_from_env,
)

logger = logging.getLogger(__name__)


def get_active_weights(repository: LearningRepositoryInterface) -> ScoutWeights:
    """
    Return the active weight profile, storing the environment/default profile
    as the active one when none exists yet.
    """
    active = repository.get_active_profile()
    if active is not None:
        return active
    return repository.save_profile(load_weights_from_env(), activate=True)


def record_path_outcome(
    repository: LearningRepositoryInterface,
    path: ConnectorPath,
    outcome: Union[OutreachOutcome, str],
    note: Optional[str] = None,
    source: str = "manual",
) -> LearningFeedback:
    """Record the outcome of outreach through ``path``, keeping its score breakdown as the sample."""
    feedback = repository.record_feedback(
        run_id=path.run_id,
        connector_path_id=path.id,
        outcome=OutreachOutcome(outcome),
        score_breakdown=path.score_breakdown,
        note=note,
        source=source,
    )
    logger.info(f"Recorded outcome '{feedback.outcome.value}' for path {path.id} (run {path.run_id})")
    return feedback


def auto_tune_active_profile(
    repository: LearningRepositoryInterface,
    min_samples: int = DEFAULT_AUTO_TUNE_MIN_SAMPLES,
) -> Optional[ScoutWeights]:
    """
    Learn a new profile from every recorded outcome that carries a score
    breakdown and activate it.

    Returns:
        The new active profile, or None when there are too few samples
    """
    current = get_active_weights(repository)
    samples = [
        (feedback.score_breakdown, feedback.outcome)
        for feedback in repository.list_feedback(limit=None)
        if feedback.score_breakdown is not None
    ]

    tuned = auto_tune(current, samples, min_samples=min_samples)
    if tuned is None:
        return None
    return repository.save_profile(tuned, activate=True)
