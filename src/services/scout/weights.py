"""
Connector-path scoring weights.

A ``ScoutWeights`` profile holds the seven dimension weights (normalized to
sum to 100) plus provenance: where it came from, how many outreach outcomes
it was learned from and a version that increases every time a new profile is
derived from an old one. Profiles are immutable; overriding or auto-tuning
always returns a new instance.

Resolution order used by a run:
1. An explicit ``ScoutWeights`` passed in the run options
2. Partial overrides (dict) merged onto the environment profile
3. The environment profile (``SCOUT_V2_WEIGHT_<DIMENSION>``), else the defaults
"""

import logging
import math
import os
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from src.common.config import parse_optional_float
from src.common.utils import clamp
from src.services.scout.models import ScoreBreakdown

logger = logging.getLogger(__name__)

WEIGHT_DIMENSIONS: Tuple[str, ...] = (
    "company_alignment",
    "role_alignment",
    "relationship",
    "connector_influence",
    "target_confidence",
    "ask_fit",
    "safety",
)

DEFAULT_WEIGHTS: Dict[str, float] = {
    "company_alignment": 24,
    "role_alignment": 18,
    "relationship": 18,
    "connector_influence": 14,
    "target_confidence": 12,
    "ask_fit": 8,
    "safety": 6,
}

ENV_PREFIX = "SCOUT_V2_WEIGHT_"
MAX_RAW_WEIGHT = 100.0
# Normalized weights are whole hundredths summing to 100.00
TOTAL_HUNDREDTHS = 10000

# Floor applied to every learned dimension before normalization
AUTO_TUNE_WEIGHT_FLOOR = 5.0
DEFAULT_AUTO_TUNE_MIN_SAMPLES = 5


class WeightSource(str, Enum):
    DEFAULT = "default"
    AUTO_TUNED = "auto_tuned"
    MANUAL = "manual"
    ENV = "env"


class OutreachOutcome(str, Enum):
    """Recorded result of an outreach attempt through a connector path."""
    INTRO_ACCEPTED = "intro_accepted"
    REPLIED = "replied"
    SENT = "sent"
    FOLLOW_UP_SENT = "follow_up_sent"
    NO_RESPONSE = "no_response"
    NOT_INTERESTED = "not_interested"

    @property
    def scalar(self) -> float:
        return OUTCOME_SCALARS[self]


OUTCOME_SCALARS: Dict[OutreachOutcome, float] = {
    OutreachOutcome.INTRO_ACCEPTED: 1.0,
    OutreachOutcome.REPLIED: 0.7,
    OutreachOutcome.SENT: 0.35,
    OutreachOutcome.FOLLOW_UP_SENT: 0.2,
    OutreachOutcome.NO_RESPONSE: -0.25,
    OutreachOutcome.NOT_INTERESTED: -0.6,
}


class ScoutWeights(BaseModel):
    """Immutable, versioned weight profile for the connector-path scorer."""

    model_config = ConfigDict(frozen=True)

    company_alignment: float = Field(DEFAULT_WEIGHTS["company_alignment"], ge=0)
    role_alignment: float = Field(DEFAULT_WEIGHTS["role_alignment"], ge=0)
    relationship: float = Field(DEFAULT_WEIGHTS["relationship"], ge=0)
    connector_influence: float = Field(DEFAULT_WEIGHTS["connector_influence"], ge=0)
    target_confidence: float = Field(DEFAULT_WEIGHTS["target_confidence"], ge=0)
    ask_fit: float = Field(DEFAULT_WEIGHTS["ask_fit"], ge=0)
    safety: float = Field(DEFAULT_WEIGHTS["safety"], ge=0)

    id: Optional[str] = None
    label: str = "Default scoring profile"
    source: WeightSource = WeightSource.DEFAULT
    version: int = 1
    sample_size: int = 0

    def as_dict(self) -> Dict[str, float]:
        """The seven dimension weights keyed by dimension name."""
        return {dimension: getattr(self, dimension) for dimension in WEIGHT_DIMENSIONS}

    @property
    def total(self) -> float:
        return sum(self.as_dict().values())

    def with_overrides(
        self,
        overrides: Mapping[str, Any],
        label: str = "Manual override",
    ) -> "ScoutWeights":
        """
        Merge partial overrides onto this profile and renormalize.

        Unknown keys are ignored; non-numeric or non-finite values keep the
        current weight; numbers are clamped to [0, 100].
        """
        merged = {
            dimension: _clamp_weight(overrides.get(dimension), current)
            for dimension, current in self.as_dict().items()
        }
        return ScoutWeights(
            **normalize_weights(merged),
            label=label,
            source=WeightSource.MANUAL,
            version=self.version + 1,
            sample_size=self.sample_size,
        )


def default_weights() -> ScoutWeights:
    return ScoutWeights()


def normalize_weights(raw: Mapping[str, float]) -> Dict[str, float]:
    """
    Rescale the seven weights to sum to exactly 100 with 2 dp each.

    Every weight is truncated to whole hundredths, then the leftover
    hundredths go to the dimensions with the largest truncation remainders
    (ties in dimension order), so each result stays within 0.01 of its exact
    share. Missing dimensions count as 0. A non-positive total yields the
    defaults.
    """
    values = {dimension: float(raw.get(dimension, 0) or 0) for dimension in WEIGHT_DIMENSIONS}
    total = sum(values.values())
    if total <= 0:
        return dict(DEFAULT_WEIGHTS)

    exact = {dimension: value * TOTAL_HUNDREDTHS / total for dimension, value in values.items()}
    hundredths = {dimension: math.floor(share + 1e-9) for dimension, share in exact.items()}
    leftover = TOTAL_HUNDREDTHS - sum(hundredths.values())
    by_remainder = sorted(
        range(len(WEIGHT_DIMENSIONS)),
        key=lambda idx: (hundredths[WEIGHT_DIMENSIONS[idx]] - exact[WEIGHT_DIMENSIONS[idx]], idx),
    )
    for idx in by_remainder[:leftover]:
        hundredths[WEIGHT_DIMENSIONS[idx]] += 1
    return {dimension: hundredths[dimension] / 100 for dimension in WEIGHT_DIMENSIONS}


def _clamp_weight(value: Any, fallback: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return fallback
    return clamp(float(value), 0.0, MAX_RAW_WEIGHT)


def parse_weight(value: Optional[str], fallback: float) -> float:
    """Parse one env weight, clamped to [0, 100]; blank or garbage -> fallback."""
    parsed = parse_optional_float(value)
    if parsed is None:
        return fallback
    return clamp(parsed, 0.0, MAX_RAW_WEIGHT)


def load_weights_from_env(environ: Optional[Mapping[str, str]] = None) -> ScoutWeights:
    """
    Build the weight profile from ``SCOUT_V2_WEIGHT_<DIMENSION>`` variables.

    Args:
        environ: Mapping to read instead of os.environ (tests)
    """
    env = os.environ if environ is None else environ
    raw = {}
    overridden = False
    for dimension in WEIGHT_DIMENSIONS:
        value = env.get(f"{ENV_PREFIX}{dimension.upper()}")
        if value is not None and value.strip():
            overridden = True
        raw[dimension] = parse_weight(value, DEFAULT_WEIGHTS[dimension])

    if not overridden:
        return default_weights()

    return ScoutWeights(
        **normalize_weights(raw),
        label="Environment scoring profile",
        source=WeightSource.ENV,
    )


def resolve_weights(
    overrides: Union[ScoutWeights, Mapping[str, Any], None] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ScoutWeights:
    """
    Resolve the weight profile for a run.

    A full profile is used as-is; a partial dict is merged onto the
    environment profile; None means the environment profile.
    """
    if isinstance(overrides, ScoutWeights):
        return overrides

    base = load_weights_from_env(environ)
    if not overrides:
        return base
    return base.with_overrides(overrides)


def outcome_weight(outcome: Union[OutreachOutcome, str]) -> float:
    """Map an outcome onto (0, 1]: (scalar + 1.2) / 2.2. Unknown outcomes count as neutral."""
    try:
        scalar = OutreachOutcome(outcome).scalar
    except ValueError:
        scalar = 0.0
    return (scalar + 1.2) / 2.2


def auto_tune(
    current: ScoutWeights,
    samples: Iterable[Tuple[ScoreBreakdown, Union[OutreachOutcome, str]]],
    min_samples: int = DEFAULT_AUTO_TUNE_MIN_SAMPLES,
) -> Optional[ScoutWeights]:
    """
    Learn a new weight profile from recorded outreach outcomes.

    For every dimension the signal behind each sample (its weighted sub-score
    divided by the current weight) is averaged, weighted by how well the
    outreach went. Dimensions whose signal was high on successful paths gain
    weight.

    Args:
        current: Profile in effect when the samples were scored
        samples: (score breakdown, outcome) pairs
        min_samples: Minimum number of samples required

    Returns:
        A new auto-tuned profile (version incremented), or None when there are
        too few samples.
    """
    sample_list = list(samples)
    if len(sample_list) < max(1, min_samples):
        logger.info(f"Auto-tune skipped: {len(sample_list)} samples (< {min_samples})")
        return None

    current_weights = current.as_dict()
    totals = {dimension: 0.0 for dimension in WEIGHT_DIMENSIONS}
    accumulator = 0.0

    for breakdown, outcome in sample_list:
        sample_weight = outcome_weight(outcome)
        for dimension in WEIGHT_DIMENSIONS:
            weight = current_weights[dimension]
            signal = getattr(breakdown, dimension) / weight if weight > 0 else 0.0
            totals[dimension] += clamp(signal, 0.0, 1.0) * sample_weight
        accumulator += sample_weight

    if accumulator <= 0:
        return None

    candidate = {
        dimension: max(AUTO_TUNE_WEIGHT_FLOOR, totals[dimension] / accumulator * 100)
        for dimension in WEIGHT_DIMENSIONS
    }

    tuned = ScoutWeights(
        **normalize_weights(candidate),
        label=f"Auto-tuned profile ({len(sample_list)} samples)",
        source=WeightSource.AUTO_TUNED,
        version=current.version + 1,
        sample_size=len(sample_list),
    )
    logger.info(f"Auto-tuned weights v{tuned.version} from {len(sample_list)} samples: {tuned.as_dict()}")
    return tuned
