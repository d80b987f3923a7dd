"""
Connector-Path Scorer

For every persisted target, ranks the seeker's existing contacts as possible
connectors. Each (target, connector) pair gets seven signals in [0, 1]:

    company_alignment    connector works at the target company (or the target's)
    role_alignment       title-token overlap, function match, seniority match
    relationship         connector strength from "connected on" recency
    connector_influence  leadership / recruiting / management keywords
    target_confidence    discovery confidence of the target
    ask_fit              how well the base ask suits the signals
    safety               how safe it is to make the ask at all

Each signal is multiplied by its weight (weights sum to 100) and summed.
Ask guardrails then downgrade risky asks (referral -> intro -> context), each
downgrade costing a flat penalty, and the result is tiered high/medium/low.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from src.common.dedupe import significant_tokens
from src.common.repositories.contact_repository import ContactRepositoryInterface
from src.common.utils import clamp, clamp01, round_half_up
from src.services.scout.ask_type import classify_ask_type
from src.services.scout.models import (
    AskType,
    Contact,
    QualityTier,
    ScoreBreakdown,
    ScoredConnectorPath,
    ScoutTarget,
)
from src.services.scout.weights import ScoutWeights

logger = logging.getLogger(__name__)

MAX_CONNECTORS_PER_TARGET = 2
MAX_CONNECTOR_PATHS = 120
CONTACT_POOL_LIMIT = 200
DEFAULT_GUARDRAIL_PENALTY = 4.0

# Connector strength by age of the connection
UNKNOWN_CONNECTION_STRENGTH = 0.55
STRENGTH_BY_AGE_DAYS = ((365, 0.85), (365 * 3, 0.75), (365 * 7, 0.65))
OLD_CONNECTION_STRENGTH = 0.5

EXEC_PATTERN = re.compile(r"chief|vp|vice president|head|director|founder|partner", re.IGNORECASE)
RECRUITING_PATTERN = re.compile(r"recruiter|talent|hiring|people|staffing", re.IGNORECASE)
MANAGER_PATTERN = re.compile(r"manager|lead", re.IGNORECASE)
SENIOR_IC_PATTERN = re.compile(r"senior|staff|principal", re.IGNORECASE)
JUNIOR_PATTERN = re.compile(r"associate|assistant|coordinator|intern|junior", re.IGNORECASE)

GUARDRAIL_WEAK_CONTEXT = "downgraded referral to intro due to weak company context/safety"
GUARDRAIL_LOW_STRENGTH = "downgraded referral to intro due to low connector strength/target confidence"
GUARDRAIL_LOW_CONFIDENCE = "downgraded intro to context due to low confidence"

CONNECTED_ON_FORMATS = ("%d %b %Y", "%b %d, %Y", "%m/%d/%Y")


# ===== Signals =====

def parse_connected_on(connected_on: Optional[str]) -> Optional[datetime]:
    """Parse an ISO date/datetime (or a LinkedIn export date like "12 Jan 2020")."""
    if not connected_on or not connected_on.strip():
        return None

    value = connected_on.strip()
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        parsed = None
        for fmt in CONNECTED_ON_FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def estimate_connector_strength(connected_on: Optional[str], now: Optional[datetime] = None) -> float:
    """
    Relationship strength from how recently the connection was made.

    <=1 year 0.85, <=3 years 0.75, <=7 years 0.65, older 0.5, unknown 0.55.
    """
    parsed = parse_connected_on(connected_on)
    if parsed is None:
        return UNKNOWN_CONNECTION_STRENGTH

    reference = now or datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)

    age_days = (reference - parsed).total_seconds() / 86400
    for max_days, strength in STRENGTH_BY_AGE_DAYS:
        if age_days <= max_days:
            return strength
    return OLD_CONNECTION_STRENGTH


def infer_seniority_level(title: str) -> Optional[int]:
    """0 junior .. 4 executive; None for a blank title."""
    if not title or not title.strip():
        return None
    if EXEC_PATTERN.search(title):
        return 4
    if MANAGER_PATTERN.search(title):
        return 3
    if SENIOR_IC_PATTERN.search(title):
        return 2
    if JUNIOR_PATTERN.search(title):
        return 0
    return 1


def estimate_seniority_alignment(connector_title: str, target_title: str) -> float:
    connector_level = infer_seniority_level(connector_title)
    target_level = infer_seniority_level(target_title)

    if connector_level is None or target_level is None:
        return 0.4
    if connector_level == target_level:
        return 1.0
    if abs(connector_level - target_level) == 1:
        return 0.7
    return 0.25


def estimate_connector_influence(title: str) -> float:
    influence = 0.3
    if EXEC_PATTERN.search(title):
        influence += 0.35
    if RECRUITING_PATTERN.search(title):
        influence += 0.35
    if MANAGER_PATTERN.search(title):
        influence += 0.15
    return clamp(round_half_up(influence, 2), 0.0, 1.0)


def estimate_ask_fit_signal(
    ask: AskType,
    connector_influence: float,
    relationship: float,
    target_confidence: float,
    has_company_context: bool,
) -> float:
    confidence_blend = connector_influence * 0.4 + relationship * 0.35 + target_confidence * 0.25

    if ask == AskType.REFERRAL:
        return clamp01(confidence_blend + (0.1 if has_company_context else -0.05))

    if ask == AskType.INTRO:
        return clamp01(0.65 + confidence_blend * 0.25 + (0.05 if has_company_context else 0))

    return clamp01(0.6 + relationship * 0.2 + (0.08 if has_company_context else 0))


def estimate_safety_signal(
    connector_strength: float,
    target_confidence: float,
    has_company_context: bool,
    connector_influence: float,
) -> float:
    safety = 0.35
    safety += 0.2 if has_company_context else 0
    safety += connector_strength * 0.25
    safety += target_confidence * 0.15
    safety += connector_influence * 0.05
    if not has_company_context:
        safety -= 0.1
    return clamp01(safety)


def score_by_weight(signal: float, weight: float) -> float:
    return round_half_up(clamp01(signal) * weight, 2)


# ===== Guardrails & tiers =====

@dataclass(frozen=True)
class GuardrailResult:
    ask: AskType
    adjustments: Tuple[str, ...]


def apply_ask_guardrails(
    ask: AskType,
    connector_strength: float,
    target_confidence: float,
    safety_signal: float,
    has_company_context: bool,
) -> GuardrailResult:
    """
    Downgrade risky asks. Rules run in order against the possibly downgraded ask:

    1. referral -> intro when there is no company context or safety < 0.62
    2. referral -> intro when strength < 0.7 or target confidence < 0.65
    3. intro -> context when strength < 0.45 or target confidence < 0.5
    """
    adjustments: List[str] = []

    if ask == AskType.REFERRAL and (not has_company_context or safety_signal < 0.62):
        ask = AskType.INTRO
        adjustments.append(GUARDRAIL_WEAK_CONTEXT)

    if ask == AskType.REFERRAL and (connector_strength < 0.7 or target_confidence < 0.65):
        ask = AskType.INTRO
        adjustments.append(GUARDRAIL_LOW_STRENGTH)

    if ask == AskType.INTRO and (connector_strength < 0.45 or target_confidence < 0.5):
        ask = AskType.CONTEXT
        adjustments.append(GUARDRAIL_LOW_CONFIDENCE)

    return GuardrailResult(ask=ask, adjustments=tuple(adjustments))


def classify_quality_tier(path_score: float, safety_signal: float) -> QualityTier:
    if path_score >= 80 and safety_signal >= 0.65:
        return QualityTier.HIGH
    if path_score >= 65 and safety_signal >= 0.45:
        return QualityTier.MEDIUM
    return QualityTier.LOW


def build_rationale(
    company_match: bool,
    shared_target_company: bool,
    role_alignment: float,
    seniority_alignment: float,
    connector_influence: float,
    relationship: float,
    target_confidence: float,
    safety: float,
    adjustments: Tuple[str, ...],
) -> str:
    parts: List[str] = []
    if company_match:
        parts.append("direct company match")
    elif shared_target_company:
        parts.append("shared target-company context")
    if role_alignment >= 0.62:
        parts.append("strong function/title alignment")
    if seniority_alignment >= 0.7:
        parts.append("good seniority alignment")
    if connector_influence >= 0.65:
        parts.append("high-influence connector role")
    if relationship >= 0.72:
        parts.append("high connector strength")
    if target_confidence >= 0.7:
        parts.append("high target confidence")
    if safety < 0.6:
        parts.append("safety constraints applied")

    if parts:
        rationale = f"Path ranks well due to {', '.join(parts)}."
    else:
        rationale = "Path is viable but lower-confidence than other options."

    if adjustments:
        rationale = f"{rationale} Ask guardrails: {', '.join(adjustments)}."
    return rationale


# ===== Scoring =====

def score_connector_path(
    connector: Contact,
    target: ScoutTarget,
    target_company: str,
    target_function: Optional[str],
    connector_strength: float,
    weights: ScoutWeights,
    guardrail_penalty: float = DEFAULT_GUARDRAIL_PENALTY,
) -> ScoredConnectorPath:
    """
    Score one (target, connector) pair.

    Returns:
        The scored path with its immutable ScoreBreakdown. ``path_score`` is
        always within [0, 100].
    """
    connector_title = (connector.current_title or "").lower()
    target_title = (target.current_title or "").lower()
    connector_company = (connector.current_company or "").lower()
    target_company_needle = target_company.lower()
    target_current_company = (target.current_company or "").lower()
    function_token = (target_function or "").lower()

    company_match = target_company_needle in connector_company
    shared_target_company = bool(target_current_company) and target_current_company in connector_company
    has_company_context = company_match or shared_target_company
    base_ask = classify_ask_type(connector.current_title or "")

    title_overlap = sum(1 for token in significant_tokens(target_title) if token in connector_title)
    function_match = 1 if function_token and function_token in connector_title else 0
    seniority_alignment = estimate_seniority_alignment(connector_title, target_title)
    connector_influence = estimate_connector_influence(connector_title)

    company_signal = 1.0 if company_match else 0.72 if shared_target_company else 0.35
    role_signal = clamp01(title_overlap * 0.24 + function_match * 0.34 + seniority_alignment * 0.42)
    relationship_signal = clamp01(connector_strength)
    target_confidence_signal = clamp01(target.confidence)
    ask_fit_signal = estimate_ask_fit_signal(
        base_ask, connector_influence, relationship_signal, target_confidence_signal, has_company_context
    )
    safety_signal = estimate_safety_signal(
        relationship_signal, target_confidence_signal, has_company_context, connector_influence
    )

    sub_scores = {
        "company_alignment": score_by_weight(company_signal, weights.company_alignment),
        "role_alignment": score_by_weight(role_signal, weights.role_alignment),
        "relationship": score_by_weight(relationship_signal, weights.relationship),
        "connector_influence": score_by_weight(connector_influence, weights.connector_influence),
        "target_confidence": score_by_weight(target_confidence_signal, weights.target_confidence),
        "ask_fit": score_by_weight(ask_fit_signal, weights.ask_fit),
        "safety": score_by_weight(safety_signal, weights.safety),
    }
    total_before_guardrails = sum(sub_scores.values())

    guardrails = apply_ask_guardrails(
        base_ask, relationship_signal, target_confidence_signal, safety_signal, has_company_context
    )
    penalty = len(guardrails.adjustments) * guardrail_penalty
    path_score = clamp(round_half_up(total_before_guardrails - penalty, 2), 0.0, 100.0)

    breakdown = ScoreBreakdown(
        **sub_scores,
        total_before_guardrails=round_half_up(total_before_guardrails, 2),
        guardrail_penalty=penalty,
        quality_tier=classify_quality_tier(path_score, safety_signal),
        guardrail_adjustments=guardrails.adjustments,
    )

    return ScoredConnectorPath(
        target_id=target.id,
        connector_contact_id=connector.id,
        connector_name=connector.name,
        connector_strength=connector_strength,
        path_score=path_score,
        recommended_ask=guardrails.ask,
        rationale=build_rationale(
            company_match,
            shared_target_company,
            role_signal,
            seniority_alignment,
            connector_influence,
            relationship_signal,
            target_confidence_signal,
            safety_signal,
            guardrails.adjustments,
        ),
        score_breakdown=breakdown,
    )


def select_connector_pool(contacts: ContactRepositoryInterface, target_company: str) -> List[Contact]:
    """Contacts at the target company, else the first 200 contacts."""
    company_connectors = contacts.find_by_company(target_company)
    if company_connectors:
        return company_connectors
    return contacts.list_contacts(CONTACT_POOL_LIMIT)


def build_connector_paths(
    target_company: str,
    target_function: Optional[str],
    targets: List[ScoutTarget],
    contacts: ContactRepositoryInterface,
    weights: ScoutWeights,
    guardrail_penalty: float = DEFAULT_GUARDRAIL_PENALTY,
    now: Optional[datetime] = None,
) -> List[ScoredConnectorPath]:
    """
    Rank connectors for every target.

    Args:
        target_company: Company from the request
        target_function: Function from the request
        targets: Persisted targets, in rank order
        contacts: Contact-pool collaborator (``find_by_company`` / ``list_contacts``)
        weights: Weight profile to score with
        guardrail_penalty: Points deducted per guardrail adjustment
        now: Reference time for connector strength

    Returns:
        At most 2 paths per target (best first), at most 120 in total.
    """
    pool = select_connector_pool(contacts, target_company)
    if not pool:
        logger.info("No contacts available; skipping connector path scoring")
        return []

    strengths = {id(connector): estimate_connector_strength(connector.connected_on, now) for connector in pool}
    connector_paths: List[ScoredConnectorPath] = []

    for target in targets:
        scored = [
            score_connector_path(
                connector,
                target,
                target_company,
                target_function,
                strengths[id(connector)],
                weights,
                guardrail_penalty,
            )
            for connector in pool
        ]
        scored.sort(key=lambda path: path.path_score, reverse=True)

        for candidate in scored[:MAX_CONNECTORS_PER_TARGET]:
            connector_paths.append(candidate)
            if len(connector_paths) >= MAX_CONNECTOR_PATHS:
                return connector_paths

    return connector_paths
