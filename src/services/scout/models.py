"""
Pydantic models for the second-degree scout.

These models define the request, the discovered/persisted entities and the
per-run diagnostics payload returned to callers.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.common.error_handling import ScoutValidationError

MIN_COMPANY_LENGTH = 2
MAX_COMPANY_LENGTH = 120
MAX_REQUEST_LIMIT = 100
MAX_SEED_TARGETS = 100
DEFAULT_REQUEST_LIMIT = 25


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScoutRunStatus(str, Enum):
    """Lifecycle status of a scout run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    NEEDS_ADAPTER = "needs_adapter"
    FAILED = "failed"


class AdapterStatus(str, Enum):
    """Outcome of querying one discovery adapter."""
    NOT_CONFIGURED = "not_configured"
    NO_RESULTS = "no_results"
    SUCCESS = "success"
    ERROR = "error"


class AskType(str, Enum):
    """Kind of favor requested from a connector, lowest risk first."""
    CONTEXT = "context"
    INTRO = "intro"
    REFERRAL = "referral"

    @property
    def risk(self) -> int:
        return ASK_RISK[self]


ASK_RISK = {AskType.CONTEXT: 0, AskType.INTRO: 1, AskType.REFERRAL: 2}


class QualityTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# === Request ===

class ScoutSeedTarget(BaseModel):
    """A caller-supplied target that bypasses live discovery."""

    full_name: str
    current_title: Optional[str] = None
    current_company: Optional[str] = None
    linkedin_url: Optional[str] = None
    confidence: Optional[float] = None

    @field_validator("full_name")
    @classmethod
    def full_name_present(cls, v: str) -> str:
        stripped = v.strip()
        if len(stripped) < 2:
            raise ValueError("each seed target requires full_name (min 2 chars)")
        return stripped


class ScoutRequest(BaseModel):
    """Request body for a scout run."""

    target_company: str = Field(..., description="Company the seeker wants to reach.")
    target_function: Optional[str] = Field(None, description="Function, e.g. 'product'.")
    target_title: Optional[str] = Field(None, description="Title, e.g. 'Senior Product Manager'.")
    limit: Optional[int] = Field(
        None, ge=1, le=MAX_REQUEST_LIMIT, description="Maximum targets to return (default 25)."
    )
    seed_targets: Optional[List[ScoutSeedTarget]] = Field(None, max_length=MAX_SEED_TARGETS)

    @field_validator("target_company")
    @classmethod
    def company_length(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("target_company is required")
        if len(stripped) < MIN_COMPANY_LENGTH or len(stripped) > MAX_COMPANY_LENGTH:
            raise ValueError(
                f"target_company must be between {MIN_COMPANY_LENGTH} and {MAX_COMPANY_LENGTH} characters"
            )
        return stripped

    @field_validator("target_function", "target_title")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


def describe_request_error(exc: ValidationError) -> str:
    """Turn the first pydantic error into the client-facing message."""
    error = exc.errors()[0]
    loc = error.get("loc") or ("",)
    field_name = loc[0]
    error_type = error.get("type", "")

    if error_type == "value_error":
        return str(error["ctx"]["error"])

    if field_name == "target_company":
        if error_type in ("missing", "string_type"):
            return "target_company is required"
        return f"target_company must be between {MIN_COMPANY_LENGTH} and {MAX_COMPANY_LENGTH} characters"

    if field_name == "limit":
        return f"limit must be a number between 1 and {MAX_REQUEST_LIMIT}"

    if field_name == "seed_targets":
        if len(loc) > 1:
            return "each seed target requires full_name (min 2 chars)"
        if error_type == "too_long":
            return f"seed_targets must contain at most {MAX_SEED_TARGETS} entries"
        return "seed_targets must be an array"

    return error.get("msg", "invalid scout request")


def validate_scout_request(payload: Dict[str, Any]) -> ScoutRequest:
    """
    Validate a raw request payload before any provider is queried.

    Raises:
        ScoutValidationError: With a single human-readable message
    """
    if not isinstance(payload, dict):
        raise ScoutValidationError("request body must be a JSON object")
    try:
        return ScoutRequest.model_validate(payload)
    except ValidationError as exc:
        raise ScoutValidationError(describe_request_error(exc)) from exc


# === Discovery ===

class DiscoveredTarget(BaseModel):
    """A person a provider believes works at the target company."""

    full_name: str
    headline: Optional[str] = None
    current_title: Optional[str] = None
    current_company: Optional[str] = None
    linkedin_url: Optional[str] = None
    confidence: Optional[float] = None
    match_reason: Optional[str] = None


class ScoutTarget(DiscoveredTarget):
    """A normalized target persisted under a run."""

    id: str
    run_id: str
    confidence: float = Field(..., ge=0, le=1)


class AdapterAttempt(BaseModel):
    """One record per provider queried in a run."""

    adapter: str
    status: AdapterStatus
    result_count: int = 0
    error: Optional[str] = None


class ScoutRunDiagnostics(BaseModel):
    """Which adapters were tried for a run and what each returned."""

    run_id: str
    source: str
    used_seed_targets: bool
    requested_limit: int
    effective_limit: int
    min_confidence: float
    adapter_attempts: List[AdapterAttempt] = Field(default_factory=list)


class DiagnosticsSummary(BaseModel):
    """Per-run attempt counts for run listings."""

    source: str
    adapter_count: int
    success_count: int
    error_count: int
    not_configured_count: int


# === Scoring ===

class ScoreBreakdown(BaseModel):
    """Weighted sub-scores behind a connector path. Immutable once computed."""

    model_config = ConfigDict(frozen=True)

    scoring_version: str = "v2"
    company_alignment: float
    role_alignment: float
    relationship: float
    connector_influence: float
    target_confidence: float
    ask_fit: float
    safety: float
    total_before_guardrails: float
    guardrail_penalty: float
    quality_tier: QualityTier
    guardrail_adjustments: Tuple[str, ...] = ()


class ScoredConnectorPath(BaseModel):
    """A connector path as emitted by the scorer, before persistence."""

    target_id: str
    connector_contact_id: Optional[str] = None
    connector_name: str
    connector_strength: float
    path_score: float
    recommended_ask: Optional[AskType] = None
    rationale: Optional[str] = None
    score_breakdown: Optional[ScoreBreakdown] = None


class ConnectorPath(ScoredConnectorPath):
    """A persisted (target, connector) pairing."""

    id: str
    run_id: str
    connector_strength: float = Field(..., ge=0, le=1)
    path_score: float = Field(..., ge=0, le=100)


class Contact(BaseModel):
    """An existing contact of the seeker. Read-only input to scoring."""

    id: str
    name: str
    current_title: Optional[str] = None
    current_company: Optional[str] = None
    linkedin_url: Optional[str] = None
    email: Optional[str] = None
    connected_on: Optional[str] = None


# === Runs ===

class ScoutRun(BaseModel):
    """A scout run with its targets and connector paths."""

    id: str
    target_company: str
    target_function: Optional[str] = None
    target_title: Optional[str] = None
    status: ScoutRunStatus
    source: str
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    targets: List[ScoutTarget] = Field(default_factory=list)
    connector_paths: List[ConnectorPath] = Field(default_factory=list)


class ScoutRunResult(BaseModel):
    """Return value of run_scout: the run plus its diagnostics snapshot."""

    run: ScoutRun
    diagnostics: ScoutRunDiagnostics

    @property
    def notes(self) -> Optional[str]:
        return self.run.notes


class ScoutRunStats(BaseModel):
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_source: Dict[str, int] = Field(default_factory=dict)
    latest_run_at: Optional[datetime] = None


class ScoutEvent(BaseModel):
    """Terminal-status event recorded for each run."""

    name: str
    run_id: str
    occurred_at: datetime = Field(default_factory=utcnow)
