"""Type definitions for sanctions and PEP screening.

This module defines the core types for screening including match tiers,
list sources, subject and candidate records, PEP profiles, rescreening
schedules, component configurations and the screening error taxonomy.
"""

from datetime import UTC, date, datetime, timedelta
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from uuid_utils.compat import uuid7

from screenguard.utils.exceptions import ScreenguardError


def _utcnow() -> datetime:
    return datetime.now(UTC)


# =============================================================================
# Enums
# =============================================================================


class SanctionsList(str, Enum):
    """Sanctions and watchlist sources that can be screened."""

    # US Lists
    OFAC_SDN = "ofac_sdn"  # OFAC Specially Designated Nationals
    OFAC_CONSOLIDATED = "ofac_consolidated"  # OFAC Consolidated Sanctions List
    BIS_DENIED = "bis_denied"  # Bureau of Industry and Security Denied Persons
    BIS_ENTITY = "bis_entity"  # Bureau of Industry and Security Entity List

    # International Lists
    UN_CONSOLIDATED = "un_consolidated"  # UN Security Council Consolidated List
    EU_CONSOLIDATED = "eu_consolidated"  # EU Consolidated Financial Sanctions List
    UK_HMT = "uk_hmt"  # UK HM Treasury Consolidated List
    INTERPOL_RED = "interpol_red"  # Interpol Red Notices


class EntityType(str, Enum):
    """Type of screened or listed entity."""

    INDIVIDUAL = "individual"
    ORGANIZATION = "organization"


class RiskTier(str, Enum):
    """Risk tier shared by sanctions matches, PEP assessments and results."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Position of the tier in ascending order of risk."""
        return _RISK_ORDER.index(self)

    @classmethod
    def highest(cls, tiers: "list[RiskTier]") -> "RiskTier":
        """Return the highest tier in the list (NONE for an empty list)."""
        return max(tiers, key=lambda t: t.rank, default=cls.NONE)

    def elevate(self) -> "RiskTier":
        """Return the next tier up, stopping at CRITICAL."""
        return _RISK_ORDER[min(self.rank + 1, len(_RISK_ORDER) - 1)]


_RISK_ORDER = [RiskTier.NONE, RiskTier.LOW, RiskTier.MEDIUM, RiskTier.HIGH, RiskTier.CRITICAL]


class RecommendedAction(str, Enum):
    """Action recommended for a match of a given strength."""

    BLOCK = "block_immediately"
    IMMEDIATE_REVIEW = "immediate_compliance_review"
    INVESTIGATE = "thorough_investigation"
    MANUAL_VERIFICATION = "manual_verification_recommended"
    NO_ACTION = "no_action"


class MatchStrength(str, Enum):
    """Strength tier of a sanctions name match."""

    EXACT = "exact"  # Score of 100
    HIGH = "high"  # [85, 100)
    MEDIUM = "medium"  # [70, 85)
    LOW = "low"  # [50, 70)
    NONE = "none"  # [0, 50)

    @property
    def rank(self) -> int:
        """Position of the tier in ascending order of strength."""
        return _STRENGTH_ORDER.index(self)

    @property
    def recommended_action(self) -> RecommendedAction:
        """Get the action recommended for this match strength."""
        return _STRENGTH_ACTIONS[self]

    @property
    def risk_tier(self) -> RiskTier:
        """Get the risk tier implied by this match strength."""
        return _STRENGTH_RISK[self]

    @property
    def requires_blocking(self) -> bool:
        """Whether a match of this strength must block the subject."""
        return self is MatchStrength.EXACT

    @property
    def requires_review(self) -> bool:
        """Whether a match of this strength must go to compliance review."""
        return self in (MatchStrength.HIGH, MatchStrength.MEDIUM)

    def at_least(self, other: "MatchStrength") -> bool:
        """Check whether this strength is equal to or above another."""
        return self.rank >= other.rank


_STRENGTH_ORDER = [
    MatchStrength.NONE,
    MatchStrength.LOW,
    MatchStrength.MEDIUM,
    MatchStrength.HIGH,
    MatchStrength.EXACT,
]

_STRENGTH_ACTIONS = {
    MatchStrength.EXACT: RecommendedAction.BLOCK,
    MatchStrength.HIGH: RecommendedAction.IMMEDIATE_REVIEW,
    MatchStrength.MEDIUM: RecommendedAction.INVESTIGATE,
    MatchStrength.LOW: RecommendedAction.MANUAL_VERIFICATION,
    MatchStrength.NONE: RecommendedAction.NO_ACTION,
}

_STRENGTH_RISK = {
    MatchStrength.EXACT: RiskTier.CRITICAL,
    MatchStrength.HIGH: RiskTier.HIGH,
    MatchStrength.MEDIUM: RiskTier.MEDIUM,
    MatchStrength.LOW: RiskTier.LOW,
    MatchStrength.NONE: RiskTier.NONE,
}


class Disposition(str, Enum):
    """Overall outcome of a screening."""

    BLOCK = "block"
    REVIEW = "review"
    CLEAR = "clear"


class PepPositionLevel(str, Enum):
    """Classification of a politically exposed position."""

    SENIOR_OFFICIAL = "senior_official"  # Heads of state, ministers, senior judges
    MID_LEVEL_OFFICIAL = "mid_level_official"  # Directors, ambassadors, deputies
    HONORARY = "honorary"  # Honorary or ceremonial posts


class PepCategory(str, Enum):
    """FATF category of a politically exposed person."""

    DOMESTIC = "domestic"
    FOREIGN = "foreign"
    INTERNATIONAL_ORGANIZATION = "international_organization"
    FAMILY_MEMBER = "family_member"
    CLOSE_ASSOCIATE = "close_associate"


class ScreeningFrequency(str, Enum):
    """Rescreening cadence for a subject."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMI_ANNUALLY = "semi_annually"
    ANNUALLY = "annually"

    def to_days(self) -> int:
        """Convert frequency to days."""
        mapping = {
            ScreeningFrequency.DAILY: 1,
            ScreeningFrequency.WEEKLY: 7,
            ScreeningFrequency.MONTHLY: 30,
            ScreeningFrequency.QUARTERLY: 90,
            ScreeningFrequency.SEMI_ANNUALLY: 180,
            ScreeningFrequency.ANNUALLY: 365,
        }
        return mapping[self]

    @property
    def interval(self) -> timedelta:
        """Interval between two screenings at this frequency."""
        return timedelta(days=self.to_days())

    @classmethod
    def from_risk_tier(cls, tier: RiskTier) -> "ScreeningFrequency":
        """Recommended rescreening frequency for an overall screening risk."""
        mapping = {
            RiskTier.CRITICAL: cls.DAILY,
            RiskTier.HIGH: cls.DAILY,
            RiskTier.MEDIUM: cls.WEEKLY,
            RiskTier.LOW: cls.MONTHLY,
            RiskTier.NONE: cls.QUARTERLY,
        }
        return mapping[tier]

    @classmethod
    def from_pep_tier(cls, tier: RiskTier) -> "ScreeningFrequency":
        """Ongoing monitoring frequency for a PEP risk tier."""
        mapping = {
            RiskTier.CRITICAL: cls.MONTHLY,
            RiskTier.HIGH: cls.MONTHLY,
            RiskTier.MEDIUM: cls.QUARTERLY,
            RiskTier.LOW: cls.ANNUALLY,
            RiskTier.NONE: cls.ANNUALLY,
        }
        return mapping[tier]


class ScheduleStatus(str, Enum):
    """Persisted state of a rescreening schedule."""

    SCHEDULED = "scheduled"  # Waiting for next_due
    EXECUTING = "executing"  # Claimed by an executor
    FAILED = "failed"  # Last attempt failed, retry pending
    MANUAL_ATTENTION = "manual_attention"  # Retry limit reached or bad subject
    CANCELLED = "cancelled"  # Removed from due selection


# =============================================================================
# Component Configuration
# =============================================================================


class NormalizerConfig(BaseModel):
    """Configuration for name normalization.

    Attributes:
        honorifics: Titles stripped from names before comparison.
        suffixes: Generational and academic suffixes stripped from the end
            of names.
        strip_diacritics: Whether accented characters fold to their base letter.
    """

    honorifics: frozenset[str] = frozenset(
        {
            "mr", "mrs", "ms", "miss", "dr", "prof", "sir", "dame", "lord", "lady",
            "sheikh", "shaikh", "haji", "hajji", "sayyid", "mullah", "gen", "col",
            "capt", "hon", "rev", "excellency", "his", "her",
        }
    )  # fmt: skip
    suffixes: frozenset[str] = frozenset(
        {"jr", "sr", "ii", "iii", "iv", "esq", "phd"}
    )
    strip_diacritics: bool = True


class MatchingConfig(BaseModel):
    """Configuration for compound similarity scoring.

    Attributes:
        phonetic_boost: Additive boost when any token pair agrees phonetically.
        token_boost: Additive boost for a strong exact token overlap.
        strong_token_ratio: Overlap ratio at or above which the token boost applies.
        use_phonetic: Whether phonetic agreement is computed at all.
        use_metaphone_fallback: Whether Metaphone is tried when Soundex disagrees.
        min_phonetic_token_length: Tokens shorter than this never vote phonetically.
        non_identical_ceiling: Highest score a pair of differing names can reach.
    """

    phonetic_boost: float = Field(ge=0.0, le=1.0, default=0.10)
    token_boost: float = Field(ge=0.0, le=1.0, default=0.05)
    strong_token_ratio: float = Field(ge=0.0, le=1.0, default=0.70)
    use_phonetic: bool = True
    use_metaphone_fallback: bool = True
    min_phonetic_token_length: int = Field(ge=1, default=2)
    non_identical_ceiling: float = Field(ge=0.0, le=1.0, default=0.999)


class ClassificationThresholds(BaseModel):
    """Score thresholds (0-100 scale) separating match strength tiers.

    EXACT is reserved for a score of exactly 100.
    """

    high: float = Field(ge=0.0, le=100.0, default=85.0)
    medium: float = Field(ge=0.0, le=100.0, default=70.0)
    low: float = Field(ge=0.0, le=100.0, default=50.0)

    @model_validator(mode="after")
    def _check_order(self) -> "ClassificationThresholds":
        if not (self.low <= self.medium <= self.high < 100.0):
            raise ValueError("thresholds must satisfy low <= medium <= high < 100")
        return self


class PepRiskConfig(BaseModel):
    """Configuration for PEP risk assessment.

    Attributes:
        former_pep_months: Months after leaving office before decay applies.
        former_decay: Fraction by which a former PEP's risk score is reduced.
        base_scores: Active-position risk score per position level.
        high_tier_score: Minimum score for the HIGH tier.
        medium_tier_score: Minimum score for the MEDIUM tier.
        senior_keywords: Position keywords classifying as senior official.
        mid_level_keywords: Position keywords classifying as mid-level official.
        relationship_elevation_count: PEP connections above which risk is elevated.
    """

    former_pep_months: int = Field(ge=0, default=12)
    former_decay: float = Field(ge=0.0, le=1.0, default=0.40)
    base_scores: dict[PepPositionLevel, float] = Field(
        default_factory=lambda: {
            PepPositionLevel.SENIOR_OFFICIAL: 90.0,
            PepPositionLevel.MID_LEVEL_OFFICIAL: 60.0,
            PepPositionLevel.HONORARY: 30.0,
        }
    )
    high_tier_score: float = Field(ge=0.0, le=100.0, default=75.0)
    medium_tier_score: float = Field(ge=0.0, le=100.0, default=50.0)
    senior_keywords: tuple[str, ...] = (
        "president",
        "prime minister",
        "head of state",
        "head of government",
        "minister",
        "governor",
        "general",
        "admiral",
        "chief justice",
        "supreme court",
        "central bank",
        "king",
        "queen",
        "emir",
    )
    mid_level_keywords: tuple[str, ...] = (
        "director",
        "deputy",
        "assistant",
        "commissioner",
        "colonel",
        "ambassador",
        "mayor",
        "judge",
        "member of parliament",
        "senator",
    )
    relationship_elevation_count: int = Field(ge=1, default=2)


# =============================================================================
# Matching Models
# =============================================================================


class NormalizedName(BaseModel):
    """A name canonicalized for comparison.

    Attributes:
        original: The name as supplied.
        text: Canonical form, tokens joined by single spaces.
        tokens: Ordered token sequence.
    """

    model_config = ConfigDict(frozen=True)

    original: str
    text: str
    tokens: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        """Whether normalization left nothing to compare."""
        return not self.tokens


class ScoreBreakdown(BaseModel):
    """The independent signals behind a blended similarity score."""

    model_config = ConfigDict(frozen=True)

    edit_similarity: float = Field(ge=0.0, le=1.0)
    phonetic_agreement: bool = False
    token_overlap: float = Field(ge=0.0, le=1.0, default=0.0)
    strong_token_match: bool = False
    score: float = Field(ge=0.0, le=1.0)


class CorroborationFlags(BaseModel):
    """Agreement of identifying fields beyond the name."""

    model_config = ConfigDict(frozen=True)

    dob_match: bool = False
    document_match: bool = False

    @property
    def any(self) -> bool:
        """Whether any corroborating field agrees."""
        return self.dob_match or self.document_match


# =============================================================================
# Subjects and Candidates
# =============================================================================


class ScreeningSubject(BaseModel):
    """An identity to screen.

    Attributes:
        subject_id: Caller's identifier for the subject.
        full_name: Primary name.
        entity_type: Individual or organization.
        date_of_birth: Date of birth (individuals).
        nationality: Nationality or country of incorporation.
        aliases: Other known names.
        document_numbers: Passport, national ID or registration numbers.
    """

    model_config = ConfigDict(frozen=True)

    subject_id: str
    full_name: str
    entity_type: EntityType = EntityType.INDIVIDUAL
    date_of_birth: date | None = None
    nationality: str | None = None
    aliases: list[str] = Field(default_factory=list)
    document_numbers: list[str] = Field(default_factory=list)


class WatchlistCandidate(BaseModel):
    """A watchlist entry returned by the repository.

    Attributes:
        candidate_id: Identifier of the entry within its list.
        list_source: Which list the entry belongs to.
        name: Primary listed name.
        entity_type: Type of listed entity, when known.
        aliases: Alternate names.
        date_of_birth: Listed date of birth.
        nationality: Listed nationalities.
        document_numbers: Listed identification documents.
        programs: Sanctions programs the entry is listed under.
        remarks: Free-form remarks from the list publisher.
        metadata: Any further source-specific fields.
    """

    model_config = ConfigDict(frozen=True)

    candidate_id: str
    list_source: SanctionsList
    name: str
    entity_type: EntityType | None = None
    aliases: list[str] = Field(default_factory=list)
    date_of_birth: date | None = None
    nationality: list[str] = Field(default_factory=list)
    document_numbers: list[str] = Field(default_factory=list)
    programs: list[str] = Field(default_factory=list)
    remarks: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class SanctionsMatch(BaseModel):
    """One scored pairing of a subject against a watchlist candidate.

    Attributes:
        match_id: Unique identifier for this match.
        subject_id: Subject that was screened.
        list_source: List the candidate came from.
        candidate_id: Candidate identifier within the list.
        matched_name: Candidate name or alias that produced the best score.
        query_name: Subject name or alias that produced the best score.
        similarity_score: Blended similarity on a 0-100 scale.
        match_strength: Tier derived from the score.
        dob_match: Whether dates of birth agree exactly.
        document_match: Whether an identification document number is shared.
        signals: The component signals behind the score.
        programs: Sanctions programs of the candidate.
        matched_at: When the match was produced.
    """

    model_config = ConfigDict(frozen=True)

    match_id: UUID = Field(default_factory=uuid7)
    subject_id: str
    list_source: SanctionsList
    candidate_id: str
    matched_name: str
    query_name: str
    similarity_score: float = Field(ge=0.0, le=100.0)
    match_strength: MatchStrength
    dob_match: bool = False
    document_match: bool = False
    signals: ScoreBreakdown | None = None
    programs: list[str] = Field(default_factory=list)
    matched_at: datetime = Field(default_factory=_utcnow)

    @property
    def recommended_action(self) -> RecommendedAction:
        """Get the action recommended for this match."""
        return self.match_strength.recommended_action

    @property
    def is_corroborated(self) -> bool:
        """Whether any non-name identifier agrees."""
        return self.dob_match or self.document_match


# =============================================================================
# PEP Models
# =============================================================================


class RelatedPerson(BaseModel):
    """A relative or close associate linked to a PEP."""

    model_config = ConfigDict(frozen=True)

    name: str
    relationship: str
    pep_id: str | None = None


class PepProfile(BaseModel):
    """A politically exposed person record.

    Risk is never stored on the profile; it is derived with
    ``PepRiskAssessor.assess(profile, as_of)``.

    Attributes:
        pep_id: Identifier in the PEP registry.
        name: Name of the person.
        position: Position title as published.
        position_level: Explicit classification overriding keyword detection.
        category: FATF category.
        country: Country of the position (ISO 3166-1 alpha-2 where known).
        organization: Government body or organization.
        start_date: When the position was taken up.
        end_date: When the position ended; None while in office.
        related_persons: Relatives and close associates.
    """

    model_config = ConfigDict(frozen=True)

    pep_id: str
    name: str
    position: str = "Unknown"
    position_level: PepPositionLevel | None = None
    category: PepCategory = PepCategory.DOMESTIC
    country: str | None = None
    organization: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    related_persons: list[RelatedPerson] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        """Whether the person still holds the position."""
        return self.end_date is None


class EddRequirements(BaseModel):
    """Enhanced due diligence obligations derived from a PEP risk tier."""

    model_config = ConfigDict(frozen=True)

    senior_management_approval: bool = False
    source_of_wealth_verification: bool = False
    monitoring_frequency_days: int | None = None

    @property
    def required(self) -> bool:
        """Whether any enhanced measure applies."""
        return self.senior_management_approval or self.source_of_wealth_verification


class PepRiskAssessment(BaseModel):
    """Risk of a PEP profile as of a given instant."""

    model_config = ConfigDict(frozen=True)

    pep_id: str
    position_level: PepPositionLevel
    risk_tier: RiskTier
    risk_score: float = Field(ge=0.0, le=100.0)
    base_score: float = Field(ge=0.0, le=100.0)
    is_former: bool = False
    months_since_end: int | None = None
    edd: EddRequirements
    as_of: datetime


class PepMatch(BaseModel):
    """A PEP profile found for a subject."""

    model_config = ConfigDict(frozen=True)

    profile: PepProfile
    similarity_score: float = Field(ge=0.0, le=100.0)
    assessment: PepRiskAssessment
    related_to: str | None = None  # pep_id of the PEP this relative/associate links to

    @property
    def risk_tier(self) -> RiskTier:
        """Risk tier of the matched profile."""
        return self.assessment.risk_tier


# =============================================================================
# Screening Request and Result
# =============================================================================


class ScreeningOptions(BaseModel):
    """Per-call options for a screening.

    Attributes:
        include_aliases: Also screen the subject's aliases.
        include_pep: Run PEP screening alongside the watchlists.
        include_relatives: Expand matched PEPs to their relatives and associates.
        include_former_peps: Keep PEPs who have left office.
        min_pep_tier: Drop PEP matches below this risk tier.
        edd_completed: Whether enhanced due diligence is already satisfied.
        skip_unavailable_lists: Continue past an unreachable list instead of failing.
        min_report_strength: Weakest match strength recorded on the result.
        min_similarity_hint: Pre-filter hint for the repository (0-1).
        repository_timeout_seconds: Per-call repository timeout.
        as_of: Reference instant of the screening, recorded as screened_at and
            used for PEP decay; defaults to the current time.
    """

    model_config = ConfigDict(frozen=True)

    include_aliases: bool = True
    include_pep: bool = False
    include_relatives: bool = True
    include_former_peps: bool = True
    min_pep_tier: RiskTier = RiskTier.LOW
    edd_completed: bool = False
    skip_unavailable_lists: bool = False
    min_report_strength: MatchStrength = MatchStrength.LOW
    min_similarity_hint: float | None = Field(default=None, ge=0.0, le=1.0)
    repository_timeout_seconds: float | None = Field(default=None, gt=0.0)
    as_of: datetime | None = None

    @model_validator(mode="after")
    def _check_min_strength(self) -> "ScreeningOptions":
        if self.min_report_strength is MatchStrength.NONE:
            raise ValueError("min_report_strength must be LOW or above")
        return self


class ScreeningResult(BaseModel):
    """Aggregate result of screening one subject.

    Attributes:
        screening_id: Unique identifier for this screening.
        subject_id: Subject that was screened.
        subject_name: Primary name that was screened.
        lists_screened: Lists that were actually searched.
        unavailable_lists: Requested lists skipped because they were unreachable.
        matches: Sanctions matches, strongest first.
        pep_matches: PEP matches, riskiest first.
        overall_risk: Highest risk across all matches.
        requires_blocking: Whether any match is EXACT.
        requires_review: Whether compliance review is needed.
        screened_at: When the screening ran.
        duration_ms: How long the screening took.
    """

    model_config = ConfigDict(frozen=True)

    screening_id: UUID = Field(default_factory=uuid7)
    subject_id: str
    subject_name: str
    lists_screened: list[SanctionsList] = Field(default_factory=list)
    unavailable_lists: list[SanctionsList] = Field(default_factory=list)
    matches: list[SanctionsMatch] = Field(default_factory=list)
    pep_matches: list[PepMatch] = Field(default_factory=list)
    overall_risk: RiskTier = RiskTier.NONE
    requires_blocking: bool = False
    requires_review: bool = False
    screened_at: datetime = Field(default_factory=_utcnow)
    duration_ms: float = 0.0

    @model_validator(mode="after")
    def _check_blocking(self) -> "ScreeningResult":
        has_exact = any(m.match_strength is MatchStrength.EXACT for m in self.matches)
        if self.requires_blocking != has_exact:
            raise ValueError("requires_blocking must be set exactly when a match is EXACT")
        return self

    @property
    def has_matches(self) -> bool:
        """Whether any sanctions or PEP match was recorded."""
        return bool(self.matches or self.pep_matches)

    @property
    def highest_match_strength(self) -> MatchStrength:
        """Strongest sanctions match tier (NONE without matches)."""
        return max(
            (m.match_strength for m in self.matches),
            key=lambda s: s.rank,
            default=MatchStrength.NONE,
        )

    @property
    def disposition(self) -> Disposition:
        """Block, review or clear."""
        if self.requires_blocking:
            return Disposition.BLOCK
        if self.requires_review:
            return Disposition.REVIEW
        return Disposition.CLEAR

    @property
    def is_complete(self) -> bool:
        """Whether every requested list was searched."""
        return not self.unavailable_lists

    def get_matches_by_list(self, list_source: SanctionsList) -> list[SanctionsMatch]:
        """Get matches from a specific list."""
        return [m for m in self.matches if m.list_source == list_source]

    def get_matches_at_or_above(self, strength: MatchStrength) -> list[SanctionsMatch]:
        """Get matches at or above a strength tier."""
        return [m for m in self.matches if m.match_strength.at_least(strength)]


# =============================================================================
# Rescreening Models
# =============================================================================


class ScreeningSchedule(BaseModel):
    """Rescreening state for one subject.

    Attributes:
        subject_id: Subject to rescreen.
        frequency: Current cadence.
        status: State machine position.
        next_due: When the subject next becomes due.
        last_executed_at: When the last attempt ran.
        last_succeeded_at: When the last successful attempt ran.
        consecutive_failures: Failed attempts since the last success.
        execution_count: Total attempts.
        lists: Lists to screen; empty means the scheduler default.
        last_error: Message of the last failure.
        last_risk_tier: Overall risk of the last successful screening.
        execution_id: Claim token of the executor currently running the subject.
        claimed_at: When the current claim was taken.
        version: Optimistic concurrency version, bumped on every write.
        scheduled_at: When the schedule was created.
        metadata: Caller-supplied data.
    """

    subject_id: str
    frequency: ScreeningFrequency
    status: ScheduleStatus = ScheduleStatus.SCHEDULED
    next_due: datetime
    last_executed_at: datetime | None = None
    last_succeeded_at: datetime | None = None
    consecutive_failures: int = Field(ge=0, default=0)
    execution_count: int = Field(ge=0, default=0)
    lists: list[SanctionsList] = Field(default_factory=list)
    last_error: str | None = None
    last_risk_tier: RiskTier | None = None
    execution_id: UUID | None = None
    claimed_at: datetime | None = None
    version: int = Field(ge=0, default=0)
    scheduled_at: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_due_order(self) -> "ScreeningSchedule":
        if self.last_executed_at is not None and self.next_due < self.last_executed_at:
            raise ValueError("next_due must not precede last_executed_at")
        return self

    def is_due(self, as_of: datetime) -> bool:
        """Whether the schedule is selectable for execution at as_of."""
        return (
            self.status in (ScheduleStatus.SCHEDULED, ScheduleStatus.FAILED)
            and self.next_due <= as_of
        )


class BatchExecutionSummary(BaseModel):
    """Outcome of one execute_due run.

    Attributes:
        as_of: Reference instant of the run.
        total_due: Schedules selected as due.
        executed: Schedules claimed and screened.
        succeeded: Screenings that completed.
        failed: Screenings that failed.
        retry_scheduled: Failures rescheduled with backoff.
        manual_attention: Failures flagged for manual attention.
        skipped: Due schedules claimed by another executor or changed mid-run.
        not_started: Due schedules left untouched because of cancellation.
        cancelled: Whether cancellation was requested during the run.
        results: Screening results keyed by subject_id.
        errors: Failure messages keyed by subject_id.
        duration_seconds: Wall-clock duration of the run.
    """

    as_of: datetime
    total_due: int = 0
    executed: int = 0
    succeeded: int = 0
    failed: int = 0
    retry_scheduled: int = 0
    manual_attention: int = 0
    skipped: int = 0
    not_started: int = 0
    cancelled: bool = False
    results: dict[str, ScreeningResult] = Field(default_factory=dict)
    errors: dict[str, str] = Field(default_factory=dict)
    duration_seconds: float = 0.0


class BulkScheduleSummary(BaseModel):
    """Outcome of scheduling many subjects at once."""

    total: int = 0
    scheduled: int = 0
    failed: int = 0
    errors: dict[str, str] = Field(default_factory=dict)


# =============================================================================
# Exceptions
# =============================================================================


class ScreeningError(ScreenguardError):
    """Base exception for screening errors.

    Attributes:
        message: Human-readable message.
        code: Machine-readable error code.
        details: Additional error context.
        retryable: Whether retrying the same request may succeed.
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: str = "SCREENING_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class InvalidSubjectError(ScreeningError):
    """Raised when a subject lacks required identity fields."""

    def __init__(self, subject_id: str, errors: list[str]) -> None:
        super().__init__(
            f"Invalid subject {subject_id or '<missing id>'}: {'; '.join(errors)}",
            code="INVALID_SUBJECT",
            details={"subject_id": subject_id, "errors": errors},
        )
        self.subject_id = subject_id
        self.errors = errors


class RepositoryUnavailableError(ScreeningError):
    """Raised when the watchlist repository fails transiently or times out."""

    retryable = True

    def __init__(
        self,
        operation: str,
        reason: str,
        list_source: SanctionsList | None = None,
    ) -> None:
        super().__init__(
            f"Repository call {operation} failed: {reason}",
            code="REPOSITORY_UNAVAILABLE",
            details={
                "operation": operation,
                "reason": reason,
                "list_source": list_source.value if list_source else None,
            },
        )
        self.operation = operation
        self.reason = reason
        self.list_source = list_source


class ListUnavailableError(ScreeningError):
    """Raised when a specific watchlist source is unreachable."""

    retryable = True

    def __init__(self, list_source: SanctionsList, reason: str) -> None:
        super().__init__(
            f"Sanctions list {list_source.value} unavailable: {reason}",
            code="LIST_UNAVAILABLE",
            details={"list_source": list_source.value, "reason": reason},
        )
        self.list_source = list_source
        self.reason = reason


class ScreeningExecutionError(ScreeningError):
    """Raised when screening fails for an unexpected reason."""

    retryable = True

    def __init__(self, subject_id: str, reason: str) -> None:
        super().__init__(
            f"Screening of {subject_id} failed: {reason}",
            code="EXECUTION_ERROR",
            details={"subject_id": subject_id, "reason": reason},
        )
        self.subject_id = subject_id
        self.reason = reason


class ScheduleNotFoundError(ScreeningError):
    """Raised when no rescreening schedule exists for a subject."""

    def __init__(self, subject_id: str) -> None:
        super().__init__(
            f"No screening schedule for subject {subject_id}",
            code="SCHEDULE_NOT_FOUND",
            details={"subject_id": subject_id},
        )
        self.subject_id = subject_id


class ScheduleConflictError(ScreeningError):
    """Raised by a schedule store when a versioned write loses a race."""

    retryable = True

    def __init__(self, subject_id: str, expected_version: int) -> None:
        super().__init__(
            f"Schedule for {subject_id} changed since version {expected_version}",
            code="SCHEDULE_CONFLICT",
            details={"subject_id": subject_id, "expected_version": expected_version},
        )
        self.subject_id = subject_id
        self.expected_version = expected_version
