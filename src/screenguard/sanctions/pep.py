"""Politically exposed person risk assessment.

Risk is derived from the position held, decayed for people who left
office more than the configured number of months before the reference
instant, and mapped to enhanced due diligence obligations. Every
computation takes an explicit ``as_of`` so results are reproducible.
"""

import re
from datetime import date, datetime

from screenguard.core.logging import get_logger

from .types import (
    EddRequirements,
    PepPositionLevel,
    PepProfile,
    PepRiskAssessment,
    PepRiskConfig,
    RiskTier,
    ScreeningFrequency,
)

logger = get_logger(__name__)

_LEVEL_TIER = {
    PepPositionLevel.SENIOR_OFFICIAL: RiskTier.HIGH,
    PepPositionLevel.MID_LEVEL_OFFICIAL: RiskTier.MEDIUM,
    PepPositionLevel.HONORARY: RiskTier.LOW,
}

_EDD_BY_TIER = {
    RiskTier.CRITICAL: EddRequirements(
        senior_management_approval=True,
        source_of_wealth_verification=True,
        monitoring_frequency_days=30,
    ),
    RiskTier.HIGH: EddRequirements(
        senior_management_approval=True,
        source_of_wealth_verification=True,
        monitoring_frequency_days=30,
    ),
    RiskTier.MEDIUM: EddRequirements(
        senior_management_approval=True,
        monitoring_frequency_days=90,
    ),
    RiskTier.LOW: EddRequirements(monitoring_frequency_days=365),
    RiskTier.NONE: EddRequirements(),
}


def months_between(start: date, end: date) -> int:
    """Count whole calendar months from start to end.

    A month only counts once its day of month has been reached, so
    2024-03-31 to 2024-04-30 is zero months. Negative when end precedes
    start.
    """
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if months > 0 and end.day < start.day:
        months -= 1
    elif months < 0 and end.day > start.day:
        months += 1
    return months


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


class PepRiskAssessor:
    """Computes the risk of a PEP profile at a given instant.

    Usage:
        assessor = PepRiskAssessor()
        assessment = assessor.assess(profile, as_of=datetime.now(UTC))

        if assessment.edd.senior_management_approval:
            ...
    """

    def __init__(self, config: PepRiskConfig | None = None) -> None:
        """Initialize the assessor.

        Args:
            config: Optional PEP risk configuration.
        """
        self._config = config or PepRiskConfig()
        self._senior = self._compile(self._config.senior_keywords)
        self._mid_level = self._compile(self._config.mid_level_keywords)

    @property
    def config(self) -> PepRiskConfig:
        """Get the PEP risk configuration."""
        return self._config

    def classify_position(self, profile: PepProfile) -> PepPositionLevel:
        """Classify the position a PEP holds or held.

        An explicit ``position_level`` on the profile wins. Otherwise
        senior keywords are checked before mid-level ones and anything
        unrecognized, including honorary and ceremonial posts, is
        classified as honorary.
        """
        if profile.position_level is not None:
            return profile.position_level

        position = profile.position.casefold()
        if self._senior.search(position):
            return PepPositionLevel.SENIOR_OFFICIAL
        if self._mid_level.search(position):
            return PepPositionLevel.MID_LEVEL_OFFICIAL
        return PepPositionLevel.HONORARY

    def assess(self, profile: PepProfile, as_of: datetime) -> PepRiskAssessment:
        """Assess a PEP profile.

        Args:
            profile: The PEP record.
            as_of: Reference instant for former-PEP decay.

        Returns:
            The risk assessment with its EDD obligations.
        """
        level = self.classify_position(profile)
        base_score = self._config.base_scores[level]

        months_since_end: int | None = None
        is_former = False
        if profile.end_date is not None:
            months_since_end = months_between(profile.end_date, _as_date(as_of))
            is_former = months_since_end > self._config.former_pep_months

        if is_former:
            risk_score = round(base_score * (1.0 - self._config.former_decay), 2)
            tier = self._tier_from_score(risk_score)
        else:
            risk_score = base_score
            tier = _LEVEL_TIER[level]

        assessment = PepRiskAssessment(
            pep_id=profile.pep_id,
            position_level=level,
            risk_tier=tier,
            risk_score=risk_score,
            base_score=base_score,
            is_former=is_former,
            months_since_end=months_since_end,
            edd=self.edd_requirements(tier),
            as_of=as_of,
        )

        logger.debug(
            "pep_risk_assessed",
            pep_id=profile.pep_id,
            position_level=level.value,
            risk_tier=tier.value,
            risk_score=risk_score,
            is_former=is_former,
        )

        return assessment

    def assess_overall(self, profiles: list[PepProfile], as_of: datetime) -> RiskTier:
        """Combine several PEP connections into one risk tier.

        The highest individual tier is taken and elevated one step
        (LOW to MEDIUM, MEDIUM to HIGH) when the subject has more PEP
        connections than the configured count.

        Args:
            profiles: PEP profiles connected to one subject.
            as_of: Reference instant for former-PEP decay.

        Returns:
            The overall PEP risk tier (NONE without profiles).
        """
        if not profiles:
            return RiskTier.NONE

        tier = RiskTier.highest([self.assess(p, as_of).risk_tier for p in profiles])

        if len(profiles) > self._config.relationship_elevation_count and tier in (
            RiskTier.LOW,
            RiskTier.MEDIUM,
        ):
            elevated = tier.elevate()
            logger.info(
                "pep_risk_elevated",
                connections=len(profiles),
                from_tier=tier.value,
                to_tier=elevated.value,
            )
            return elevated

        return tier

    def edd_requirements(self, tier: RiskTier) -> EddRequirements:
        """Look up the enhanced due diligence obligations for a tier."""
        return _EDD_BY_TIER[tier]

    def meets_min_tier(self, assessment: PepRiskAssessment, min_tier: RiskTier) -> bool:
        """Check whether an assessment is at or above a minimum tier."""
        return assessment.risk_tier.rank >= min_tier.rank

    def monitoring_frequency(self, tier: RiskTier) -> ScreeningFrequency:
        """Get the ongoing monitoring frequency for a PEP tier."""
        return ScreeningFrequency.from_pep_tier(tier)

    def _tier_from_score(self, score: float) -> RiskTier:
        # Decayed scores never fall below LOW
        if score >= self._config.high_tier_score:
            return RiskTier.HIGH
        if score >= self._config.medium_tier_score:
            return RiskTier.MEDIUM
        return RiskTier.LOW

    @staticmethod
    def _compile(keywords: tuple[str, ...]) -> re.Pattern[str]:
        if not keywords:
            return re.compile(r"(?!x)x")
        alternatives = "|".join(re.escape(k.casefold()) for k in keywords)
        return re.compile(rf"\b(?:{alternatives})\b")


# Factory function
def create_pep_risk_assessor(config: PepRiskConfig | None = None) -> PepRiskAssessor:
    """Create a new PEP risk assessor.

    Args:
        config: Optional configuration.

    Returns:
        A new PepRiskAssessor instance.
    """
    return PepRiskAssessor(config)
