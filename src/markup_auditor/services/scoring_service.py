# src/markup_auditor/services/scoring_service.py
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from markup_auditor.exceptions import ConfigurationError
from markup_auditor.managers.config_manager import ConfigManager, config_manager
from markup_auditor.model import DEFAULT_SEVERITY_WEIGHTS, Category, ClassifiedFinding, ScoreCard, Severity

logger = logging.getLogger(__name__)

MAX_SCORE = 10.0


def round_half_up(value: float, places: str = "0.1") -> float:
    """Rounds to one decimal, halves away from zero (7.25 -> 7.3)."""
    return float(Decimal(repr(value)).quantize(Decimal(places), rounding=ROUND_HALF_UP))


def clamp(value: float, low: float = 0.0, high: float = MAX_SCORE) -> float:
    return max(low, min(high, value))


def _parse_enum_map(raw: Dict, enum_cls, section: str, skip=("default",)) -> Dict:
    parsed = {}
    for key, value in (raw or {}).items():
        if key in skip:
            continue
        try:
            parsed[enum_cls(key)] = float(value)
        except ValueError as e:
            raise ConfigurationError(f"Invalid entry '{key}: {value}' in scoring.{section}") from e
    return parsed


class ScoringPolicy(BaseModel):
    """
    Weights used by the ScoreAggregator. Severity weights are configurable
    on purpose: the defaults are a reasonable policy, not a fixed truth.
    """
    model_config = ConfigDict(frozen=True)

    severity_weights: Dict[Severity, float] = Field(default_factory=lambda: dict(DEFAULT_SEVERITY_WEIGHTS))
    normalization: Dict[Category, float] = Field(default_factory=dict)
    default_normalization: float = 10.0
    category_weights: Dict[Category, float] = Field(default_factory=dict)
    default_category_weight: float = 1.0

    @classmethod
    def from_settings(cls, config: Optional[ConfigManager] = None) -> "ScoringPolicy":
        config = config or config_manager
        weights = dict(DEFAULT_SEVERITY_WEIGHTS)
        weights.update(_parse_enum_map(config.get_nested("scoring.severity_weights", {}), Severity, "severity_weights"))
        normalization = config.get_nested("scoring.normalization", {})
        category_weights = config.get_nested("scoring.category_weights", {})
        return cls(
            severity_weights=weights,
            normalization=_parse_enum_map(normalization, Category, "normalization"),
            default_normalization=float(normalization.get("default", 10.0)),
            category_weights=_parse_enum_map(category_weights, Category, "category_weights"),
            default_category_weight=float(category_weights.get("default", 1.0)),
        )

    def weight_of(self, severity: Severity) -> float:
        return self.severity_weights.get(severity, severity.default_weight)

    def normalization_for(self, category: Category) -> float:
        return self.normalization.get(category, self.default_normalization)

    def category_weight(self, category: Category) -> float:
        return self.category_weights.get(category, self.default_category_weight)

    def validate_policy(self) -> None:
        if any(w < 0 for w in self.severity_weights.values()):
            raise ConfigurationError("Severity weights must not be negative")
        for category in Category:
            if self.normalization_for(category) <= 0:
                raise ConfigurationError(f"Normalization for '{category.value}' must be positive")
            if self.category_weight(category) < 0:
                raise ConfigurationError(f"Category weight for '{category.value}' must not be negative")
        if sum(self.category_weight(c) for c in Category) <= 0:
            raise ConfigurationError("At least one category weight must be positive")


class ScoreAggregator:
    """
    Computes per-category and overall scores from classified findings.

    category score = 10 * (1 - min(1, weighted_deductions / normalization))
    overall score  = weighted mean of the unrounded category scores

    Every score is clamped to [0, 10] and rounded half-up to one decimal.
    Identical finding sets always produce identical ScoreCards.
    """

    def __init__(self, policy: Optional[ScoringPolicy] = None):
        self.policy = policy or ScoringPolicy.from_settings()
        self.policy.validate_policy()

    def category_score(self, deductions: float, category: Category) -> float:
        ratio = min(1.0, deductions / self.policy.normalization_for(category))
        return clamp(MAX_SCORE * (1.0 - ratio))

    def score(self, findings: Iterable[ClassifiedFinding]) -> ScoreCard:
        findings = list(findings)
        deductions: Dict[Category, float] = {c: 0.0 for c in Category}
        category_counts: Dict[Category, int] = {c: 0 for c in Category}
        severity_counts: Dict[Severity, int] = {s: 0 for s in Severity}

        for finding in findings:
            deductions[finding.category] += self.policy.weight_of(finding.severity)
            category_counts[finding.category] += 1
            severity_counts[finding.severity] += 1

        raw_scores = {c: self.category_score(deductions[c], c) for c in Category}

        total_weight = sum(self.policy.category_weight(c) for c in Category)
        overall = sum(raw_scores[c] * self.policy.category_weight(c) for c in Category) / total_weight

        card = ScoreCard(
            category_scores={c: round_half_up(clamp(s)) for c, s in raw_scores.items()},
            overall_score=round_half_up(clamp(overall)),
            severity_counts=severity_counts,
            category_counts=category_counts,
        )
        logger.debug("Scored %d findings: overall %.1f", len(findings), card.overall_score)
        return card
