# tests/auditor/test_scoring.py
import pytest

from markup_auditor.exceptions import ConfigurationError
from markup_auditor.managers.config_manager import config_manager
from markup_auditor.model import Anchor, Category, ClassifiedFinding, Severity, compute_finding_id
from markup_auditor.services.scoring_service import ScoreAggregator, ScoringPolicy, round_half_up


def _findings(category, severity, count, start=0):
    findings = []
    for i in range(start, start + count):
        anchor = Anchor.document(f"doc-{i}.html")
        findings.append(ClassifiedFinding(
            finding_id=compute_finding_id(f"rule-{i}", [anchor]),
            rule_key=f"rule-{i}",
            category=category,
            severity=severity,
            anchors=(anchor,),
            message="x",
        ))
    return findings


@pytest.fixture
def aggregator():
    """Een aggregator met het standaardbeleid, los van de instellingen."""
    return ScoreAggregator(ScoringPolicy())


@pytest.fixture
def restore_config():
    """Zet de globale configuratie na de test terug."""
    yield config_manager
    config_manager.reset()


def test_no_findings_is_perfect_score(aggregator):
    card = aggregator.score([])
    assert card.overall_score == 10.0
    assert list(card.category_scores) == list(Category)
    assert all(score == 10.0 for score in card.category_scores.values())
    assert card.has_critical() is False
    assert all(n == 0 for n in card.severity_counts.values())


def test_category_score_formula(aggregator):
    """Twee high findings (2 x 2) op normalisatie 10 geven 6.0; het totaal is het gemiddelde."""
    card = aggregator.score(_findings(Category.ACCESSIBILITY, Severity.HIGH, 2))
    assert card.category_scores[Category.ACCESSIBILITY] == 6.0
    assert card.overall_score == 9.5
    assert card.category_counts[Category.ACCESSIBILITY] == 2
    assert card.severity_counts[Severity.HIGH] == 2


def test_category_score_never_negative(aggregator):
    card = aggregator.score(_findings(Category.FORMS, Severity.CRITICAL, 3))
    assert card.category_scores[Category.FORMS] == 0.0
    assert card.has_critical() is True


def test_info_findings_cost_nothing(aggregator):
    card = aggregator.score(_findings(Category.NAMING, Severity.INFO, 5))
    assert card.category_scores[Category.NAMING] == 10.0


def test_adding_critical_never_increases_score(aggregator):
    """Monotonie: elke extra kritieke finding laat de score gelijk of lager."""
    findings = _findings(Category.INTERACTIONS, Severity.LOW, 1)
    previous = aggregator.score(findings).category_scores[Category.INTERACTIONS]
    for i in range(1, 6):
        findings = findings + _findings(Category.INTERACTIONS, Severity.CRITICAL, 1, start=i)
        current = aggregator.score(findings).category_scores[Category.INTERACTIONS]
        assert current <= previous
        previous = current


def test_scoring_is_deterministic(aggregator):
    findings = _findings(Category.ASSETS, Severity.MEDIUM, 3) + _findings(Category.NAMING, Severity.LOW, 2, start=3)
    assert aggregator.score(findings) == aggregator.score(list(reversed(findings)))


@pytest.mark.parametrize("value, expected", [
    (7.25, 7.3),
    (7.35, 7.4),
    (0.05, 0.1),
    (9.94, 9.9),
    (10.0, 10.0),
])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_category_weights(aggregator):
    """Het totaal is een gewogen gemiddelde van de categoriescores."""
    policy = ScoringPolicy(category_weights={Category.ACCESSIBILITY: 3.0})
    card = ScoreAggregator(policy).score(_findings(Category.ACCESSIBILITY, Severity.HIGH, 2))
    assert card.overall_score == 8.8


def test_normalization_per_category():
    policy = ScoringPolicy(normalization={Category.FORMS: 20.0})
    card = ScoreAggregator(policy).score(_findings(Category.FORMS, Severity.CRITICAL, 1))
    assert card.category_scores[Category.FORMS] == 8.0


@pytest.mark.parametrize("policy", [
    ScoringPolicy(normalization={Category.FORMS: 0.0}),
    ScoringPolicy(severity_weights={Severity.HIGH: -1.0}),
    ScoringPolicy(category_weights={Category.NAMING: -2.0}),
    ScoringPolicy(default_category_weight=0.0),
])
def test_invalid_policy_raises(policy):
    with pytest.raises(ConfigurationError):
        ScoreAggregator(policy)


def test_policy_from_settings(restore_config):
    """Gewichten komen uit de instellingen en kunnen worden overschreven."""
    assert ScoringPolicy.from_settings().weight_of(Severity.HIGH) == 2.0

    restore_config.set_nested("scoring.severity_weights.high", "3")
    restore_config.set_nested("scoring.normalization.forms", 20)
    policy = ScoringPolicy.from_settings()
    assert policy.weight_of(Severity.HIGH) == 3.0
    assert policy.normalization_for(Category.FORMS) == 20.0
    assert policy.normalization_for(Category.NAMING) == 10.0


def test_policy_from_settings_rejects_unknown_keys(restore_config):
    restore_config.set_nested("scoring.severity_weights.urgent", 9)
    with pytest.raises(ConfigurationError):
        ScoringPolicy.from_settings()
