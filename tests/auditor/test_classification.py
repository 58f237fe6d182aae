# tests/auditor/test_classification.py
import pytest

from markup_auditor.exceptions import ConfigurationError
from markup_auditor.model import (
    Anchor,
    AnchorKind,
    Category,
    RawFinding,
    Severity,
    SourceLocation,
    compute_finding_id,
)
from markup_auditor.services.classification_service import FindingClassifier

DOC = Anchor.document("index.html")


def _element_anchor(line, node_id=3):
    return Anchor(
        kind=AnchorKind.ELEMENT,
        ref=node_id,
        path=f"html>body>img[{node_id}]",
        label="<img>",
        location=SourceLocation(path="index.html", line=line, column=1),
    )


def _raw(rule_key, anchor=DOC, severity=None, message="Bericht"):
    return RawFinding(rule_key=rule_key, anchors=[anchor], message_template=message, severity=severity)


@pytest.fixture
def classifier():
    return FindingClassifier()


def test_classifier_resolves_default_and_override(classifier):
    """Zonder override geldt de standaard-ernst van de regel."""
    default = classifier.resolve(_raw("missing-alt", _element_anchor(4)))
    escalated = classifier.resolve(_raw("missing-alt", _element_anchor(4), severity=Severity.CRITICAL))
    assert default.severity == Severity.HIGH
    assert default.category == Category.ACCESSIBILITY
    assert escalated.severity == Severity.CRITICAL


def test_classifier_unknown_rule(classifier):
    with pytest.raises(ConfigurationError):
        classifier.resolve(_raw("bestaat-niet"))


def test_classifier_collapses_duplicates_keeping_most_severe(classifier):
    """Dubbele findings worden één; de zwaarste ernst en het eerste bericht blijven."""
    anchor = _element_anchor(4)
    findings = classifier.classify([
        _raw("missing-alt", anchor, message="Eerste"),
        _raw("missing-alt", anchor, severity=Severity.CRITICAL, message="Tweede"),
    ])
    assert len(findings) == 1
    assert findings[0].severity == Severity.CRITICAL
    assert findings[0].message == "Eerste"


def test_classifier_ordering(classifier):
    """Categorie (registry-volgorde), dan ernst, dan bronlocatie."""
    findings = classifier.classify([
        _raw("inline-style-attribute", _element_anchor(2)),
        _raw("missing-alt", _element_anchor(9, node_id=9)),
        _raw("missing-alt", _element_anchor(3, node_id=5)),
        _raw("missing-doctype"),
        _raw("missing-h1"),
    ])
    assert [(f.rule_key, f.anchors[0].location.line if f.anchors[0].location else None) for f in findings] == [
        ("missing-h1", None),
        ("missing-doctype", None),
        ("missing-alt", 3),
        ("missing-alt", 9),
        ("inline-style-attribute", 2),
    ]


def test_deduplicate_is_a_fixed_point(classifier):
    """Twee keer dedupliceren verandert niets meer."""
    anchor = _element_anchor(4)
    once = classifier.classify([
        _raw("missing-alt", anchor),
        _raw("missing-alt", anchor, severity=Severity.CRITICAL),
        _raw("missing-h1"),
        _raw("missing-h1"),
        _raw("multiple-h1", _element_anchor(7)),
    ])
    twice = FindingClassifier.deduplicate(once)
    assert twice == once
    assert len(once) == 3


def test_finding_id_is_stable(classifier):
    """De identiteit hangt alleen af van regel en ankers."""
    anchor = _element_anchor(4)
    finding = classifier.resolve(_raw("missing-alt", anchor, message="Wat dan ook"))
    assert finding.finding_id == compute_finding_id("missing-alt", [anchor])
    assert len(finding.finding_id) == 16
    assert finding.finding_id != compute_finding_id("missing-src", [anchor])
