# src/markup_auditor/model.py
import hashlib
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from markup_auditor.dom.core import Element
    from markup_auditor.dom.models import StyleRule


class Severity(str, Enum):
    """
    Finding severity. Declaration order is the fixed ordering used for sorting
    (critical first), and each member carries a default scoring weight.
    """
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        return list(Severity).index(self)

    @property
    def default_weight(self) -> float:
        return DEFAULT_SEVERITY_WEIGHTS[self]

    def escalate_to(self, other: "Severity") -> "Severity":
        """Returns whichever of the two severities is more severe."""
        return self if self.rank <= other.rank else other


DEFAULT_SEVERITY_WEIGHTS: Dict[Severity, float] = {
    Severity.CRITICAL: 4.0,
    Severity.HIGH: 2.0,
    Severity.MEDIUM: 1.0,
    Severity.LOW: 0.5,
    Severity.INFO: 0.0,
}


class Category(str, Enum):
    """Audit dimensions. Declaration order is the registry (report) order."""
    SEMANTICS = "semantics"
    ACCESSIBILITY = "accessibility"
    RESPONSIVENESS = "responsiveness"
    NAMING = "naming"
    FORMS = "forms"
    INTERACTIONS = "interactions"
    ASSETS = "assets"
    FILE_STRUCTURE = "file-structure"

    @property
    def order(self) -> int:
        return list(Category).index(self)


class SourceLocation(BaseModel):
    """A 1-based line/column position inside a named source artifact."""
    model_config = ConfigDict(frozen=True)

    path: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.column}"

    @property
    def sort_key(self) -> Tuple[str, int, int]:
        return self.path, self.line, self.column


class AnchorKind(str, Enum):
    DOCUMENT = "document"
    ELEMENT = "element"
    STYLE_RULE = "style_rule"


class Anchor(BaseModel):
    """
    Non-owning reference from a finding back into the structural model.
    Only ids, paths and positions are stored, never the model objects.
    """
    model_config = ConfigDict(frozen=True)

    kind: AnchorKind
    ref: Optional[int] = None
    path: str
    label: str = ""
    location: Optional[SourceLocation] = None

    @classmethod
    def document(cls, doc_path: str) -> "Anchor":
        return cls(kind=AnchorKind.DOCUMENT, path=doc_path, label="document")

    @classmethod
    def element(cls, el: "Element") -> "Anchor":
        return cls(
            kind=AnchorKind.ELEMENT,
            ref=el.node_id,
            path=el.path,
            label=f"<{el.tag}>",
            location=el.location,
        )

    @classmethod
    def style_rule(cls, rule: "StyleRule") -> "Anchor":
        return cls(
            kind=AnchorKind.STYLE_RULE,
            ref=rule.rule_id,
            path=f"{rule.sheet}::{rule.selector}",
            label=rule.selector,
            location=rule.location,
        )

    @property
    def identity(self) -> Tuple[str, str, int, int]:
        line, column = (self.location.line, self.location.column) if self.location else (0, 0)
        return self.kind.value, self.path, line, column

    @property
    def sort_key(self) -> Tuple[int, str, int, int]:
        # Document-level anchors sort ahead of positioned ones.
        if self.location is None:
            return 0, self.path, 0, 0
        return (1,) + self.location.sort_key


class FindingKind(str, Enum):
    FINDING = "finding"
    EVALUATION_ERROR = "evaluation_error"


class RawFinding(BaseModel):
    """Unclassified output of a single rule evaluation."""
    rule_key: str
    anchors: List[Anchor] = Field(min_length=1)
    message_template: str
    params: Dict[str, Any] = Field(default_factory=dict)
    severity: Optional[Severity] = None  # explicit override of the rule default
    kind: FindingKind = FindingKind.FINDING

    @property
    def message(self) -> str:
        return self.message_template.format(**self.params)


def compute_finding_id(rule_key: str, anchors) -> str:
    """Stable identity over the rule key and the anchor identities."""
    digest = hashlib.sha1(rule_key.encode("utf-8"))
    for anchor in anchors:
        digest.update(b"\x1f")
        digest.update("|".join(str(part) for part in anchor.identity).encode("utf-8"))
    return digest.hexdigest()[:16]


class ClassifiedFinding(BaseModel):
    model_config = ConfigDict(frozen=True)

    finding_id: str
    rule_key: str
    category: Category
    severity: Severity
    kind: FindingKind = FindingKind.FINDING
    anchors: Tuple[Anchor, ...]
    message: str

    @property
    def dedup_key(self) -> Tuple[str, Tuple[Tuple[str, str, int, int], ...]]:
        return self.rule_key, tuple(a.identity for a in self.anchors)

    @property
    def sort_key(self) -> Tuple:
        return (
            self.category.order,
            self.severity.rank,
            self.anchors[0].sort_key,
            self.rule_key,
            self.finding_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.finding_id,
            "rule": self.rule_key,
            "category": self.category.value,
            "severity": self.severity.value,
            "kind": self.kind.value,
            "message": self.message,
            "anchors": [
                {
                    "kind": a.kind.value,
                    "path": a.path,
                    "label": a.label,
                    "location": a.location.model_dump() if a.location else None,
                }
                for a in self.anchors
            ],
        }


class ScoreCard(BaseModel):
    """Immutable result of scoring one classified-finding set."""
    model_config = ConfigDict(frozen=True)

    category_scores: Dict[Category, float]
    overall_score: float
    severity_counts: Dict[Severity, int]
    category_counts: Dict[Category, int]

    def has_critical(self) -> bool:
        """Pure query for CI gating: is there at least one critical finding?"""
        return self.severity_counts.get(Severity.CRITICAL, 0) > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_score": self.overall_score,
            "category_scores": {c.value: s for c, s in self.category_scores.items()},
            "severity_counts": {s.value: n for s, n in self.severity_counts.items()},
            "category_counts": {c.value: n for c, n in self.category_counts.items()},
        }


class AuditReport(BaseModel):
    """Output boundary: ordered findings plus the score card of one audit run."""
    model_config = ConfigDict(frozen=True)

    document: str
    findings: Tuple[ClassifiedFinding, ...]
    score_card: ScoreCard

    def has_critical(self) -> bool:
        return self.score_card.has_critical()

    def findings_by_category(self) -> Dict[Category, List[ClassifiedFinding]]:
        grouped: Dict[Category, List[ClassifiedFinding]] = {c: [] for c in self.score_card.category_scores}
        for finding in self.findings:
            grouped.setdefault(finding.category, []).append(finding)
        return grouped

    def to_dict(self) -> Dict[str, Any]:
        card = self.score_card
        return {
            "document": self.document,
            "overall_score": card.overall_score,
            "severity_counts": {s.value: n for s, n in card.severity_counts.items()},
            "categories": {
                category.value: {
                    "score": card.category_scores[category],
                    "findings": [f.to_dict() for f in findings],
                }
                for category, findings in self.findings_by_category().items()
            },
        }
