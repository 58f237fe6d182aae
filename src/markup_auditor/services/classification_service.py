# src/markup_auditor/services/classification_service.py
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from markup_auditor.dom.registry import RuleRegistry, get_default_registry
from markup_auditor.exceptions import ConfigurationError
from markup_auditor.model import ClassifiedFinding, RawFinding, compute_finding_id

logger = logging.getLogger(__name__)


class FindingClassifier:
    """
    Turns raw rule output into the final, ordered finding list.

    Severity resolves to the rule's declared default unless the evaluation
    overrode it. Findings sharing (rule key, anchor identity) collapse into
    one, keeping the most severe resolved severity. Output is sorted by
    category (registry order), severity (critical first), then location.
    """

    def __init__(self, registry: Optional[RuleRegistry] = None):
        self.registry = registry or get_default_registry()

    def resolve(self, raw: RawFinding) -> ClassifiedFinding:
        rule = self.registry.get(raw.rule_key)
        if rule is None:
            raise ConfigurationError(f"Finding references unknown rule '{raw.rule_key}'")
        return ClassifiedFinding(
            finding_id=compute_finding_id(raw.rule_key, raw.anchors),
            rule_key=raw.rule_key,
            category=rule.category,
            severity=raw.severity or rule.severity,
            kind=raw.kind,
            anchors=tuple(raw.anchors),
            message=raw.message,
        )

    @staticmethod
    def deduplicate(findings: Iterable[ClassifiedFinding]) -> List[ClassifiedFinding]:
        """Collapses duplicates and sorts. Applying it to its own output changes nothing."""
        merged: Dict[Tuple, ClassifiedFinding] = {}
        for finding in findings:
            key = finding.dedup_key
            existing = merged.get(key)
            if existing is None:
                merged[key] = finding
            elif finding.severity.rank < existing.severity.rank:
                merged[key] = existing.model_copy(update={"severity": finding.severity})
        return sorted(merged.values(), key=lambda f: f.sort_key)

    def classify(self, raw_findings: Iterable[RawFinding]) -> List[ClassifiedFinding]:
        raw_list = list(raw_findings)
        classified = self.deduplicate(self.resolve(raw) for raw in raw_list)
        if len(classified) != len(raw_list):
            logger.debug("Collapsed %d duplicate finding(s)", len(raw_list) - len(classified))
        return classified
