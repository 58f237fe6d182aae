# src/markup_auditor/dom/qngine.py
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from markup_auditor.exceptions import AuditCancelled, EvaluationError
from markup_auditor.managers.config_manager import config_manager
from markup_auditor.model import FindingKind, RawFinding, Severity
from .core import Rule
from .models import StructuralModel
from .registry import RuleRegistry, get_default_registry

logger = logging.getLogger(__name__)


class QNGINE:
    """
    Quality Engine (QNGINE) for auditing a StructuralModel.

    Every registered rule is evaluated exactly once against the read-only
    model. Rules fan out over a thread pool; their private result lists are
    merged at the barrier in registry order, so completion order never leaks
    into the output. A rule that raises is isolated and reported as a single
    info-severity evaluation-error finding.
    """

    def __init__(self, registry: Optional[RuleRegistry] = None,
                 max_workers: Optional[int] = None, parallel: Optional[bool] = None):
        self.registry = registry or get_default_registry()
        self.registry.freeze()
        self.rules = self.registry.rules()
        self.max_workers = max_workers or int(config_manager.get_nested("engine.max_workers", 4))
        self.parallel = parallel if parallel is not None else bool(config_manager.get_nested("engine.parallel", True))

    def run_audit(self, model: StructuralModel,
                  cancel_event: Optional[threading.Event] = None) -> List[RawFinding]:
        """
        Runs the full rule suite on a parsed StructuralModel.

        Args:
            model: The immutable structural model.
            cancel_event: Checked before the phase starts; rules are never interrupted.

        Returns:
            List[RawFinding]: All findings, in registry order of their rules.
        """
        if cancel_event is not None and cancel_event.is_set():
            raise AuditCancelled("evaluate")

        if self.parallel and len(self.rules) > 1 and self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="qngine") as executor:
                per_rule = list(executor.map(lambda rule: self._evaluate_rule(rule, model), self.rules))
        else:
            per_rule = [self._evaluate_rule(rule, model) for rule in self.rules]

        findings = [finding for results in per_rule for finding in results]
        logger.debug("Evaluated %d rules on %s: %d raw findings", len(self.rules), model.path, len(findings))
        return findings

    def _evaluate_rule(self, rule: Rule, model: StructuralModel) -> List[RawFinding]:
        try:
            return rule.evaluate(model)
        except Exception as e:
            error = EvaluationError(rule.key, e)
            logger.error("%s", error, exc_info=True)
            return [self._error_finding(error, model)]

    @staticmethod
    def _error_finding(error: EvaluationError, model: StructuralModel) -> RawFinding:
        return RawFinding(
            rule_key=error.rule_key,
            anchors=[model.document_anchor],
            message_template="Rule '{rule}' could not be evaluated: {error_type}: {error}",
            params={
                "rule": error.rule_key,
                "error_type": type(error.cause).__name__,
                "error": str(error.cause),
            },
            severity=Severity.INFO,
            kind=FindingKind.EVALUATION_ERROR,
        )
