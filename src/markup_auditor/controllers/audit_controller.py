# src/markup_auditor/controllers/audit_controller.py
import logging
import threading
from concurrent.futures import ProcessPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, Field
from tqdm.auto import tqdm

from markup_auditor.dom.builder import DOMBuilder, SourceArtifact
from markup_auditor.dom.qngine import QNGINE
from markup_auditor.dom.registry import RuleRegistry, get_default_registry
from markup_auditor.exceptions import AuditCancelled, ParseError
from markup_auditor.model import AuditReport
from markup_auditor.services.classification_service import FindingClassifier
from markup_auditor.services.scoring_service import ScoreAggregator, ScoringPolicy

logger = logging.getLogger(__name__)

Source = Union[SourceArtifact, bytes, str]


class AuditBundle(BaseModel):
    """One markup document plus the style sheets the loader found for it."""
    markup: SourceArtifact
    stylesheets: List[SourceArtifact] = Field(default_factory=list)


def _worker_audit_document(bundle: AuditBundle) -> Dict[str, Any]:
    """
    Worker function to audit a single document in a separate process.
    Returns the report as a plain dict, or an error dict on a parse failure.
    """
    controller = AuditController()
    try:
        report = controller.run(bundle.markup, bundle.stylesheets)
        return report.to_dict()
    except ParseError as e:
        logger.error(f"Audit failed on {bundle.markup.path}: {e}")
        return {"document": bundle.markup.path, **e.to_dict()}


class AuditController:
    """
    Orchestrates one audit: build -> evaluate -> classify -> score.

    The phases run strictly in that order. A cancel event is honoured between
    phases only; a cancelled run raises AuditCancelled and yields no ScoreCard.
    """

    def __init__(
            self,
            registry: Optional[RuleRegistry] = None,
            policy: Optional[ScoringPolicy] = None,
            builder: Optional[DOMBuilder] = None,
            max_workers: Optional[int] = None,
            parallel: Optional[bool] = None,
    ):
        self.registry = registry or get_default_registry()
        self.builder = builder or DOMBuilder()
        self.engine = QNGINE(self.registry, max_workers=max_workers, parallel=parallel)
        self.classifier = FindingClassifier(self.registry)
        self.aggregator = ScoreAggregator(policy)

    @staticmethod
    def _checkpoint(cancel_event: Optional[threading.Event], phase: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Audit cancelled before %s", phase)
            raise AuditCancelled(phase)

    def run(
            self,
            markup: Source,
            stylesheets: Sequence[Source] = (),
            path: str = "index.html",
            cancel_event: Optional[threading.Event] = None,
    ) -> AuditReport:
        """
        Audits one markup document with its style sheets.

        Raises:
            ParseError: The markup or a style sheet is unrecoverable; nothing is scored.
            AuditCancelled: `cancel_event` was set before a phase started.
        """
        self._checkpoint(cancel_event, "build")
        model = self.builder.build(markup, stylesheets, path=path)

        raw_findings = self.engine.run_audit(model, cancel_event=cancel_event)

        self._checkpoint(cancel_event, "classify")
        findings = self.classifier.classify(raw_findings)

        self._checkpoint(cancel_event, "score")
        score_card = self.aggregator.score(findings)

        logger.info(
            "Audited %s: %d findings, overall score %.1f",
            model.path, len(findings), score_card.overall_score,
        )
        return AuditReport(document=model.path, findings=findings, score_card=score_card)

    def run_batch(
            self,
            bundles: Sequence[AuditBundle],
            workers: int = 4,
            show_progress: bool = False,
            progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Audits many documents in parallel processes with the default rule set.
        A parse failure is reported in place and does not stop the batch.
        Results keep the order of `bundles`.
        """
        total = len(bundles)
        results: List[Dict[str, Any]] = []

        with tqdm(total=total, desc="Auditing", unit="doc", disable=not show_progress) as bar:
            if workers <= 1:
                results_iter = map(_worker_audit_document, bundles)
                for i, result in enumerate(results_iter):
                    results.append(result)
                    bar.update(1)
                    if progress_callback:
                        progress_callback(i + 1, total)
            else:
                with ProcessPoolExecutor(max_workers=workers) as executor:
                    for i, result in enumerate(executor.map(_worker_audit_document, bundles)):
                        results.append(result)
                        bar.update(1)
                        if progress_callback:
                            progress_callback(i + 1, total)

        failures = sum(1 for r in results if "error" in r)
        logger.info("Batch audit finished: %d documents, %d parse failure(s)", total, failures)
        return results
