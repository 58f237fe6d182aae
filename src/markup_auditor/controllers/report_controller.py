# src/markup_auditor/controllers/report_controller.py
import json
import logging
from typing import Any, Dict, Iterable, List

import pandas as pd

from markup_auditor.model import AuditReport, Category, Severity

logger = logging.getLogger(__name__)

FINDING_COLUMNS = ["Document", "Category", "Rule", "Severity", "Location", "Message", "Id"]


class ReportController:
    """
    Output boundary for renderers: reshapes AuditReports into plain dicts,
    JSON and pandas DataFrames. It never produces human-facing text layouts.
    """

    def to_payload(self, report: AuditReport) -> Dict[str, Any]:
        return report.to_dict()

    def to_json(self, report: AuditReport, indent: int = 2) -> str:
        return json.dumps(report.to_dict(), ensure_ascii=False, indent=indent)

    def findings_frame(self, reports: Iterable[AuditReport]) -> pd.DataFrame:
        """One row per finding, in report order."""
        rows: List[Dict[str, Any]] = []
        for report in reports:
            for finding in report.findings:
                anchor = finding.anchors[0]
                rows.append({
                    "Document": report.document,
                    "Category": finding.category.value,
                    "Rule": finding.rule_key,
                    "Severity": finding.severity.value,
                    "Location": str(anchor.location) if anchor.location else anchor.path,
                    "Message": finding.message,
                    "Id": finding.finding_id,
                })
        return pd.DataFrame(rows, columns=FINDING_COLUMNS)

    def category_frame(self, report: AuditReport) -> pd.DataFrame:
        """Per-category score with finding counts by severity."""
        counts = {c: {s: 0 for s in Severity} for c in Category}
        for finding in report.findings:
            counts[finding.category][finding.severity] += 1

        rows = []
        for category, score in report.score_card.category_scores.items():
            row = {"Category": category.value, "Score": score, "Findings": sum(counts[category].values())}
            row.update({s.value: n for s, n in counts[category].items()})
            rows.append(row)
        return pd.DataFrame(rows).set_index("Category")

    def summary_frame(self, reports: Iterable[AuditReport]) -> pd.DataFrame:
        """One row per document: overall score, category scores and severity counts."""
        rows = []
        for report in reports:
            card = report.score_card
            row: Dict[str, Any] = {"Document": report.document, "Overall": card.overall_score}
            row.update({c.value: s for c, s in card.category_scores.items()})
            row.update({s.value: n for s, n in card.severity_counts.items()})
            row["Has critical"] = card.has_critical()
            rows.append(row)
        if not rows:
            logger.warning("No reports to summarise.")
            return pd.DataFrame()
        return pd.DataFrame(rows).set_index("Document")
