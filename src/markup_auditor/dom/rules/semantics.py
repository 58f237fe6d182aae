from typing import List

from markup_auditor.managers.config_manager import config_manager
from markup_auditor.model import Category, Severity
from ..core import AuditHit, RuleSet, audit_rule, hit
from ..models import StructuralModel

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
SECTIONING_TAGS = ("main", "header", "footer", "nav", "article", "section", "aside")


# --- RULES ---

@audit_rule("missing-doctype", Category.SEMANTICS, Severity.MEDIUM)
def check_doctype(model: StructuralModel) -> List[AuditHit]:
    """Document does not declare <!DOCTYPE html>."""
    if model.has_doctype:
        return []
    return [hit(model.document_anchor, "Document is missing a <!DOCTYPE html> declaration")]


@audit_rule("missing-main-landmark", Category.SEMANTICS, Severity.MEDIUM)
def check_main_landmark(model: StructuralModel) -> List[AuditHit]:
    """No <main> element (or role="main") marks the primary content."""
    if model.find("main") is not None:
        return []
    if any(el.get("role", "").lower() == "main" for el in model.iter_elements()):
        return []
    return [hit(model.document_anchor, "Document has no <main> landmark for its primary content")]


@audit_rule("missing-h1", Category.SEMANTICS, Severity.HIGH)
def check_h1_present(model: StructuralModel) -> List[AuditHit]:
    """Document does not contain an <h1>."""
    if model.find("h1") is not None:
        return []
    return [hit(model.document_anchor, "Document does not contain an <h1> heading")]


@audit_rule("multiple-h1", Category.SEMANTICS, Severity.LOW)
def check_single_h1(model: StructuralModel) -> List[AuditHit]:
    """More than one <h1>; every extra one is reported."""
    h1s = model.find_all("h1")
    return [
        hit(el, "Additional <h1> ({position} of {total}); keep a single top-level heading",
            position=i, total=len(h1s))
        for i, el in enumerate(h1s[1:], start=2)
    ]


@audit_rule("heading-level-skip", Category.SEMANTICS, Severity.MEDIUM)
def check_heading_hierarchy(model: StructuralModel) -> List[AuditHit]:
    """A heading jumps more than one level below the previous heading."""
    results = []
    previous = None
    for el in model.find_all(*HEADING_TAGS):
        level = int(el.tag[1])
        if previous is not None and level > previous + 1:
            results.append(hit(
                el, "<h{level}> follows <h{previous}> and skips {skipped} heading level(s)",
                level=level, previous=previous, skipped=level - previous - 1,
            ))
        previous = level
    return results


@audit_rule("div-soup", Category.SEMANTICS, Severity.LOW)
def check_generic_containers(model: StructuralModel) -> List[AuditHit]:
    """Layout is built almost entirely from <div>/<span> without sectioning elements."""
    body = model.find("body") or model.root
    descendants = list(body.iter_descendants())
    min_elements = config_manager.rule_option("div_soup", "min_elements", 10)
    if len(descendants) < min_elements:
        return []
    if any(el.tag in SECTIONING_TAGS for el in descendants):
        return []

    generic = sum(1 for el in descendants if el.tag in ("div", "span"))
    ratio = generic / len(descendants)
    threshold = config_manager.rule_option("div_soup", "ratio", 0.6)
    if ratio <= threshold:
        return []
    return [hit(
        model.document_anchor,
        "{generic} of {total} elements ({percent}%) are generic <div>/<span> containers "
        "and no sectioning elements are used",
        generic=generic, total=len(descendants), percent=round(ratio * 100),
    )]


# --- DEFINITION ---
DEFINITION = RuleSet(
    category=Category.SEMANTICS,
    rules=[
        check_doctype,
        check_main_landmark,
        check_h1_present,
        check_single_h1,
        check_heading_hierarchy,
        check_generic_containers,
    ]
)
