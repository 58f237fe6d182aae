from typing import List

from markup_auditor.managers.config_manager import config_manager
from markup_auditor.model import Category, Severity
from ..core import AuditHit, Element, RuleSet, audit_rule, hit
from ..models import StructuralModel

DECORATIVE_ROLES = ("presentation", "none")


def _is_decorative(el: Element) -> bool:
    return el.get("role", "").lower() in DECORATIVE_ROLES or el.get("aria-hidden", "").lower() == "true"


def _image_like(model: StructuralModel) -> List[Element]:
    return [
        el for el in model.iter_elements()
        if el.tag in ("img", "area") or (el.tag == "input" and el.get("type", "").lower() == "image")
    ]


def _has_accessible_name(model: StructuralModel, el: Element) -> bool:
    if model.text_content(el):
        return True
    if any(el.get(attr, "").strip() for attr in ("aria-label", "aria-labelledby", "title")):
        return True
    return any(child.tag == "img" and child.get("alt", "").strip() for child in el.iter_descendants())


# --- RULES ---

@audit_rule("missing-alt", Category.ACCESSIBILITY, Severity.HIGH)
def check_alt_text(model: StructuralModel) -> List[AuditHit]:
    """Image without alt text, or with empty alt text while not marked decorative."""
    offenders = []
    for el in _image_like(model):
        alt = el.get("alt")
        if alt is None:
            offenders.append((el, "Image has no alt attribute: {src}"))
        elif not alt.strip() and not _is_decorative(el):
            offenders.append((el, "Image has empty alt text but is not marked decorative: {src}"))

    # Past the threshold the problem is systemic: escalate every occurrence.
    threshold = config_manager.rule_option("missing_alt", "escalation_threshold", 5)
    severity = Severity.CRITICAL if len(offenders) > threshold else None
    return [hit(el, template, severity, src=el.get("src") or el.path) for el, template in offenders]


@audit_rule("missing-lang", Category.ACCESSIBILITY, Severity.HIGH)
def check_document_language(model: StructuralModel) -> List[AuditHit]:
    """The <html> element does not declare the document language."""
    html = model.find("html")
    if html is not None and html.get("lang", "").strip():
        return []
    target = html if html is not None else model.document_anchor
    return [hit(target, "Document language is not declared (missing lang on <html>)")]


@audit_rule("missing-title", Category.ACCESSIBILITY, Severity.HIGH)
def check_title(model: StructuralModel) -> List[AuditHit]:
    """Document has no non-empty <title>."""
    title = model.find("title")
    if title is None:
        return [hit(model.document_anchor, "Document is missing a <title>")]
    if not model.text_content(title):
        return [hit(title, "Document <title> is empty")]
    return []


@audit_rule("empty-interactive-name", Category.ACCESSIBILITY, Severity.HIGH)
def check_interactive_names(model: StructuralModel) -> List[AuditHit]:
    """Link or button without any accessible name."""
    return [
        hit(el, "<{tag}> has no accessible name (no text, aria-label or labelled image)", tag=el.tag)
        for el in model.find_all("a", "button")
        if not _has_accessible_name(model, el)
    ]


@audit_rule("positive-tabindex", Category.ACCESSIBILITY, Severity.MEDIUM)
def check_tabindex(model: StructuralModel) -> List[AuditHit]:
    """Positive tabindex values override the natural focus order."""
    results = []
    for el in model.iter_elements():
        if not el.has("tabindex"):
            continue
        try:
            value = int(el.get("tabindex").strip())
        except ValueError:
            continue
        if value > 0:
            results.append(hit(el, "tabindex=\"{value}\" on <{tag}> overrides the natural focus order",
                               value=value, tag=el.tag))
    return results


# --- DEFINITION ---
DEFINITION = RuleSet(
    category=Category.ACCESSIBILITY,
    rules=[
        check_alt_text,
        check_document_language,
        check_title,
        check_interactive_names,
        check_tabindex,
    ]
)
