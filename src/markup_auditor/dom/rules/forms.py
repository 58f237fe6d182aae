from typing import List, Set

from markup_auditor.model import Category, Severity
from ..core import AuditHit, Element, RuleSet, audit_rule, hit
from ..models import StructuralModel

# Input types that carry their own label (or none is needed).
UNLABELLED_INPUT_TYPES = frozenset({"hidden", "submit", "button", "reset", "image"})


def _labelable_controls(model: StructuralModel) -> List[Element]:
    controls = []
    for el in model.find_all("input", "select", "textarea"):
        if el.tag == "input" and el.get("type", "text").strip().lower() in UNLABELLED_INPUT_TYPES:
            continue
        controls.append(el)
    return controls


def _label_targets(model: StructuralModel) -> Set[str]:
    return {label.get("for").strip() for label in model.find_all("label") if label.get("for", "").strip()}


def _is_labelled(model: StructuralModel, el: Element, label_targets: Set[str]) -> bool:
    if el.get("aria-label", "").strip() or el.get("aria-labelledby", "").strip():
        return True
    if el.element_id and el.element_id in label_targets:
        return True
    return model.has_ancestor(el, "label")


# --- RULES ---

@audit_rule("missing-label", Category.FORMS, Severity.CRITICAL)
def check_labels(model: StructuralModel) -> List[AuditHit]:
    """Form control without an associated <label> (for/id pairing or wrapping)."""
    label_targets = _label_targets(model)
    return [
        hit(el, "<{tag}{kind}> has no associated label", tag=el.tag,
            kind=f" type=\"{el.get('type')}\"" if el.has("type") else "")
        for el in _labelable_controls(model)
        if not _is_labelled(model, el, label_targets)
    ]


@audit_rule("button-missing-type", Category.FORMS, Severity.LOW)
def check_button_type(model: StructuralModel) -> List[AuditHit]:
    """<button> inside a form without an explicit type silently defaults to submit."""
    return [
        hit(el, "<button> inside a <form> has no type attribute and defaults to type=\"submit\"")
        for el in model.find_all("button")
        if not el.has("type") and model.has_ancestor(el, "form")
    ]


@audit_rule("input-missing-name", Category.FORMS, Severity.MEDIUM)
def check_control_names(model: StructuralModel) -> List[AuditHit]:
    """Form control inside a form without a name is never submitted."""
    return [
        hit(el, "<{tag}> inside a <form> has no name attribute and will not be submitted", tag=el.tag)
        for el in _labelable_controls(model)
        if not el.get("name", "").strip() and model.has_ancestor(el, "form")
    ]


# --- DEFINITION ---
DEFINITION = RuleSet(
    category=Category.FORMS,
    rules=[
        check_labels,
        check_button_type,
        check_control_names,
    ]
)
