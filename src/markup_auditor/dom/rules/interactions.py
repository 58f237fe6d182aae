from typing import List

from markup_auditor.model import Category, Severity
from ..core import INTERACTIVE_TAGS, AuditHit, Element, RuleSet, audit_rule, hit
from ..models import StructuralModel, StyleRule
from ..selectors import Compound, matches_compound, parse_compound, subject_compound

FOCUS_PSEUDO_CLASSES = frozenset({"focus", "focus-visible", "focus-within"})
_NO_OUTLINE = ("none", "0", "0px", "0 none")


def _targets_interactive(compound: Compound, model: StructuralModel, interactive: List[Element]) -> bool:
    if compound.tag in INTERACTIVE_TAGS or compound.is_universal:
        return True
    return any(
        matches_compound(compound, el.tag, model.classes_of(el), el.element_id, el.attrs)
        for el in interactive
    )


def _subjects_with(rule: StyleRule, pseudo_classes) -> List[Compound]:
    subjects = [parse_compound(subject_compound(s)) for s in rule.selectors]
    return [c for c in subjects if set(c.pseudo_classes) & set(pseudo_classes)]


# --- RULES ---

@audit_rule("missing-focus-state", Category.INTERACTIONS, Severity.CRITICAL)
def check_focus_styles(model: StructuralModel) -> List[AuditHit]:
    """No style rule gives interactive elements a visible keyboard-focus state."""
    interactive = model.interactive_elements
    if not interactive:
        return []
    for rule in model.style_rules:
        for compound in _subjects_with(rule, FOCUS_PSEUDO_CLASSES):
            if _targets_interactive(compound, model, interactive):
                return []
    return [hit(
        model.document_anchor,
        "None of the {count} interactive element(s) has a :focus or :focus-visible style",
        count=len(interactive),
    )]


@audit_rule("focus-outline-removed", Category.INTERACTIONS, Severity.HIGH)
def check_focus_outline(model: StructuralModel) -> List[AuditHit]:
    """A focus rule removes the outline without providing a replacement indicator."""
    results = []
    for rule in model.style_rules:
        if not _subjects_with(rule, FOCUS_PSEUDO_CLASSES):
            continue
        outline = (rule.get("outline") or rule.get("outline-style") or "").strip().lower()
        if outline not in _NO_OUTLINE:
            continue
        if any(rule.declares(p) for p in ("box-shadow", "border", "border-color", "text-decoration")):
            continue
        results.append(hit(rule, "'{selector}' removes the focus outline without a visible replacement",
                           selector=rule.selector))
    return results


@audit_rule("missing-hover-state", Category.INTERACTIONS, Severity.LOW)
def check_hover_styles(model: StructuralModel) -> List[AuditHit]:
    """Interactive elements exist but no rule styles a :hover state."""
    if not model.interactive_elements:
        return []
    if any(_subjects_with(rule, ("hover",)) for rule in model.style_rules):
        return []
    return [hit(model.document_anchor, "No :hover styles are defined for interactive elements")]


@audit_rule("clickable-non-interactive", Category.INTERACTIONS, Severity.HIGH)
def check_click_handlers(model: StructuralModel) -> List[AuditHit]:
    """onclick on an element that is neither focusable nor given a role."""
    return [
        hit(el, "<{tag}> has an onclick handler but is not keyboard accessible; use a <button>", tag=el.tag)
        for el in model.iter_elements()
        if el.has("onclick") and not el.is_interactive and not el.has("role")
    ]


# --- DEFINITION ---
DEFINITION = RuleSet(
    category=Category.INTERACTIONS,
    rules=[
        check_focus_styles,
        check_focus_outline,
        check_hover_styles,
        check_click_handlers,
    ]
)
