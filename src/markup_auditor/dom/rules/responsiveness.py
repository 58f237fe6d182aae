import re
from typing import List

from markup_auditor.managers.config_manager import config_manager
from markup_auditor.model import Category, Severity
from ..core import AuditHit, RuleSet, audit_rule, hit
from ..models import StructuralModel
from ..selectors import is_universal_selector

_PIXELS = re.compile(r"^(\d+(?:\.\d+)?)px$", re.IGNORECASE)
GLOBAL_BOX_SIZING = ("border-box", "inherit")


# --- RULES ---

@audit_rule("no-media-query", Category.RESPONSIVENESS, Severity.CRITICAL)
def check_media_queries(model: StructuralModel) -> List[AuditHit]:
    """Style sheets contain no width-based @media/@container condition."""
    if any(at.is_width_condition for at in model.at_rules):
        return []
    return [hit(
        model.document_anchor,
        "No width-based media queries found in {sheets} style sheet(s); the layout cannot adapt to small screens",
        sheets=len(model.style_sheets),
    )]


@audit_rule("missing-viewport", Category.RESPONSIVENESS, Severity.HIGH)
def check_viewport(model: StructuralModel) -> List[AuditHit]:
    """No <meta name="viewport">, so mobile browsers render a zoomed-out desktop page."""
    for meta in model.find_all("meta"):
        if meta.get("name", "").lower() == "viewport":
            return []
    return [hit(model.document_anchor, "Document is missing <meta name=\"viewport\">")]


@audit_rule("fixed-width-layout", Category.RESPONSIVENESS, Severity.MEDIUM)
def check_fixed_widths(model: StructuralModel) -> List[AuditHit]:
    """Large fixed pixel widths outside any media query."""
    max_px = config_manager.rule_option("fixed_width", "max_px", 600.0)
    results = []
    for rule in model.style_rules:
        if rule.in_conditional_block:
            continue
        for prop in ("width", "min-width"):
            value = rule.get(prop)
            match = _PIXELS.match(value.strip()) if value else None
            if match and float(match.group(1)) > max_px:
                results.append(hit(
                    rule, "'{selector}' sets {prop}: {value}, wider than {max_px}px on every screen",
                    selector=rule.selector, prop=prop, value=value, max_px=int(max_px),
                ))
                break
    return results


@audit_rule("box-sizing-scope", Category.RESPONSIVENESS, Severity.MEDIUM)
def check_box_sizing_scope(model: StructuralModel) -> List[AuditHit]:
    """box-sizing: border-box is declared only on specific selectors, not globally."""
    rules = model.style_rules
    border_box = [r for r in rules if (r.get("box-sizing") or "").strip().lower() == "border-box"]
    if not border_box:
        return []
    is_global = any(
        (rule.get("box-sizing") or "").strip().lower() in GLOBAL_BOX_SIZING
        and any(is_universal_selector(s) for s in rule.selectors)
        for rule in rules
    )
    if is_global:
        return []
    first = border_box[0]
    return [hit(
        first,
        "box-sizing: border-box is only set on {count} selector(s) (first: '{selector}'); "
        "apply it globally with '*, *::before, *::after'",
        count=len(border_box), selector=first.selector,
    )]


# --- DEFINITION ---
DEFINITION = RuleSet(
    category=Category.RESPONSIVENESS,
    rules=[
        check_media_queries,
        check_viewport,
        check_fixed_widths,
        check_box_sizing_scope,
    ]
)
