from typing import List

from markup_auditor.model import Category, Severity
from ..core import AuditHit, RuleSet, audit_rule, hit
from ..models import StructuralModel


# --- RULES ---

@audit_rule("missing-stylesheet-link", Category.FILE_STRUCTURE, Severity.MEDIUM)
def check_stylesheet_linked(model: StructuralModel) -> List[AuditHit]:
    """Style sheets were supplied with the document but the markup links none of them."""
    sheets = model.external_style_sheets
    if not sheets or model.stylesheet_links:
        return []
    return [hit(
        model.document_anchor,
        "{count} style sheet(s) ({paths}) are not referenced by any <link rel=\"stylesheet\">",
        count=len(sheets), paths=", ".join(s.path for s in sheets),
    )]


@audit_rule("stylesheet-outside-head", Category.FILE_STRUCTURE, Severity.LOW)
def check_stylesheet_placement(model: StructuralModel) -> List[AuditHit]:
    """<link rel="stylesheet"> placed outside <head>."""
    return [
        hit(el, "Style sheet {href} is linked outside <head>", href=el.get("href") or "(no href)")
        for el in model.stylesheet_links
        if not model.has_ancestor(el, "head")
    ]


@audit_rule("embedded-style-block", Category.FILE_STRUCTURE, Severity.LOW)
def check_style_blocks(model: StructuralModel) -> List[AuditHit]:
    """Styles embedded in a <style> block instead of an external style sheet."""
    return [
        hit(el, "Embedded <style> block; move these rules to an external style sheet")
        for el in model.find_all("style")
    ]


@audit_rule("inline-style-attribute", Category.FILE_STRUCTURE, Severity.LOW)
def check_inline_styles(model: StructuralModel) -> List[AuditHit]:
    """Presentation set through style="" attributes."""
    return [
        hit(el, "<{tag}> uses an inline style attribute ({style})", tag=el.tag, style=el.get("style").strip())
        for el in model.iter_elements()
        if el.get("style", "").strip()
    ]


# --- DEFINITION ---
DEFINITION = RuleSet(
    category=Category.FILE_STRUCTURE,
    rules=[
        check_stylesheet_linked,
        check_stylesheet_placement,
        check_style_blocks,
        check_inline_styles,
    ]
)
