import re
from typing import Dict, List, Union

from markup_auditor.model import Category, Severity
from ..core import AuditHit, Element, RuleSet, audit_rule, hit
from ..models import StructuralModel, StyleRule
from ..selectors import selector_classes

_SINGLE_UNDERSCORE = re.compile(r"(?<!_)_(?!_)")


def _block_name(token: str) -> Union[str, None]:
    """Block part of a BEM token (`block__element--modifier`), None for plain tokens."""
    if "__" in token:
        return token.split("__", 1)[0]
    if "--" in token:
        return token.split("--", 1)[0]
    return None


def _singular(word: str) -> str:
    if len(word) > 4 and word.endswith("ies"):
        return word[:-3] + "y"
    if word.endswith(("xes", "ches", "shes", "sses")):
        return word[:-2]
    if len(word) > 3 and word.endswith("s") and not word.endswith(("ss", "us", "is")):
        return word[:-1]
    return word


def _normalized_block(block: str) -> str:
    """Singularises the head noun only, the last hyphen segment of the block."""
    head, sep, last = block.rpartition("-")
    return head + sep + _singular(last)


def _class_tokens(model: StructuralModel) -> Dict[str, Union[Element, StyleRule]]:
    """Every class token with the place it first appears: markup first, then style sheets."""
    tokens: Dict[str, Union[Element, StyleRule]] = {}
    for token, elements in model.class_usage().items():
        tokens[token] = elements[0]
    for rule in model.style_rules:
        for token in selector_classes(rule.selector):
            tokens.setdefault(token, rule)
    return tokens


# --- RULES ---

@audit_rule("bem-naming-check", Category.NAMING, Severity.LOW)
def check_bem_block_consistency(model: StructuralModel) -> List[AuditHit]:
    """
    The same BEM block is spelled both singular and plural
    (e.g. `listings-sections__title` next to `listings-section__body`).
    """
    tokens = _class_tokens(model)
    usage = model.class_usage()

    # normalized block -> spelling -> tokens using that spelling
    groups: Dict[str, Dict[str, List[str]]] = {}
    for token in tokens:
        block = _block_name(token)
        if block:
            groups.setdefault(_normalized_block(block), {}).setdefault(block, []).append(token)

    def weight(block: str, members: List[str]) -> int:
        return sum(max(1, len(usage.get(t, []))) for t in members)

    results = []
    for spellings in groups.values():
        if len(spellings) < 2:
            continue
        # Canonical spelling: most used, then shortest, then alphabetical.
        canonical = sorted(spellings, key=lambda b: (-weight(b, spellings[b]), len(b), b))[0]
        for block, members in spellings.items():
            if block == canonical:
                continue
            for token in members:
                results.append(hit(
                    tokens[token],
                    "Class '{token}' uses block '{block}' while {others} use '{canonical}'",
                    token=token, block=block, canonical=canonical,
                    others=", ".join(f"'{t}'" for t in spellings[canonical]),
                ))
    return results


@audit_rule("class-case-convention", Category.NAMING, Severity.LOW)
def check_class_case(model: StructuralModel) -> List[AuditHit]:
    """Class tokens with upper-case letters or single underscores break the lowercase-hyphen convention."""
    return [
        hit(anchor, "Class '{token}' does not follow the lowercase, hyphenated naming convention", token=token)
        for token, anchor in _class_tokens(model).items()
        if any(ch.isupper() for ch in token) or _SINGLE_UNDERSCORE.search(token)
    ]


@audit_rule("unused-class-selector", Category.NAMING, Severity.INFO)
def check_unused_selectors(model: StructuralModel) -> List[AuditHit]:
    """A class named in a style sheet is never used in the markup."""
    used = model.class_usage()
    results = []
    reported = set()
    for rule in model.style_rules:
        for token in selector_classes(rule.selector):
            if token in used or token in reported:
                continue
            reported.add(token)
            results.append(hit(rule, "Class '.{token}' is styled but never used in the markup", token=token))
    return results


# --- DEFINITION ---
DEFINITION = RuleSet(
    category=Category.NAMING,
    rules=[
        check_bem_block_consistency,
        check_class_case,
        check_unused_selectors,
    ]
)
