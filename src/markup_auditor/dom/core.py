# src/markup_auditor/dom/core.py
from typing import Any, Callable, Dict, Iterable, Iterator, List, NamedTuple, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from markup_auditor.model import Anchor, Category, RawFinding, Severity, SourceLocation

# Elements that never have children or an end tag.
VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input", "link",
    "meta", "param", "source", "track", "wbr",
})

INTERACTIVE_TAGS = frozenset({"a", "button", "input", "select", "textarea", "summary"})


class Element(BaseModel):
    """
    Immutable node of the structural model.
    Parent links live in the owning StructuralModel, never on the node itself.
    """
    model_config = ConfigDict(frozen=True)

    node_id: int
    tag: str
    attrs: Dict[str, str] = Field(default_factory=dict)
    text: str = ""
    children: List['Element'] = Field(default_factory=list)
    location: Optional[SourceLocation] = None
    path: str = ""

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attrs.get(name, default)

    def has(self, name: str) -> bool:
        return name in self.attrs

    @property
    def element_id(self) -> Optional[str]:
        value = self.attrs.get("id", "").strip()
        return value or None

    @property
    def classes(self) -> Tuple[str, ...]:
        return tuple(self.attrs.get("class", "").split())

    @property
    def is_empty(self) -> bool:
        """Returns True if the element contains no text and no children."""
        return not self.text and not self.children

    @property
    def is_interactive(self) -> bool:
        """True for elements that receive keyboard focus by default (or via tabindex)."""
        if self.tag == "a":
            return self.has("href")
        if self.tag == "input":
            return self.get("type", "text").lower() != "hidden"
        if self.tag in INTERACTIVE_TAGS:
            return True
        return self.has("tabindex") or self.get("contenteditable", "false").lower() in ("", "true")

    def iter(self) -> Iterator['Element']:
        """Pre-order traversal including this element, on an explicit stack."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def iter_descendants(self) -> Iterator['Element']:
        walk = self.iter()
        next(walk)
        return walk


class Identifiers(NamedTuple):
    """Class names and id an element exposes for selector matching."""
    classes: frozenset
    element_id: Optional[str]


class AuditHit(NamedTuple):
    """What a rule check reports; the Rule turns it into a RawFinding."""
    anchors: Tuple[Anchor, ...]
    template: str
    params: Dict[str, Any]
    severity: Optional[Severity]


def _as_anchor(target: Any) -> Anchor:
    if isinstance(target, Anchor):
        return target
    if isinstance(target, Element):
        return Anchor.element(target)
    # Anything else is expected to be a StyleRule
    return Anchor.style_rule(target)


def hit(target: Union[Any, List[Any]], template: str, severity: Optional[Severity] = None, **params) -> AuditHit:
    """
    Shorthand for building a rule hit.
    `target` is an Anchor, Element or StyleRule, or a list of those.
    """
    targets = target if isinstance(target, (list, tuple)) else [target]
    return AuditHit(tuple(_as_anchor(t) for t in targets), template, params, severity)


class Rule(BaseModel):
    """
    A registered audit rule: identity, category, default severity and the
    check function. Rules are stateless; `check` must not mutate the model.
    """
    model_config = ConfigDict(frozen=True)

    key: str
    category: Category
    severity: Severity
    summary: str = ""
    check: Callable[[Any], Iterable[AuditHit]]

    def evaluate(self, model: Any) -> List[RawFinding]:
        findings = []
        for result in self.check(model) or ():
            finding = RawFinding(
                rule_key=self.key,
                anchors=list(result.anchors),
                message_template=result.template,
                params=result.params,
                severity=result.severity,
            )
            # Render once so a broken template fails inside the rule, not later.
            _ = finding.message
            findings.append(finding)
        return findings


def audit_rule(key: str, category: Category, severity: Severity, summary: str = ""):
    """
    Decorator turning a check function into a Rule.
    The summary defaults to the first line of the function's docstring.
    """
    def decorator(func: Callable[[Any], Iterable[AuditHit]]) -> Rule:
        text = summary
        if not text:
            lines = (func.__doc__ or "").strip().splitlines()
            text = lines[0] if lines else ""
        return Rule(key=key, category=category, severity=severity, summary=text, check=func)
    return decorator


class RuleSet:
    """
    Configuration object binding a category to the rules implementing it.
    Every rules module exposes one as DEFINITION.
    """

    def __init__(self, category: Category, rules: List[Rule]):
        self.category = category
        self.rules = list(rules)

    @property
    def keys(self) -> List[str]:
        return [rule.key for rule in self.rules]
