# src/markup_auditor/dom/models.py
import re
from typing import Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from markup_auditor.model import Anchor, SourceLocation
from .core import Element, Identifiers
from .selectors import split_selector_list

_WIDTH_CONDITION = re.compile(r"(?:min-|max-)?(?:width|inline-size)\b", re.IGNORECASE)


class Declaration(BaseModel):
    model_config = ConfigDict(frozen=True)

    property: str
    value: str
    important: bool = False
    location: Optional[SourceLocation] = None


class StyleRule(BaseModel):
    """
    A selector with its declarations in source order.
    Cascade resolution is left to the rules; nothing is merged here.
    """
    model_config = ConfigDict(frozen=True)

    rule_id: int
    selector: str
    declarations: List[Declaration] = Field(default_factory=list)
    location: Optional[SourceLocation] = None
    sheet: str
    conditions: Tuple[str, ...] = ()

    @property
    def selectors(self) -> List[str]:
        return split_selector_list(self.selector)

    @property
    def in_conditional_block(self) -> bool:
        return bool(self.conditions)

    def declares(self, prop: str) -> bool:
        prop = prop.lower()
        return any(d.property == prop for d in self.declarations)

    def get(self, prop: str) -> Optional[str]:
        """Effective value of a property within this rule (last wins, !important beats normal)."""
        prop = prop.lower()
        winner: Optional[Declaration] = None
        for decl in self.declarations:
            if decl.property != prop:
                continue
            if winner is None or decl.important or not winner.important:
                winner = decl
        return winner.value if winner else None


class AtRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    prelude: str = ""
    location: Optional[SourceLocation] = None
    sheet: str
    has_block: bool = False

    @property
    def is_width_condition(self) -> bool:
        return self.name in ("media", "container") and bool(_WIDTH_CONDITION.search(self.prelude))


class StyleSheet(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    rules: List[StyleRule] = Field(default_factory=list)
    at_rules: List[AtRule] = Field(default_factory=list)
    embedded: bool = False


class StructuralModel(BaseModel):
    """
    Represents one audited document pair (markup + style sheets).

    Owns every Element and StyleRule. Built once by the DOMBuilder and
    read-only afterwards, so rules may share it across threads.
    """
    model_config = ConfigDict(frozen=True)

    path: str
    root: Element
    style_sheets: List[StyleSheet] = Field(default_factory=list)
    has_doctype: bool = False

    # Indexes, all keyed by Element.node_id
    elements: List[Element] = Field(default_factory=list)
    parents: Dict[int, int] = Field(default_factory=dict)
    identifiers: Dict[int, Identifiers] = Field(default_factory=dict)

    @property
    def document_anchor(self) -> Anchor:
        return Anchor.document(self.path)

    # --- Element navigation ---

    def iter_elements(self) -> Iterator[Element]:
        """Every element in document order, the synthetic root excluded."""
        return iter(self.elements[1:])

    def find_all(self, *tags: str) -> List[Element]:
        wanted = set(tags)
        return [el for el in self.iter_elements() if el.tag in wanted]

    def find(self, tag: str) -> Optional[Element]:
        return next((el for el in self.iter_elements() if el.tag == tag), None)

    def parent_of(self, el: Element) -> Optional[Element]:
        parent_id = self.parents.get(el.node_id)
        return self.elements[parent_id] if parent_id is not None else None

    def ancestors(self, el: Element) -> Iterator[Element]:
        parent = self.parent_of(el)
        while parent is not None:
            yield parent
            parent = self.parent_of(parent)

    def has_ancestor(self, el: Element, *tags: str) -> bool:
        return any(a.tag in tags for a in self.ancestors(el))

    def text_content(self, el: Element) -> str:
        parts = [node.text for node in el.iter() if node.text]
        return " ".join(parts).strip()

    def element_by_html_id(self, html_id: str) -> Optional[Element]:
        for el in self.iter_elements():
            if self.identifiers[el.node_id].element_id == html_id:
                return el
        return None

    def classes_of(self, el: Element) -> frozenset:
        return self.identifiers[el.node_id].classes

    def class_usage(self) -> Dict[str, List[Element]]:
        """Class token -> elements carrying it, in order of first appearance."""
        usage: Dict[str, List[Element]] = {}
        for el in self.iter_elements():
            for token in el.classes:
                usage.setdefault(token, []).append(el)
        return usage

    @property
    def interactive_elements(self) -> List[Element]:
        return [el for el in self.iter_elements() if el.is_interactive]

    @property
    def stylesheet_links(self) -> List[Element]:
        return [
            el for el in self.find_all("link")
            if "stylesheet" in el.get("rel", "").lower().split()
        ]

    # --- Style navigation ---

    @property
    def style_rules(self) -> List[StyleRule]:
        return [rule for sheet in self.style_sheets for rule in sheet.rules]

    @property
    def at_rules(self) -> List[AtRule]:
        return [at for sheet in self.style_sheets for at in sheet.at_rules]

    @property
    def external_style_sheets(self) -> List[StyleSheet]:
        return [sheet for sheet in self.style_sheets if not sheet.embedded]
