# src/markup_auditor/dom/builder.py
import logging
from collections import Counter
from typing import Dict, List, Optional, Sequence, Tuple, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString
from pydantic import BaseModel

from markup_auditor.model import SourceLocation
from .core import Element, Identifiers
from .css_parser import parse_stylesheet
from .models import StructuralModel, StyleSheet
from .scanner import scan_markup

logger = logging.getLogger(__name__)

ROOT_TAG = "#document"


class SourceArtifact(BaseModel):
    """A markup or style-sheet document handed in by the artifact loader."""
    path: str
    content: Union[bytes, str]

    def decode(self) -> str:
        raw = self.content
        text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        # Drop a leading BOM without shifting any other offsets
        return text[1:] if text.startswith("\ufeff") else text


def _as_artifact(source: Union[SourceArtifact, bytes, str], default_path: str) -> SourceArtifact:
    if isinstance(source, SourceArtifact):
        return source
    return SourceArtifact(path=default_path, content=source)


class DOMBuilder:
    """
    Builder responsible for turning raw markup and style sheets into an
    immutable StructuralModel.

    The markup is first validated by the MarkupScanner (which raises
    ParseError on unrecoverable structure), then parsed by BeautifulSoup into
    Elements with node ids, DOM paths and source positions.
    """

    def build(
            self,
            markup: Union[SourceArtifact, bytes, str],
            stylesheets: Sequence[Union[SourceArtifact, bytes, str]] = (),
            path: str = "index.html"
    ) -> StructuralModel:
        """
        Args:
            markup: The markup document (artifact, bytes or text).
            stylesheets: Associated style sheets, in cascade order.
            path: Logical path used when `markup` is not a SourceArtifact.

        Returns:
            StructuralModel: The read-only model shared by every rule.

        Raises:
            ParseError: On structurally unrecoverable markup or CSS.
        """
        artifact = _as_artifact(markup, path)
        text = artifact.decode()

        scan = scan_markup(text, artifact.path)
        soup = BeautifulSoup(text, "html.parser", on_duplicate_attribute="ignore")

        elements: List[Optional[Element]] = []
        parents: Dict[int, int] = {}
        identifiers: Dict[int, Identifiers] = {}

        root = self._build_tree(soup, artifact.path, elements, parents, identifiers)

        style_sheets: List[StyleSheet] = []
        next_rule_id = 0
        for i, sheet_source in enumerate(stylesheets):
            sheet_artifact = _as_artifact(sheet_source, f"stylesheet-{i}.css")
            sheet = parse_stylesheet(sheet_artifact.decode(), sheet_artifact.path, first_rule_id=next_rule_id)
            next_rule_id += len(sheet.rules)
            style_sheets.append(sheet)

        for i, style_tag in enumerate(soup.find_all("style")):
            sheet = parse_stylesheet(
                style_tag.get_text(),
                f"{artifact.path}#style[{i}]",
                embedded=True,
                first_rule_id=next_rule_id,
            )
            next_rule_id += len(sheet.rules)
            style_sheets.append(sheet)

        model = StructuralModel(
            path=artifact.path,
            root=root,
            style_sheets=style_sheets,
            has_doctype=scan.has_doctype,
            elements=elements,
            parents=parents,
            identifiers=identifiers,
        )
        logger.debug(
            "Built model for %s: %d elements from %d start tags, %d style rules in %d sheet(s)",
            artifact.path, len(elements) - 1, scan.start_tags, next_rule_id, len(style_sheets),
        )
        return model

    def _build_tree(
            self,
            soup: BeautifulSoup,
            doc_path: str,
            elements: List[Optional[Element]],
            parents: Dict[int, int],
            identifiers: Dict[int, Identifiers],
    ) -> Element:
        """
        Builds the Element tree in document order on an explicit stack.
        Ids are handed out pre-order, so `elements[node_id]` is the element itself.
        Elements are then assembled from the highest id down, since every child
        has a higher id than its parent.
        """
        nodes: List[Tuple[Tag, str]] = []
        child_ids: List[List[int]] = []
        stack: List[Tuple[Tag, Optional[int], str]] = [(soup, None, "")]

        while stack:
            tag, parent_id, dom_path = stack.pop()
            node_id = len(nodes)
            nodes.append((tag, dom_path))
            child_ids.append([])
            if parent_id is not None:
                parents[node_id] = parent_id
                child_ids[parent_id].append(node_id)
            stack.extend(reversed(self._child_steps(tag, node_id, dom_path)))

        elements.extend([None] * len(nodes))
        for node_id in range(len(nodes) - 1, -1, -1):
            tag, dom_path = nodes[node_id]
            children = [elements[i] for i in child_ids[node_id]]
            if node_id == 0:
                element = Element(
                    node_id=node_id,
                    tag=ROOT_TAG,
                    children=children,
                    location=SourceLocation(path=doc_path, line=1, column=1),
                )
            else:
                attrs = {
                    name: " ".join(value) if isinstance(value, list) else (value or "")
                    for name, value in tag.attrs.items()
                }
                line = tag.sourceline or 0
                column = (tag.sourcepos or 0) + 1
                element = Element(
                    node_id=node_id,
                    tag=tag.name.lower(),
                    attrs=attrs,
                    text=self._direct_text(tag),
                    children=children,
                    location=SourceLocation(path=doc_path, line=line, column=column),
                    path=dom_path,
                )
            elements[node_id] = element
            identifiers[node_id] = Identifiers(frozenset(element.classes), element.element_id)
        return elements[0]

    @staticmethod
    def _child_steps(tag: Tag, node_id: int, dom_path: str) -> List[Tuple[Tag, int, str]]:
        """Child tags with their DOM path step; a tag name repeated among siblings gets an index."""
        child_tags = [child for child in tag.children if isinstance(child, Tag)]
        tag_totals = Counter(child.name for child in child_tags)
        tag_seen: Counter = Counter()

        steps = []
        for child in child_tags:
            tag_seen[child.name] += 1
            step = child.name if tag_totals[child.name] == 1 else f"{child.name}[{tag_seen[child.name]}]"
            steps.append((child, node_id, f"{dom_path}>{step}" if dom_path else step))
        return steps

    @staticmethod
    def _direct_text(tag: Tag) -> str:
        parts = [
            " ".join(str(child).split())
            for child in tag.children
            if isinstance(child, NavigableString) and not isinstance(child, PreformattedString)
        ]
        return " ".join(p for p in parts if p)
