# src/markup_auditor/dom/scanner.py
import logging
import re
from typing import List, NamedTuple, Optional, Tuple

from markup_auditor.managers.config_manager import config_manager
from markup_auditor.exceptions import ParseError
from markup_auditor.model import SourceLocation
from markup_auditor.utils.positions import LineIndex
from .core import VOID_ELEMENTS

logger = logging.getLogger(__name__)

RAW_TEXT_ELEMENTS = frozenset({"script", "style", "textarea", "title"})

# Elements whose end tag may be omitted, so they may be left open or closed implicitly.
OPTIONAL_END_TAGS = frozenset({
    "p", "li", "dt", "dd", "option", "optgroup", "tr", "td", "th", "thead",
    "tbody", "tfoot", "colgroup", "caption", "rb", "rt", "rp", "html", "head", "body",
})

_END_TAG = re.compile(r"</([A-Za-z][^\s/>]*)[^>]*>")
_DOCTYPE = re.compile(r"<!doctype\b", re.IGNORECASE)

DEFAULT_MAX_DEPTH = 1024


class DuplicateAttribute(NamedTuple):
    tag: str
    attribute: str
    location: SourceLocation


class ScanResult(NamedTuple):
    has_doctype: bool
    start_tags: int
    duplicates: List[DuplicateAttribute]


class MarkupScanner:
    """
    Single-pass tokenizer that checks the markup is structurally recoverable
    before the tree is built. It tolerates what browsers tolerate (void
    elements, unquoted values, omitted optional end tags) and raises
    ParseError for everything that cannot be repaired unambiguously.
    """

    def __init__(self, text: str, path: str, max_depth: Optional[int] = None):
        self.text = text
        self.path = path
        self.max_depth = max_depth or int(config_manager.get_nested("engine.max_nesting_depth", DEFAULT_MAX_DEPTH))
        self.index = LineIndex(text, path)

    def _error(self, message: str, offset: int) -> ParseError:
        return ParseError(message, self.index.locate(offset))

    def scan(self) -> ScanResult:
        text = self.text
        n = len(text)
        stack: List[Tuple[str, int]] = []
        duplicates: List[DuplicateAttribute] = []
        has_doctype = False
        start_tags = 0
        pos = 0

        while True:
            lt = text.find("<", pos)
            if lt == -1:
                break

            if text.startswith("<!--", lt):
                end = text.find("-->", lt + 4)
                if end == -1:
                    raise self._error("unterminated comment", lt)
                pos = end + 3
                continue

            if text.startswith("<![CDATA[", lt):
                end = text.find("]]>", lt)
                if end == -1:
                    raise self._error("unterminated CDATA section", lt)
                pos = end + 3
                continue

            if text.startswith("<!", lt) or text.startswith("<?", lt):
                end = text.find(">", lt)
                if end == -1:
                    raise self._error("unterminated markup declaration", lt)
                if _DOCTYPE.match(text, lt):
                    has_doctype = True
                pos = end + 1
                continue

            if text.startswith("</", lt):
                match = _END_TAG.match(text, lt)
                if match is None:
                    if lt + 2 < n and text[lt + 2].isalpha():
                        raise self._error("unterminated end tag", lt)
                    pos = lt + 2
                    continue
                self._close(stack, match.group(1).lower(), lt)
                pos = match.end()
                continue

            if lt + 1 < n and text[lt + 1].isalpha():
                name, end, self_closing, dupes = self._read_start_tag(lt)
                start_tags += 1
                duplicates.extend(dupes)
                if name in VOID_ELEMENTS or self_closing:
                    pos = end
                elif name in RAW_TEXT_ELEMENTS:
                    close = re.compile(r"</%s\s*>" % re.escape(name), re.IGNORECASE).search(text, end)
                    if close is None:
                        raise self._error(f"unterminated <{name}> block", lt)
                    pos = close.end()
                else:
                    if len(stack) >= self.max_depth:
                        raise self._error(f"<{name}> is nested deeper than {self.max_depth} levels", lt)
                    stack.append((name, lt))
                    pos = end
                continue

            # A stray '<' is plain text.
            pos = lt + 1

        for name, offset in reversed(stack):
            if name not in OPTIONAL_END_TAGS:
                raise self._error(f"<{name}> is never closed", offset)

        for dup in duplicates:
            logger.warning("Duplicate attribute '%s' on <%s> at %s; keeping the first value.",
                           dup.attribute, dup.tag, dup.location)

        return ScanResult(has_doctype=has_doctype, start_tags=start_tags, duplicates=duplicates)

    def _close(self, stack: List[Tuple[str, int]], name: str, offset: int) -> None:
        if name in VOID_ELEMENTS:
            return
        for i in range(len(stack) - 1, -1, -1):
            if stack[i][0] == name:
                break
        else:
            raise self._error(f"closing tag </{name}> has no matching open tag", offset)

        for open_name, open_offset in stack[i + 1:]:
            if open_name not in OPTIONAL_END_TAGS:
                location = self.index.locate(open_offset)
                raise self._error(
                    f"</{name}> closes <{name}> while <{open_name}> (opened at line {location.line}) is still open",
                    offset,
                )
        del stack[i:]

    def _read_start_tag(self, lt: int) -> Tuple[str, int, bool, List[DuplicateAttribute]]:
        text = self.text
        n = len(text)
        pos = lt + 1
        while pos < n and not text[pos].isspace() and text[pos] not in "/>":
            pos += 1
        name = text[lt + 1:pos].lower()

        seen = set()
        duplicates: List[DuplicateAttribute] = []
        while True:
            while pos < n and text[pos].isspace():
                pos += 1
            if pos >= n:
                raise self._error(f"unterminated tag <{name}>", lt)
            ch = text[pos]
            if ch == ">":
                return name, pos + 1, False, duplicates
            if text.startswith("/>", pos):
                return name, pos + 2, True, duplicates
            if ch == "/":
                pos += 1
                continue

            attr_start = pos
            while pos < n and not text[pos].isspace() and text[pos] not in "=>" and not text.startswith("/>", pos):
                pos += 1
            if pos == attr_start:
                # Junk such as a lone '=' or quote: skip it
                pos += 1
                continue
            attr = text[attr_start:pos].lower()
            if attr in seen:
                duplicates.append(DuplicateAttribute(name, attr, self.index.locate(attr_start)))
            seen.add(attr)

            while pos < n and text[pos].isspace():
                pos += 1
            if pos < n and text[pos] == "=":
                pos += 1
                while pos < n and text[pos].isspace():
                    pos += 1
                if pos < n and text[pos] in "\"'":
                    close = text.find(text[pos], pos + 1)
                    if close == -1:
                        raise self._error(f"unterminated value for attribute '{attr}' on <{name}>", pos)
                    pos = close + 1
                else:
                    while pos < n and not text[pos].isspace() and text[pos] != ">":
                        pos += 1


def scan_markup(text: str, path: str, max_depth: Optional[int] = None) -> ScanResult:
    return MarkupScanner(text, path, max_depth).scan()
