# src/markup_auditor/dom/selectors.py
"""
Just enough selector handling for the audit rules: splitting selector lists,
isolating the subject compound and matching it against an element's tag,
classes and id. Combinators are not evaluated.
"""
import re
from typing import List, NamedTuple, Optional, Tuple

_IDENT = r"-?(?:[_a-zA-Z]|\\.|[^\x00-\x7f])(?:[\w-]|\\.|[^\x00-\x7f])*"
_CLASS_TOKEN = re.compile(r"\.(" + _IDENT + ")")
_COMBINATOR_CHARS = " \t\r\n\f>+~"


class Compound(NamedTuple):
    tag: Optional[str]
    element_id: Optional[str]
    classes: Tuple[str, ...]
    attributes: Tuple[str, ...]
    pseudo_classes: Tuple[str, ...]
    pseudo_elements: Tuple[str, ...]

    @property
    def is_universal(self) -> bool:
        return (
            self.tag in (None, "*")
            and self.element_id is None
            and not self.classes
            and not self.attributes
        )


def _top_level_split(text: str, is_separator) -> List[Tuple[int, int]]:
    """Yields (start, end) spans of `text` separated at top-level separator chars."""
    spans = []
    depth = 0
    quote = None
    start = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 1
            elif ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch == "\\":
            i += 1
        elif ch in "([":
            depth += 1
        elif ch in ")]":
            depth = max(0, depth - 1)
        elif depth == 0 and is_separator(ch):
            spans.append((start, i))
            start = i + 1
        i += 1
    spans.append((start, len(text)))
    return spans


def split_selector_list(selector: str) -> List[str]:
    parts = [selector[s:e].strip() for s, e in _top_level_split(selector, lambda c: c == ",")]
    return [p for p in parts if p]


def compounds(selector: str) -> List[str]:
    """Compound selectors of one complex selector, left to right."""
    parts = [selector[s:e].strip() for s, e in _top_level_split(selector, lambda c: c in _COMBINATOR_CHARS)]
    return [p for p in parts if p]


def subject_compound(selector: str) -> str:
    parts = compounds(selector)
    return parts[-1] if parts else ""


def _read_ident(text: str, pos: int) -> Tuple[str, int]:
    end = pos
    while end < len(text) and (text[end].isalnum() or text[end] in "-_\\" or ord(text[end]) > 127):
        end += 2 if text[end] == "\\" else 1
    return text[pos:end], end


def _skip_parens(text: str, pos: int) -> int:
    depth = 0
    while pos < len(text):
        if text[pos] == "(":
            depth += 1
        elif text[pos] == ")":
            depth -= 1
            if depth == 0:
                return pos + 1
        pos += 1
    return pos


def parse_compound(text: str) -> Compound:
    tag = None
    element_id = None
    classes: List[str] = []
    attributes: List[str] = []
    pseudo_classes: List[str] = []
    pseudo_elements: List[str] = []

    pos = 0
    if text.startswith("*"):
        tag, pos = "*", 1
    elif text[:1].isalpha():
        name, pos = _read_ident(text, 0)
        tag = name.lower()

    while pos < len(text):
        ch = text[pos]
        if ch == ".":
            name, pos = _read_ident(text, pos + 1)
            classes.append(name)
        elif ch == "#":
            name, pos = _read_ident(text, pos + 1)
            element_id = name
        elif ch == "[":
            end = text.find("]", pos)
            end = len(text) if end == -1 else end
            attr = re.split(r"[~|^$*]?=", text[pos + 1:end], maxsplit=1)[0].strip().lower()
            attributes.append(attr)
            pos = end + 1
        elif ch == ":":
            is_element = text.startswith("::", pos)
            name, pos = _read_ident(text, pos + (2 if is_element else 1))
            if pos < len(text) and text[pos] == "(":
                pos = _skip_parens(text, pos)
            name = name.lower()
            # Legacy single-colon pseudo-elements
            if is_element or name in ("before", "after", "first-line", "first-letter"):
                pseudo_elements.append(name)
            else:
                pseudo_classes.append(name)
        else:
            pos += 1

    return Compound(tag, element_id, tuple(classes), tuple(attributes),
                    tuple(pseudo_classes), tuple(pseudo_elements))


def is_universal_selector(selector: str) -> bool:
    """True for `*`, `*::before` and friends: a single universal compound."""
    parts = compounds(selector)
    return len(parts) == 1 and parse_compound(parts[0]).is_universal


def selector_classes(selector: str) -> List[str]:
    """Every class token named anywhere in a selector, in order, without duplicates."""
    stripped = re.sub(r"\[[^\]]*\]|\"[^\"]*\"|'[^']*'", " ", selector)
    seen: List[str] = []
    for token in _CLASS_TOKEN.findall(stripped):
        if token not in seen:
            seen.append(token)
    return seen


def matches_compound(compound: Compound, tag: str, classes, element_id: Optional[str], attrs) -> bool:
    if compound.tag not in (None, "*") and compound.tag != tag:
        return False
    if compound.element_id is not None and compound.element_id != element_id:
        return False
    if any(c not in classes for c in compound.classes):
        return False
    return all(a in attrs for a in compound.attributes)
