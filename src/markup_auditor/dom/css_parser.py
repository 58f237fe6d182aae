# src/markup_auditor/dom/css_parser.py
import logging
import re
from typing import List, Optional, Tuple

from markup_auditor.exceptions import ParseError
from markup_auditor.utils.positions import LineIndex
from .models import AtRule, Declaration, StyleRule, StyleSheet

logger = logging.getLogger(__name__)

# At-rules whose block contains ordinary style rules.
CONDITIONAL_AT_RULES = frozenset({"media", "supports", "container", "layer", "document", "scope"})

_IMPORTANT = re.compile(r"!\s*important\s*$", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


class StyleSheetParser:
    """
    Tolerant style-sheet reader producing StyleRules with source positions.

    It understands comments, strings, parenthesised values, nested
    conditional at-rules and `!important`; it is not a grammar validator.
    Only structurally unrecoverable input (an unterminated comment or a
    block that is never closed) raises ParseError.
    """

    def __init__(self, text: str, path: str, embedded: bool = False, first_rule_id: int = 0):
        self.path = path
        self.embedded = embedded
        self.index = LineIndex(text, path)
        self.text = self._strip_comments(text)
        self._next_rule_id = first_rule_id
        self._rules: List[StyleRule] = []
        self._at_rules: List[AtRule] = []

    @property
    def next_rule_id(self) -> int:
        return self._next_rule_id

    def _error(self, message: str, offset: int) -> ParseError:
        return ParseError(message, self.index.locate(offset))

    def parse(self) -> StyleSheet:
        self._parse_block(0, conditions=(), open_brace=None)
        return StyleSheet(path=self.path, rules=self._rules, at_rules=self._at_rules, embedded=self.embedded)

    # --- Lexical helpers ---

    def _strip_comments(self, text: str) -> str:
        """Blanks out comments while keeping every offset (and newline) in place."""
        out = []
        i = 0
        n = len(text)
        quote = None
        while i < n:
            ch = text[i]
            if quote:
                if ch == "\\" and i + 1 < n:
                    out.append(text[i:i + 2])
                    i += 2
                    continue
                if ch == quote or ch == "\n":
                    quote = None
                out.append(ch)
                i += 1
            elif ch in "\"'":
                quote = ch
                out.append(ch)
                i += 1
            elif text.startswith("/*", i):
                end = text.find("*/", i + 2)
                if end == -1:
                    raise self._error("unterminated comment", i)
                out.append(re.sub(r"[^\n]", " ", text[i:end + 2]))
                i = end + 2
            else:
                out.append(ch)
                i += 1
        return "".join(out)

    def _scan_until(self, pos: int, stops: str) -> int:
        """Index of the first top-level character in `stops` (quote and paren aware), or len(text)."""
        text = self.text
        n = len(text)
        depth = 0
        quote = None
        while pos < n:
            ch = text[pos]
            if quote:
                if ch == "\\":
                    pos += 1
                elif ch == quote or ch == "\n":
                    quote = None
            elif ch in "\"'":
                quote = ch
            elif ch == "\\":
                pos += 1
            elif ch in "([":
                depth += 1
            elif ch in ")]":
                depth = max(0, depth - 1)
            elif depth == 0 and ch in stops:
                return pos
            pos += 1
        return n

    def _matching_brace(self, open_pos: int) -> int:
        """Index of the '}' closing the block opened at `open_pos`, or -1."""
        depth = 0
        pos = open_pos
        while True:
            pos = self._scan_until(pos, "{}")
            if pos >= len(self.text):
                return -1
            depth += 1 if self.text[pos] == "{" else -1
            if depth == 0:
                return pos
            pos += 1

    # --- Grammar ---

    def _parse_block(self, pos: int, conditions: Tuple[str, ...], open_brace: Optional[int]) -> int:
        text = self.text
        n = len(text)
        while True:
            while pos < n and (text[pos].isspace() or text[pos] == ";"):
                pos += 1
            if pos >= n:
                if open_brace is not None:
                    raise self._error("unterminated style block", open_brace)
                return pos
            if text[pos] == "}":
                if open_brace is not None:
                    return pos + 1
                logger.warning("Ignoring stray '}' at %s", self.index.locate(pos))
                pos += 1
                continue

            start = pos
            stop = self._scan_until(pos, "{;}")
            prelude = text[start:stop].strip()

            if stop >= n or text[stop] != "{":
                if prelude.startswith("@"):
                    self._record_at_rule(prelude, start, has_block=False)
                elif prelude:
                    logger.debug("Skipping stray text '%s' at %s", prelude[:40], self.index.locate(start))
                pos = stop + 1 if stop < n and text[stop] == ";" else stop
                continue

            if prelude.startswith("@"):
                name = self._record_at_rule(prelude, start, has_block=True)
                if name in CONDITIONAL_AT_RULES:
                    condition = _WHITESPACE.sub(" ", prelude)
                    pos = self._parse_block(stop + 1, conditions + (condition,), open_brace=stop)
                else:
                    close = self._matching_brace(stop)
                    if close == -1:
                        raise self._error(f"unterminated @{name} block", stop)
                    pos = close + 1
                continue

            close = self._matching_brace(stop)
            if close == -1:
                raise self._error("unterminated style block", stop)
            self._add_rule(prelude, start, stop + 1, close, conditions)
            pos = close + 1

    def _record_at_rule(self, prelude: str, offset: int, has_block: bool) -> str:
        match = re.match(r"@([-\w]+)\s*(.*)", prelude, re.DOTALL)
        name = match.group(1).lower() if match else ""
        rest = _WHITESPACE.sub(" ", match.group(2)).strip() if match else ""
        self._at_rules.append(AtRule(
            name=name,
            prelude=rest,
            location=self.index.locate(offset),
            sheet=self.path,
            has_block=has_block,
        ))
        return name

    def _add_rule(self, selector: str, offset: int, body_start: int, body_end: int,
                  conditions: Tuple[str, ...]) -> None:
        self._rules.append(StyleRule(
            rule_id=self._next_rule_id,
            selector=_WHITESPACE.sub(" ", selector),
            declarations=self._parse_declarations(body_start, body_end),
            location=self.index.locate(offset),
            sheet=self.path,
            conditions=conditions,
        ))
        self._next_rule_id += 1

    def _parse_declarations(self, start: int, end: int) -> List[Declaration]:
        text = self.text
        declarations = []
        pos = start
        while pos < end:
            stop = min(self._scan_until(pos, ";{"), end)
            if stop < end and text[stop] == "{":
                # Nested rule (CSS nesting): not modelled, skip the whole block.
                close = self._matching_brace(stop)
                pos = close + 1 if close != -1 and close < end else end
                continue
            chunk = text[pos:stop]
            decl = self._parse_declaration(chunk, pos)
            if decl is not None:
                declarations.append(decl)
            pos = stop + 1
        return declarations

    def _parse_declaration(self, chunk: str, offset: int) -> Optional[Declaration]:
        if ":" not in chunk:
            if chunk.strip():
                logger.debug("Skipping malformed declaration '%s'", chunk.strip()[:40])
            return None
        prop, value = chunk.split(":", 1)
        leading = len(prop) - len(prop.lstrip())
        prop = prop.strip().lower()
        value = value.strip()
        important = bool(_IMPORTANT.search(value))
        if important:
            value = _IMPORTANT.sub("", value).strip()
        if not prop or not value:
            return None
        return Declaration(
            property=prop,
            value=value,
            important=important,
            location=self.index.locate(offset + leading),
        )


def parse_stylesheet(text: str, path: str, embedded: bool = False, first_rule_id: int = 0) -> StyleSheet:
    return StyleSheetParser(text, path, embedded=embedded, first_rule_id=first_rule_id).parse()
