# tests/auditor/test_css_parser.py
import logging

import pytest

from markup_auditor.dom.css_parser import parse_stylesheet
from markup_auditor.dom.selectors import (
    is_universal_selector,
    matches_compound,
    parse_compound,
    selector_classes,
    split_selector_list,
    subject_compound,
)
from markup_auditor.exceptions import ParseError

STYLESHEET = """/* kop */
body { margin: 0; color: red !important; }
@media (max-width: 600px) {
  .card, .panel { width: 100%; }
}
@font-face { font-family: X; src: url("a;b.woff"); }
@import url("x.css");
a:focus { outline: none }
"""


@pytest.fixture
def sheet():
    return parse_stylesheet(STYLESHEET, "style.css")


def test_css_rules_in_source_order(sheet):
    """Alleen stijlregels worden StyleRules; at-rules worden apart vastgelegd."""
    assert [r.selector for r in sheet.rules] == ["body", ".card, .panel", "a:focus"]
    assert [r.rule_id for r in sheet.rules] == [0, 1, 2]
    assert [a.name for a in sheet.at_rules] == ["media", "font-face", "import"]
    assert [a.has_block for a in sheet.at_rules] == [True, True, False]


def test_css_declarations_and_important(sheet):
    """Declaraties houden hun waarde en !important vlag."""
    body = sheet.rules[0]
    assert body.get("margin") == "0"
    assert body.get("color") == "red"
    assert body.declarations[1].important is True
    assert (body.location.line, body.location.column) == (2, 1)


def test_css_conditional_blocks(sheet):
    """Regels binnen @media dragen hun conditie mee."""
    card = sheet.rules[1]
    assert card.conditions == ("@media (max-width: 600px)",)
    assert card.in_conditional_block is True
    assert card.selectors == [".card", ".panel"]
    assert sheet.at_rules[0].is_width_condition is True
    assert sheet.rules[0].in_conditional_block is False


def test_css_nested_conditions():
    """Geneste conditionele at-rules stapelen hun condities."""
    sheet = parse_stylesheet(
        "@supports (display: grid) { @media (min-width: 40em) { .g { display: grid } } }", "grid.css"
    )
    assert sheet.rules[0].conditions == ("@supports (display: grid)", "@media (min-width: 40em)")


def test_css_important_beats_later_declaration():
    """Binnen één regel wint !important van een latere normale declaratie."""
    important = parse_stylesheet("a { color: red !important; color: blue }", "a.css").rules[0]
    normal = parse_stylesheet("a { color: red; color: blue }", "b.css").rules[0]
    assert important.get("color") == "red"
    assert normal.get("color") == "blue"


def test_css_unterminated_block_raises():
    """Een '{' die nooit sluit is een ParseError op de accolade."""
    with pytest.raises(ParseError) as exc_info:
        parse_stylesheet("a { color: red;", "kapot.css")
    assert str(exc_info.value.location) == "kapot.css:1:3"


def test_css_unterminated_comment_raises():
    with pytest.raises(ParseError):
        parse_stylesheet("a { } /* oeps", "kapot.css")


def test_css_stray_closing_brace_is_tolerated(caplog):
    """Een losse '}' op het hoogste niveau geeft alleen een waarschuwing."""
    with caplog.at_level(logging.WARNING):
        sheet = parse_stylesheet("} a { color: blue }", "los.css")
    assert [r.selector for r in sheet.rules] == ["a"]
    assert "stray '}'" in caplog.text


# --- Selector helpers ---

def test_selector_list_split_respects_parentheses():
    assert split_selector_list("a, b:not(.x, .y), c") == ["a", "b:not(.x, .y)", "c"]


def test_selector_subject_compound():
    assert subject_compound("nav ul > li a.link:hover") == "a.link:hover"


def test_selector_parse_compound():
    """Een compound wordt ontleed in tag, id, klassen, attributen en pseudo's."""
    compound = parse_compound("a.link.active#top[href]:focus-visible::after")
    assert compound.tag == "a"
    assert compound.element_id == "top"
    assert compound.classes == ("link", "active")
    assert compound.attributes == ("href",)
    assert compound.pseudo_classes == ("focus-visible",)
    assert compound.pseudo_elements == ("after",)


@pytest.mark.parametrize("selector, expected", [
    ("*", True),
    ("*::before", True),
    ("div *", False),
    (".x", False),
    ("html", False),
])
def test_selector_universal(selector, expected):
    assert is_universal_selector(selector) is expected


def test_selector_classes_ignore_attribute_values():
    assert selector_classes(".card .card__title:hover, a[href='.x'], .card") == ["card", "card__title"]


def test_selector_matches_compound():
    compound = parse_compound("button.primary")
    assert matches_compound(compound, "button", {"primary", "big"}, None, {})
    assert not matches_compound(compound, "a", {"primary"}, None, {})
    assert not matches_compound(compound, "button", {"big"}, None, {})
