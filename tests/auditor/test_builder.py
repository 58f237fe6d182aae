# tests/auditor/test_builder.py
import logging

import pytest

from markup_auditor.dom.builder import DOMBuilder, SourceArtifact
from markup_auditor.exceptions import ParseError
from markup_auditor.utils.positions import LineIndex

MARKUP = """<!DOCTYPE html>
<html lang="nl">
<head><title>Test</title></head>
<body>
<div class="a b"><img src="x.png"></div>
<div id="main"><p>Hallo <b>wereld</b></p></div>
</body>
</html>"""


@pytest.fixture
def builder():
    """Een verse DOMBuilder per test."""
    return DOMBuilder()


@pytest.fixture
def model(builder):
    return builder.build(MARKUP, path="index.html")


def test_builder_root_and_node_ids(model):
    """De root is het synthetische document; node ids volgen de documentvolgorde."""
    assert model.root.tag == "#document"
    assert model.elements[0] is model.root
    assert all(el.node_id == i for i, el in enumerate(model.elements))
    assert [el.tag for el in model.iter_elements()][:3] == ["html", "head", "title"]
    assert model.has_doctype is True


def test_builder_paths_and_positions(model):
    """Elke Element krijgt een DOM-pad en een 1-based regel/kolom."""
    img = model.find("img")
    assert img.path == "html>body>div[1]>img"
    assert img.location.path == "index.html"
    assert img.location.line == 5
    assert img.location.column == 18


def test_builder_navigation(model):
    """Parent, voorouders, id-lookup en klassen komen uit de indexen van het model."""
    img = model.find("img")
    assert model.parent_of(img).tag == "div"
    assert [a.tag for a in model.ancestors(img)] == ["div", "body", "html", "#document"]
    assert model.has_ancestor(img, "body")
    assert model.parent_of(model.root) is None

    div = model.parent_of(img)
    assert div.get("class") == "a b"
    assert model.classes_of(div) == frozenset({"a", "b"})
    assert model.element_by_html_id("main").tag == "div"
    assert model.element_by_html_id("bestaat-niet") is None


def test_builder_text_content(model):
    """De volledige tekst van een element bevat ook de tekst van de kinderen."""
    p = model.find("p")
    assert p.text == "Hallo"
    assert model.text_content(p) == "Hallo wereld"


def test_builder_decodes_bytes_and_strips_bom(builder):
    """Bytes worden als UTF-8 gelezen en een BOM verschuift geen posities."""
    model = builder.build(SourceArtifact(path="bom.html", content="\ufeff<p>café</p>".encode("utf-8")))
    p = model.find("p")
    assert model.path == "bom.html"
    assert p.text == "café"
    assert (p.location.line, p.location.column) == (1, 1)
    assert model.has_doctype is False


def test_builder_style_sheets_external_and_embedded(builder):
    """Externe sheets komen eerst, daarna de <style>-blokken met doorlopende rule ids."""
    markup = "<html><head><style>.x { margin: 0 }</style></head><body></body></html>"
    model = builder.build(markup, [SourceArtifact(path="style.css", content=b"a { color: red }")])

    assert [s.path for s in model.style_sheets] == ["style.css", "index.html#style[0]"]
    assert [s.embedded for s in model.style_sheets] == [False, True]
    assert [r.rule_id for r in model.style_rules] == [0, 1]
    assert [s.path for s in model.external_style_sheets] == ["style.css"]


def test_builder_duplicate_attribute_keeps_first(builder, caplog):
    """Dubbele attributen: de eerste waarde wint en er wordt gewaarschuwd."""
    with caplog.at_level(logging.WARNING):
        model = builder.build('<img src="a.png" src="b.png" alt="">')
    assert model.find("img").get("src") == "a.png"
    assert "Duplicate attribute 'src'" in caplog.text


def test_builder_raises_parse_error_without_model(builder):
    """Onherstelbare markup levert een ParseError met locatie, geen model."""
    with pytest.raises(ParseError) as exc_info:
        builder.build("<div>\n<span>tekst</div>", path="kapot.html")
    location = exc_info.value.location
    assert location.path == "kapot.html"
    assert location.line == 2


def test_builder_raises_on_broken_style_sheet(builder):
    """Een stijlblok dat nooit sluit breekt de build af."""
    with pytest.raises(ParseError):
        builder.build("<p>x</p>", [SourceArtifact(path="kapot.css", content="a { color: red;")])


def test_builder_handles_deep_nesting(builder):
    """Diep geneste, correcte markup wordt zonder recursie opgebouwd en doorlopen."""
    depth = 900
    model = builder.build("<div>" * depth + "x" + "</div>" * depth)

    assert len(model.elements) == depth + 1
    deepest = model.elements[-1]
    assert deepest.text == "x"
    assert len(list(model.ancestors(deepest))) == depth
    assert [el.node_id for el in model.root.iter()] == list(range(depth + 1))
    assert len(list(model.root.iter_descendants())) == depth
    assert model.text_content(model.root) == "x"


def test_line_index_positions():
    """LineIndex vertaalt offsets naar regel en kolom."""
    index = LineIndex("ab\ncd", "x.html")
    assert index.position(0) == (1, 1)
    assert index.position(2) == (1, 3)
    assert index.position(3) == (2, 1)
    assert str(index.locate(4)) == "x.html:2:2"
