# tests/auditor/test_rules_forms_assets.py
import pytest

from markup_auditor.dom.builder import DOMBuilder, SourceArtifact
from markup_auditor.dom.registry import get_default_registry
from markup_auditor.model import Severity


@pytest.fixture
def run_rule():
    """Bouwt een model en evalueert precies één regel uit de standaard-registry."""
    builder = DOMBuilder()
    registry = get_default_registry()

    def _run(key, markup, *stylesheets):
        sheets = [SourceArtifact(path=f"style{i}.css", content=css) for i, css in enumerate(stylesheets)]
        model = builder.build(markup, sheets)
        return registry.get(key).evaluate(model)
    return _run


# --- Forms ---

def test_label_paired_by_for_and_id(run_rule):
    """Een <label for> die naar het id van de input wijst is voldoende."""
    markup = '<label for="email">E-mail</label><input id="email" name="email">'
    assert run_rule("missing-label", markup) == []


def test_missing_label(run_rule):
    markup = (
        "<form>"
        '<input name="a">'
        '<input type="hidden" name="h">'
        '<input type="submit">'
        '<label>Naam <input name="n"></label>'
        '<input aria-label="Zoek" name="q">'
        '<select name="s"></select>'
        '<textarea name="t"></textarea>'
        "</form>"
    )
    findings = run_rule("missing-label", markup)
    assert [f.params["tag"] for f in findings] == ["input", "select", "textarea"]
    assert all(f.severity is None for f in findings)


def test_button_missing_type(run_rule):
    markup = '<form><button>Go</button><button type="button">x</button></form><button>buiten</button>'
    assert len(run_rule("button-missing-type", markup)) == 1


def test_input_missing_name(run_rule):
    markup = '<form><input id="a"><input type="submit"></form><input id="b">'
    findings = run_rule("input-missing-name", markup)
    assert len(findings) == 1
    assert findings[0].anchors[0].path == "form>input[1]"


# --- Assets ---

def test_missing_src(run_rule):
    markup = '<img alt="x"><img src="" alt="x"><img srcset="a.png 1x" alt="x"><img src="a.png" alt="x">'
    assert len(run_rule("missing-src", markup)) == 2


def test_inline_base64_image(run_rule):
    """Kleine inline-afbeeldingen zijn prima; groot is medium, heel groot is high."""
    def img(kb):
        return f'<img alt="x" src="data:image/png;base64,{"A" * kb * 1024}">'

    assert run_rule("inline-base64-image", img(1)) == []

    large = run_rule("inline-base64-image", img(30))
    assert len(large) == 1
    assert large[0].severity is None

    huge = run_rule("inline-base64-image", img(150))
    assert huge[0].severity == Severity.HIGH


def test_image_missing_dimensions(run_rule):
    markup = '<img src="a.png" alt="" width="10" height="10"><img src="b.png" alt="" width="10">'
    findings = run_rule("image-missing-dimensions", markup)
    assert [f.params["src"] for f in findings] == ["b.png"]


def test_local_asset_path(run_rule):
    """Verwijzingen naar het eigen bestandssysteem, in markup en in CSS."""
    markup = (
        '<img src="file:///C:/foto.png" alt="">'
        '<a href="C:\\docs\\a.html">x</a>'
        '<img src="img/ok.png" alt="">'
        '<link rel="stylesheet" href="/Users/jan/style.css">'
    )
    css = ".hero { background: url('~/img/bg.png') }"
    findings = run_rule("local-asset-path", markup, css)

    assert len(findings) == 4
    assert findings[-1].params["url"] == "~/img/bg.png"
