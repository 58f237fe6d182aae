import re
from typing import List

from markup_auditor.managers.config_manager import config_manager
from markup_auditor.model import Category, Severity
from ..core import AuditHit, RuleSet, audit_rule, hit
from ..models import StructuralModel

URL_ATTRIBUTES = ("src", "href", "poster", "data")

# file: URLs, Windows drive letters, UNC shares and home directories
_LOCAL_PATH = re.compile(r"^(?:file:|[a-zA-Z]:[\\/]|\\\\|~/|/Users/|/home/)")
_CSS_URL = re.compile(r"url\(\s*['\"]?([^'\")]+)['\"]?\s*\)", re.IGNORECASE)


# --- RULES ---

@audit_rule("missing-src", Category.ASSETS, Severity.HIGH)
def check_image_source(model: StructuralModel) -> List[AuditHit]:
    """Image tag has no source."""
    return [
        hit(el, "<img> has no src attribute")
        for el in model.find_all("img")
        if not el.get("src", "").strip() and not el.get("srcset", "").strip()
    ]


@audit_rule("inline-base64-image", Category.ASSETS, Severity.MEDIUM)
def check_base64_images(model: StructuralModel) -> List[AuditHit]:
    """Large Base64 images inlined in the markup bloat the document and bypass caching."""
    warning_kb = config_manager.rule_option("base64", "warning_kb", 20.0)
    critical_kb = config_manager.rule_option("base64", "critical_kb", 100.0)

    results = []
    for el in model.find_all("img"):
        src = el.get("src", "")
        if not src.startswith("data:image"):
            continue
        # len(str) is a sufficient proxy for bytes here
        size_in_kb = len(src) / 1024
        if size_in_kb > critical_kb:
            results.append(hit(
                el, "Base64 image is {size}KB; it prevents caching and slows the first render",
                Severity.HIGH, size=round(size_in_kb, 2),
            ))
        elif size_in_kb > warning_kb:
            results.append(hit(
                el, "Large Base64 image ({size}KB); consider an external file",
                size=round(size_in_kb, 2),
            ))
        # Small inline images are an optimisation, not a finding.
    return results


@audit_rule("image-missing-dimensions", Category.ASSETS, Severity.LOW)
def check_image_dimensions(model: StructuralModel) -> List[AuditHit]:
    """<img> without width and height causes layout shift while loading."""
    return [
        hit(el, "<img> {src} has no width/height attributes", src=el.get("src") or el.path)
        for el in model.find_all("img")
        if not (el.has("width") and el.has("height"))
    ]


@audit_rule("local-asset-path", Category.ASSETS, Severity.HIGH)
def check_local_paths(model: StructuralModel) -> List[AuditHit]:
    """Asset reference points at the author's file system instead of a relative path."""
    results = []
    for el in model.iter_elements():
        for attr in URL_ATTRIBUTES:
            value = el.get(attr, "").strip()
            if value and _LOCAL_PATH.match(value):
                results.append(hit(el, "{attr}=\"{value}\" points at a local file system path",
                                   attr=attr, value=value))
    for rule in model.style_rules:
        for decl in rule.declarations:
            for url in _CSS_URL.findall(decl.value):
                if _LOCAL_PATH.match(url.strip()):
                    results.append(hit(rule, "'{selector}' loads {url} from a local file system path",
                                       selector=rule.selector, url=url.strip()))
    return results


# --- DEFINITION ---
DEFINITION = RuleSet(
    category=Category.ASSETS,
    rules=[
        check_image_source,
        check_base64_images,
        check_image_dimensions,
        check_local_paths,
    ]
)
