# src/markup_auditor/dom/registry.py
import importlib
import logging
import pkgutil
from functools import lru_cache
from typing import Dict, List, Optional

from markup_auditor.exceptions import ConfigurationError
from markup_auditor.model import Category
from .core import Rule, RuleSet

logger = logging.getLogger(__name__)

RULES_PACKAGE = "markup_auditor.dom.rules"


class RuleRegistry:
    """
    Ordered, duplicate-free catalogue of audit rules.

    Rules are registered while the process initialises (normally through
    `discover()`, which loads every module in 'markup_auditor.dom.rules' that
    exposes a `DEFINITION` RuleSet). Once frozen, the registry rejects further
    registration so that every audit sees the same ordered rule set.
    """

    def __init__(self):
        self._rules: Dict[str, Rule] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        if not self._frozen:
            logger.debug("Rule registry frozen with %d rules", len(self._rules))
        self._frozen = True

    def register(self, rule: Rule) -> None:
        if self._frozen:
            raise ConfigurationError(f"Cannot register rule '{rule.key}': the registry is frozen")
        if rule.key in self._rules:
            raise ConfigurationError(f"Duplicate rule key '{rule.key}'")
        self._rules[rule.key] = rule

    def register_set(self, rule_set: RuleSet) -> None:
        for rule in rule_set.rules:
            if rule.category != rule_set.category:
                raise ConfigurationError(
                    f"Rule '{rule.key}' is declared as {rule.category.value} "
                    f"but registered under {rule_set.category.value}"
                )
            self.register(rule)

    def discover(self, package: str = RULES_PACKAGE) -> "RuleRegistry":
        """
        Imports every module of the rules package and registers its DEFINITION.
        Modules are visited in name order, so registration order is reproducible.
        """
        pkg = importlib.import_module(package)
        for _, name, _ in sorted(pkgutil.iter_modules(pkg.__path__), key=lambda m: m[1]):
            full_name = f"{package}.{name}"
            try:
                module = importlib.import_module(full_name)
            except ImportError as e:
                logger.error("Error loading rule module %s: %s", full_name, e)
                continue
            definition = getattr(module, "DEFINITION", None)
            if isinstance(definition, RuleSet):
                self.register_set(definition)
                logger.debug("Rules loaded from %s: %s", name, ", ".join(definition.keys))
        return self

    # --- Queries ---

    def get(self, key: str) -> Optional[Rule]:
        return self._rules.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def rules(self) -> List[Rule]:
        """All rules, grouped by category in the fixed category order."""
        return [rule for category in Category for rule in self.rules_for(category)]

    def rules_for(self, category: Category) -> List[Rule]:
        return [rule for rule in self._rules.values() if rule.category == category]

    def categories(self) -> List[Category]:
        """Every category, including ones without rules (they score a perfect 10)."""
        return list(Category)

    def category_of(self, rule_key: str) -> Category:
        rule = self._rules.get(rule_key)
        if rule is None:
            raise KeyError(rule_key)
        return rule.category

    def grouped(self) -> Dict[Category, List[Rule]]:
        return {category: self.rules_for(category) for category in Category}


@lru_cache(maxsize=None)
def get_default_registry() -> RuleRegistry:
    """The process-wide registry holding every built-in rule."""
    return RuleRegistry().discover()
