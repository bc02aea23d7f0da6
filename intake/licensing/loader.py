"""Rule table loader — reads the category rule table and fee table once.

Tables are JSON files bundled under data/; settings may point at replacements.
Malformed tables fail loudly with RuleTableError at load time.
"""

import json
from collections import deque
from pathlib import Path
from typing import Iterable, Optional, Union

from pydantic import ValidationError

from intake.config import get_settings
from intake.errors import RuleTableError
from intake.licensing.models import FeeLine, LicenseCategoryRule
from intake.licensing.reference_data import LEARNER_CODE_COVERAGE

DATA_DIR = Path(__file__).parent / "data"
CATEGORY_RULES_FILE = DATA_DIR / "license_categories.json"
FEE_TABLE_FILE = DATA_DIR / "fee_structures.json"

# Cache loaded tables to avoid re-reading from disk
_category_cache: dict[str, "CategoryRuleTable"] = {}
_fee_cache: dict[str, tuple[FeeLine, ...]] = {}


class CategoryRuleTable:
    """Read-only lookup over licence category rules."""

    def __init__(self, rules: Iterable[LicenseCategoryRule], source: Optional[str] = None):
        self._rules: dict[str, LicenseCategoryRule] = {}
        for rule in rules:
            if rule.category in self._rules:
                raise RuleTableError(f"Duplicate category '{rule.category}'", source)
            self._rules[rule.category] = rule

        for rule in self._rules.values():
            unknown = [c for c in (*rule.prerequisites, *rule.supersedes) if c not in self._rules]
            if unknown:
                raise RuleTableError(
                    f"Category '{rule.category}' references unknown categories: {', '.join(unknown)}",
                    source,
                )

    @classmethod
    def from_rows(cls, rows: list[dict], source: Optional[str] = None) -> "CategoryRuleTable":
        try:
            rules = [LicenseCategoryRule.model_validate(row) for row in rows]
        except ValidationError as e:
            raise RuleTableError(f"Invalid category rule: {e}", source) from e
        return cls(rules, source)

    def __contains__(self, category: str) -> bool:
        return category in self._rules

    def get(self, category: str) -> Optional[LicenseCategoryRule]:
        return self._rules.get(category)

    @property
    def categories(self) -> list[str]:
        return list(self._rules)

    @property
    def driving_categories(self) -> list[str]:
        return [c for c, rule in self._rules.items() if not rule.learner_only]

    def authorised_by(self, category: str) -> set[str]:
        """Categories a holder of `category` may drive (itself included)."""
        rule = self._rules.get(category)
        if rule is None:
            return set()
        return {category, *rule.supersedes}

    def expand(self, categories: Iterable[str]) -> set[str]:
        """All categories authorised by a set of held categories."""
        expanded: set[str] = set()
        for category in categories:
            expanded |= self.authorised_by(category)
        return expanded

    def prerequisites_met(self, category: str, available: set[str]) -> bool:
        rule = self._rules.get(category)
        if rule is None or not rule.prerequisites:
            return True
        if rule.prerequisite_mode == "any":
            return any(p in available for p in rule.prerequisites)
        return all(p in available for p in rule.prerequisites)

    def transitive_prerequisites(self, category: str) -> set[str]:
        """Every category reachable through prerequisite links."""
        found: set[str] = set()
        queue = deque([category])
        while queue:
            rule = self._rules.get(queue.popleft())
            if rule is None:
                continue
            for prereq in rule.prerequisites:
                if prereq not in found:
                    found.add(prereq)
                    queue.append(prereq)
        return found

    def learner_permit_covers(self, permit_categories: Iterable[str], category: str) -> bool:
        """Whether a learner's permit listing `permit_categories` prepares for `category`."""
        permit_categories = set(permit_categories)
        if category in permit_categories:
            return True
        rule = self._rules.get(category)
        if rule is None or rule.learner_code is None:
            return False
        covered: set[str] = set()
        for code in permit_categories:
            covered |= LEARNER_CODE_COVERAGE.get(code, frozenset())
            code_rule = self._rules.get(code)
            if code_rule is not None and code_rule.learner_code:
                # Permits recorded with driving categories carry that category's code
                covered |= LEARNER_CODE_COVERAGE.get(code_rule.learner_code, frozenset())
        return rule.learner_code in covered


def _read_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise RuleTableError("Rule table file not found", str(path)) from e
    except json.JSONDecodeError as e:
        raise RuleTableError(f"Invalid JSON: {e}", str(path)) from e


def _resolve(path: Union[str, Path, None], configured: str, default: Path) -> Path:
    if path:
        return Path(path)
    if configured:
        return Path(configured)
    return default


def load_category_rules(path: Union[str, Path, None] = None) -> CategoryRuleTable:
    """Load and cache the licence category rule table.

    Args:
        path: Explicit table path. Defaults to CATEGORY_RULES_PATH, then the bundled file.
    """
    resolved = _resolve(path, get_settings().CATEGORY_RULES_PATH, CATEGORY_RULES_FILE)
    key = str(resolved)
    if key in _category_cache:
        return _category_cache[key]

    data = _read_json(resolved)
    rows = data.get("categories") if isinstance(data, dict) else None
    if not isinstance(rows, list):
        raise RuleTableError("Expected an object with a 'categories' list", key)

    table = CategoryRuleTable.from_rows(rows, key)
    _category_cache[key] = table
    return table


def load_fee_table(path: Union[str, Path, None] = None) -> tuple[FeeLine, ...]:
    """Load and cache the fee rate table.

    Rows without a currency get DEFAULT_CURRENCY.
    """
    settings = get_settings()
    resolved = _resolve(path, settings.FEE_TABLE_PATH, FEE_TABLE_FILE)
    key = str(resolved)
    if key in _fee_cache:
        return _fee_cache[key]

    data = _read_json(resolved)
    rows = data.get("fees") if isinstance(data, dict) else None
    if not isinstance(rows, list):
        raise RuleTableError("Expected an object with a 'fees' list", key)

    try:
        fees = tuple(
            FeeLine.model_validate({"currency": settings.DEFAULT_CURRENCY, **row})
            for row in rows
        )
    except (TypeError, ValidationError) as e:
        raise RuleTableError(f"Invalid fee row: {e}", key) from e

    _fee_cache[key] = fees
    return fees


def clear_table_cache() -> None:
    """Forget loaded tables (used when settings change)."""
    _category_cache.clear()
    _fee_cache.clear()
