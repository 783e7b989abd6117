"""
Shared fixtures for the taxcompare test suite.

Rule sets come from a fresh RuleRegistry built from the shipped tables, so
tests never depend on TAX_RULES_FILE or the cached default registry.
"""
from __future__ import annotations

from decimal import Decimal

import pytest

from taxcompare.engine.rules import NEW, OLD, RuleRegistry, build_brackets, builtin_rule_sets
from taxcompare.engine.schemas import TaxRuleSet


@pytest.fixture
def registry() -> RuleRegistry:
    return RuleRegistry(builtin_rule_sets())


@pytest.fixture
def old_fy2024(registry: RuleRegistry) -> TaxRuleSet:
    return registry.get("FY2024-25", OLD)


@pytest.fixture
def new_fy2024(registry: RuleRegistry) -> TaxRuleSet:
    return registry.get("FY2024-25", NEW)


@pytest.fixture
def flat_rule_set():
    """Factory for single-purpose rule sets: 0% to 1L, then a flat rate."""
    def _make(regime_id: str, rate: int, standard_deduction: int = 0, fiscal_year: str = "FY-TEST") -> TaxRuleSet:
        return TaxRuleSet(
            fiscal_year=fiscal_year,
            regime_id=regime_id,
            brackets=build_brackets([(0, 100_000, 0), (100_000, None, rate)]),
            standard_deduction=Decimal(standard_deduction),
        )
    return _make
