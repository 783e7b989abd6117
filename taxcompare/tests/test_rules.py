"""
Rule-set and registry tests.

Groups:
  1. Shipped constants: exact equality
  2. TaxRuleSet fail-fast validation
  3. RuleRegistry lookup and JSON loading
"""
from __future__ import annotations

import json
from decimal import Decimal

import pytest
from pydantic import ValidationError

from taxcompare.engine.rules import (
    CAP_80C, CAP_80CCD1B, CAP_24B, CAP_80TTA, CESS_PERCENT,
    NEW, NEW_STD_DEDUCTION, OLD, OLD_STD_DEDUCTION,
    OLD_87A_MAX_REBATE, OLD_87A_TAXABLE_CEILING,
    NEW_87A_MAX_REBATE_FY2024_25, NEW_87A_TAXABLE_CEILING_FY2024_25,
    NEW_87A_MAX_REBATE_FY2025_26, NEW_87A_TAXABLE_CEILING_FY2025_26,
    SECTION_80C, RuleRegistry, build_brackets, default_registry,
)
from taxcompare.engine.schemas import RuleSetNotFoundError, TaxBracket, TaxRuleSet


# ===========================================================================
# TEST GROUP 1: Shipped constants
# ===========================================================================

def test_deduction_constants() -> None:
    assert OLD_STD_DEDUCTION == 50_000
    assert NEW_STD_DEDUCTION == 75_000
    assert CAP_80C           == 150_000
    assert CAP_80TTA         == 10_000
    assert CAP_24B           == 200_000
    assert CAP_80CCD1B       == 50_000
    assert CESS_PERCENT      == 4


def test_rebate_constants() -> None:
    assert OLD_87A_MAX_REBATE                == 12_500
    assert OLD_87A_TAXABLE_CEILING           == 500_000
    assert NEW_87A_MAX_REBATE_FY2024_25      == 25_000
    assert NEW_87A_TAXABLE_CEILING_FY2024_25 == 700_000
    assert NEW_87A_MAX_REBATE_FY2025_26      == 60_000
    assert NEW_87A_TAXABLE_CEILING_FY2025_26 == 1_200_000


def test_fy2024_new_regime_breakpoints(new_fy2024) -> None:
    edges = [(b.min, b.max, b.rate_percent) for b in new_fy2024.brackets]
    assert edges == [
        (0, 300_000, 0),
        (300_000, 700_000, 5),
        (700_000, 1_000_000, 10),
        (1_000_000, 1_200_000, 15),
        (1_200_000, 1_500_000, 20),
        (1_500_000, None, 30),
    ]


def test_fy2025_new_regime_breakpoints(registry) -> None:
    new = registry.get("FY2025-26", NEW)
    assert [b.min for b in new.brackets] == [
        0, 400_000, 800_000, 1_200_000, 1_600_000, 2_000_000, 2_400_000,
    ]
    assert new.brackets[-1].max is None
    assert new.rebate_amount == 60_000


def test_new_regime_allows_no_itemised_deductions(new_fy2024) -> None:
    assert new_fy2024.deduction_caps == {}


def test_shipped_fiscal_years(registry) -> None:
    assert registry.fiscal_years == ["FY2024-25", "FY2025-26"]
    assert set(registry.regimes_for("FY2024-25")) == {OLD, NEW}


# ===========================================================================
# TEST GROUP 2: Fail-fast validation
# ===========================================================================

def _rule_set(rows, **overrides) -> TaxRuleSet:
    fields = dict(fiscal_year="FY-TEST", regime_id="X", brackets=build_brackets(rows))
    fields.update(overrides)
    return TaxRuleSet(**fields)


@pytest.mark.parametrize(
    "rows, message",
    [
        pytest.param([], "empty", id="empty_table"),
        pytest.param([(10, 100, 0), (100, None, 10)], "start at 0", id="first_not_zero"),
        pytest.param([(0, 100, 0), (150, None, 10)], "gap", id="gap"),
        pytest.param([(0, 100, 0), (80, None, 10)], "overlap", id="overlap"),
        pytest.param([(0, 100, 20), (100, None, 10)], "decrease", id="non_monotonic_rates"),
        pytest.param([(0, 100, 0), (100, 200, 10)], "unbounded", id="bounded_last_bracket"),
        pytest.param([(0, None, 0), (100, None, 10)], "only the last", id="unbounded_middle"),
    ],
)
def test_malformed_bracket_table_rejected(rows, message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        _rule_set(rows)


@pytest.mark.parametrize(
    "kwargs",
    [
        pytest.param(dict(min=Decimal(100), max=Decimal(100), rate_percent=Decimal(5)), id="empty_range"),
        pytest.param(dict(min=Decimal(-1), max=None, rate_percent=Decimal(5)), id="negative_min"),
        pytest.param(dict(min=Decimal(0), max=None, rate_percent=Decimal(101)), id="rate_over_100"),
        pytest.param(dict(min=Decimal(0), max=None, rate_percent=Decimal(-1)), id="negative_rate"),
    ],
)
def test_malformed_bracket_rejected(kwargs) -> None:
    with pytest.raises(ValidationError):
        TaxBracket(**kwargs)


@pytest.mark.parametrize(
    "field", ["standard_deduction", "rebate_threshold", "rebate_amount", "cess_percent"],
)
def test_negative_constant_rejected(field: str) -> None:
    with pytest.raises(ValidationError, match=field):
        _rule_set([(0, None, 10)], **{field: Decimal(-1)})


def test_negative_cap_rejected() -> None:
    with pytest.raises(ValidationError, match="cap"):
        _rule_set([(0, None, 10)], deduction_caps={"section_80c": Decimal(-5)})


def test_rule_set_is_immutable(old_fy2024) -> None:
    with pytest.raises(ValidationError):
        old_fy2024.cess_percent = Decimal(10)


def test_shared_rule_set_contents_are_read_only() -> None:
    rule_set = default_registry().get("FY2024-25", OLD)
    with pytest.raises(AttributeError):
        rule_set.brackets.append(TaxBracket(min=0, max=5, rate_percent=0))
    with pytest.raises(TypeError):
        rule_set.deduction_caps[SECTION_80C] = Decimal(10) ** 9

    again = default_registry().get("FY2024-25", OLD)
    assert len(again.brackets) == 4
    assert again.deduction_caps[SECTION_80C] == CAP_80C


def test_rule_set_copies_caller_caps() -> None:
    caps = {SECTION_80C: CAP_80C}
    rule_set = _rule_set([(0, None, 10)], deduction_caps=caps)
    caps[SECTION_80C] = Decimal(1)
    assert rule_set.deduction_caps[SECTION_80C] == CAP_80C


def test_rule_set_dumps_plain_containers(old_fy2024) -> None:
    dumped = old_fy2024.model_dump()
    assert isinstance(dumped["deduction_caps"], dict)
    assert TaxRuleSet.model_validate(dumped).model_dump() == dumped


def test_single_unbounded_bracket_is_valid() -> None:
    rule_set = _rule_set([(0, None, 10)])
    assert len(rule_set.brackets) == 1


# ===========================================================================
# TEST GROUP 3: Registry
# ===========================================================================

def test_unknown_fiscal_year_raises(registry) -> None:
    with pytest.raises(RuleSetNotFoundError):
        registry.regimes_for("FY1999-00")


def test_unknown_regime_raises(registry) -> None:
    with pytest.raises(RuleSetNotFoundError):
        registry.get("FY2024-25", "FLAT")


def test_register_replaces_existing(registry) -> None:
    replacement = _rule_set([(0, None, 10)], fiscal_year="FY2024-25", regime_id=NEW)
    registry.register(replacement)
    assert registry.get("FY2024-25", NEW) is replacement


def test_load_json_registers_new_year(tmp_path) -> None:
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({
        "FY2026-27": {
            "NEW": {
                "brackets": [
                    {"min": 0, "max": 400000, "rate_percent": 0},
                    {"min": 400000, "max": None, "rate_percent": 5},
                ],
                "standard_deduction": 75000,
                "rebate_threshold": 1200000,
                "rebate_amount": 60000,
                "cess_percent": 4,
            },
        },
    }), encoding="utf-8")

    registry = RuleRegistry()
    assert registry.load_json(path) == 1
    rule_set = registry.get("FY2026-27", NEW)
    assert rule_set.fiscal_year == "FY2026-27"
    assert rule_set.brackets[1].rate_percent == 5


def test_load_json_rejects_malformed_table(tmp_path) -> None:
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({
        "FY2026-27": {
            "NEW": {"brackets": [{"min": 0, "max": 100, "rate_percent": 0}]},
        },
    }), encoding="utf-8")

    with pytest.raises(ValidationError, match="unbounded"):
        RuleRegistry().load_json(path)
