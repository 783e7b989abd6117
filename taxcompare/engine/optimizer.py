"""
Deduction headroom: how much more a taxpayer could claim under each capped
category of a regime, and roughly what it would save.
Pure functions. No I/O. Numbers only; wording belongs to the caller.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from taxcompare.engine.deductions import PAISE, ZERO
from taxcompare.engine.schemas import ComputationResult, DeductionHeadroom, TaxRuleSet

MIN_SAVING = Decimal(1_000)   # Suppress headroom worth less than ₹1,000
MAX_ITEMS = 3


def effective_marginal_rate(result: ComputationResult, rule_set: TaxRuleSet) -> Decimal:
    """
    Slab rate × (1 + cess), as a fraction (e.g. 0.208 for 20% slab + 4% cess).
    """
    return (
        result.marginal_rate_percent
        * (Decimal(100) + rule_set.cess_percent)
        / Decimal(10_000)
    )


def deduction_headroom(result: ComputationResult, rule_set: TaxRuleSet) -> list[DeductionHeadroom]:
    """
    Unused headroom in the capped categories of ``rule_set``, largest saving
    first, at most MAX_ITEMS entries.

    The saving is an estimate at the current marginal rate: it ignores a
    bracket boundary crossed by the extra deduction and any rebate regained.
    """
    if result.total_tax == 0:
        return []   # Nothing left to save
    rate = effective_marginal_rate(result, rule_set)
    if rate == 0:
        return []

    candidates: list[DeductionHeadroom] = []
    for category, cap in rule_set.deduction_caps.items():
        if cap is None:
            continue
        unused = cap - result.deduction_breakdown.get(category, ZERO)
        saving = (unused * rate).quantize(PAISE, rounding=ROUND_HALF_UP)
        if unused > 0 and saving >= MIN_SAVING:
            candidates.append(
                DeductionHeadroom(category=category, unused_amount=unused, estimated_saving=saving)
            )

    candidates.sort(key=lambda item: item.estimated_saving, reverse=True)
    return candidates[:MAX_ITEMS]
