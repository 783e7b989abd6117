"""
Tax engine: progressive bracket tax, 87A-style rebate, cess, regime comparison.
Pure Python, deterministic, Decimal money. Same input → same output.

Every rate, threshold and slab comes from a TaxRuleSet; nothing in this file
knows which fiscal year it is computing.
"""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Optional, Sequence, Tuple

from taxcompare.engine.deductions import PAISE, ZERO, DeductionAggregator, normalize_amount
from taxcompare.engine.rules import RuleRegistry, default_registry
from taxcompare.engine.schemas import (
    EQUAL,
    ComparisonResult,
    ComputationResult,
    RuleSetError,
    TaxBracket,
    TaxpayerInput,
    TaxRuleSet,
)

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)


def _to_paise(amount: Decimal) -> Decimal:
    return amount.quantize(PAISE, rounding=ROUND_HALF_UP)


# ===========================================================================
# BRACKET TAX
# ===========================================================================

def calculate_bracket_tax(taxable_income: Decimal, brackets: Sequence[TaxBracket]) -> Decimal:
    """
    Progressive tax on taxable_income. Each bracket taxes the part of the
    income above its lower edge and up to its upper edge. The table is
    validated by TaxRuleSet, so it is contiguous and ends unbounded.
    """
    tax = ZERO
    for bracket in brackets:
        if taxable_income <= bracket.min:
            break
        upper = taxable_income if bracket.max is None else min(taxable_income, bracket.max)
        tax += (upper - bracket.min) * bracket.rate_percent / HUNDRED
    return _to_paise(tax)


def marginal_rate(taxable_income: Decimal, brackets: Sequence[TaxBracket]) -> Decimal:
    """Rate of the bracket the last rupee of taxable_income falls into."""
    rate = brackets[0].rate_percent
    for bracket in brackets:
        if taxable_income > bracket.min:
            rate = bracket.rate_percent
    return rate


# ===========================================================================
# REBATE AND CESS
# ===========================================================================

def apply_rebate(
    taxable_income: Decimal,
    pre_rebate_tax: Decimal,
    rebate_threshold: Decimal,
    rebate_amount: Decimal,
) -> Decimal:
    """
    Section 87A style rebate. At or below the threshold the rebate comes off
    the tax (never below zero). One rupee above it the whole rebate is lost.
    """
    if taxable_income <= rebate_threshold:
        return max(ZERO, pre_rebate_tax - rebate_amount)
    return pre_rebate_tax


def apply_cess(post_rebate_tax: Decimal, cess_percent: Decimal) -> Tuple[Decimal, Decimal]:
    """Returns (cess_amount, total_tax). Cess is levied on post-rebate tax."""
    cess = _to_paise(post_rebate_tax * cess_percent / HUNDRED)
    return cess, post_rebate_tax + cess


# ===========================================================================
# SINGLE REGIME
# ===========================================================================

def compute_regime(taxpayer: TaxpayerInput, rule_set: TaxRuleSet) -> ComputationResult:
    # Step 1: Gross income
    gross_income = normalize_amount(taxpayer.gross_salary) + normalize_amount(taxpayer.other_income)

    # Step 2: Deductions allowed by this regime, capped
    summary = DeductionAggregator(rule_set).aggregate(taxpayer.deductions)

    # Step 3: Taxable income (never negative)
    taxable_income = max(ZERO, gross_income - summary.total_deductions)

    # Step 4: Slab tax
    pre_rebate_tax = calculate_bracket_tax(taxable_income, rule_set.brackets)

    # Step 5: Rebate
    post_rebate_tax = apply_rebate(
        taxable_income, pre_rebate_tax, rule_set.rebate_threshold, rule_set.rebate_amount,
    )

    # Step 6-7: Cess on post-rebate tax, then total
    cess_amount, total_tax = apply_cess(post_rebate_tax, rule_set.cess_percent)

    return ComputationResult(
        regime_id=rule_set.regime_id,
        gross_income=gross_income,
        total_deductions=summary.total_deductions,
        taxable_income=taxable_income,
        pre_rebate_tax=pre_rebate_tax,
        post_rebate_tax=post_rebate_tax,
        cess_amount=cess_amount,
        total_tax=total_tax,
        rebate_applied=rule_set.rebate_amount > 0 and taxable_income <= rule_set.rebate_threshold,
        marginal_rate_percent=marginal_rate(taxable_income, rule_set.brackets),
        deduction_breakdown=summary.breakdown,
    )


# ===========================================================================
# COMPARISON
# ===========================================================================

class RegimeComparator:
    """
    Runs the full pipeline once per regime and picks the cheapest.

    Regimes are a mapping keyed by regime_id, so a third regime is a new
    rule set, not new code. All rule sets must belong to one fiscal year.
    """

    def __init__(self, rule_sets: Mapping[str, TaxRuleSet]) -> None:
        if not rule_sets:
            raise RuleSetError("At least one rule set is required")
        for regime_id, rule_set in rule_sets.items():
            if regime_id == EQUAL:
                raise RuleSetError(f"{EQUAL!r} is reserved for tied results")
            if regime_id != rule_set.regime_id:
                raise RuleSetError(
                    f"Rule set {rule_set.regime_id!r} registered under {regime_id!r}"
                )
        years = {rule_set.fiscal_year for rule_set in rule_sets.values()}
        if len(years) != 1:
            raise RuleSetError(f"Rule sets span several fiscal years: {sorted(years)}")
        self.fiscal_year = years.pop()
        self.rule_sets = dict(rule_sets)

    def compare(self, taxpayer: TaxpayerInput) -> ComparisonResult:
        per_regime = {
            regime_id: compute_regime(taxpayer, rule_set)
            for regime_id, rule_set in self.rule_sets.items()
        }

        # Ascending by total tax; sorted() is stable so ties keep insertion order
        ranked = sorted(per_regime.values(), key=lambda r: r.total_tax)
        best = ranked[0]
        if len(ranked) == 1:
            better, savings = best.regime_id, ZERO
        elif ranked[1].total_tax == best.total_tax:
            better, savings = EQUAL, ZERO
        else:
            better, savings = best.regime_id, ranked[1].total_tax - best.total_tax

        logger.debug(
            "%s comparison: %s better, savings %s",
            self.fiscal_year, better, savings,
        )
        return ComparisonResult(
            fiscal_year=self.fiscal_year,
            per_regime=per_regime,
            better_regime=better,
            savings_amount=savings,
        )


def compare_regimes(
    taxpayer: TaxpayerInput,
    fiscal_year: Optional[str] = None,
    registry: Optional[RuleRegistry] = None,
) -> ComparisonResult:
    """
    Compare every regime registered for fiscal_year (default from settings).

    Raises RuleSetNotFoundError only for an unknown fiscal year; taxpayer
    input of any shape yields a result.
    """
    if fiscal_year is None:
        from taxcompare.config import settings

        fiscal_year = settings.tax_fiscal_year
    registry = registry or default_registry()
    return RegimeComparator(registry.regimes_for(fiscal_year)).compare(taxpayer)
