"""
engine/__init__.py — public API of the tax engine.

    from taxcompare.engine import TaxpayerInput, compare_regimes
    result = compare_regimes(TaxpayerInput(gross_salary="12,00,000"))
"""
from taxcompare.engine.deductions import DeductionAggregator, DeductionInput, normalize_amount
from taxcompare.engine.optimizer import deduction_headroom
from taxcompare.engine.rules import NEW, OLD, RuleRegistry, builtin_rule_sets, default_registry
from taxcompare.engine.schemas import (
    EQUAL,
    ComparisonResult,
    ComputationResult,
    DeductionHeadroom,
    RuleSetError,
    RuleSetNotFoundError,
    TaxBracket,
    TaxpayerInput,
    TaxRuleSet,
)
from taxcompare.engine.tax_engine import (
    RegimeComparator,
    apply_cess,
    apply_rebate,
    calculate_bracket_tax,
    compare_regimes,
    compute_regime,
    marginal_rate,
)

__all__ = [
    "EQUAL", "NEW", "OLD",
    "ComparisonResult", "ComputationResult", "DeductionHeadroom", "DeductionInput",
    "RuleSetError", "RuleSetNotFoundError", "TaxBracket", "TaxpayerInput", "TaxRuleSet",
    "DeductionAggregator", "normalize_amount",
    "RuleRegistry", "builtin_rule_sets", "default_registry",
    "RegimeComparator", "apply_cess", "apply_rebate", "calculate_bracket_tax",
    "compare_regimes", "compute_regime", "marginal_rate",
    "deduction_headroom",
]
