"""
schemas.py — tax engine Pydantic v2 data contracts.

Defines:
  - TaxBracket         (one slab: exclusive lower edge, optional upper edge, rate)
  - TaxRuleSet         (bracket table + constants for one fiscal year / regime)
  - TaxpayerInput      (raw income and deduction fields from the caller)
  - ComputationResult  (full tax computation for one regime)
  - ComparisonResult   (per-regime results + recommendation)
  - DeductionHeadroom  (unused cap in one category, with estimated saving)

All models are frozen. Money is Decimal rupees; paise is the smallest unit.
Rule-set validation runs once, at construction. A bad table is a
configuration error, never a per-calculation error.
"""
from __future__ import annotations

from decimal import Decimal
from types import MappingProxyType
from typing import Annotated, Any, Dict, Mapping, Optional, Tuple, TypeVar

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    WrapSerializer,
    computed_field,
    field_validator,
    model_validator,
)

EQUAL = "EQUAL"

K = TypeVar("K")
V = TypeVar("V")


def _read_only(value: Dict) -> Mapping:
    return MappingProxyType(value)


def _dump_as_dict(value: Mapping, handler):
    return handler(dict(value))


# Validated as a dict, stored behind a read-only proxy, dumped as a dict again.
ReadOnlyDict = Annotated[
    Dict[K, V], AfterValidator(_read_only), WrapSerializer(_dump_as_dict)
]


class RuleSetError(ValueError):
    """Raised when a rule set or comparator configuration is malformed."""


class RuleSetNotFoundError(LookupError):
    """Raised when no rule set is registered for a fiscal year / regime."""


class ImmutableModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# ---------------------------------------------------------------------------
# TaxBracket: one contiguous income range taxed at one marginal rate
# ---------------------------------------------------------------------------

class TaxBracket(ImmutableModel):
    """
    Income strictly above ``min`` and up to ``max`` is taxed at ``rate_percent``.
    ``max=None`` marks the unbounded top bracket.
    """

    min: Decimal
    max: Optional[Decimal] = None
    rate_percent: Decimal

    @model_validator(mode="after")
    def _validate_bounds(self) -> TaxBracket:
        if self.min < 0:
            raise RuleSetError(f"Bracket lower edge {self.min} is negative")
        if self.max is not None and self.max <= self.min:
            raise RuleSetError(
                f"Bracket upper edge {self.max} must be above lower edge {self.min}"
            )
        if not Decimal(0) <= self.rate_percent <= Decimal(100):
            raise RuleSetError(f"Bracket rate {self.rate_percent}% is outside 0-100")
        return self


# ---------------------------------------------------------------------------
# TaxRuleSet: one complete regime for one fiscal year
# ---------------------------------------------------------------------------

class TaxRuleSet(ImmutableModel):
    """
    Bracket table and constants for one regime in one fiscal year.

    ``deduction_caps`` lists the deduction categories the regime allows.
    A ``None`` cap means the category is deductible in full. Categories
    missing from the mapping are not deductible in this regime.
    """

    fiscal_year: str
    regime_id: str
    brackets: Tuple[TaxBracket, ...]
    standard_deduction: Decimal = Decimal(0)
    rebate_threshold: Decimal = Decimal(0)
    rebate_amount: Decimal = Decimal(0)
    cess_percent: Decimal = Decimal(0)
    deduction_caps: ReadOnlyDict[str, Optional[Decimal]] = Field(
        default_factory=dict, validate_default=True
    )

    @model_validator(mode="after")
    def _validate_table(self) -> TaxRuleSet:
        brackets = self.brackets
        if not brackets:
            raise RuleSetError(f"{self.regime_id}: bracket table is empty")
        if brackets[0].min != 0:
            raise RuleSetError(f"{self.regime_id}: first bracket must start at 0")

        for lower, upper in zip(brackets, brackets[1:]):
            if lower.max is None:
                raise RuleSetError(
                    f"{self.regime_id}: only the last bracket may be unbounded"
                )
            if lower.max < upper.min:
                raise RuleSetError(
                    f"{self.regime_id}: gap between {lower.max} and {upper.min}"
                )
            if lower.max > upper.min:
                raise RuleSetError(
                    f"{self.regime_id}: brackets overlap at {upper.min}"
                )
            if upper.rate_percent < lower.rate_percent:
                raise RuleSetError(
                    f"{self.regime_id}: rates must not decrease "
                    f"({lower.rate_percent}% then {upper.rate_percent}%)"
                )
        if brackets[-1].max is not None:
            raise RuleSetError(f"{self.regime_id}: last bracket must be unbounded")

        for name in ("standard_deduction", "rebate_threshold", "rebate_amount", "cess_percent"):
            if getattr(self, name) < 0:
                raise RuleSetError(f"{self.regime_id}: {name} must not be negative")
        for category, cap in self.deduction_caps.items():
            if cap is not None and cap < 0:
                raise RuleSetError(
                    f"{self.regime_id}: cap for {category!r} must not be negative"
                )
        return self


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

class TaxpayerInput(ImmutableModel):
    """
    Raw field values as typed by the user. Strings may be blank, grouped
    ("12,00,000") or garbled; the engine normalizes them and never rejects them.
    """

    gross_salary: Any = ""
    other_income: Any = ""
    deductions: ReadOnlyDict[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("deductions", mode="before")
    @classmethod
    def _coerce_deductions(cls, value: Any) -> Dict[str, Any]:
        # A missing or garbled deduction map means no deductions.
        if not isinstance(value, Mapping):
            return {}
        return {k: v for k, v in value.items() if isinstance(k, str)}


# ---------------------------------------------------------------------------
# ComputationResult: full tax computation for one regime
# ---------------------------------------------------------------------------

class ComputationResult(ImmutableModel):
    """
    Computation sequence (order determines correctness):
      1. gross_income     = salary + other income
      2. total_deductions = standard deduction + capped allowed categories
      3. taxable_income   = max(0, gross_income - total_deductions)
      4. pre_rebate_tax   = progressive bracket tax
      5. post_rebate_tax  = rebate applied if taxable_income <= threshold
      6. cess_amount      = cess% of post_rebate_tax   (NOT of pre-rebate tax)
      7. total_tax        = post_rebate_tax + cess_amount
    """

    regime_id: str
    gross_income: Decimal
    total_deductions: Decimal
    taxable_income: Decimal
    pre_rebate_tax: Decimal
    post_rebate_tax: Decimal
    cess_amount: Decimal
    total_tax: Decimal
    rebate_applied: bool = False
    marginal_rate_percent: Decimal = Decimal(0)
    deduction_breakdown: ReadOnlyDict[str, Decimal] = Field(
        default_factory=dict, validate_default=True
    )


# ---------------------------------------------------------------------------
# ComparisonResult: public output of the comparator
# ---------------------------------------------------------------------------

class ComparisonResult(ImmutableModel):
    fiscal_year: str
    per_regime: ReadOnlyDict[str, ComputationResult]
    better_regime: str           # a regime_id, or "EQUAL"
    savings_amount: Decimal      # lowest total vs the next lowest

    @model_validator(mode="before")
    @classmethod
    def _drop_computed(cls, data: Any) -> Any:
        # model_dump() output carries has_income; accept it back
        if isinstance(data, Mapping) and "has_income" in data:
            data = {k: v for k, v in data.items() if k != "has_income"}
        return data

    @computed_field
    @property
    def has_income(self) -> bool:
        return any(r.gross_income > 0 for r in self.per_regime.values())


# ---------------------------------------------------------------------------
# DeductionHeadroom: unused capped deduction in one regime
# ---------------------------------------------------------------------------

class DeductionHeadroom(ImmutableModel):
    category: str
    unused_amount: Decimal       # cap minus the amount already claimed
    estimated_saving: Decimal    # unused_amount at the cess-inclusive marginal rate


__all__ = [
    "DeductionHeadroom",
    "EQUAL",
    "RuleSetError",
    "RuleSetNotFoundError",
    "TaxBracket",
    "TaxRuleSet",
    "TaxpayerInput",
    "ComputationResult",
    "ComparisonResult",
]
