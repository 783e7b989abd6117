"""
Deduction normalization and aggregation.

Raw user input (blank strings, "1,50,000", "₹ 25000", garbage) is mapped to a
non-negative Decimal, capped per category and summed with the regime's
standard deduction. Nothing in this module raises on bad input.
"""
from __future__ import annotations

import logging
import math
import re
from decimal import ROUND_DOWN, Decimal
from typing import Any, Dict, Mapping, NamedTuple, Optional

from taxcompare.engine.schemas import ImmutableModel, TaxRuleSet

logger = logging.getLogger(__name__)

PAISE = Decimal("0.01")
ZERO = Decimal(0)

# Anything above ₹10^15 is a keyboard accident, not an income.
MAX_AMOUNT = Decimal(10) ** 15

STANDARD_DEDUCTION = "standard_deduction"

_NON_AMOUNT_CHARS = re.compile(r"[^0-9.]")
_FIRST_DIGIT = re.compile(r"\.?[0-9]")


def normalize_amount(raw: Any) -> Decimal:
    """
    Map a raw field value to a non-negative Decimal truncated to paise.

    Non-numeric, negative, NaN/infinite and overflow-scale values become 0.
    Strings keep digits and the decimal point only; a second decimal point
    ends the number. A minus sign anywhere before the first digit
    ("-500", "₹ -500") makes the value negative.
    """
    if raw is None or isinstance(raw, bool):
        return ZERO

    if isinstance(raw, (int, Decimal)):
        value = Decimal(raw)
    elif isinstance(raw, float):
        if not math.isfinite(raw):
            return ZERO
        value = Decimal(str(raw))
    elif isinstance(raw, str):
        match = _FIRST_DIGIT.search(raw)
        if match is None or "-" in raw[:match.start()]:
            return ZERO
        # Currency prefixes ("Rs.", "₹") are dropped whole, dots included
        whole, _, rest = _NON_AMOUNT_CHARS.sub("", raw[match.start():]).partition(".")
        fraction = rest.split(".", 1)[0]
        if not whole and not fraction:
            return ZERO
        value = Decimal(f"{whole or '0'}.{fraction or '0'}")
    else:
        return ZERO

    if not value.is_finite() or value < 0 or value > MAX_AMOUNT:
        return ZERO
    return value.quantize(PAISE, rounding=ROUND_DOWN)


class DeductionInput(ImmutableModel):
    """A single user-entered deduction line item and the cap that applies to it."""

    category: str
    raw_amount: Any = None
    cap: Optional[Decimal] = None

    @property
    def capped_amount(self) -> Decimal:
        amount = normalize_amount(self.raw_amount)
        if self.cap is not None:
            return min(amount, self.cap)
        return amount


class DeductionSummary(NamedTuple):
    breakdown: Dict[str, Decimal]
    total_deductions: Decimal


class DeductionAggregator:
    """Caps and sums the deduction categories a regime allows."""

    def __init__(self, rule_set: TaxRuleSet) -> None:
        self.rule_set = rule_set

    def line_items(self, raw: Mapping[str, Any]) -> list[DeductionInput]:
        for category in raw:
            if category not in self.rule_set.deduction_caps:
                logger.debug(
                    "%s: category %r not deductible, skipped",
                    self.rule_set.regime_id, category,
                )
        return [
            DeductionInput(category=category, raw_amount=raw.get(category), cap=cap)
            for category, cap in self.rule_set.deduction_caps.items()
        ]

    def aggregate(self, raw: Mapping[str, Any]) -> DeductionSummary:
        breakdown: Dict[str, Decimal] = {STANDARD_DEDUCTION: self.rule_set.standard_deduction}
        for item in self.line_items(raw):
            breakdown[item.category] = item.capped_amount
        return DeductionSummary(breakdown, sum(breakdown.values(), ZERO))
