"""
Rule tables and the fiscal-year / regime registry.

Shipped years:
  FY2024-25 (AY 2025-26): old regime 2.5L/5L/10L, new regime 3L/7L/10L/12L/15L
  FY2025-26 (AY 2026-27): new regime revised by Finance Act 2025 to
                         4L/8L/12L/16L/20L/24L, 87A rebate ₹60,000 up to ₹12L

Adding a year is a data change: register more TaxRuleSet values, or load
them from JSON with RuleRegistry.load_json().
"""
from __future__ import annotations

import json
import logging
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple, Union

from taxcompare.engine.schemas import (
    RuleSetError,
    RuleSetNotFoundError,
    TaxBracket,
    TaxRuleSet,
)

logger = logging.getLogger(__name__)

OLD = "OLD"
NEW = "NEW"

# ===========================================================================
# DEDUCTION CATEGORIES
# ===========================================================================

SECTION_80C          = "section_80c"
SECTION_80D          = "section_80d"
SECTION_80E          = "section_80e"           # Education loan interest
SECTION_80G          = "section_80g"           # Donations
SECTION_80TTA        = "section_80tta"         # Savings interest
HRA                  = "hra"
LTA                  = "lta"
HOME_LOAN_INTEREST   = "home_loan_interest"    # Section 24(b)
NPS_80CCD_1B         = "nps_80ccd_1b"
OTHER_DEDUCTIONS     = "other_deductions"

# ===========================================================================
# SHARED CONSTANTS
# ===========================================================================

CAP_80C              = Decimal(150_000)
CAP_80TTA            = Decimal(10_000)
CAP_24B              = Decimal(200_000)
CAP_80CCD1B          = Decimal(50_000)

CESS_PERCENT         = Decimal(4)

OLD_STD_DEDUCTION    = Decimal(50_000)
NEW_STD_DEDUCTION    = Decimal(75_000)

OLD_87A_MAX_REBATE       = Decimal(12_500)
OLD_87A_TAXABLE_CEILING  = Decimal(500_000)

# Old regime: every category from the calculator form is allowed.
# New regime: none. Only the standard deduction applies.
OLD_DEDUCTION_CAPS: Dict[str, Optional[Decimal]] = {
    SECTION_80C:        CAP_80C,
    SECTION_80D:        None,
    SECTION_80E:        None,
    SECTION_80G:        None,
    SECTION_80TTA:      CAP_80TTA,
    HRA:                None,
    LTA:                None,
    HOME_LOAN_INTEREST: CAP_24B,
    NPS_80CCD_1B:       CAP_80CCD1B,
    OTHER_DEDUCTIONS:   None,
}

# ===========================================================================
# SLAB TABLES: (lower edge, upper edge, rate %)
# ===========================================================================

SlabRow = Tuple[int, Optional[int], int]

OLD_REGIME_SLABS: list[SlabRow] = [
    (0,         250_000,   0),    # 0–2.5L
    (250_000,   500_000,   5),    # 2.5–5L
    (500_000,   1_000_000, 20),   # 5–10L
    (1_000_000, None,      30),   # >10L
]

NEW_REGIME_SLABS_FY2024_25: list[SlabRow] = [
    (0,         300_000,   0),    # 0–3L
    (300_000,   700_000,   5),    # 3–7L
    (700_000,   1_000_000, 10),   # 7–10L
    (1_000_000, 1_200_000, 15),   # 10–12L
    (1_200_000, 1_500_000, 20),   # 12–15L
    (1_500_000, None,      30),   # >15L
]
NEW_87A_MAX_REBATE_FY2024_25      = Decimal(25_000)
NEW_87A_TAXABLE_CEILING_FY2024_25 = Decimal(700_000)

# Finance Act 2025. FY2024-25 breakpoints were 3L/7L/10L/12L/15L.
NEW_REGIME_SLABS_FY2025_26: list[SlabRow] = [
    (0,         400_000,   0),    # 0–4L
    (400_000,   800_000,   5),    # 4–8L
    (800_000,   1_200_000, 10),   # 8–12L
    (1_200_000, 1_600_000, 15),   # 12–16L
    (1_600_000, 2_000_000, 20),   # 16–20L
    (2_000_000, 2_400_000, 25),   # 20–24L
    (2_400_000, None,      30),   # >24L
]
NEW_87A_MAX_REBATE_FY2025_26      = Decimal(60_000)
NEW_87A_TAXABLE_CEILING_FY2025_26 = Decimal(1_200_000)


def build_brackets(rows: Iterable[SlabRow]) -> list[TaxBracket]:
    return [
        TaxBracket(
            min=Decimal(lower),
            max=None if upper is None else Decimal(upper),
            rate_percent=Decimal(rate),
        )
        for lower, upper, rate in rows
    ]


def _old_regime(fiscal_year: str) -> TaxRuleSet:
    return TaxRuleSet(
        fiscal_year=fiscal_year,
        regime_id=OLD,
        brackets=build_brackets(OLD_REGIME_SLABS),
        standard_deduction=OLD_STD_DEDUCTION,
        rebate_threshold=OLD_87A_TAXABLE_CEILING,
        rebate_amount=OLD_87A_MAX_REBATE,
        cess_percent=CESS_PERCENT,
        deduction_caps=OLD_DEDUCTION_CAPS,
    )


def builtin_rule_sets() -> list[TaxRuleSet]:
    return [
        _old_regime("FY2024-25"),
        TaxRuleSet(
            fiscal_year="FY2024-25",
            regime_id=NEW,
            brackets=build_brackets(NEW_REGIME_SLABS_FY2024_25),
            standard_deduction=NEW_STD_DEDUCTION,
            rebate_threshold=NEW_87A_TAXABLE_CEILING_FY2024_25,
            rebate_amount=NEW_87A_MAX_REBATE_FY2024_25,
            cess_percent=CESS_PERCENT,
        ),
        _old_regime("FY2025-26"),
        TaxRuleSet(
            fiscal_year="FY2025-26",
            regime_id=NEW,
            brackets=build_brackets(NEW_REGIME_SLABS_FY2025_26),
            standard_deduction=NEW_STD_DEDUCTION,
            rebate_threshold=NEW_87A_TAXABLE_CEILING_FY2025_26,
            rebate_amount=NEW_87A_MAX_REBATE_FY2025_26,
            cess_percent=CESS_PERCENT,
        ),
    ]


# ===========================================================================
# REGISTRY
# ===========================================================================

class RuleRegistry:
    """
    Rule sets keyed by (fiscal_year, regime_id).

    Populate once at startup, then only read. Lookups return the frozen
    TaxRuleSet values themselves, so sharing a registry across threads
    needs no locking.
    """

    def __init__(self, rule_sets: Iterable[TaxRuleSet] = ()) -> None:
        self._rule_sets: Dict[Tuple[str, str], TaxRuleSet] = {}
        for rule_set in rule_sets:
            self.register(rule_set)

    def register(self, rule_set: TaxRuleSet) -> None:
        key = (rule_set.fiscal_year, rule_set.regime_id)
        if key in self._rule_sets:
            logger.info("Replacing rule set %s/%s", *key)
        self._rule_sets[key] = rule_set

    def get(self, fiscal_year: str, regime_id: str) -> TaxRuleSet:
        try:
            return self._rule_sets[(fiscal_year, regime_id)]
        except KeyError:
            logger.warning("No rule set for %s/%s", fiscal_year, regime_id)
            raise RuleSetNotFoundError(f"No rule set for {fiscal_year}/{regime_id}") from None

    def regimes_for(self, fiscal_year: str) -> Dict[str, TaxRuleSet]:
        regimes = {
            regime_id: rule_set
            for (year, regime_id), rule_set in self._rule_sets.items()
            if year == fiscal_year
        }
        if not regimes:
            logger.warning("No rule sets registered for %s", fiscal_year)
            raise RuleSetNotFoundError(f"No rule sets registered for {fiscal_year}")
        return regimes

    @property
    def fiscal_years(self) -> list[str]:
        return sorted({year for year, _ in self._rule_sets})

    def load_json(self, path: Union[str, Path]) -> int:
        """
        Register rule sets from a JSON file shaped as
        ``{fiscal_year: {regime_id: {<TaxRuleSet fields>}}}``.

        Returns the number of rule sets registered. Malformed tables fail
        here, with the pydantic ValidationError naming the bad field.
        """
        with open(path, encoding="utf-8") as fh:
            document = json.load(fh)
        if not isinstance(document, dict):
            raise RuleSetError(f"{path}: expected an object keyed by fiscal year")

        count = 0
        for fiscal_year, regimes in document.items():
            for regime_id, fields in regimes.items():
                self.register(
                    TaxRuleSet.model_validate(
                        {**fields, "fiscal_year": fiscal_year, "regime_id": regime_id}
                    )
                )
                count += 1
        logger.info("Loaded %d rule sets from %s", count, path)
        return count


@lru_cache(maxsize=1)
def default_registry() -> RuleRegistry:
    """Built-in rule sets plus the optional TAX_RULES_FILE override."""
    from taxcompare.config import settings

    registry = RuleRegistry(builtin_rule_sets())
    if settings.tax_rules_file is not None:
        registry.load_json(settings.tax_rules_file)
    logger.info("Rule registry ready: %s", ", ".join(registry.fiscal_years))
    return registry
