# utils/tax_utils.py
import numpy as np
from typing import List, Tuple, Dict, Literal

# Define the acceptable set of filing statuses for type hinting
TaxFilingStatus = Literal["single", "married_filing_jointly", "married_separate", "head_of_household"]

# =============================================================================
# 1. Federal Ordinary Income Tax Brackets (2026 Estimated)
# =============================================================================

ORDINARY_BRACKETS_2026: Dict[TaxFilingStatus, List[Tuple[float, float, float]]] = {
    "married_filing_jointly": [
        (0, 24_800, 0.10), (24_800, 100_800, 0.12), (100_800, 211_400, 0.22),
        (211_400, 403_550, 0.24), (403_550, 512_450, 0.32), (512_450, 768_700, 0.35),
        (768_700, np.inf, 0.37),
    ],
    "single": [
        (0, 12_400, 0.10), (12_400, 50_400, 0.12), (50_400, 110_650, 0.22),
        (110_650, 196_150, 0.24), (196_150, 250_000, 0.32), (250_000, 622_050, 0.35),
        (622_050, np.inf, 0.37),
    ],
    "head_of_household": [
        (0, 18_600, 0.10), (18_600, 72_000, 0.12), (72_000, 148_000, 0.22),
        (148_000, 258_000, 0.24), (258_000, 321_450, 0.32), (321_450, 622_050, 0.35),
        (622_050, np.inf, 0.37),
    ],
    "married_separate": [
        (0, 12_400, 0.10), (12_400, 50_400, 0.12), (50_400, 105_700, 0.22),
        (105_700, 201_775, 0.24), (201_775, 256_225, 0.32), (256_225, 384_350, 0.35),
        (384_350, np.inf, 0.37),
    ]
}

# =============================================================================
# 2. Federal Preferential Income Tax Brackets (Capital Gains / QDivs)
# =============================================================================
CAPGAINS_BRACKETS_2026: Dict[TaxFilingStatus, List[Tuple[float, float, float]]] = {
    "single": [(0, 48400, 0.0), (48400, 535000, 0.15), (535000, np.inf, 0.20)],
    "married_filing_jointly": [(0, 96900, 0.0), (96900, 601300, 0.15), (601300, np.inf, 0.20)],
    "married_separate": [(0, 48450, 0.0), (48450, 300650, 0.15), (300650, np.inf, 0.20)],
    "head_of_household": [(0, 72900, 0.0), (72900, 568300, 0.15), (568300, np.inf, 0.20)],
}

STANDARD_DEDUCTION_2026: Dict[TaxFilingStatus, float] = {
    "single": 15050,
    "married_filing_jointly": 30100,
    "married_separate": 15050,
    "head_of_household": 22600,
}


# =============================================================================
# 3. Pure tax functions
# =============================================================================

def capital_gains_tax(
    gains: float,
    ordinary_income: float,
    filing_status: TaxFilingStatus = "single",
) -> float:
    """
    Federal tax on long-term gains stacked on top of ordinary income.

    Args:
        gains: Realized long-term capital gains for the year.
        ordinary_income: Other income for the year; gains start stacking here.
        filing_status: Selects the bracket set.

    Returns:
        The tax owed on the gains only.
    """
    if gains <= 0:
        return 0.0

    brackets = CAPGAINS_BRACKETS_2026.get(filing_status, CAPGAINS_BRACKETS_2026["single"])
    base = max(0.0, ordinary_income)
    top = base + gains

    tax = 0.0
    for low, high, rate in brackets:
        bracket_start = max(low, base)
        bracket_end = min(high, top) if np.isfinite(high) else top
        tax += max(0.0, bracket_end - bracket_start) * rate
    return tax


def ordinary_income_tax(taxable_income: float, filing_status: TaxFilingStatus = "single") -> float:
    """Federal tax on ordinary taxable income (after deductions)."""
    brackets = ORDINARY_BRACKETS_2026.get(filing_status, ORDINARY_BRACKETS_2026["single"])
    remaining_taxable = taxable_income
    tax = 0.0

    for low, high, rate in brackets:
        if remaining_taxable <= 0:
            break
        bracket_income = min(remaining_taxable, high - low) if np.isfinite(high) else remaining_taxable
        tax += bracket_income * rate
        remaining_taxable -= bracket_income
    return tax


def estimate_ordinary_rate(gross_income: float, filing_status: TaxFilingStatus = "single") -> float:
    """
    Average federal rate on a year's gross ordinary income, after the standard deduction.
    Used as the default ordinary rate applied to tax-deferred withdrawals.
    """
    if gross_income <= 0:
        return 0.0
    deduction = STANDARD_DEDUCTION_2026.get(filing_status, STANDARD_DEDUCTION_2026["single"])
    taxable = max(0.0, gross_income - deduction)
    return ordinary_income_tax(taxable, filing_status) / gross_income
