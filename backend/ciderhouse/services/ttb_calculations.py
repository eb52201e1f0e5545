"""
TTB Calculations
Waterfall identity, badges, reconciliation balance and hard cider tax
"""

from typing import Dict

from ciderhouse.core.units import round_gallons

# Reconciliation tolerances
IDENTITY_TOLERANCE_GAL = 0.25
DRIFT_TOLERANCE_L = 0.5
BALANCE_TOLERANCE_GAL = 0.1

# Hard cider (27 CFR 24) tax
HARD_CIDER_TAX_RATE = 0.226
SMALL_PRODUCER_CREDIT_PER_GALLON = 0.056
SMALL_PRODUCER_CREDIT_LIMIT_GALLONS = 30000


def identity_check(
    opening: float,
    production: float,
    losses: float,
    sales: float,
    distillation: float,
    ending: float,
    inflows: float = 0.0,
    outflows: float = 0.0
) -> float:
    """
    opening + production + inflows - losses - sales - distillation - outflows - ending

    Zero means the waterfall balances.
    """
    return round_gallons(
        opening + production + inflows - losses - sales - distillation - outflows - ending
    )


def is_identity_issue(value: float) -> bool:
    return abs(value) >= IDENTITY_TOLERANCE_GAL


def is_drift_issue(drift_liters: float) -> bool:
    return abs(drift_liters) >= DRIFT_TOLERANCE_L


def check_badge(value: float, tolerance: float) -> Dict:
    """Badge shown next to a check value: OK inside tolerance, FAIL with the magnitude otherwise"""
    magnitude = abs(value)
    return {
        "label": "FAIL" if magnitude >= tolerance else "OK",
        "ok": magnitude < tolerance,
        "magnitude": round_gallons(magnitude),
    }


def calculate_reconciliation(
    opening: float,
    production: float,
    removals: float,
    losses: float,
    ending: float
) -> Dict:
    """Aggregate balance: available vs accounted for"""
    total_available = opening + production
    total_accounted = removals + losses + ending
    variance = round_gallons(total_available - total_accounted)
    return {
        "total_available": round_gallons(total_available),
        "total_accounted": round_gallons(total_accounted),
        "variance": variance,
        "is_balanced": abs(variance) < BALANCE_TOLERANCE_GAL,
    }


def calculate_hard_cider_tax(taxable_gallons: float) -> Dict:
    """Gross tax less the small producer credit on the first 30,000 gallons"""
    gallons = max(taxable_gallons, 0.0)
    gross_tax = gallons * HARD_CIDER_TAX_RATE
    credit_gallons = min(gallons, SMALL_PRODUCER_CREDIT_LIMIT_GALLONS)
    credit = credit_gallons * SMALL_PRODUCER_CREDIT_PER_GALLON
    return {
        "taxable_gallons": round_gallons(gallons),
        "tax_rate": HARD_CIDER_TAX_RATE,
        "gross_tax": round(gross_tax, 2),
        "small_producer_credit": round(credit, 2),
        "net_tax_due": round(max(gross_tax - credit, 0.0), 2),
    }
