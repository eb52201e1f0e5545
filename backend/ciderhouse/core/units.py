"""
Unit Conversion
Pure conversions between volume, weight and temperature units.
Nothing here rounds except the bushel helpers and format_* display helpers.
"""

import math
from typing import Dict

from ciderhouse.core.errors import QuantityValidationError

# Volume
GAL_TO_L = 3.78541
ML_TO_L = 0.001

# TTB wine gallon
LITERS_PER_WINE_GALLON = 3.78541
WINE_GALLONS_PER_LITER = 0.264172

# Weight
LB_TO_KG = 0.453592
G_TO_KG = 0.001
OZ_TO_KG = 0.0283495

# Apples: standard bushel weight
BUSHEL_TO_KG_FACTOR = 18.14

VOLUME_UNITS: Dict[str, float] = {
    "L": 1.0,
    "gal": GAL_TO_L,
    "mL": ML_TO_L,
}

WEIGHT_UNITS: Dict[str, float] = {
    "kg": 1.0,
    "lb": LB_TO_KG,
    "g": G_TO_KG,
    "oz": OZ_TO_KG,
}


def _factor(table: Dict[str, float], unit: str, kind: str) -> float:
    try:
        return table[unit]
    except KeyError:
        raise QuantityValidationError(
            f"Unknown {kind} unit: {unit}",
            user_message=f"Unsupported {kind} unit '{unit}'",
            context={"unit": unit, "supported": sorted(table)}
        )


def to_liters(value: float, unit: str) -> float:
    return value * _factor(VOLUME_UNITS, unit, "volume")


def from_liters(liters: float, unit: str) -> float:
    return liters / _factor(VOLUME_UNITS, unit, "volume")


def convert_volume(value: float, from_unit: str, to_unit: str) -> float:
    """Convert a volume between L, gal and mL"""
    if from_unit == to_unit:
        return value
    return from_liters(to_liters(value, from_unit), to_unit)


def convert_weight(value: float, from_unit: str, to_unit: str) -> float:
    """Convert a weight between kg, lb, g and oz"""
    if from_unit == to_unit:
        return value
    kg = value * _factor(WEIGHT_UNITS, from_unit, "weight")
    return kg / _factor(WEIGHT_UNITS, to_unit, "weight")


def liters_to_wine_gallons(liters: float) -> float:
    """Liters to TTB wine gallons; negative volumes report as zero"""
    if liters < 0:
        return 0.0
    return liters * WINE_GALLONS_PER_LITER


def wine_gallons_to_liters(gallons: float) -> float:
    if gallons < 0:
        return 0.0
    return gallons * LITERS_PER_WINE_GALLON


def round_gallons(value: float) -> float:
    """TTB figures are carried to 3 decimals"""
    return round(value, 3)


def celsius_to_fahrenheit(celsius: float) -> float:
    return celsius * 9 / 5 + 32


def fahrenheit_to_celsius(fahrenheit: float) -> float:
    return (fahrenheit - 32) * 5 / 9


def convert_temperature(value: float, from_unit: str, to_unit: str) -> float:
    if from_unit == to_unit:
        return value
    if from_unit == "C" and to_unit == "F":
        return celsius_to_fahrenheit(value)
    if from_unit == "F" and to_unit == "C":
        return fahrenheit_to_celsius(value)
    raise QuantityValidationError(
        f"Unknown temperature conversion {from_unit} -> {to_unit}",
        context={"from_unit": from_unit, "to_unit": to_unit}
    )


def _require_positive(value: float, label: str) -> None:
    if value is None or math.isnan(value) or math.isinf(value) or value <= 0:
        raise QuantityValidationError(
            f"Invalid {label} quantity: {value}",
            user_message=f"{label.capitalize()} must be a positive number",
            context={"value": value}
        )


def bushels_to_kg(bushels: float) -> float:
    """Bushels of apples to kilograms, rounded to 0.01 kg"""
    _require_positive(bushels, "bushel")
    return round(bushels * BUSHEL_TO_KG_FACTOR, 2)


def kg_to_bushels(kg: float) -> float:
    """Kilograms of apples to bushels, rounded to 0.01 bushel"""
    _require_positive(kg, "weight")
    return round(kg / BUSHEL_TO_KG_FACTOR, 2)


def is_valid_volume(value) -> bool:
    """Volume must be a finite number greater than zero"""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    return math.isfinite(value) and value > 0


def format_volume(liters: float, unit: str = "L", decimals: int = 2) -> str:
    """Display string for a canonical liter volume, e.g. '12.50 gal'"""
    return f"{from_liters(liters, unit):.{decimals}f} {unit}"


def format_gallons(gallons: float, decimals: int = 1) -> str:
    return f"{gallons:.{decimals}f} gal"
