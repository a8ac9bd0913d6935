# bmi.py
import math
from collections import namedtuple
from decimal import Decimal, ROUND_HALF_UP

# -------- Conversion constants (exact) --------
KG_PER_LB = 0.45359237
M_PER_IN = 0.0254
CM_PER_M = 100.0

WEIGHT_UNITS = ("kg", "lb")
HEIGHT_UNITS = ("cm", "in")

# Upper bounds are exclusive; evaluated on the rounded BMI.
CLASSIFICATIONS = (
    (18.5, "Underweight"),
    (25.0, "Normal weight"),
    (30.0, "Overweight"),
    (35.0, "Obesity class I"),
    (40.0, "Obesity class II"),
    (None, "Obesity class III"),
)


class BmiResult(namedtuple("BmiResult", ["bmi", "classification", "display_weight", "updated_at"])):
    """Outcome of one computation. All fields are None when measurements are missing."""

    __slots__ = ()

    @property
    def is_valid(self):
        return self.bmi is not None


INVALID = BmiResult(None, None, None, None)


def lb_to_kg(lb):
    return lb * KG_PER_LB

def kg_to_lb(kg):
    return kg / KG_PER_LB

def in_to_m(inch):
    return inch * M_PER_IN

def cm_to_m(cm):
    return cm / CM_PER_M

def to_kg(weight, unit):
    return lb_to_kg(weight) if unit == "lb" else weight

def to_m(height, unit):
    return in_to_m(height) if unit == "in" else cm_to_m(height)


def to_number(value):
    """Coerce a stored value to float; anything non-numeric counts as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def round_bmi(value):
    """Round to one decimal, half away from zero, on the shortest repr of the float.

    round(24.95, 1) gives 24.9 because of binary representation; the widget
    has always shown 25.0 there.
    """
    value = float(value)
    if abs(value) >= 1e15:
        # beyond Decimal's default precision; no fractional digits left anyway
        return value
    d = Decimal(repr(value))
    return float(d.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def classify(bmi):
    if bmi is None:
        return None
    for upper, label in CLASSIFICATIONS:
        if upper is None or bmi < upper:
            return label
    return None


def format_display_weight(weight, unit):
    """Stored weight plus its counterpart, e.g. '70.0 kg (154.3 lb)'."""
    if unit == "lb":
        return f"{weight:,.1f} lb ({lb_to_kg(weight):.1f} kg)"
    return f"{weight:.1f} kg ({kg_to_lb(weight):.1f} lb)"


def _field(config, name, default=None):
    if isinstance(config, dict):
        return config.get(name, default)
    return getattr(config, name, default)


def compute(config):
    """Compute BMI for a measurement config (MeasurementConfig or plain dict).

    Returns INVALID rather than raising when weight or height is not positive.
    """
    weight = to_number(_field(config, "weight"))
    height = to_number(_field(config, "height"))
    w_unit = _field(config, "weight_unit") if _field(config, "weight_unit") in WEIGHT_UNITS else "kg"
    h_unit = _field(config, "height_unit") if _field(config, "height_unit") in HEIGHT_UNITS else "cm"

    if weight <= 0 or height <= 0:
        return INVALID

    kg = to_kg(weight, w_unit)
    m = to_m(height, h_unit)

    area = m * m
    if area == 0 or not math.isfinite(kg / area):
        return INVALID

    bmi = round_bmi(kg / area)

    return BmiResult(
        bmi=bmi,
        classification=classify(bmi),
        display_weight=format_display_weight(weight, w_unit),
        updated_at=_field(config, "updated_at") or None,
    )
