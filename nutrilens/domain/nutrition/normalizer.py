"""
Schema normalizer for backend nutrition JSON.

Backends answer with loosely-shaped JSON: camelCase or snake_case keys,
flattened macro fields, floats and numeric strings where integers are
expected, missing blocks. normalize_report() maps any parsed value to a
fully populated NutritionReport and has no error case.

Each field has an explicit, ordered list of accepted keys. Nested blocks
are searched before the flattened keys of their parent.
"""

from __future__ import annotations

import math
import re
from typing import Any, List, Mapping, Optional, Sequence

from nutrilens.domain.nutrition.models import (
    Analysis,
    Carbohydrates,
    Fat,
    FoodItem,
    MacroNutrients,
    MicroNutrients,
    NutritionReport,
)

DEFAULT_DISH_NAME = "Unknown Dish"
DEFAULT_ITEM_NAME = "Unknown Item"
NOT_SPECIFIED = "Not specified"
DEFAULT_VISUAL_OBSERVATIONS = "Visual analysis performed on food image"
DEFAULT_PORTION_ESTIMATE = "Estimated based on visual analysis"
DEFAULT_CONFIDENCE_NARRATIVE = "Analysis confidence based on image clarity"

# Absent confidence reads as "moderately confident", not as a failed analysis
DEFAULT_CONFIDENCE = 75
MAX_CONFIDENCE = 100

# ═══════════════════════════════════════════════════════════
# FIELD ALIASES (priority order)
# ═══════════════════════════════════════════════════════════

DISH_NAME_KEYS = ("dish_name", "dishName", "dish", "title")
TOTAL_CALORIES_KEYS = ("total_calories", "totalCalories", "calories", "total_kcal")
MACRO_BLOCK_KEYS = ("macroNutrients", "macro_nutrients", "macronutrients", "macros")
MICRO_BLOCK_KEYS = ("microNutrients", "micro_nutrients", "micronutrients", "micros")
ITEMS_KEYS = ("items", "foodItems", "food_items", "foods")
NOTES_KEYS = ("notes", "insights")
ANALYSIS_BLOCK_KEYS = ("analysis",)

PROTEIN_KEYS = ("protein", "proteins", "protein_g")
CARBS_KEYS = ("carbohydrates", "carbs", "carbohydrate", "carbohydrates_g", "carbs_g")
FAT_KEYS = ("fat", "fats", "total_fat", "fat_g")
TOTAL_KEYS = ("total", "amount", "value")
FIBER_KEYS = ("fiber", "fibre", "dietary_fiber", "fiber_g")
SUGARS_KEYS = ("sugars", "sugar", "sugars_g")
SATURATED_KEYS = ("saturated", "saturatedFat", "saturated_fat")
UNSATURATED_KEYS = ("unsaturated", "unsaturatedFat", "unsaturated_fat")

VITAMINS_KEYS = ("vitamins",)
MINERALS_KEYS = ("minerals",)

ITEM_NAME_KEYS = ("name", "food", "label", "item")
ITEM_CALORIES_KEYS = ("calories", "kcal", "energy")
ITEM_WEIGHT_KEYS = ("weightGrams", "weight_grams", "weight_g", "weight", "grams", "quantity_g")
ITEM_MACRO_BLOCK_KEYS = ("macronutrients", "macroNutrients", "macro_nutrients", "macros")

VISUAL_KEYS = ("visualObservations", "visual_observations", "observations")
PORTION_KEYS = ("portionEstimate", "portion_estimate", "portion_estimation")
CONFIDENCE_KEYS = ("confidence", "confidence_score", "confidenceScore")
NARRATIVE_KEYS = ("confidenceNarrative", "confidence_narrative", "confidence_reasoning")
CAUTIONS_KEYS = ("cautions", "allergens", "warnings")

_LEADING_NUMBER = re.compile(r"^-?\d+(?:\.\d+)?")

_EMPTY: Mapping[str, Any] = {}


# ═══════════════════════════════════════════════════════════
# COERCION HELPERS
# ═══════════════════════════════════════════════════════════


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else _EMPTY


def _first_present(sources: Sequence[Mapping[str, Any]], keys: Sequence[str]) -> Any:
    """First non-null, non-blank value, scanning sources in order then keys."""
    for source in sources:
        for key in keys:
            value = source.get(key)
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            return value
    return None


def _to_number(value: Any) -> Optional[float]:
    # bool is an int subclass; True is not 1 gram
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value.strip().replace(",", ""))
        if not match:
            return None
        number = float(match.group())
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def _round_half_up(number: float) -> int:
    return int(math.floor(number + 0.5))


def to_int(value: Any) -> int:
    """
    Coerce to a non-negative integer.

    Example:
        >>> to_int(12.6), to_int("30g"), to_int(None), to_int(-4)
        (13, 30, 0, 0)
    """
    number = _to_number(value)
    if number is None:
        return 0
    return max(0, _round_half_up(number))


def to_confidence(value: Any) -> int:
    """Coerce to [0, 100], defaulting to 75 when absent or non-numeric."""
    number = _to_number(value)
    if number is None:
        return DEFAULT_CONFIDENCE
    return min(MAX_CONFIDENCE, max(0, _round_half_up(number)))


def to_text(value: Any, default: str) -> str:
    """
    Coerce to a non-empty string.

    Arrays of strings are joined with ", ".
    """
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, list):
        parts = _text_elements(value)
        if parts:
            return ", ".join(parts)
    return default


def to_text_list(value: Any) -> List[str]:
    """Coerce to a list of non-empty strings; non-lists become []."""
    if not isinstance(value, list):
        return []
    return _text_elements(value)


def _text_elements(values: List[Any]) -> List[str]:
    parts: List[str] = []
    for element in values:
        if isinstance(element, str):
            if element.strip():
                parts.append(element.strip())
        elif isinstance(element, (int, float)) and not isinstance(element, bool):
            parts.append(str(element))
    return parts


# ═══════════════════════════════════════════════════════════
# BLOCK NORMALIZERS
# ═══════════════════════════════════════════════════════════


def _normalize_macros(block: Mapping[str, Any], parent: Mapping[str, Any]) -> MacroNutrients:
    """Nested macro block first, then flattened keys on the parent."""
    sources = (block, parent)

    carbs_raw = _first_present(sources, CARBS_KEYS)
    carbs_block = _as_mapping(carbs_raw)
    carbs_total = _first_present((carbs_block,), TOTAL_KEYS) if carbs_block else carbs_raw

    fat_raw = _first_present(sources, FAT_KEYS)
    fat_block = _as_mapping(fat_raw)
    fat_total = _first_present((fat_block,), TOTAL_KEYS) if fat_block else fat_raw

    return MacroNutrients(
        protein=to_int(_first_present(sources, PROTEIN_KEYS)),
        carbohydrates=Carbohydrates(
            total=to_int(carbs_total),
            fiber=to_int(_first_present((carbs_block, *sources), FIBER_KEYS)),
            sugars=to_int(_first_present((carbs_block, *sources), SUGARS_KEYS)),
        ),
        fat=Fat(
            total=to_int(fat_total),
            saturated=to_int(_first_present((fat_block, *sources), SATURATED_KEYS)),
            unsaturated=to_int(_first_present((fat_block, *sources), UNSATURATED_KEYS)),
        ),
    )


def _normalize_item(entry: Mapping[str, Any]) -> FoodItem:
    macro_block = _as_mapping(_first_present((entry,), ITEM_MACRO_BLOCK_KEYS))
    return FoodItem(
        name=to_text(_first_present((entry,), ITEM_NAME_KEYS), DEFAULT_ITEM_NAME),
        calories=to_int(_first_present((entry,), ITEM_CALORIES_KEYS)),
        weight_grams=to_int(_first_present((entry,), ITEM_WEIGHT_KEYS)),
        macronutrients=_normalize_macros(macro_block, entry),
    )


def _normalize_items(value: Any) -> List[FoodItem]:
    if not isinstance(value, list):
        return []

    items: List[FoodItem] = []
    for entry in value:
        if isinstance(entry, str) and entry.strip():
            entry = {"name": entry}
        if not isinstance(entry, Mapping):
            continue
        items.append(_normalize_item(entry))
    return items


def _normalize_analysis(block: Mapping[str, Any], parent: Mapping[str, Any]) -> Analysis:
    sources = (block, parent)
    return Analysis(
        visual_observations=to_text(
            _first_present(sources, VISUAL_KEYS), DEFAULT_VISUAL_OBSERVATIONS
        ),
        portion_estimate=to_text(_first_present(sources, PORTION_KEYS), DEFAULT_PORTION_ESTIMATE),
        confidence=to_confidence(_first_present(sources, CONFIDENCE_KEYS)),
        confidence_narrative=to_text(
            _first_present(sources, NARRATIVE_KEYS), DEFAULT_CONFIDENCE_NARRATIVE
        ),
        cautions=to_text_list(_first_present(sources, CAUTIONS_KEYS)),
    )


# ═══════════════════════════════════════════════════════════
# ENTRY POINT
# ═══════════════════════════════════════════════════════════


def normalize_report(raw: Any) -> NutritionReport:
    """
    Normalize any parsed JSON value into a canonical NutritionReport.

    Never raises: missing or malformed fields get defaults, numbers are
    rounded half up and clamped to be non-negative, confidence defaults to
    75 and is clamped to [0, 100], non-list arrays become empty lists.
    Non-object input normalizes like {}.

    Args:
        raw: Parsed JSON (dict, list, scalar, None) or a NutritionReport

    Returns:
        Fully populated NutritionReport

    Example:
        >>> report = normalize_report({
        ...     "dish_name": "Pad Thai",
        ...     "total_calories": "640.4",
        ...     "macroNutrients": {"protein": 24.5, "carbohydrates": 80},
        ... })
        >>> report.dish_name, report.total_calories
        ('Pad Thai', 640)
        >>> report.macro_nutrients.carbohydrates.total, report.confidence
        (80, 75)
    """
    if isinstance(raw, NutritionReport):
        raw = raw.to_json_dict()

    data = _as_mapping(raw)
    macro_block = _as_mapping(_first_present((data,), MACRO_BLOCK_KEYS))
    micro_block = _as_mapping(_first_present((data,), MICRO_BLOCK_KEYS))
    analysis_block = _as_mapping(_first_present((data,), ANALYSIS_BLOCK_KEYS))

    return NutritionReport(
        dish_name=to_text(_first_present((data,), DISH_NAME_KEYS), DEFAULT_DISH_NAME),
        total_calories=to_int(_first_present((data,), TOTAL_CALORIES_KEYS)),
        macro_nutrients=_normalize_macros(macro_block, data),
        micro_nutrients=MicroNutrients(
            vitamins=to_text(_first_present((micro_block, data), VITAMINS_KEYS), NOT_SPECIFIED),
            minerals=to_text(_first_present((micro_block, data), MINERALS_KEYS), NOT_SPECIFIED),
        ),
        items=_normalize_items(_first_present((data,), ITEMS_KEYS)),
        notes=to_text_list(_first_present((data,), NOTES_KEYS)),
        analysis=_normalize_analysis(analysis_block, data),
    )
