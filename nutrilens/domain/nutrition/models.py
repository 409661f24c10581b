"""
Canonical nutrition report models.

Every backend response is converted into these models before leaving the
analysis pipeline. Attributes are snake_case; the JSON shape is camelCase.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CanonicalModel(BaseModel):
    """Base for immutable camelCase models."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> dict:
        """Dump with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class Carbohydrates(CanonicalModel):
    """Carbohydrate breakdown in grams."""

    total: int = Field(0, ge=0, description="Total carbohydrates (g)")
    fiber: int = Field(0, ge=0, description="Dietary fiber (g)")
    sugars: int = Field(0, ge=0, description="Total sugars (g)")


class Fat(CanonicalModel):
    """Fat breakdown in grams."""

    total: int = Field(0, ge=0, description="Total fat (g)")
    saturated: int = Field(0, ge=0, description="Saturated fat (g)")
    unsaturated: int = Field(0, ge=0, description="Unsaturated fat (g)")


class MacroNutrients(CanonicalModel):
    """
    Macro-nutrient breakdown.

    Example:
        >>> macros = MacroNutrients(
        ...     protein=32,
        ...     carbohydrates=Carbohydrates(total=60, fiber=4, sugars=6),
        ...     fat=Fat(total=18, saturated=5, unsaturated=13),
        ... )
    """

    protein: int = Field(0, ge=0, description="Protein (g)")
    carbohydrates: Carbohydrates = Field(default_factory=Carbohydrates)
    fat: Fat = Field(default_factory=Fat)


class MicroNutrients(CanonicalModel):
    """Free-text micro-nutrient summary."""

    vitamins: str = Field("Not specified", description="Key vitamins")
    minerals: str = Field("Not specified", description="Key minerals")


class FoodItem(CanonicalModel):
    """Single component of the meal."""

    name: str = Field(..., min_length=1, description="Food item name")
    calories: int = Field(0, ge=0, description="Calories (kcal)")
    weight_grams: int = Field(0, ge=0, description="Estimated weight (g)")
    # Lower-case "n" on the wire, unlike the report-level macroNutrients
    macronutrients: MacroNutrients = Field(default_factory=MacroNutrients)


class Analysis(CanonicalModel):
    """Narrative part of the report."""

    visual_observations: str = Field(..., description="What the model saw")
    portion_estimate: str = Field(..., description="Portion methodology")
    confidence: int = Field(75, ge=0, le=100, description="Confidence 0-100")
    confidence_narrative: str = Field(..., description="Confidence reasoning")
    cautions: List[str] = Field(default_factory=list, description="Allergens, cautions")


class NutritionReport(CanonicalModel):
    """
    Canonical nutritional report for one meal photo.

    Invariant: every numeric field is a non-negative integer and
    analysis.confidence lies in [0, 100].

    Example:
        >>> report = NutritionReport(
        ...     dish_name="Chicken Caesar Salad",
        ...     total_calories=480,
        ...     macro_nutrients=MacroNutrients(protein=35),
        ...     micro_nutrients=MicroNutrients(),
        ...     analysis=Analysis(
        ...         visual_observations="Romaine, grilled chicken, croutons",
        ...         portion_estimate="Standard dinner plate",
        ...         confidence=82,
        ...         confidence_narrative="Clear photo",
        ...     ),
        ... )
        >>> report.to_json_dict()["dishName"]
        'Chicken Caesar Salad'
    """

    dish_name: str = Field(..., min_length=1, description="Dish name")
    total_calories: int = Field(0, ge=0, description="Total calories (kcal)")
    macro_nutrients: MacroNutrients = Field(default_factory=MacroNutrients)
    micro_nutrients: MicroNutrients = Field(default_factory=MicroNutrients)
    items: List[FoodItem] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)
    analysis: Analysis

    @property
    def confidence(self) -> int:
        """Shortcut to analysis.confidence."""
        return self.analysis.confidence


def empty_report() -> NutritionReport:
    """
    Placeholder report attached to failed analyses.

    Lets callers render an error outcome without special-casing absence.
    """
    return NutritionReport(
        dish_name="Analysis Failed",
        total_calories=0,
        micro_nutrients=MicroNutrients(vitamins="Not available", minerals="Not available"),
        analysis=Analysis(
            visual_observations="Analysis failed",
            portion_estimate="Unable to estimate",
            confidence=0,
            confidence_narrative="Analysis was not successful",
            cautions=[],
        ),
    )
