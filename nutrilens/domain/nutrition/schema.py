"""
JSON schema of the canonical nutrition report.

Sent to the formatting backend as a strict structured-output constraint.
Mirrors nutrilens.domain.nutrition.models (camelCase wire shape).
"""

from typing import Any, Dict

RESPONSE_FORMAT_NAME = "nutritional_report"


def _macro_schema(described: bool) -> Dict[str, Any]:
    def integer(description: str) -> Dict[str, Any]:
        field: Dict[str, Any] = {"type": "integer"}
        if described:
            field["description"] = description
        return field

    return {
        "type": "object",
        "properties": {
            "protein": integer("Total protein in grams."),
            "carbohydrates": {
                "type": "object",
                "properties": {
                    "total": integer("Total carbohydrates in grams."),
                    "fiber": integer("Dietary fiber in grams."),
                    "sugars": integer("Total sugars in grams."),
                },
                "required": ["total", "fiber", "sugars"],
            },
            "fat": {
                "type": "object",
                "properties": {
                    "total": integer("Total fat in grams."),
                    "saturated": integer("Saturated fat in grams."),
                    "unsaturated": integer("Unsaturated fat in grams."),
                },
                "required": ["total", "saturated", "unsaturated"],
            },
        },
        "required": ["protein", "carbohydrates", "fat"],
    }


RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "dishName": {
            "type": "string",
            "description": "A concise, descriptive name for the dish shown in the image.",
        },
        "totalCalories": {
            "type": "integer",
            "description": "The total estimated calories for the entire meal, as an integer.",
        },
        "macroNutrients": _macro_schema(described=True),
        "microNutrients": {
            "type": "object",
            "properties": {
                "vitamins": {
                    "type": "string",
                    "description": "A summary of key vitamins present in the meal.",
                },
                "minerals": {
                    "type": "string",
                    "description": "A summary of key minerals present in the meal.",
                },
            },
            "required": ["vitamins", "minerals"],
        },
        "items": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "Name of the individual food item."},
                    "calories": {
                        "type": "integer",
                        "description": "Estimated calories for this item.",
                    },
                    "weightGrams": {
                        "type": "integer",
                        "description": "Estimated weight in grams for this item.",
                    },
                    "macronutrients": _macro_schema(described=False),
                },
                "required": ["name", "calories", "weightGrams", "macronutrients"],
            },
        },
        "notes": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Professional nutritional insights, tips, or comments about the meal.",
        },
        "analysis": {
            "type": "object",
            "properties": {
                "visualObservations": {
                    "type": "string",
                    "description": "Visual observations about appearance, cooking method, etc.",
                },
                "portionEstimate": {
                    "type": "string",
                    "description": "Methodology used for portion size estimation.",
                },
                "confidence": {
                    "type": "integer",
                    "description": "Confidence score (0-100) in the accuracy of the analysis.",
                },
                "confidenceNarrative": {
                    "type": "string",
                    "description": "Reasoning behind the confidence score.",
                },
                "cautions": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Potential allergens or dietary cautions.",
                },
            },
            "required": [
                "visualObservations",
                "portionEstimate",
                "confidence",
                "confidenceNarrative",
                "cautions",
            ],
        },
    },
    "required": [
        "dishName",
        "totalCalories",
        "macroNutrients",
        "microNutrients",
        "items",
        "notes",
        "analysis",
    ],
}


def response_format() -> Dict[str, Any]:
    """Structured-output constraint for the chat completions API."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": RESPONSE_FORMAT_NAME,
            "strict": True,
            "schema": RESPONSE_SCHEMA,
        },
    }
