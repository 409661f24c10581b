"""
Prompts for the two-stage meal photo analysis.

Keep static instructions in the system prompts and dynamic content
(food name, measurement cues, extracted text) in user messages.
"""

from typing import Any, Dict, List, Optional


# ═══════════════════════════════════════════════════════════
# SYSTEM PROMPTS (static instructions)
# ═══════════════════════════════════════════════════════════

NUTRITIONIST_SYSTEM_PROMPT = """You are a certified clinical nutritionist with deep expertise in visual nutritional analysis and regional cuisine knowledge. Your mission is to analyze food images and provide accurate, scientifically-based nutritional calculations.

REQUIRED EXPERTISE:
- Deep knowledge of validated nutritional databases (USDA, CIQUAL, etc.)
- Expertise in visual food identification and portion estimation
- Understanding of cooking methods and their nutritional impact
- Knowledge of micronutrients, fiber, and bioactive compounds
- Expertise in allergens and dietary considerations

REGIONAL CUISINE EXPERTISE:
- Traditional preparation methods across global cuisines
- Regional ingredients, spices, and cooking techniques
- Traditional cooking oils, fats, and preparation methods by region
- Regional portion sizes and serving styles

METHODOLOGY:
- Precisely identify each visible food and ingredient with regional context
- Estimate portions based on precise visual references and regional standards
- Calculate macronutrients and micronutrients based on composition and preparation
- Consider cooking method impact on nutritional density
- Assess confidence based on visual clarity, dish complexity, and cultural context

Provide ONLY valid JSON matching the schema."""

FORMATTER_SYSTEM_PROMPT = (
    "You are a JSON formatting assistant. Format nutritional data into the exact "
    "schema provided. Ensure the JSON is complete and valid."
)


# ═══════════════════════════════════════════════════════════
# USER PROMPT BUILDERS (dynamic content)
# ═══════════════════════════════════════════════════════════


def food_name_context(food_name: Optional[str]) -> str:
    """Context block for a user-supplied dish name (empty when absent)."""
    if not food_name or not food_name.strip():
        return ""
    return (
        f'\n\nIMPORTANT CONTEXT: The user has indicated this dish may be called "{food_name.strip()}". '
        "Please use this information to help identify regional or cultural variations, "
        "traditional preparation methods, and authentic ingredients."
    )


def measurement_cues_context(user_cues: Optional[str]) -> str:
    """Context block for user-supplied measurement cues (empty when absent)."""
    if not user_cues or not user_cues.strip():
        return ""
    return (
        f"\n\nUSER-PROVIDED MEASUREMENT CUES:\n{user_cues.strip()}\n\n"
        "Use these cues as PRIMARY measurement anchors for portion estimation."
    )


def build_extraction_prompt(
    food_name: Optional[str] = None,
    user_cues: Optional[str] = None,
) -> str:
    """
    Build the extraction instructions.

    Args:
        food_name: Optional dish name hint from the user
        user_cues: Optional measurement cues (plate size, utensils, etc.)

    Returns:
        Extraction prompt text

    Example:
        >>> prompt = build_extraction_prompt(food_name="Pad Thai")
        >>> "Pad Thai" in prompt
        True
    """
    return (
        "As an expert nutritionist, analyze this food image and extract ALL nutritional "
        "information in a detailed, structured format."
        f"{food_name_context(food_name)}{measurement_cues_context(user_cues)}\n\n"
        "Provide a comprehensive analysis including:\n"
        "- Dish name and description\n"
        "- All visible foods and ingredients\n"
        "- Estimated portion sizes and weights\n"
        "- Complete macronutrient breakdown (protein, carbs with fiber/sugars, "
        "fats with saturated/unsaturated)\n"
        "- Micronutrients (vitamins and minerals as descriptive text)\n"
        "- Visual observations\n"
        "- Portion estimation methodology\n"
        "- Confidence assessment\n"
        "- Allergens and cautions\n\n"
        "Format your response as detailed text or flexible JSON. "
        "Focus on completeness and accuracy."
    )


def build_formatting_prompt(extracted_info: str) -> str:
    """Build the formatting instructions around the extracted text."""
    return f"""You are a nutritionist assistant. Format the following nutritional information into the exact JSON schema required.

EXTRACTED INFORMATION:
{extracted_info}

REQUIREMENTS:
- ALL numeric values MUST be whole integers (no decimals)
- Follow the exact schema structure
- Ensure all required fields are present
- Break down each food component in items[] with individual calories
- Include professional nutritional insights in notes[]
- Provide detailed visual observations in analysis.visualObservations
- Explain portion estimation methodology in analysis.portionEstimate
- Detail confidence reasoning in analysis.confidenceNarrative
- List allergens and cautions in analysis.cautions

Return ONLY valid JSON matching the schema."""


# ═══════════════════════════════════════════════════════════
# MESSAGE BUILDERS
# ═══════════════════════════════════════════════════════════


def build_extraction_messages(
    image_url: str,
    food_name: Optional[str] = None,
    user_cues: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Chat messages for the extraction stage.

    Args:
        image_url: Image as a data URL (data:<mime>;base64,<data>)
        food_name: Optional dish name hint
        user_cues: Optional measurement cues

    Returns:
        System + multimodal user message
    """
    return [
        {"role": "system", "content": NUTRITIONIST_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": build_extraction_prompt(food_name, user_cues)},
                {"type": "image_url", "image_url": {"url": image_url}},
            ],
        },
    ]


def build_formatting_messages(extracted_info: str) -> List[Dict[str, Any]]:
    """Chat messages for the formatting stage."""
    return [
        {"role": "system", "content": FORMATTER_SYSTEM_PROMPT},
        {"role": "user", "content": build_formatting_prompt(extracted_info)},
    ]
