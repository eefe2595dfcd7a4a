"""
Burn nutrition requirements and MUST malnutrition screening
"""

import logging
from typing import Optional

from .schema import BurnNutritionPlan, MUSTAssessment
from .error_codes import ErrorCode, invalid_input

logger = logging.getLogger(__name__)

MICRONUTRIENTS = {
    "vitamin_c_mg": 1000,
    "vitamin_a_iu": 10000,
    "vitamin_e_iu": 400,
    "zinc_mg": 220,
    "selenium_mcg": 100,
}

BURN_NUTRITION_RECOMMENDATIONS = [
    "Start enteral nutrition within 6 hours if possible",
    "Use high-protein, high-calorie formula",
    "Glutamine supplementation beneficial",
    "Monitor glucose closely - hyperglycemia common",
    "Weekly indirect calorimetry if available",
    "Vitamin C promotes wound healing",
    "Zinc deficiency impairs healing - supplement",
]

MUST_RISK_GUIDANCE = {
    "Low": ("Weekly in hospital, monthly in community", [
        "Routine clinical care",
        "Repeat screening weekly during hospital stay",
        "Repeat screening monthly if in community/outpatient",
        "Document dietary intake if concern arises",
    ]),
    "Medium": ("Weekly weight and intake monitoring", [
        "OBSERVE - Document dietary intake for 3 days",
        "Weekly weight monitoring",
        "If intake adequate: continue observation",
        "If intake inadequate: refer to dietician",
        "Consider oral nutritional supplements if intake <75%",
    ]),
    "High": ("Daily weight and intake monitoring", [
        "TREAT - Urgent dietician referral required",
        "Daily weight monitoring",
        "Document all food and fluid intake",
        "Commence oral nutritional supplements (ONS)",
        "Consider enteral feeding if oral intake inadequate",
        "Review regularly until MUST score improves",
    ]),
}

def _validate_weight(weight: float) -> None:
    if weight is None or weight <= 0:
        raise invalid_input(ErrorCode.NUTR_INVALID_WEIGHT, "Weight must be positive", weight=weight)

def calculate_burn_nutrition(weight: float, tbsa: float, age: float) -> BurnNutritionPlan:
    """
    Daily caloric and protein requirements

    Curreri (adult and junior) for age 4 and over, Galveston below 4.
    Calories left after protein are split 55% carbohydrate and 45% fat.
    """
    _validate_weight(weight)
    if tbsa is None or tbsa < 0 or tbsa > 100:
        raise invalid_input(ErrorCode.BURN_TBSA_OUT_OF_RANGE, "TBSA must be between 0 and 100", tbsa=tbsa)

    if age >= 18:
        calories = 25 * weight + 40 * tbsa
        formula = "Curreri Formula (Adult)"
    elif age >= 4:
        calories = 60 * weight + 35 * tbsa
        formula = "Curreri Formula (Pediatric)"
    else:
        bsa = 0.1 * weight ** 0.67
        calories = 2100 * bsa + 1000 * bsa * (tbsa / 100)
        formula = "Galveston Formula (Infant)"

    protein = weight * (2.0 if tbsa > 20 else 1.5)
    remaining = max(0.0, calories - protein * 4)

    if tbsa > 70:
        route = "parenteral"
    elif tbsa > 40:
        route = "enteral"
    else:
        route = "oral"

    plan = BurnNutritionPlan(
        patient_weight=weight,
        tbsa=tbsa,
        formula=formula,
        caloric_target=round(calories),
        protein_target=round(protein),
        carb_target=round(remaining * 0.55 / 4),
        fat_target=round(remaining * 0.45 / 9),
        feeding_route=route,
        micronutrients=dict(MICRONUTRIENTS),
        recommendations=list(BURN_NUTRITION_RECOMMENDATIONS),
    )
    logger.debug(f"{formula}: {plan.caloric_target} kcal/day, {plan.protein_target} g protein")
    return plan

def calculate_bmi(weight: float, height_cm: float) -> float:
    _validate_weight(weight)
    if height_cm is None or height_cm <= 0:
        raise invalid_input(ErrorCode.NUTR_INVALID_HEIGHT, "Height must be positive", height_cm=height_cm)
    height_m = height_cm / 100
    return round(weight / (height_m * height_m), 1)

def bmi_category(bmi: float) -> str:
    if bmi < 16:
        return "Severe Underweight"
    if bmi < 18.5:
        return "Underweight"
    if bmi < 25:
        return "Normal"
    if bmi < 30:
        return "Overweight"
    if bmi < 35:
        return "Obese Class I"
    if bmi < 40:
        return "Obese Class II"
    return "Obese Class III"

def calculate_must_score(
    weight: float,
    height_cm: Optional[float] = None,
    previous_weight: Optional[float] = None,
    acutely_ill_no_intake: bool = False,
) -> MUSTAssessment:
    """Malnutrition Universal Screening Tool (BMI, weight loss, acute disease effect)"""
    _validate_weight(weight)

    bmi = None
    category = None
    bmi_score = 0
    if height_cm:
        bmi = calculate_bmi(weight, height_cm)
        category = bmi_category(bmi)
        if bmi < 18.5:
            bmi_score = 2
        elif bmi <= 20:
            bmi_score = 1

    weight_loss = 0.0
    if previous_weight and previous_weight > weight:
        weight_loss = round((previous_weight - weight) / previous_weight * 100, 1)

    if weight_loss > 10:
        weight_loss_score = 2
    elif weight_loss >= 5:
        weight_loss_score = 1
    else:
        weight_loss_score = 0

    acute_score = 2 if acutely_ill_no_intake else 0
    total = bmi_score + weight_loss_score + acute_score

    if total == 0:
        risk = "Low"
    elif total == 1:
        risk = "Medium"
    else:
        risk = "High"
    monitoring, recommendations = MUST_RISK_GUIDANCE[risk]

    return MUSTAssessment(
        bmi=bmi,
        bmi_category=category,
        weight_loss_percent=weight_loss,
        bmi_score=bmi_score,
        weight_loss_score=weight_loss_score,
        acute_disease_score=acute_score,
        must_score=total,
        risk_level=risk,
        referral_needed=total >= 2,
        monitoring_frequency=monitoring,
        recommendations=list(recommendations),
        caloric_target=weight * (30 if total >= 2 else 25),
        protein_target=round(weight * (1.5 if total >= 2 else 1.2), 1),
    )
