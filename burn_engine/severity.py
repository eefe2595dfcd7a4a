"""
Burn severity scoring: Baux, Revised Baux, ABSI, severity class and disposition
"""

import logging
from typing import List, Optional, Sequence

from .schema import (BauxScore, RevisedBauxScore, ABSIScore, ReferralDecision,
                     BurnEngineConfig, SeverityLevel, Disposition, Sex, ThreatLevel)
from .error_codes import ErrorCode, invalid_input

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = BurnEngineConfig()

# (max total score, survival probability, threat level)
ABSI_SURVIVAL_TABLE = [
    (2, ">99%", ThreatLevel.VERY_LOW),
    (3, "98%", ThreatLevel.VERY_LOW),
    (4, "90%", ThreatLevel.MODERATE),
    (5, "80%", ThreatLevel.MODERATE),
    (6, "60%", ThreatLevel.MODERATELY_SEVERE),
    (7, "40%", ThreatLevel.SEVERE),
    (8, "20%", ThreatLevel.SEVERE),
    (9, "10%", ThreatLevel.VERY_SEVERE),
]

def _validate_age_tbsa(age: float, tbsa: float) -> None:
    if age is None or age < 0:
        raise invalid_input(ErrorCode.SCORE_INVALID_INPUT, "Age must be non-negative", age=age)
    if tbsa is None or tbsa < 0 or tbsa > 100:
        raise invalid_input(ErrorCode.BURN_TBSA_OUT_OF_RANGE, "TBSA must be between 0 and 100", tbsa=tbsa)

def baux_mortality_band(score: float, config: BurnEngineConfig = _DEFAULT_CONFIG) -> str:
    for upper, label in config.baux_mortality_bands:
        if score < upper:
            return label
    return config.baux_top_band

def calculate_baux_score(age: float, tbsa: float,
                         config: BurnEngineConfig = _DEFAULT_CONFIG) -> BauxScore:
    """Baux score = age + TBSA"""
    _validate_age_tbsa(age, tbsa)
    score = age + tbsa
    return BauxScore(age=age, tbsa=tbsa, score=score,
                     mortality_risk=baux_mortality_band(score, config))

def calculate_revised_baux_score(age: float, tbsa: float, inhalation_injury: bool,
                                 config: BurnEngineConfig = _DEFAULT_CONFIG) -> RevisedBauxScore:
    """Revised Baux score = age + TBSA + 17 with inhalation injury"""
    _validate_age_tbsa(age, tbsa)
    score = age + tbsa + (config.revised_baux_inhalation_points if inhalation_injury else 0)
    return RevisedBauxScore(age=age, tbsa=tbsa, inhalation_injury=inhalation_injury,
                            score=score, mortality_risk=baux_mortality_band(score, config))

def _absi_age_points(age: float) -> int:
    if age <= 20:
        return 1
    if age <= 40:
        return 2
    if age <= 60:
        return 3
    if age <= 80:
        return 4
    return 5

def _absi_tbsa_points(tbsa: float) -> int:
    # 1 point up to 10%, one more per started 10% band, max 10
    for points in range(1, 10):
        if tbsa <= points * 10:
            return points
    return 10

def calculate_absi_score(age: float, sex: Sex, tbsa: float,
                         inhalation_injury: bool, full_thickness: bool) -> ABSIScore:
    """
    Abbreviated Burn Severity Index

    Composite of age, sex, TBSA, inhalation injury and full thickness burn.
    """
    _validate_age_tbsa(age, tbsa)
    sex = Sex(sex)

    age_points = _absi_age_points(age)
    sex_points = 1 if sex == Sex.FEMALE else 0
    tbsa_points = _absi_tbsa_points(tbsa)
    inhalation_points = 1 if inhalation_injury else 0
    full_thickness_points = 1 if full_thickness else 0

    total = age_points + sex_points + tbsa_points + inhalation_points + full_thickness_points

    survival, threat = "<5%", ThreatLevel.VERY_SEVERE
    for upper, probability, level in ABSI_SURVIVAL_TABLE:
        if total <= upper:
            survival, threat = probability, level
            break

    return ABSIScore(
        age=age,
        sex=sex,
        tbsa=tbsa,
        has_inhalation_injury=inhalation_injury,
        has_full_thickness=full_thickness,
        age_points=age_points,
        sex_points=sex_points,
        tbsa_points=tbsa_points,
        inhalation_points=inhalation_points,
        full_thickness_points=full_thickness_points,
        total_score=total,
        survival_probability=survival,
        threat_level=threat,
    )

def classify_burn_severity(tbsa: float, has_full_thickness: bool,
                           inhalation_injury: bool, age: float) -> SeverityLevel:
    if tbsa > 40 or (inhalation_injury and tbsa > 20):
        return SeverityLevel.CRITICAL

    if (tbsa > 20 or (has_full_thickness and tbsa > 10) or inhalation_injury
            or age < 10 or age > 50):
        return SeverityLevel.MAJOR

    if tbsa > 10 or (has_full_thickness and tbsa > 2):
        return SeverityLevel.MODERATE

    return SeverityLevel.MINOR

def check_burn_center_criteria(
    tbsa: float,
    full_thickness_tbsa: float,
    inhalation_injury: bool,
    age: float,
    burn_locations: Sequence[str] = (),
    chemical_burn: bool = False,
    electrical_burn: bool = False,
    circumferential_burn: bool = False,
    significant_comorbidities: bool = False,
    config: BurnEngineConfig = _DEFAULT_CONFIG,
) -> ReferralDecision:
    """Burn centre referral criteria (American Burn Association)"""
    reasons: List[str] = []

    if tbsa > config.referral_tbsa_threshold:
        reasons.append(f"TBSA >{config.referral_tbsa_threshold:g}% ({tbsa:g}%)")

    if full_thickness_tbsa > 0:
        reasons.append("Full thickness burn present")

    affected = [loc for loc in burn_locations
                if any(area in loc.lower() for area in config.special_areas)]
    if affected:
        reasons.append(f"Burns to special areas: {', '.join(affected)}")

    if inhalation_injury:
        reasons.append("Inhalation injury present")
    if chemical_burn:
        reasons.append("Chemical burn")
    if electrical_burn:
        reasons.append("Electrical/lightning burn")
    if circumferential_burn:
        reasons.append("Circumferential burn (limb/chest)")

    if age < config.referral_age_min or age > config.referral_age_max:
        reasons.append(
            f"Age extremes (<{config.referral_age_min:g} or >{config.referral_age_max:g} years): "
            f"{age:g} years"
        )

    if significant_comorbidities:
        reasons.append("Significant pre-existing medical conditions")

    return ReferralDecision(meets_criteria=bool(reasons), reasons=reasons)

def recommend_disposition(severity: SeverityLevel, meets_burn_center_criteria: bool) -> Disposition:
    if meets_burn_center_criteria:
        return Disposition.BURN_CENTER

    return {
        SeverityLevel.CRITICAL: Disposition.ICU,
        SeverityLevel.MAJOR: Disposition.HDU,
        SeverityLevel.MODERATE: Disposition.WARD,
    }.get(SeverityLevel(severity), Disposition.OUTPATIENT)

def calculate_map(systolic: float, diastolic: float) -> int:
    """Mean arterial pressure"""
    if systolic < diastolic:
        raise invalid_input(ErrorCode.SCORE_INVALID_INPUT,
                            "Systolic pressure below diastolic", systolic=systolic, diastolic=diastolic)
    return round(diastolic + (systolic - diastolic) / 3)

def calculate_gcs(eye: int, verbal: int, motor: int) -> int:
    for name, value, upper in (("eye", eye, 4), ("verbal", verbal, 5), ("motor", motor, 6)):
        if not 1 <= value <= upper:
            raise invalid_input(ErrorCode.SCORE_GCS_OUT_OF_RANGE,
                                f"GCS {name} component must be 1-{upper}", component=name, value=value)
    return eye + verbal + motor
