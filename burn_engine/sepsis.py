"""
Sepsis screening for burn patients: qSOFA and SOFA
"""

from typing import Optional

from .schema import QSOFAScore, SOFAScore

def calculate_qsofa(respiratory_rate: float, systolic_bp: float, gcs: int) -> QSOFAScore:
    score = 0
    if respiratory_rate >= 22:
        score += 1
    if systolic_bp <= 100:
        score += 1
    altered_mentation = gcs < 15
    if altered_mentation:
        score += 1

    return QSOFAScore(
        respiratory_rate=respiratory_rate,
        systolic_bp=systolic_bp,
        altered_mentation=altered_mentation,
        score=score,
        sepsis_risk="high" if score >= 2 else "low",
    )

def _descending_band(value: Optional[float], cutoffs) -> int:
    """Score 0-4 where lower values are worse; cutoffs for scores 0..3"""
    if value is None:
        return 0
    for points, cutoff in enumerate(cutoffs):
        if value >= cutoff:
            return points
    return 4

def _ascending_band(value: Optional[float], cutoffs) -> int:
    """Score 0-4 where higher values are worse; upper limits for scores 0..3"""
    if value is None:
        return 0
    for points, cutoff in enumerate(cutoffs):
        if value < cutoff:
            return points
    return 4

def calculate_sofa(
    pao2_fio2_ratio: Optional[float] = None,
    platelets: Optional[float] = None,
    bilirubin: Optional[float] = None,
    map_mmhg: Optional[float] = None,
    on_vasopressors: bool = False,
    vasopressor_dose: Optional[float] = None,
    gcs: int = 15,
    creatinine: Optional[float] = None,
    urine_output_24h: Optional[float] = None,
) -> SOFAScore:
    """
    Sequential Organ Failure Assessment

    Missing components score 0. Bilirubin and creatinine in mg/dL,
    vasopressor dose in mcg/kg/min (dopamine equivalent), urine output in mL/day.
    """
    respiration = _descending_band(pao2_fio2_ratio, (400, 300, 200, 100))
    coagulation = _descending_band(platelets, (150, 100, 50, 20))
    liver = _ascending_band(bilirubin, (1.2, 2.0, 6.0, 12.0))

    cardiovascular = 0
    if map_mmhg is not None or on_vasopressors:
        if not on_vasopressors:
            cardiovascular = 0 if map_mmhg >= 70 else 1
        elif vasopressor_dose is not None and vasopressor_dose <= 5:
            cardiovascular = 2
        elif vasopressor_dose is not None and vasopressor_dose <= 15:
            cardiovascular = 3
        else:
            cardiovascular = 4

    if gcs == 15:
        cns = 0
    elif gcs >= 13:
        cns = 1
    elif gcs >= 10:
        cns = 2
    elif gcs >= 6:
        cns = 3
    else:
        cns = 4

    renal = _ascending_band(creatinine, (1.2, 2.0, 3.5, 5.0))
    if urine_output_24h is not None:
        if urine_output_24h < 200:
            renal = 4
        elif urine_output_24h < 500:
            renal = max(renal, 3)

    total = respiration + coagulation + liver + cardiovascular + cns + renal

    if total <= 1:
        mortality = "<10%"
    elif total <= 4:
        mortality = "10-20%"
    elif total <= 7:
        mortality = "20-30%"
    elif total <= 10:
        mortality = "30-50%"
    elif total <= 14:
        mortality = "50-70%"
    else:
        mortality = ">70%"

    return SOFAScore(
        respiration_score=respiration,
        coagulation_score=coagulation,
        liver_score=liver,
        cardiovascular_score=cardiovascular,
        cns_score=cns,
        renal_score=renal,
        total_score=total,
        mortality_risk=mortality,
    )
