"""
Burn Care Engine
TBSA estimation, severity scoring, fluid resuscitation and complication monitoring
"""

from .schema import (BurnDepth, RegionBurn, TBSACalculation, ResuscitationFormula,
                     FluidResuscitationPlan, BurnAlert, AlertThreshold, BurnEngineConfig)
from .tbsa import calculate_tbsa_lund_browder, calculate_tbsa_rule_of_nines, calculate_tbsa_palmar
from .severity import (calculate_baux_score, calculate_revised_baux_score, calculate_absi_score,
                       classify_burn_severity, check_burn_center_criteria, recommend_disposition)
from .sepsis import calculate_qsofa, calculate_sofa
from .resuscitation import (calculate_fluid_resuscitation, build_hourly_targets,
                            calculate_fluid_adjustment, track_resuscitation_progress)
from .alerts import AlertRegister, DEFAULT_ALERT_THRESHOLDS, evaluate_thresholds
from .nutrition import calculate_burn_nutrition, calculate_must_score
from .wound_care import generate_wound_care_protocol, estimate_healing_time
from .error_codes import BurnCareError, ErrorCode

__all__ = [
    'BurnDepth', 'RegionBurn', 'TBSACalculation', 'ResuscitationFormula',
    'FluidResuscitationPlan', 'BurnAlert', 'AlertThreshold', 'BurnEngineConfig',
    'calculate_tbsa_lund_browder', 'calculate_tbsa_rule_of_nines', 'calculate_tbsa_palmar',
    'calculate_baux_score', 'calculate_revised_baux_score', 'calculate_absi_score',
    'classify_burn_severity', 'check_burn_center_criteria', 'recommend_disposition',
    'calculate_qsofa', 'calculate_sofa',
    'calculate_fluid_resuscitation', 'build_hourly_targets', 'calculate_fluid_adjustment',
    'track_resuscitation_progress',
    'AlertRegister', 'DEFAULT_ALERT_THRESHOLDS', 'evaluate_thresholds',
    'calculate_burn_nutrition', 'calculate_must_score',
    'generate_wound_care_protocol', 'estimate_healing_time',
    'BurnCareError', 'ErrorCode'
]
