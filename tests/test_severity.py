#!/usr/bin/env python3
"""
Unit tests for burn severity scoring and sepsis screening
"""

import pytest
import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from burn_engine.schema import Sex, ThreatLevel, SeverityLevel, Disposition
from burn_engine.severity import (calculate_baux_score, calculate_revised_baux_score,
                                  calculate_absi_score, classify_burn_severity,
                                  check_burn_center_criteria, recommend_disposition,
                                  calculate_map, calculate_gcs)
from burn_engine.sepsis import calculate_qsofa, calculate_sofa
from burn_engine.error_codes import BurnCareError, ErrorCode

class TestBauxScores:
    """Baux and Revised Baux"""

    def test_baux_score(self):
        result = calculate_baux_score(40, 30)
        assert result.score == 70
        assert result.mortality_risk == "Moderate (10-30%)"

    @pytest.mark.parametrize("age,tbsa,band", [
        (20, 10, "Low (<10%)"),
        (25, 25, "Moderate (10-30%)"),
        (60, 30, "High (30-60%)"),
        (70, 50, "Very High (60-90%)"),
        (80, 50, "Extremely High (>90%)"),
    ])
    def test_mortality_bands(self, age, tbsa, band):
        assert calculate_baux_score(age, tbsa).mortality_risk == band

    def test_revised_baux_adds_inhalation_points(self):
        with_inhalation = calculate_revised_baux_score(40, 30, True)
        without = calculate_revised_baux_score(40, 30, False)

        assert with_inhalation.score == 87
        assert with_inhalation.mortality_risk == "High (30-60%)"
        assert without.score == 70

    def test_invalid_tbsa_rejected(self):
        with pytest.raises(BurnCareError) as exc:
            calculate_baux_score(40, 120)
        assert exc.value.error_code == ErrorCode.BURN_TBSA_OUT_OF_RANGE

class TestABSI:
    """Abbreviated Burn Severity Index"""

    def test_severe_composite(self):
        result = calculate_absi_score(45, Sex.FEMALE, 35, True, True)

        assert result.age_points == 3
        assert result.sex_points == 1
        assert result.tbsa_points == 4
        assert result.total_score == 10
        assert result.survival_probability == "<5%"
        assert result.threat_level == ThreatLevel.VERY_SEVERE

    def test_moderate(self):
        result = calculate_absi_score(25, Sex.MALE, 15, False, False)
        assert result.total_score == 4
        assert result.survival_probability == "90%"
        assert result.threat_level == ThreatLevel.MODERATE

    def test_minimal(self):
        result = calculate_absi_score(10, "male", 5, False, False)
        assert result.total_score == 2
        assert result.survival_probability == ">99%"

    def test_tbsa_points_capped_at_10(self):
        result = calculate_absi_score(30, Sex.MALE, 100, False, False)
        assert result.tbsa_points == 10

class TestSeverityAndReferral:
    """Severity class, referral criteria and disposition"""

    @pytest.mark.parametrize("tbsa,full,inhalation,age,expected", [
        (45, False, False, 30, SeverityLevel.CRITICAL),
        (25, False, True, 30, SeverityLevel.CRITICAL),
        (25, False, False, 30, SeverityLevel.MAJOR),
        (15, True, False, 30, SeverityLevel.MAJOR),
        (5, False, False, 5, SeverityLevel.MAJOR),
        (15, False, False, 30, SeverityLevel.MODERATE),
        (5, True, False, 30, SeverityLevel.MODERATE),
        (5, False, False, 30, SeverityLevel.MINOR),
    ])
    def test_classification(self, tbsa, full, inhalation, age, expected):
        assert classify_burn_severity(tbsa, full, inhalation, age) == expected

    def test_referral_reasons_in_order(self):
        decision = check_burn_center_criteria(
            15, 2, True, 60, burn_locations=["Face", "left_hand"], chemical_burn=True,
        )

        assert decision.meets_criteria
        assert decision.reasons == [
            "TBSA >10% (15%)",
            "Full thickness burn present",
            "Burns to special areas: Face, left_hand",
            "Inhalation injury present",
            "Chemical burn",
            "Age extremes (<10 or >50 years): 60 years",
        ]

    def test_minor_burn_not_referred(self):
        decision = check_burn_center_criteria(5, 0, False, 30, burn_locations=["anterior_trunk"])
        assert not decision.meets_criteria
        assert decision.reasons == []

    def test_disposition(self):
        assert recommend_disposition(SeverityLevel.MINOR, True) == Disposition.BURN_CENTER
        assert recommend_disposition(SeverityLevel.CRITICAL, False) == Disposition.ICU
        assert recommend_disposition(SeverityLevel.MAJOR, False) == Disposition.HDU
        assert recommend_disposition(SeverityLevel.MODERATE, False) == Disposition.WARD
        assert recommend_disposition(SeverityLevel.MINOR, False) == Disposition.OUTPATIENT

class TestClinicalUtilities:
    """MAP and GCS helpers"""

    def test_map(self):
        assert calculate_map(120, 80) == 93

    def test_map_rejects_inverted_pressures(self):
        with pytest.raises(BurnCareError):
            calculate_map(80, 120)

    def test_gcs(self):
        assert calculate_gcs(4, 5, 6) == 15

    def test_gcs_component_range(self):
        with pytest.raises(BurnCareError) as exc:
            calculate_gcs(0, 5, 6)
        assert exc.value.error_code == ErrorCode.SCORE_GCS_OUT_OF_RANGE

class TestSepsisScores:
    """qSOFA and SOFA"""

    def test_qsofa_high(self):
        result = calculate_qsofa(24, 95, 14)
        assert result.score == 3
        assert result.altered_mentation
        assert result.sepsis_risk == "high"

    def test_qsofa_low(self):
        assert calculate_qsofa(18, 120, 15).score == 0
        assert calculate_qsofa(22, 101, 15).sepsis_risk == "low"

    def test_sofa_missing_components_score_zero(self):
        result = calculate_sofa()
        assert result.total_score == 0
        assert result.mortality_risk == "<10%"

    def test_sofa_multi_organ(self):
        result = calculate_sofa(pao2_fio2_ratio=250, platelets=80, bilirubin=2.5, map_mmhg=65,
                                gcs=12, creatinine=1.0, urine_output_24h=400)

        assert result.components == {
            "respiration": 2,
            "coagulation": 2,
            "liver": 2,
            "cardiovascular": 1,
            "cns": 2,
            "renal": 3,
        }
        assert result.total_score == 12
        assert result.mortality_risk == "50-70%"

    def test_sofa_vasopressors(self):
        assert calculate_sofa(on_vasopressors=True, vasopressor_dose=10).cardiovascular_score == 3
        assert calculate_sofa(on_vasopressors=True).cardiovascular_score == 4

    def test_sofa_anuria(self):
        assert calculate_sofa(creatinine=1.0, urine_output_24h=150).renal_score == 4
