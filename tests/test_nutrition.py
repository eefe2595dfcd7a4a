#!/usr/bin/env python3
"""
Unit tests for burn nutrition, MUST screening and wound care
"""

import pytest
import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from burn_engine.schema import BurnDepth
from burn_engine.nutrition import (calculate_burn_nutrition, calculate_bmi, bmi_category,
                                   calculate_must_score)
from burn_engine.wound_care import generate_wound_care_protocol, estimate_healing_time
from burn_engine.error_codes import BurnCareError, ErrorCode

class TestBurnNutrition:
    """Caloric and protein requirements"""

    def test_curreri_adult(self):
        plan = calculate_burn_nutrition(70, 30, 40)

        assert plan.formula == "Curreri Formula (Adult)"
        assert plan.caloric_target == 2950
        assert plan.protein_target == 140
        assert plan.carb_target == 329
        assert plan.feeding_route == "oral"
        assert plan.micronutrients["vitamin_c_mg"] == 1000
        assert plan.micronutrients["zinc_mg"] == 220

    def test_curreri_junior(self):
        plan = calculate_burn_nutrition(25, 20, 8)
        assert plan.formula == "Curreri Formula (Pediatric)"
        assert plan.caloric_target == 2200

    def test_galveston_infant(self):
        plan = calculate_burn_nutrition(10, 10, 2)
        assert "Galveston" in plan.formula
        assert 1000 < plan.caloric_target < 1060

    def test_protein_rises_above_20_percent(self):
        assert calculate_burn_nutrition(60, 20, 30).protein_target == 90
        assert calculate_burn_nutrition(60, 25, 30).protein_target == 120

    @pytest.mark.parametrize("tbsa,route", [(40, "oral"), (50, "enteral"), (75, "parenteral")])
    def test_feeding_route(self, tbsa, route):
        assert calculate_burn_nutrition(70, tbsa, 40).feeding_route == route

    def test_invalid_weight(self):
        with pytest.raises(BurnCareError) as exc:
            calculate_burn_nutrition(0, 20, 40)
        assert exc.value.error_code == ErrorCode.NUTR_INVALID_WEIGHT

class TestMUST:
    """Malnutrition Universal Screening Tool"""

    def test_bmi(self):
        assert calculate_bmi(70, 175) == 22.9
        assert bmi_category(22.9) == "Normal"
        assert bmi_category(15) == "Severe Underweight"
        assert bmi_category(42) == "Obese Class III"

    def test_bmi_invalid_height(self):
        with pytest.raises(BurnCareError) as exc:
            calculate_bmi(70, 0)
        assert exc.value.error_code == ErrorCode.NUTR_INVALID_HEIGHT

    def test_high_risk(self):
        result = calculate_must_score(50, 170, previous_weight=60)

        assert result.bmi == 17.3
        assert result.bmi_score == 2
        assert result.weight_loss_percent == 16.7
        assert result.weight_loss_score == 2
        assert result.must_score == 4
        assert result.risk_level == "High"
        assert result.referral_needed
        assert result.caloric_target == 1500
        assert result.protein_target == 75

    def test_low_risk(self):
        result = calculate_must_score(70, 175)

        assert result.must_score == 0
        assert result.risk_level == "Low"
        assert not result.referral_needed
        assert result.caloric_target == 1750
        assert result.protein_target == 84

    def test_medium_risk_from_bmi(self):
        result = calculate_must_score(50, 160)
        assert result.bmi == 19.5
        assert result.bmi_score == 1
        assert result.risk_level == "Medium"
        assert not result.referral_needed

    def test_weight_loss_boundary(self):
        result = calculate_must_score(95, previous_weight=100)
        assert result.bmi is None
        assert result.weight_loss_percent == 5
        assert result.weight_loss_score == 1

    def test_acute_disease_effect(self):
        result = calculate_must_score(70, 175, acutely_ill_no_intake=True)
        assert result.acute_disease_score == 2
        assert result.risk_level == "High"

class TestWoundCare:
    """Wound care protocols and healing estimates"""

    def test_superficial(self):
        protocol = generate_wound_care_protocol(BurnDepth.SUPERFICIAL, 5)
        assert protocol.dressing_type == "Paraffin gauze or hydrogel"
        assert protocol.grafting is None
        assert protocol.debridement_method is None

    def test_full_thickness_grafting(self):
        large = generate_wound_care_protocol(BurnDepth.FULL_THICKNESS, 50)
        small = generate_wound_care_protocol(BurnDepth.FULL_THICKNESS, 20)

        assert large.grafting["indicated"]
        assert "Integra" in large.grafting["type"]
        assert small.grafting["type"] == "Split-thickness autograft"

    def test_location_instructions(self):
        protocol = generate_wound_care_protocol("superficial_partial", 10, "Face and left hand")
        assert "Frequent lubrication of eyes" in protocol.special_instructions
        assert "Early hand therapy referral" in protocol.special_instructions

        perineal = generate_wound_care_protocol(BurnDepth.DEEP_PARTIAL, 10, "perineum")
        assert "Foley catheter for major burns" in perineal.special_instructions

    def test_delayed_grafting_note(self):
        deep = generate_wound_care_protocol(BurnDepth.DEEP_PARTIAL, 10, days_since_injury=20)
        superficial = generate_wound_care_protocol(BurnDepth.SUPERFICIAL, 10, days_since_injury=20)

        assert "Wound bed preparation for delayed grafting" in deep.special_instructions
        assert "Wound bed preparation for delayed grafting" not in superficial.special_instructions

    @pytest.mark.parametrize("depth,min_days,max_days", [
        (BurnDepth.SUPERFICIAL, 5, 10),
        (BurnDepth.SUPERFICIAL_PARTIAL, 10, 21),
        (BurnDepth.DEEP_PARTIAL, 21, 35),
        (BurnDepth.FULL_THICKNESS, 28, 90),
    ])
    def test_healing_time(self, depth, min_days, max_days):
        estimate = estimate_healing_time(depth)
        assert (estimate.min_days, estimate.max_days) == (min_days, max_days)

    def test_healing_estimate_is_independent_copy(self):
        estimate = estimate_healing_time(BurnDepth.DEEP_PARTIAL)
        estimate.max_days = 60
        estimate.notes = "Edited by caller"

        fresh = estimate_healing_time(BurnDepth.DEEP_PARTIAL)
        assert fresh.max_days == 35
        assert fresh.notes != "Edited by caller"
