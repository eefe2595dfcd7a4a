#!/usr/bin/env python3
"""
Unit tests for threshold alerts and the alert register
"""

import pytest
from datetime import datetime, timedelta, timezone
import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from burn_engine.schema import (AlertPriority, AlertStatus, ComplicationType, VitalStatus,
                                BurnVitalSigns, LabValues, UrineOutput)
from burn_engine.alerts import (DEFAULT_ALERT_THRESHOLDS, evaluate_thresholds,
                                check_vitals_for_alerts, check_labs_for_alerts,
                                classify_vital_status, vital_trend, AlertRegister)
from burn_engine.error_codes import BurnCareError, ErrorCode

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

def at(minutes: int) -> datetime:
    return NOW - timedelta(minutes=minutes)

class TestThresholdEvaluation:
    """Threshold evaluation over reading series"""

    def test_oliguria_needs_two_readings(self):
        single = [{"timestamp": at(60), "urine_output_per_kg": 0.2}]
        assert evaluate_thresholds(single, now=NOW) == []

        readings = single + [{"timestamp": at(0), "urine_output_per_kg": 0.4}]
        alerts = evaluate_thresholds(readings, assessment_id="burn-1", now=NOW)

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.type == ComplicationType.AKI
        assert alert.priority == AlertPriority.HIGH
        assert alert.trigger_value == 0.3
        assert alert.assessment_id == "burn-1"
        assert alert.threshold == "<0.5 mL/kg/hr"

    def test_uses_latest_readings_by_timestamp(self):
        readings = [
            {"timestamp": at(0), "urine_output_per_kg": 0.6},
            {"timestamp": at(120), "urine_output_per_kg": 0.1},
            {"timestamp": at(60), "urine_output_per_kg": 0.6},
        ]
        assert evaluate_thresholds(readings, now=NOW) == []

    def test_strict_comparison(self):
        assert evaluate_thresholds([{"timestamp": NOW, "mean_arterial_pressure": 65}], now=NOW) == []

        alerts = evaluate_thresholds([{"timestamp": NOW, "mean_arterial_pressure": 60}], now=NOW)
        assert alerts[0].priority == AlertPriority.CRITICAL
        assert alerts[0].type == ComplicationType.HYPOVOLEMIC_SHOCK

    def test_deterministic_alert_id(self):
        alerts = evaluate_thresholds([{"timestamp": NOW, "oxygen_saturation": 85}], now=NOW)
        assert alerts[0].id == f"alert-oxygen_saturation-{int(NOW.timestamp() * 1000)}"

    def test_alert_id_scoped_to_assessment(self):
        alerts = evaluate_thresholds([{"timestamp": NOW, "oxygen_saturation": 85}],
                                     assessment_id="burn-7", now=NOW)
        assert alerts[0].id == f"alert-burn-7-oxygen_saturation-{int(NOW.timestamp() * 1000)}"

    def test_ards_severity_label(self):
        severe = evaluate_thresholds([{"timestamp": NOW, "pao2_fio2_ratio": 150}], now=NOW)
        mild = evaluate_thresholds([{"timestamp": NOW, "pao2_fio2_ratio": 250}], now=NOW)

        assert "Moderate-Severe" in severe[0].title
        assert "Mild" in mild[0].title

    def test_hypothermia_not_fever(self):
        alerts = evaluate_thresholds([{"timestamp": NOW, "temperature": 35.5}], now=NOW)
        assert [a.type for a in alerts] == [ComplicationType.HYPOTHERMIA]

    def test_missing_parameters_ignored(self):
        assert evaluate_thresholds([{"timestamp": NOW, "heart_rate": None}], now=NOW) == []

    def test_default_table_covers_core_parameters(self):
        parameters = {t.parameter for t in DEFAULT_ALERT_THRESHOLDS}
        assert {"urine_output_per_kg", "mean_arterial_pressure", "oxygen_saturation",
                "heart_rate", "temperature", "lactate", "hemoglobin", "potassium",
                "creatinine", "pao2_fio2_ratio"} <= parameters

class TestObservationWrappers:
    """Vitals and labs wrappers"""

    def test_map_derived_from_blood_pressure(self):
        vitals = [BurnVitalSigns(timestamp=NOW, systolic_bp=80, diastolic_bp=50, heart_rate=90)]
        alerts = check_vitals_for_alerts(vitals, now=NOW)

        assert [a.parameter for a in alerts] == ["mean_arterial_pressure"]
        assert alerts[0].trigger_value == 60

    def test_urine_output_from_volume(self):
        urine = [UrineOutput(timestamp=at(60), volume_ml=20),
                 UrineOutput(timestamp=at(0), volume_ml=20)]
        alerts = check_vitals_for_alerts([], urine, weight_kg=70, now=NOW)
        assert [a.parameter for a in alerts] == ["urine_output_per_kg"]

    def test_labs(self):
        labs = [LabValues(timestamp=NOW, potassium=6.5, creatine_kinase=8000, hemoglobin=10)]
        alerts = check_labs_for_alerts(labs, now=NOW)

        types = {a.parameter: a.type for a in alerts}
        assert types == {
            "potassium": ComplicationType.CUSTOM,
            "creatine_kinase": ComplicationType.RHABDOMYOLYSIS,
        }

class TestVitalStatus:
    """Status bands and trends"""

    @pytest.mark.parametrize("parameter,value,expected", [
        ("heart_rate", 135, VitalStatus.CRITICAL),
        ("heart_rate", 125, VitalStatus.WARNING),
        ("heart_rate", 80, VitalStatus.NORMAL),
        ("heart_rate", 55, VitalStatus.WARNING),
        ("heart_rate", 45, VitalStatus.CRITICAL),
        ("mean_arterial_pressure", 62, VitalStatus.WARNING),
        ("oxygen_saturation", 87, VitalStatus.CRITICAL),
        ("temperature", 39.5, VitalStatus.CRITICAL),
        ("temperature", 37, VitalStatus.NORMAL),
        ("respiratory_rate", 28, VitalStatus.WARNING),
        ("urine_output_per_kg", 0.4, VitalStatus.WARNING),
        ("urine_output_per_kg", 0.2, VitalStatus.CRITICAL),
    ])
    def test_bands(self, parameter, value, expected):
        assert classify_vital_status(parameter, value) == expected

    def test_unknown_parameter(self):
        with pytest.raises(BurnCareError):
            classify_vital_status("pupil_size", 3)

    def test_trend(self):
        assert vital_trend(100, 90) == "up"
        assert vital_trend(100, 97) == "stable"
        assert vital_trend(90, 100) == "down"
        assert vital_trend(90, None) == "stable"

class TestAlertRegister:
    """Alert lifecycle and de-duplication"""

    def setup_method(self):
        self.register = AlertRegister()

    def _hypotension(self, now):
        return evaluate_thresholds([{"timestamp": now, "mean_arterial_pressure": 55}],
                                   assessment_id="burn-1", now=now)

    def test_duplicates_suppressed_while_open(self):
        first = self.register.raise_alerts(self._hypotension(NOW))
        second = self.register.raise_alerts(self._hypotension(NOW + timedelta(minutes=5)))

        assert len(first) == 1
        assert second == []
        assert len(self.register) == 1

    def test_patients_at_same_time_kept_apart(self):
        reading = [{"timestamp": NOW, "mean_arterial_pressure": 55}]
        first = self.register.raise_alerts(evaluate_thresholds(reading, assessment_id="burn-A", now=NOW))
        second = self.register.raise_alerts(evaluate_thresholds(reading, assessment_id="burn-B", now=NOW))

        assert len(first) == 1 and len(second) == 1
        assert first[0].id != second[0].id
        assert [a.id for a in self.register.active("burn-B")] == [second[0].id]

        self.register.resolve(first[0].id, "dr.b", now=NOW)
        assert self.register.get(second[0].id).status == AlertStatus.ACTIVE

    def test_lifecycle(self):
        alert = self.register.raise_alerts(self._hypotension(NOW))[0]

        acknowledged = self.register.acknowledge(alert.id, "nurse.a", NOW)
        assert acknowledged.status == AlertStatus.ACKNOWLEDGED
        assert acknowledged.acknowledged_by == "nurse.a"

        with pytest.raises(BurnCareError) as exc:
            self.register.acknowledge(alert.id, "nurse.b")
        assert exc.value.error_code == ErrorCode.ALERT_INVALID_TRANSITION

        resolved = self.register.resolve(alert.id, "dr.b", "Fluid bolus given", NOW)
        assert resolved.status == AlertStatus.RESOLVED
        assert resolved.resolution == "Fluid bolus given"
        assert self.register.active() == []

        with pytest.raises(BurnCareError):
            self.register.escalate(alert.id, "ICU consultant")

        # a new breach after resolution raises a fresh alert
        again = self.register.raise_alerts(self._hypotension(NOW + timedelta(minutes=30)))
        assert len(again) == 1

    def test_escalate(self):
        alert = self.register.raise_alerts(self._hypotension(NOW))[0]
        escalated = self.register.escalate(alert.id, "ICU consultant", NOW)

        assert escalated.status == AlertStatus.ESCALATED
        assert escalated.escalated_to == "ICU consultant"
        assert self.register.active() == [escalated]

    def test_unknown_alert(self):
        with pytest.raises(BurnCareError) as exc:
            self.register.acknowledge("alert-missing-0", "nurse.a")
        assert exc.value.error_code == ErrorCode.ALERT_NOT_FOUND

    def test_active_sorted_by_priority(self):
        readings = [{"timestamp": NOW, "heart_rate": 130, "mean_arterial_pressure": 55,
                     "temperature": 38.5}]
        self.register.raise_alerts(evaluate_thresholds(readings, assessment_id="burn-1", now=NOW))

        priorities = [a.priority for a in self.register.active("burn-1")]
        assert priorities == [AlertPriority.CRITICAL, AlertPriority.HIGH, AlertPriority.MEDIUM]
        assert self.register.active("other") == []
