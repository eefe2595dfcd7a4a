"""
Threshold-based complication alerts for burn monitoring
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .schema import (AlertThreshold, AlertPriority, AlertStatus, BurnAlert, BurnVitalSigns,
                     ComplicationType, LabValues, UrineOutput, VitalStatus)
from .error_codes import ErrorCode, invalid_input

logger = logging.getLogger(__name__)

DEFAULT_ALERT_THRESHOLDS: List[AlertThreshold] = [
    AlertThreshold(
        parameter="urine_output_per_kg", low_threshold=0.5, min_consecutive=2,
        priority=AlertPriority.HIGH, complication=ComplicationType.AKI, unit="mL/kg/hr",
        title="Oliguria", message="Urine output below 0.5 mL/kg/hr for 2 consecutive hours",
        actions=["Increase IV fluid rate by 25%", "Check catheter patency",
                 "Review cumulative fluid balance"],
    ),
    AlertThreshold(
        parameter="mean_arterial_pressure", low_threshold=65,
        priority=AlertPriority.CRITICAL, complication=ComplicationType.HYPOVOLEMIC_SHOCK,
        unit="mmHg", title="Hypotension", message="Mean arterial pressure below 65 mmHg",
        actions=["Fluid bolus per protocol", "Review resuscitation rate", "Consider vasopressors"],
    ),
    AlertThreshold(
        parameter="oxygen_saturation", low_threshold=90,
        priority=AlertPriority.CRITICAL, complication=ComplicationType.ARDS, unit="%",
        title="Hypoxaemia", message="SpO2 below 90%",
        actions=["Increase FiO2", "Assess airway for inhalation injury", "Arterial blood gas"],
    ),
    AlertThreshold(
        parameter="heart_rate", high_threshold=120,
        priority=AlertPriority.MEDIUM, complication=ComplicationType.CUSTOM, unit="bpm",
        title="Tachycardia", message="Heart rate above 120 bpm",
        actions=["Assess pain and volume status", "Review fluid balance"],
    ),
    AlertThreshold(
        parameter="temperature", high_threshold=38.0,
        priority=AlertPriority.HIGH, complication=ComplicationType.SEPSIS, unit="°C",
        title="Fever", message="Temperature above 38°C",
        actions=["Blood cultures", "Wound swab", "Calculate qSOFA/SOFA"],
    ),
    AlertThreshold(
        parameter="temperature", low_threshold=36.0,
        priority=AlertPriority.MEDIUM, complication=ComplicationType.HYPOTHERMIA, unit="°C",
        title="Hypothermia", message="Temperature below 36°C",
        actions=["Warm the environment", "Warm IV fluids", "Minimise wound exposure"],
    ),
    AlertThreshold(
        parameter="lactate", high_threshold=2.0,
        priority=AlertPriority.HIGH, complication=ComplicationType.HYPOVOLEMIC_SHOCK,
        unit="mmol/L", title="Elevated lactate", message="Lactate above 2 mmol/L",
        actions=["Reassess perfusion", "Review resuscitation adequacy", "Repeat lactate in 2 hours"],
    ),
    AlertThreshold(
        parameter="hemoglobin", low_threshold=7.0,
        priority=AlertPriority.HIGH, complication=ComplicationType.ANEMIA, unit="g/dL",
        title="Anaemia", message="Haemoglobin below 7 g/dL",
        actions=["Consider transfusion", "Check for bleeding"],
    ),
    AlertThreshold(
        parameter="potassium", high_threshold=6.0,
        priority=AlertPriority.CRITICAL, complication=ComplicationType.CUSTOM, unit="mmol/L",
        title="Hyperkalaemia", message="Potassium above 6 mmol/L",
        actions=["12-lead ECG", "Calcium gluconate", "Insulin/dextrose"],
    ),
    AlertThreshold(
        parameter="creatinine", high_threshold=2.0,
        priority=AlertPriority.HIGH, complication=ComplicationType.AKI, unit="mg/dL",
        title="Acute kidney injury", message="Creatinine above 2 mg/dL",
        actions=["Review nephrotoxic drugs", "Optimise fluid balance", "Renal consult"],
    ),
    AlertThreshold(
        parameter="pao2_fio2_ratio", low_threshold=300,
        priority=AlertPriority.HIGH, complication=ComplicationType.ARDS,
        title="ARDS", message="PaO2/FiO2 ratio below 300",
        actions=["Lung protective ventilation", "Consider prone positioning"],
    ),
    AlertThreshold(
        parameter="creatine_kinase", high_threshold=5000,
        priority=AlertPriority.HIGH, complication=ComplicationType.RHABDOMYOLYSIS, unit="U/L",
        title="Rhabdomyolysis", message="Creatine kinase above 5000 U/L",
        actions=["Target urine output 1-2 mL/kg/hr", "Monitor for myoglobinuria"],
    ),
]

# (critical low, warning low, warning high, critical high); None = no limit
VITAL_STATUS_BANDS: Dict[str, tuple] = {
    "heart_rate": (50, 60, 120, 130),
    "mean_arterial_pressure": (60, 65, None, None),
    "oxygen_saturation": (88, 92, None, None),
    "temperature": (35, 36, 38, 39),
    "respiratory_rate": (8, 12, 25, 30),
    "urine_output_per_kg": (0.3, 0.5, None, None),
}

VITAL_PARAMETERS = ["heart_rate", "mean_arterial_pressure", "oxygen_saturation",
                    "temperature", "respiratory_rate"]

LAB_PARAMETERS = ["creatinine", "potassium", "sodium", "lactate", "glucose", "hemoglobin",
                  "platelets", "bilirubin", "creatine_kinase", "albumin", "pao2_fio2_ratio"]

def _epoch_ms(when: datetime) -> int:
    return int(when.timestamp() * 1000)

def alert_id_for(parameter: str, when: datetime, assessment_id: Optional[str] = None) -> str:
    scope = f"{assessment_id}-" if assessment_id else ""
    return f"alert-{scope}{parameter}-{_epoch_ms(when)}"

def _format_threshold(threshold: AlertThreshold, breached_low: bool) -> str:
    limit = threshold.low_threshold if breached_low else threshold.high_threshold
    op = "<" if breached_low else ">"
    return f"{op}{limit:g} {threshold.unit}".strip()

def _describe(threshold: AlertThreshold, value: float) -> str:
    title = threshold.title
    if threshold.parameter == "pao2_fio2_ratio":
        title = f"{title} ({'Moderate-Severe' if value < 200 else 'Mild'})"
    return title

def _recent_values(readings: Sequence[Dict[str, Any]], parameter: str, count: int) -> List[float]:
    carrying = [r for r in readings if r.get(parameter) is not None]
    carrying.sort(key=lambda r: r["timestamp"])
    return [float(r[parameter]) for r in carrying[-count:]]

def evaluate_thresholds(
    readings: Sequence[Dict[str, Any]],
    thresholds: Optional[Iterable[AlertThreshold]] = None,
    assessment_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[BurnAlert]:
    """
    Evaluate reading dictionaries against alert thresholds

    Args:
        readings: dicts with a 'timestamp' key plus parameter values
        thresholds: threshold table (defaults to DEFAULT_ALERT_THRESHOLDS)
        assessment_id: attached to raised alerts
        now: alert timestamp, used for deterministic IDs

    Returns:
        One alert per breached threshold
    """
    thresholds = list(thresholds) if thresholds else DEFAULT_ALERT_THRESHOLDS
    now = now or datetime.now()
    alerts: List[BurnAlert] = []

    for threshold in thresholds:
        count = max(1, threshold.min_consecutive)
        values = _recent_values(readings, threshold.parameter, count)
        if len(values) < count:
            continue

        value = sum(values) / len(values)
        breached_low = threshold.low_threshold is not None and value < threshold.low_threshold
        breached_high = threshold.high_threshold is not None and value > threshold.high_threshold
        if not (breached_low or breached_high):
            continue

        alert = BurnAlert(
            id=alert_id_for(threshold.parameter, now, assessment_id),
            assessment_id=assessment_id,
            timestamp=now,
            parameter=threshold.parameter,
            type=threshold.complication,
            priority=threshold.priority,
            title=_describe(threshold, value),
            description=f"{threshold.message} (current {f'{value:g} {threshold.unit}'.strip()})",
            trigger_value=round(value, 2),
            threshold=_format_threshold(threshold, breached_low),
            suggested_actions=list(threshold.actions),
        )
        alerts.append(alert)
        logger.info(f"Alert {alert.id}: {alert.title} ({alert.priority.value})")

    return alerts

def vitals_to_readings(vitals_series: Iterable[BurnVitalSigns]) -> List[Dict[str, Any]]:
    readings = []
    for vitals in vitals_series:
        reading = {"timestamp": vitals.timestamp}
        for parameter in VITAL_PARAMETERS:
            reading[parameter] = getattr(vitals, parameter)
        reading["mean_arterial_pressure"] = vitals.resolved_map()
        readings.append(reading)
    return readings

def urine_to_readings(urine_outputs: Iterable[UrineOutput],
                      weight_kg: Optional[float] = None) -> List[Dict[str, Any]]:
    return [{"timestamp": uo.timestamp, "urine_output_per_kg": uo.per_kg(weight_kg)}
            for uo in urine_outputs]

def labs_to_readings(labs_series: Iterable[LabValues]) -> List[Dict[str, Any]]:
    return [labs.model_dump(include=set(LAB_PARAMETERS) | {"timestamp"}) for labs in labs_series]

def check_vitals_for_alerts(
    vitals_series: Iterable[BurnVitalSigns],
    urine_outputs: Iterable[UrineOutput] = (),
    weight_kg: Optional[float] = None,
    thresholds: Optional[Iterable[AlertThreshold]] = None,
    assessment_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[BurnAlert]:
    readings = vitals_to_readings(vitals_series) + urine_to_readings(urine_outputs, weight_kg)
    return evaluate_thresholds(readings, thresholds, assessment_id, now)

def check_labs_for_alerts(
    labs_series: Iterable[LabValues],
    thresholds: Optional[Iterable[AlertThreshold]] = None,
    assessment_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[BurnAlert]:
    return evaluate_thresholds(labs_to_readings(labs_series), thresholds, assessment_id, now)

def classify_vital_status(parameter: str, value: Optional[float]) -> VitalStatus:
    """Normal / warning / critical band for a single vital sign"""
    if parameter not in VITAL_STATUS_BANDS:
        raise invalid_input(ErrorCode.ALERT_INVALID_THRESHOLD,
                            f"No status bands for '{parameter}'", parameter=parameter)
    if value is None:
        return VitalStatus.NORMAL

    crit_low, warn_low, warn_high, crit_high = VITAL_STATUS_BANDS[parameter]
    if (crit_low is not None and value < crit_low) or (crit_high is not None and value > crit_high):
        return VitalStatus.CRITICAL
    if (warn_low is not None and value < warn_low) or (warn_high is not None and value > warn_high):
        return VitalStatus.WARNING
    return VitalStatus.NORMAL

def vital_trend(current: Optional[float], previous: Optional[float], tolerance: float = 5) -> str:
    if current is None or previous is None:
        return "stable"
    diff = current - previous
    if diff > tolerance:
        return "up"
    if diff < -tolerance:
        return "down"
    return "stable"

class AlertRegister:
    """In-memory alert store with de-duplication and lifecycle transitions"""

    def __init__(self):
        self._alerts: Dict[str, BurnAlert] = {}

    def __len__(self) -> int:
        return len(self._alerts)

    def get(self, alert_id: str) -> BurnAlert:
        alert = self._alerts.get(alert_id)
        if alert is None:
            raise invalid_input(ErrorCode.ALERT_NOT_FOUND, f"Alert {alert_id} not found",
                                alert_id=alert_id)
        return alert

    def _open_duplicate(self, alert: BurnAlert) -> Optional[BurnAlert]:
        for existing in self._alerts.values():
            if (existing.is_open and existing.parameter == alert.parameter
                    and existing.type == alert.type
                    and existing.assessment_id == alert.assessment_id):
                return existing
        return None

    def raise_alerts(self, alerts: Iterable[BurnAlert]) -> List[BurnAlert]:
        """Store new alerts; returns those actually raised (duplicates skipped)"""
        raised = []
        for alert in alerts:
            duplicate = self._open_duplicate(alert)
            if duplicate is not None:
                logger.debug(f"Skipping {alert.id}: {duplicate.id} still open")
                continue
            if alert.id in self._alerts:
                logger.warning(f"Alert {alert.id} already registered, not raised again")
                continue
            self._alerts[alert.id] = alert
            raised.append(alert)
        return raised

    def acknowledge(self, alert_id: str, user: str, now: Optional[datetime] = None) -> BurnAlert:
        alert = self.get(alert_id)
        if alert.status != AlertStatus.ACTIVE:
            raise invalid_input(ErrorCode.ALERT_INVALID_TRANSITION,
                                f"Cannot acknowledge alert in status {alert.status.value}",
                                alert_id=alert_id, status=alert.status.value)
        alert.status = AlertStatus.ACKNOWLEDGED
        alert.acknowledged_by = user
        alert.acknowledged_at = now or datetime.now()
        logger.info(f"Alert {alert_id} acknowledged by {user}")
        return alert

    def resolve(self, alert_id: str, user: str, resolution: str = "",
                now: Optional[datetime] = None) -> BurnAlert:
        alert = self.get(alert_id)
        if not alert.is_open:
            raise invalid_input(ErrorCode.ALERT_INVALID_TRANSITION,
                                f"Alert {alert_id} is already resolved", alert_id=alert_id)
        alert.status = AlertStatus.RESOLVED
        alert.resolved_by = user
        alert.resolved_at = now or datetime.now()
        alert.resolution = resolution
        logger.info(f"Alert {alert_id} resolved by {user}")
        return alert

    def escalate(self, alert_id: str, escalate_to: str, now: Optional[datetime] = None) -> BurnAlert:
        alert = self.get(alert_id)
        if not alert.is_open:
            raise invalid_input(ErrorCode.ALERT_INVALID_TRANSITION,
                                f"Cannot escalate resolved alert {alert_id}", alert_id=alert_id)
        alert.status = AlertStatus.ESCALATED
        alert.escalated_to = escalate_to
        alert.escalated_at = now or datetime.now()
        logger.warning(f"Alert {alert_id} escalated to {escalate_to}")
        return alert

    def active(self, assessment_id: Optional[str] = None) -> List[BurnAlert]:
        """Open alerts, highest priority first, newest first within a priority"""
        alerts = [a for a in self._alerts.values()
                  if a.is_open and (assessment_id is None or a.assessment_id == assessment_id)]
        return sorted(alerts, key=lambda a: (a.priority.rank, a.timestamp), reverse=True)

    def all(self) -> List[BurnAlert]:
        return list(self._alerts.values())
