#!/usr/bin/env python3
"""
Burn Assessment Service - Orchestrates scoring, resuscitation and monitoring
Loads engine configuration from YAML and keeps per-assessment state in memory
"""

import uuid
import yaml
import logging
import numpy as np
from typing import Dict, List, Optional, Any, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from datetime import datetime

from pydantic import ValidationError

from burn_engine.schema import (BurnEngineConfig, RegionBurn, TBSACalculation, TBSAMethod,
                                BauxScore, RevisedBauxScore, ABSIScore, ReferralDecision,
                                SeverityLevel, Disposition, FluidResuscitationPlan,
                                BurnNutritionPlan, WoundCareProtocol, HealingEstimate,
                                BurnMechanism, BurnVitalSigns, UrineOutput, LabValues,
                                InfusionRecord, BurnDepth, Sex)
from burn_engine.tbsa import (calculate_tbsa_lund_browder, calculate_tbsa_rule_of_nines,
                              calculate_tbsa_palmar)
from burn_engine.severity import (calculate_baux_score, calculate_revised_baux_score,
                                  calculate_absi_score, classify_burn_severity,
                                  check_burn_center_criteria, recommend_disposition)
from burn_engine.resuscitation import (calculate_fluid_resuscitation,
                                       track_resuscitation_progress, recent_urine_output_stats)
from burn_engine.alerts import (AlertRegister, DEFAULT_ALERT_THRESHOLDS, check_vitals_for_alerts,
                                check_labs_for_alerts, classify_vital_status, vital_trend,
                                VITAL_PARAMETERS, LAB_PARAMETERS)
from burn_engine.sepsis import calculate_qsofa
from burn_engine.nutrition import calculate_burn_nutrition
from burn_engine.wound_care import generate_wound_care_protocol, estimate_healing_time
from burn_engine.error_codes import ErrorCode, invalid_input

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "burn_care.yaml"

# YAML sections flattened into BurnEngineConfig
CONFIG_SECTIONS = ["scoring", "resuscitation", "urine_output", "referral"]

@dataclass
class BurnAssessmentReport:
    """Complete initial assessment for one burn patient"""
    assessment_id: str
    created_at: datetime
    age: float
    weight_kg: float
    tbsa: TBSACalculation
    baux: BauxScore
    revised_baux: RevisedBauxScore
    absi: ABSIScore
    severity: SeverityLevel
    referral: ReferralDecision
    disposition: Disposition
    nutrition: BurnNutritionPlan
    resuscitation: Optional[FluidResuscitationPlan] = None
    wound_care: List[WoundCareProtocol] = field(default_factory=list)
    healing: List[HealingEstimate] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assessment_id": self.assessment_id,
            "created_at": self.created_at.isoformat(),
            "age": self.age,
            "weight_kg": self.weight_kg,
            "tbsa": self.tbsa.model_dump(mode="json"),
            "scores": {
                "baux": self.baux.model_dump(mode="json"),
                "revised_baux": self.revised_baux.model_dump(mode="json"),
                "absi": self.absi.model_dump(mode="json"),
            },
            "severity": self.severity.value,
            "referral": self.referral.model_dump(mode="json"),
            "disposition": self.disposition.value,
            "resuscitation": (self.resuscitation.model_dump(mode="json")
                              if self.resuscitation else None),
            "nutrition": self.nutrition.model_dump(mode="json"),
            "wound_care": [p.model_dump(mode="json") for p in self.wound_care],
            "healing": [h.model_dump(mode="json") for h in self.healing],
            "warnings": list(self.warnings),
        }

def parse_time(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as e:
        raise invalid_input(ErrorCode.APP_INVALID_REQUEST, f"Invalid timestamp '{value}'",
                            value=str(value)) from e

def parse_number(value: Any, name: str, cast=float):
    if value is None:
        return None
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise invalid_input(ErrorCode.APP_INVALID_REQUEST, f"Invalid {name} '{value}'",
                            parameter=name, value=str(value)) from e

def parse_enum(enum_cls, value, name: str):
    try:
        return enum_cls(value)
    except (TypeError, ValueError) as e:
        raise invalid_input(ErrorCode.APP_INVALID_REQUEST, f"Invalid {name} '{value}'",
                            parameter=name, allowed=[m.value for m in enum_cls]) from e

def _as_models(items: Optional[Iterable[Any]], model):
    return [item if isinstance(item, model) else model.model_validate(item) for item in (items or [])]

def _float_stats(values: List[float]) -> Dict[str, float]:
    arr = np.asarray(values, dtype=float)
    return {
        "mean": float(np.mean(arr)),
        "median": float(np.median(arr)),
        "std": float(np.std(arr)),
        "min": float(np.min(arr)),
        "max": float(np.max(arr)),
        "p95": float(np.percentile(arr, 95)),
        "count": int(arr.size),
    }

class BurnAssessmentService:
    """Service for burn assessment, resuscitation tracking and monitoring"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = str(config_path or DEFAULT_CONFIG_PATH)
        self.last_updated = ""
        self.config = self._load_config()
        self.alerts = AlertRegister()
        self._assessments: Dict[str, BurnAssessmentReport] = {}

    def _load_config(self) -> BurnEngineConfig:
        """Load engine configuration from YAML file"""
        try:
            config_file = Path(self.config_path)
            if not config_file.exists():
                logger.warning(f"Config file {self.config_path} not found, using defaults")
                return BurnEngineConfig()

            with open(config_file, 'r') as f:
                config_data = yaml.safe_load(f) or {}

            merged: Dict[str, Any] = {}
            for section in CONFIG_SECTIONS:
                merged.update(config_data.get(section) or {})
            if config_data.get('alert_thresholds'):
                merged['alert_thresholds'] = config_data['alert_thresholds']

            self.last_updated = str(config_data.get('runtime_config', {}).get('last_updated', ''))
            return BurnEngineConfig(**merged)

        except (yaml.YAMLError, ValidationError, TypeError, AttributeError) as e:
            logger.error(f"Error loading config {self.config_path}: {e}")
            return BurnEngineConfig()

    @property
    def alert_thresholds(self):
        return self.config.alert_thresholds or DEFAULT_ALERT_THRESHOLDS

    def get_assessment(self, assessment_id: str) -> BurnAssessmentReport:
        report = self._assessments.get(assessment_id)
        if report is None:
            raise invalid_input(ErrorCode.APP_INVALID_REQUEST,
                                f"Assessment {assessment_id} not found", assessment_id=assessment_id)
        return report

    def _calculate_tbsa(self, request: Dict[str, Any], age: float) -> TBSACalculation:
        method = parse_enum(TBSAMethod, request.get('tbsa_method', 'lund_browder'), 'tbsa_method')
        if method == TBSAMethod.PALMAR:
            depth = parse_enum(BurnDepth, request.get('depth', 'superficial_partial'), 'depth')
            return calculate_tbsa_palmar(parse_number(request.get('palm_count', 0), 'palm_count'), depth)

        regions = _as_models(request.get('regions'), RegionBurn)
        if method == TBSAMethod.RULE_OF_NINES:
            return calculate_tbsa_rule_of_nines(regions, is_child=age < 10)
        return calculate_tbsa_lund_browder(regions, age)

    def _wound_care(self, tbsa: TBSACalculation, days_since_injury: int):
        protocols = []
        healing = []
        for depth in BurnDepth:
            regions = [e.region for e in tbsa.entries if e.depth == depth and e.percent_burned > 0]
            if not regions:
                continue
            protocols.append(generate_wound_care_protocol(depth, tbsa.total_tbsa, " ".join(regions),
                                                          days_since_injury))
            healing.append(estimate_healing_time(depth))
        return protocols, healing

    def assess(self, request: Dict[str, Any], now: Optional[datetime] = None) -> BurnAssessmentReport:
        """
        Run the full initial assessment

        Args:
            request: patient and burn details (age, sex, weight_kg, regions,
                     time_of_burn, inhalation_injury, mechanism, ...)
            now: assessment time, defaults to current time

        Returns:
            BurnAssessmentReport, also stored for monitoring
        """
        for key in ('age', 'weight_kg'):
            if request.get(key) is None:
                raise invalid_input(ErrorCode.APP_MISSING_PARAMETER, f"Missing '{key}'", parameter=key)

        age = parse_number(request['age'], 'age')
        weight = parse_number(request['weight_kg'], 'weight_kg')
        sex = parse_enum(Sex, request.get('sex', Sex.MALE.value), 'sex')
        inhalation = bool(request.get('inhalation_injury', False))
        mechanism = parse_enum(BurnMechanism, request['mechanism'], 'mechanism') if request.get('mechanism') else None
        time_of_burn = parse_time(request.get('time_of_burn'))
        now = now or (datetime.now(time_of_burn.tzinfo) if time_of_burn else datetime.now())

        tbsa = self._calculate_tbsa(request, age)
        warnings = list(tbsa.warnings)

        baux = calculate_baux_score(age, tbsa.total_tbsa, self.config)
        revised_baux = calculate_revised_baux_score(age, tbsa.total_tbsa, inhalation, self.config)
        absi = calculate_absi_score(age, sex, tbsa.total_tbsa, inhalation, tbsa.has_full_thickness)
        severity = classify_burn_severity(tbsa.total_tbsa, tbsa.has_full_thickness, inhalation, age)

        locations = list(request.get('burn_locations') or tbsa.burned_regions)
        referral = check_burn_center_criteria(
            tbsa.total_tbsa, tbsa.full_thickness_tbsa, inhalation, age,
            burn_locations=locations,
            chemical_burn=mechanism == BurnMechanism.CHEMICAL,
            electrical_burn=mechanism == BurnMechanism.ELECTRICAL,
            circumferential_burn=bool(request.get('circumferential_burn', False)),
            significant_comorbidities=bool(request.get('significant_comorbidities', False)),
            config=self.config,
        )
        disposition = recommend_disposition(severity, referral.meets_criteria)

        resuscitation = None
        if tbsa.total_tbsa <= 0:
            warnings.append("No partial or full thickness burn: resuscitation plan not calculated")
        else:
            resuscitation = calculate_fluid_resuscitation(
                weight, tbsa.total_tbsa, time_of_burn or now,
                formula=request.get('formula', self.config.default_formula),
                now=now,
                age_years=age,
                custom_ml_per_kg_per_pct=parse_number(request.get('custom_ml_per_kg_per_pct'),
                                                      'custom_ml_per_kg_per_pct'),
                config=self.config,
            )
            warnings.extend(resuscitation.warnings)

        nutrition = calculate_burn_nutrition(weight, tbsa.total_tbsa, age)
        days_since_injury = parse_number(request.get('days_since_injury', 0), 'days_since_injury', int)
        wound_care, healing = self._wound_care(tbsa, days_since_injury)

        report = BurnAssessmentReport(
            assessment_id=request.get('assessment_id') or f"burn-{uuid.uuid4().hex[:12]}",
            created_at=now,
            age=age,
            weight_kg=weight,
            tbsa=tbsa,
            baux=baux,
            revised_baux=revised_baux,
            absi=absi,
            severity=severity,
            referral=referral,
            disposition=disposition,
            nutrition=nutrition,
            resuscitation=resuscitation,
            wound_care=wound_care,
            healing=healing,
            warnings=warnings,
        )
        self._assessments[report.assessment_id] = report

        self.emit_telemetry_event("assessment_completed", {
            "assessment_id": report.assessment_id,
            "tbsa": tbsa.total_tbsa,
            "severity": severity.value,
            "disposition": disposition.value,
        })
        return report

    def monitor(self, assessment_id: str, vitals: Optional[Iterable[Any]] = None,
                urine_outputs: Optional[Iterable[Any]] = None, labs: Optional[Iterable[Any]] = None,
                now: Optional[datetime] = None) -> Dict[str, Any]:
        """Evaluate new observations, raise alerts and screen for sepsis"""
        weight = self.get_assessment(assessment_id).weight_kg

        vitals = _as_models(vitals, BurnVitalSigns)
        urine_outputs = _as_models(urine_outputs, UrineOutput)
        labs = _as_models(labs, LabValues)
        now = now or datetime.now()

        candidates = check_vitals_for_alerts(vitals, urine_outputs, weight, self.alert_thresholds,
                                             assessment_id, now)
        candidates += check_labs_for_alerts(labs, self.alert_thresholds, assessment_id, now)
        raised = self.alerts.raise_alerts(candidates)

        qsofa = None
        latest = max(vitals, key=lambda v: v.timestamp) if vitals else None
        if (latest is not None and latest.respiratory_rate is not None
                and latest.systolic_bp is not None):
            qsofa = calculate_qsofa(latest.respiratory_rate, latest.systolic_bp,
                                    latest.gcs_total if latest.gcs_total is not None else 15)

        if raised:
            self.emit_telemetry_event("alerts_raised", {
                "assessment_id": assessment_id,
                "alert_ids": [a.id for a in raised],
            })

        return {
            "assessment_id": assessment_id,
            "alerts_raised": [a.model_dump(mode="json") for a in raised],
            "active_alerts": [a.model_dump(mode="json") for a in self.alerts.active(assessment_id)],
            "qsofa": qsofa.model_dump(mode="json") if qsofa else None,
        }

    def build_dashboard(self, assessment_id: str, vitals: Optional[Iterable[Any]] = None,
                        urine_outputs: Optional[Iterable[Any]] = None,
                        labs: Optional[Iterable[Any]] = None,
                        infusions: Optional[Iterable[Any]] = None,
                        now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Assemble monitoring dashboard data

        Returns:
            Dictionary with vital trends, urine output, fluid status,
            lab trends, summary statistics, active alerts and scores
        """
        report = self.get_assessment(assessment_id)
        vitals = sorted(_as_models(vitals, BurnVitalSigns), key=lambda v: v.timestamp)
        urine_outputs = sorted(_as_models(urine_outputs, UrineOutput), key=lambda u: u.timestamp)
        labs = sorted(_as_models(labs, LabValues), key=lambda l: l.timestamp)
        infusions = _as_models(infusions, InfusionRecord)

        vital_series: Dict[str, Dict[str, Any]] = {}
        summary_stats: Dict[str, Dict[str, float]] = {}
        for parameter in VITAL_PARAMETERS:
            points = [(v.timestamp, v.resolved_map() if parameter == "mean_arterial_pressure"
                       else getattr(v, parameter)) for v in vitals]
            points = [(t, value) for t, value in points if value is not None]
            if not points:
                continue
            values = [value for _, value in points]
            previous = values[-2] if len(values) > 1 else None
            vital_series[parameter] = {
                "timestamps": [t.isoformat() for t, _ in points],
                "values": values,
                "latest": values[-1],
                "status": classify_vital_status(parameter, values[-1]).value,
                "trend": vital_trend(values[-1], previous),
            }
            summary_stats[parameter] = _float_stats(values)

        uo_rates = [(u.timestamp, u.per_kg(report.weight_kg)) for u in urine_outputs]
        uo_rates = [(t, r) for t, r in uo_rates if r is not None]
        uo_stats = recent_urine_output_stats(urine_outputs, report.weight_kg)
        urine = {
            "timestamps": [t.isoformat() for t, _ in uo_rates],
            "per_kg": [round(r, 2) for _, r in uo_rates],
            "recent": uo_stats,
            "status": (classify_vital_status("urine_output_per_kg", uo_stats["average"]).value
                       if uo_stats["average"] is not None else None),
        }
        if uo_rates:
            summary_stats["urine_output_per_kg"] = _float_stats([r for _, r in uo_rates])

        lab_trends: Dict[str, Dict[str, Any]] = {}
        for parameter in LAB_PARAMETERS:
            points = [(l.timestamp, getattr(l, parameter)) for l in labs
                      if getattr(l, parameter) is not None]
            if points:
                lab_trends[parameter] = {
                    "timestamps": [t.isoformat() for t, _ in points],
                    "values": [value for _, value in points],
                    "latest": points[-1][1],
                }

        fluid_status = None
        if report.resuscitation is not None:
            progress = track_resuscitation_progress(report.resuscitation, infusions, urine_outputs,
                                                    now, self.config)
            fluid_status = progress.model_dump(mode="json")

        return {
            "assessment_id": assessment_id,
            "vitals": vital_series,
            "urine_output": urine,
            "fluid_status": fluid_status,
            "labs": lab_trends,
            "summary_stats": summary_stats,
            "active_alerts": [a.model_dump(mode="json") for a in self.alerts.active(assessment_id)],
            "scores": {
                "tbsa": report.tbsa.total_tbsa,
                "baux": report.baux.score,
                "revised_baux": report.revised_baux.score,
                "absi": report.absi.total_score,
                "severity": report.severity.value,
                "disposition": report.disposition.value,
            },
        }

    def update_config(self, updates: Dict[str, Any]) -> bool:
        """Update configuration at runtime"""
        try:
            known = {k: v for k, v in updates.items() if k in BurnEngineConfig.model_fields}
            ignored = sorted(set(updates) - set(known))
            if ignored:
                logger.warning(f"Ignoring unknown config keys: {ignored}")

            current = self.config.model_dump()
            if isinstance(known.get('formula_multipliers'), dict):
                known['formula_multipliers'] = {**current['formula_multipliers'],
                                                **known['formula_multipliers']}

            self.config = BurnEngineConfig(**{**current, **known})
            self.last_updated = datetime.utcnow().isoformat()

            logger.info(f"Updated burn engine config: {known}")
            return True

        except ValidationError as e:
            logger.error(f"Error updating config: {e}")
            return False

    def emit_telemetry_event(self, event_type: str, data: Dict[str, Any]) -> None:
        """Emit telemetry event for audit and analytics"""
        event = {
            "event_type": event_type,
            "timestamp": datetime.utcnow().isoformat(),
            "data": data
        }

        logger.info(f"Telemetry: {event_type}", extra=event)
