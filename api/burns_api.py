#!/usr/bin/env python3
"""
Burns API - Endpoints for burn scoring, fluid resuscitation and monitoring
"""

import logging
from flask import Blueprint, request, jsonify
from typing import Dict, Any
import sys
import os

from pydantic import ValidationError

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from burn_engine.schema import (RegionBurn, FluidResuscitationPlan, InfusionRecord, UrineOutput,
                                BurnDepth, Sex)
from burn_engine.tbsa import (calculate_tbsa_lund_browder, calculate_tbsa_rule_of_nines,
                              calculate_tbsa_palmar)
from burn_engine.severity import (calculate_baux_score, calculate_revised_baux_score,
                                  calculate_absi_score, classify_burn_severity,
                                  check_burn_center_criteria, recommend_disposition)
from burn_engine.resuscitation import (calculate_fluid_resuscitation, calculate_fluid_adjustment,
                                       track_resuscitation_progress)
from burn_engine.sepsis import calculate_qsofa, calculate_sofa
from burn_engine.nutrition import calculate_burn_nutrition, calculate_must_score
from burn_engine.wound_care import generate_wound_care_protocol, estimate_healing_time
from burn_engine.error_codes import BurnCareError, ErrorCode, ErrorLogger, invalid_input
from services.burn_assessment import BurnAssessmentService, parse_time, parse_number, parse_enum

logger = logging.getLogger(__name__)
error_logger = ErrorLogger('burns_api')

# Create blueprint
burns_bp = Blueprint('burns', __name__, url_prefix='/api/burns')

# Initialize service
try:
    burn_service = BurnAssessmentService()
    logger.info("Burn assessment service initialized successfully")
except Exception as e:
    logger.error(f"Failed to initialize burn assessment service: {e}")
    burn_service = None

def _require(data: Dict[str, Any], *keys: str) -> None:
    missing = [k for k in keys if data.get(k) is None]
    if missing:
        raise invalid_input(ErrorCode.APP_MISSING_PARAMETER, f"{', '.join(missing)} required",
                            missing=missing)

def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise invalid_input(ErrorCode.APP_INVALID_REQUEST, "JSON object body required")
    return data

def _error_response(e: Exception, action: str):
    """Map engine errors to 4xx and anything else to 500"""
    if isinstance(e, BurnCareError):
        error_logger.log_error(e, logging.WARNING)
        status = 404 if e.error_code == ErrorCode.ALERT_NOT_FOUND else 400
        return jsonify({'error': e.message, **e.to_dict()}), status

    if isinstance(e, ValidationError):
        return jsonify({'error': 'Invalid request', 'error_code': ErrorCode.APP_INVALID_REQUEST.value,
                        'details': e.errors(include_url=False, include_context=False)}), 400

    logger.error(f"Error during {action}: {e}", exc_info=True)
    return jsonify({'error': f'Failed to {action}',
                    'error_code': ErrorCode.APP_INTERNAL_ERROR.value}), 500

def _service_unavailable():
    return jsonify({'error': 'Burn assessment service not available'}), 500

@burns_bp.route('/tbsa', methods=['POST'])
def calculate_tbsa():
    """
    Calculate burned TBSA

    POST /api/burns/tbsa
    Body: {
        method?: "lund_browder" | "rule_of_nines" | "palmar",
        age?: float,
        regions?: [{region: string, percent: float, depth?: string}],
        is_child?: boolean,
        palm_count?: float,
        depth?: string
    }
    """
    try:
        data = _json_body()
        method = data.get('method', 'lund_browder')

        if method == 'palmar':
            _require(data, 'palm_count')
            result = calculate_tbsa_palmar(parse_number(data['palm_count'], 'palm_count'),
                                           parse_enum(BurnDepth, data.get('depth', 'superficial_partial'), 'depth'))
        elif method == 'rule_of_nines':
            regions = [RegionBurn.model_validate(r) for r in data.get('regions', [])]
            result = calculate_tbsa_rule_of_nines(regions, bool(data.get('is_child', False)))
        elif method == 'lund_browder':
            _require(data, 'age')
            regions = [RegionBurn.model_validate(r) for r in data.get('regions', [])]
            result = calculate_tbsa_lund_browder(regions, parse_number(data['age'], 'age'))
        else:
            raise invalid_input(ErrorCode.APP_INVALID_REQUEST, f"Unknown TBSA method '{method}'",
                                method=method)

        return jsonify(result.model_dump(mode='json'))

    except Exception as e:
        return _error_response(e, 'calculate TBSA')

@burns_bp.route('/scores', methods=['POST'])
def calculate_scores():
    """
    Severity scores and disposition

    POST /api/burns/scores
    Body: {
        age: float, tbsa: float, sex?: string,
        inhalation_injury?: boolean, full_thickness_tbsa?: float,
        burn_locations?: string[], chemical_burn?: boolean, electrical_burn?: boolean,
        circumferential_burn?: boolean, significant_comorbidities?: boolean
    }
    """
    try:
        config = burn_service.config if burn_service else None
        data = _json_body()
        _require(data, 'age', 'tbsa')

        age = parse_number(data['age'], 'age')
        tbsa = parse_number(data['tbsa'], 'tbsa')
        inhalation = bool(data.get('inhalation_injury', False))
        full_thickness_tbsa = parse_number(data.get('full_thickness_tbsa', 0), 'full_thickness_tbsa')
        full_thickness = bool(data.get('full_thickness', full_thickness_tbsa > 0))

        kwargs = {'config': config} if config else {}
        severity = classify_burn_severity(tbsa, full_thickness, inhalation, age)
        referral = check_burn_center_criteria(
            tbsa, full_thickness_tbsa, inhalation, age,
            burn_locations=data.get('burn_locations', []),
            chemical_burn=bool(data.get('chemical_burn', False)),
            electrical_burn=bool(data.get('electrical_burn', False)),
            circumferential_burn=bool(data.get('circumferential_burn', False)),
            significant_comorbidities=bool(data.get('significant_comorbidities', False)),
            **kwargs,
        )

        return jsonify({
            'baux': calculate_baux_score(age, tbsa, **kwargs).model_dump(mode='json'),
            'revised_baux': calculate_revised_baux_score(age, tbsa, inhalation, **kwargs).model_dump(mode='json'),
            'absi': calculate_absi_score(age, parse_enum(Sex, data.get('sex', 'male'), 'sex'), tbsa, inhalation,
                                         full_thickness).model_dump(mode='json'),
            'severity': severity.value,
            'referral': referral.model_dump(mode='json'),
            'disposition': recommend_disposition(severity, referral.meets_criteria).value,
        })

    except Exception as e:
        return _error_response(e, 'calculate scores')

@burns_bp.route('/resuscitation', methods=['POST'])
def calculate_resuscitation():
    """
    Fluid resuscitation plan with hourly targets

    POST /api/burns/resuscitation
    Body: {
        weight_kg: float, tbsa: float, time_of_burn: ISO datetime,
        formula?: string, now?: ISO datetime, age?: float,
        custom_ml_per_kg_per_pct?: float
    }
    """
    try:
        if not burn_service:
            return _service_unavailable()

        data = _json_body()
        _require(data, 'weight_kg', 'tbsa', 'time_of_burn')

        plan = calculate_fluid_resuscitation(
            parse_number(data['weight_kg'], 'weight_kg'), parse_number(data['tbsa'], 'tbsa'),
            parse_time(data['time_of_burn']),
            formula=data.get('formula', burn_service.config.default_formula),
            now=parse_time(data.get('now')),
            age_years=parse_number(data.get('age'), 'age'),
            custom_ml_per_kg_per_pct=parse_number(data.get('custom_ml_per_kg_per_pct'),
                                                  'custom_ml_per_kg_per_pct'),
            config=burn_service.config,
        )

        burn_service.emit_telemetry_event('resuscitation_calculated', {
            'formula': plan.formula.value,
            'total_fluid_24h': plan.total_fluid_24h,
            'phase': plan.current_phase.value,
        })
        return jsonify(plan.model_dump(mode='json'))

    except Exception as e:
        return _error_response(e, 'calculate resuscitation plan')

@burns_bp.route('/resuscitation/adjust', methods=['POST'])
def adjust_resuscitation():
    """
    Titration advice from urine output

    POST /api/burns/resuscitation/adjust
    Body: {current_rate: float, urine_output_per_kg: float, target_min?: float, target_max?: float}
    """
    try:
        if not burn_service:
            return _service_unavailable()

        data = _json_body()
        _require(data, 'current_rate', 'urine_output_per_kg')

        low, high = burn_service.config.adult_uo_target
        adjustment = calculate_fluid_adjustment(
            parse_number(data['current_rate'], 'current_rate'),
            parse_number(data['urine_output_per_kg'], 'urine_output_per_kg'),
            parse_number(data.get('target_min', low), 'target_min'),
            parse_number(data.get('target_max', high), 'target_max'),
            config=burn_service.config,
            timestamp=parse_time(data.get('timestamp')),
        )
        return jsonify(adjustment.model_dump(mode='json'))

    except Exception as e:
        return _error_response(e, 'calculate fluid adjustment')

@burns_bp.route('/resuscitation/progress', methods=['POST'])
def resuscitation_progress():
    """
    Track administered fluid against the plan

    POST /api/burns/resuscitation/progress
    Body: {
        assessment_id?: string, plan?: FluidResuscitationPlan,
        infusions: [{timestamp, volume_ml}],
        urine_outputs?: [{timestamp, volume_ml, hours?, rate_per_kg?}],
        now?: ISO datetime
    }
    """
    try:
        if not burn_service:
            return _service_unavailable()

        data = _json_body()
        if data.get('plan'):
            plan = FluidResuscitationPlan.model_validate(data['plan'])
        elif data.get('assessment_id'):
            plan = burn_service.get_assessment(data['assessment_id']).resuscitation
            if plan is None:
                raise invalid_input(ErrorCode.APP_INVALID_REQUEST,
                                    "Assessment has no resuscitation plan",
                                    assessment_id=data['assessment_id'])
        else:
            raise invalid_input(ErrorCode.APP_MISSING_PARAMETER, "plan or assessment_id required")

        progress = track_resuscitation_progress(
            plan,
            [InfusionRecord.model_validate(i) for i in data.get('infusions', [])],
            [UrineOutput.model_validate(u) for u in data.get('urine_outputs', [])],
            now=parse_time(data.get('now')),
            config=burn_service.config,
        )
        return jsonify(progress.model_dump(mode='json'))

    except Exception as e:
        return _error_response(e, 'track resuscitation progress')

@burns_bp.route('/alerts', methods=['POST'])
def evaluate_alerts():
    """
    Evaluate observations against alert thresholds

    POST /api/burns/alerts
    Body: {
        assessment_id: string,
        vitals?: BurnVitalSigns[], urine_outputs?: UrineOutput[], labs?: LabValues[],
        now?: ISO datetime
    }
    """
    try:
        if not burn_service:
            return _service_unavailable()

        data = _json_body()
        _require(data, 'assessment_id')

        result = burn_service.monitor(
            data['assessment_id'],
            vitals=data.get('vitals'),
            urine_outputs=data.get('urine_outputs'),
            labs=data.get('labs'),
            now=parse_time(data.get('now')),
        )
        return jsonify(result)

    except Exception as e:
        return _error_response(e, 'evaluate alerts')

@burns_bp.route('/alerts', methods=['GET'])
def list_alerts():
    """GET /api/burns/alerts?assessment_id=... - open alerts by priority"""
    try:
        if not burn_service:
            return _service_unavailable()

        alerts = burn_service.alerts.active(request.args.get('assessment_id'))
        return jsonify({'alerts': [a.model_dump(mode='json') for a in alerts]})

    except Exception as e:
        return _error_response(e, 'list alerts')

@burns_bp.route('/alerts/<alert_id>/acknowledge', methods=['POST'])
def acknowledge_alert(alert_id: str):
    """POST /api/burns/alerts/<id>/acknowledge  Body: {user: string}"""
    try:
        if not burn_service:
            return _service_unavailable()

        data = _json_body()
        _require(data, 'user')
        alert = burn_service.alerts.acknowledge(alert_id, data['user'], parse_time(data.get('now')))
        return jsonify(alert.model_dump(mode='json'))

    except Exception as e:
        return _error_response(e, 'acknowledge alert')

@burns_bp.route('/alerts/<alert_id>/resolve', methods=['POST'])
def resolve_alert(alert_id: str):
    """POST /api/burns/alerts/<id>/resolve  Body: {user: string, resolution?: string}"""
    try:
        if not burn_service:
            return _service_unavailable()

        data = _json_body()
        _require(data, 'user')
        alert = burn_service.alerts.resolve(alert_id, data['user'], data.get('resolution', ''),
                                            parse_time(data.get('now')))
        return jsonify(alert.model_dump(mode='json'))

    except Exception as e:
        return _error_response(e, 'resolve alert')

@burns_bp.route('/alerts/<alert_id>/escalate', methods=['POST'])
def escalate_alert(alert_id: str):
    """POST /api/burns/alerts/<id>/escalate  Body: {escalate_to: string}"""
    try:
        if not burn_service:
            return _service_unavailable()

        data = _json_body()
        _require(data, 'escalate_to')
        alert = burn_service.alerts.escalate(alert_id, data['escalate_to'], parse_time(data.get('now')))
        return jsonify(alert.model_dump(mode='json'))

    except Exception as e:
        return _error_response(e, 'escalate alert')

@burns_bp.route('/nutrition', methods=['POST'])
def burn_nutrition():
    """POST /api/burns/nutrition  Body: {weight_kg: float, tbsa: float, age: float}"""
    try:
        data = _json_body()
        _require(data, 'weight_kg', 'tbsa', 'age')
        plan = calculate_burn_nutrition(parse_number(data['weight_kg'], 'weight_kg'),
                                        parse_number(data['tbsa'], 'tbsa'),
                                        parse_number(data['age'], 'age'))
        return jsonify(plan.model_dump(mode='json'))

    except Exception as e:
        return _error_response(e, 'calculate nutrition plan')

@burns_bp.route('/must', methods=['POST'])
def must_score():
    """
    MUST malnutrition screening

    POST /api/burns/must
    Body: {weight_kg: float, height_cm?: float, previous_weight?: float,
           acutely_ill_no_intake?: boolean}
    """
    try:
        data = _json_body()
        _require(data, 'weight_kg')
        result = calculate_must_score(parse_number(data['weight_kg'], 'weight_kg'),
                                      parse_number(data.get('height_cm'), 'height_cm'),
                                      parse_number(data.get('previous_weight'), 'previous_weight'),
                                      bool(data.get('acutely_ill_no_intake', False)))
        return jsonify(result.model_dump(mode='json'))

    except Exception as e:
        return _error_response(e, 'calculate MUST score')

@burns_bp.route('/sepsis', methods=['POST'])
def sepsis_screen():
    """
    qSOFA and SOFA

    POST /api/burns/sepsis
    Body: {
        respiratory_rate?, systolic_bp?, gcs?,
        pao2_fio2_ratio?, platelets?, bilirubin?, map?, on_vasopressors?,
        vasopressor_dose?, creatinine?, urine_output_24h?
    }
    """
    try:
        data = _json_body()
        gcs = parse_number(data.get('gcs', 15), 'gcs', int)

        qsofa = None
        if data.get('respiratory_rate') is not None and data.get('systolic_bp') is not None:
            qsofa = calculate_qsofa(parse_number(data['respiratory_rate'], 'respiratory_rate'),
                                    parse_number(data['systolic_bp'], 'systolic_bp'), gcs)

        sofa = calculate_sofa(
            pao2_fio2_ratio=parse_number(data.get('pao2_fio2_ratio'), 'pao2_fio2_ratio'),
            platelets=parse_number(data.get('platelets'), 'platelets'),
            bilirubin=parse_number(data.get('bilirubin'), 'bilirubin'),
            map_mmhg=parse_number(data.get('map'), 'map'),
            on_vasopressors=bool(data.get('on_vasopressors', False)),
            vasopressor_dose=parse_number(data.get('vasopressor_dose'), 'vasopressor_dose'),
            gcs=gcs,
            creatinine=parse_number(data.get('creatinine'), 'creatinine'),
            urine_output_24h=parse_number(data.get('urine_output_24h'), 'urine_output_24h'),
        )

        return jsonify({
            'qsofa': qsofa.model_dump(mode='json') if qsofa else None,
            'sofa': {**sofa.model_dump(mode='json'), 'components': sofa.components},
        })

    except Exception as e:
        return _error_response(e, 'calculate sepsis scores')

@burns_bp.route('/wound-care', methods=['POST'])
def wound_care():
    """POST /api/burns/wound-care  Body: {depth, tbsa, location?, days_since_injury?}"""
    try:
        data = _json_body()
        _require(data, 'depth', 'tbsa')
        protocol = generate_wound_care_protocol(parse_enum(BurnDepth, data['depth'], 'depth'),
                                                parse_number(data['tbsa'], 'tbsa'),
                                                data.get('location', ''),
                                                parse_number(data.get('days_since_injury', 0),
                                                             'days_since_injury', int))
        return jsonify({
            'protocol': protocol.model_dump(mode='json'),
            'healing': estimate_healing_time(protocol.depth).model_dump(mode='json'),
        })

    except Exception as e:
        return _error_response(e, 'generate wound care protocol')

@burns_bp.route('/assessment', methods=['POST'])
def full_assessment():
    """
    Full initial assessment report

    POST /api/burns/assessment
    Body: {
        age, weight_kg, sex?, regions, tbsa_method?, time_of_burn?, formula?,
        inhalation_injury?, mechanism?, burn_locations?, circumferential_burn?,
        significant_comorbidities?, days_since_injury?, now?
    }
    """
    try:
        if not burn_service:
            return _service_unavailable()

        data = _json_body()
        report = burn_service.assess(data, now=parse_time(data.get('now')))

        logger.info(f"Assessment {report.assessment_id}: TBSA {report.tbsa.total_tbsa}%, "
                    f"{report.severity.value}")
        return jsonify(report.to_dict())

    except Exception as e:
        return _error_response(e, 'complete assessment')

@burns_bp.route('/assessment/<assessment_id>/dashboard', methods=['POST'])
def assessment_dashboard(assessment_id: str):
    """
    Monitoring dashboard for a stored assessment

    POST /api/burns/assessment/<id>/dashboard
    Body: {vitals?, urine_outputs?, labs?, infusions?, now?}
    """
    try:
        if not burn_service:
            return _service_unavailable()

        data = request.get_json(silent=True) or {}
        dashboard = burn_service.build_dashboard(
            assessment_id,
            vitals=data.get('vitals'),
            urine_outputs=data.get('urine_outputs'),
            labs=data.get('labs'),
            infusions=data.get('infusions'),
            now=parse_time(data.get('now')),
        )
        return jsonify(dashboard)

    except Exception as e:
        return _error_response(e, 'build dashboard')

@burns_bp.route('/config', methods=['GET'])
def get_config():
    """Get current burn engine configuration"""
    try:
        if not burn_service:
            return _service_unavailable()

        return jsonify({
            'config': burn_service.config.model_dump(mode='json'),
            'config_path': burn_service.config_path,
            'last_updated': burn_service.last_updated,
        })

    except Exception as e:
        return _error_response(e, 'get configuration')

@burns_bp.route('/config', methods=['POST'])
def update_config():
    """
    Update configuration at runtime

    POST /api/burns/config
    Body: {updates: {[key]: value}}
    """
    try:
        if not burn_service:
            return _service_unavailable()

        data = _json_body()
        _require(data, 'updates')

        if not burn_service.update_config(data['updates']):
            raise invalid_input(ErrorCode.CFG_INVALID_CONFIG, "Configuration update rejected",
                                updates=list(data['updates']))

        burn_service.emit_telemetry_event('config_updated', {'updated_keys': list(data['updates'])})
        return jsonify({'success': True, 'config': burn_service.config.model_dump(mode='json')})

    except Exception as e:
        return _error_response(e, 'update configuration')

@burns_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({
        'status': 'healthy' if burn_service else 'unavailable',
        'service': 'burns',
    })
