#!/usr/bin/env python3
"""
API tests for the burns blueprint
"""

import pytest
import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app
from api import burns_api

TIME_OF_BURN = "2026-01-01T08:00:00"

class TestBurnsAPI:
    """Test burns API endpoints"""

    def setup_method(self):
        """Set up test client"""
        self.app = create_app()
        self.app.config['TESTING'] = True
        self.client = self.app.test_client()

    def test_health(self):
        response = self.client.get('/api/burns/health')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'

        assert self.client.get('/health').status_code == 200

    def test_tbsa_lund_browder(self):
        response = self.client.post('/api/burns/tbsa', json={
            'age': 35,
            'regions': [
                {'region': 'anterior_trunk', 'percent': 13},
                {'region': 'right_thigh', 'percent': 9.5, 'depth': 'full_thickness'},
            ],
        })
        data = response.get_json()

        assert response.status_code == 200
        assert data['total_tbsa'] == 22.5
        assert data['full_thickness_tbsa'] == 9.5

    def test_tbsa_unknown_region(self):
        response = self.client.post('/api/burns/tbsa', json={
            'age': 35,
            'regions': [{'region': 'tail', 'percent': 5}],
        })
        data = response.get_json()

        assert response.status_code == 400
        assert data['error_code'] == 'BURN_001'

    def test_tbsa_requires_json(self):
        response = self.client.post('/api/burns/tbsa', data='not json',
                                    content_type='text/plain')
        assert response.status_code == 400
        assert response.get_json()['error_code'] == 'APP_001'

    def test_scores(self):
        response = self.client.post('/api/burns/scores', json={
            'age': 40, 'tbsa': 30, 'sex': 'female', 'inhalation_injury': True,
        })
        data = response.get_json()

        assert response.status_code == 200
        assert data['baux']['score'] == 70
        assert data['revised_baux']['score'] == 87
        assert data['severity'] == 'critical'
        assert data['disposition'] == 'burn_center'

    def test_resuscitation_plan(self):
        response = self.client.post('/api/burns/resuscitation', json={
            'weight_kg': 70, 'tbsa': 30, 'time_of_burn': TIME_OF_BURN,
            'now': TIME_OF_BURN, 'formula': 'parkland',
        })
        data = response.get_json()

        assert response.status_code == 200
        assert data['total_fluid_24h'] == 8400
        assert data['first_half_rate'] == 525
        assert len(data['hourly_targets']) == 24

    def test_resuscitation_missing_weight(self):
        response = self.client.post('/api/burns/resuscitation', json={
            'tbsa': 30, 'time_of_burn': TIME_OF_BURN,
        })
        data = response.get_json()

        assert response.status_code == 400
        assert data['error_code'] == 'APP_002'
        assert data['details']['missing'] == ['weight_kg']

    def test_resuscitation_invalid_timestamp(self):
        response = self.client.post('/api/burns/resuscitation', json={
            'weight_kg': 70, 'tbsa': 30, 'time_of_burn': 'yesterday',
        })
        assert response.status_code == 400
        assert response.get_json()['error_code'] == 'APP_001'

    def test_resuscitation_non_numeric_weight(self):
        response = self.client.post('/api/burns/resuscitation', json={
            'weight_kg': 'seventy', 'tbsa': 30, 'time_of_burn': TIME_OF_BURN,
        })
        data = response.get_json()

        assert response.status_code == 400
        assert data['error_code'] == 'APP_001'
        assert data['details']['parameter'] == 'weight_kg'

    def test_resuscitation_mixed_timezones(self):
        response = self.client.post('/api/burns/resuscitation', json={
            'weight_kg': 70, 'tbsa': 30, 'time_of_burn': '2026-01-01T08:00:00+00:00',
            'now': '2026-01-01T10:00:00',
        })
        assert response.status_code == 400
        assert response.get_json()['error_code'] == 'APP_001'

    def test_unexpected_error_is_logged_500(self, monkeypatch, caplog):
        def fail(*args, **kwargs):
            raise ValueError("division by zero in nutrition table")

        monkeypatch.setattr(burns_api, 'calculate_burn_nutrition', fail)
        with caplog.at_level('ERROR', logger='api.burns_api'):
            response = self.client.post('/api/burns/nutrition',
                                        json={'weight_kg': 70, 'tbsa': 30, 'age': 40})

        assert response.status_code == 500
        assert response.get_json() == {'error': 'Failed to calculate nutrition plan',
                                       'error_code': 'APP_005'}
        assert 'Error during calculate nutrition plan' in caplog.text

    def test_sepsis_non_numeric_input(self):
        response = self.client.post('/api/burns/sepsis', json={'platelets': 'low'})
        assert response.status_code == 400
        assert response.get_json()['details']['parameter'] == 'platelets'

    def test_resuscitation_adjust(self):
        response = self.client.post('/api/burns/resuscitation/adjust', json={
            'current_rate': 500, 'urine_output_per_kg': 0.3,
        })
        data = response.get_json()

        assert response.status_code == 200
        assert data['new_rate'] == 625
        assert data['adjustment'] == '+25%'

    def test_progress_from_plan(self):
        plan = self.client.post('/api/burns/resuscitation', json={
            'weight_kg': 70, 'tbsa': 30, 'time_of_burn': TIME_OF_BURN, 'now': TIME_OF_BURN,
        }).get_json()

        response = self.client.post('/api/burns/resuscitation/progress', json={
            'plan': plan,
            'infusions': [
                {'timestamp': '2026-01-01T09:00:00', 'volume_ml': 500},
                {'timestamp': '2026-01-01T10:00:00', 'volume_ml': 500},
                {'timestamp': '2026-01-01T11:00:00', 'volume_ml': 400},
            ],
            'now': '2026-01-01T11:00:00',
        })
        data = response.get_json()

        assert response.status_code == 200
        assert data['cumulative_target'] == 1575
        assert data['cumulative_administered'] == 1400
        assert data['deficit_ml'] == 175

    def test_progress_requires_plan(self):
        response = self.client.post('/api/burns/resuscitation/progress', json={'infusions': []})
        assert response.status_code == 400
        assert response.get_json()['error_code'] == 'APP_002'

    def test_assessment_alert_lifecycle(self):
        assessment = self.client.post('/api/burns/assessment', json={
            'assessment_id': 'api-lifecycle',
            'age': 35,
            'weight_kg': 70,
            'time_of_burn': TIME_OF_BURN,
            'now': '2026-01-01T10:00:00',
            'regions': [{'region': 'anterior_trunk', 'percent': 13, 'depth': 'deep_partial'}],
        })
        assert assessment.status_code == 200
        assert assessment.get_json()['tbsa']['total_tbsa'] == 13

        monitored = self.client.post('/api/burns/alerts', json={
            'assessment_id': 'api-lifecycle',
            'vitals': [{'timestamp': '2026-01-01T10:00:00', 'systolic_bp': 80, 'diastolic_bp': 50}],
            'now': '2026-01-01T10:00:00',
        }).get_json()
        raised = monitored['alerts_raised']
        assert [a['parameter'] for a in raised] == ['mean_arterial_pressure']
        alert_id = raised[0]['id']

        listed = self.client.get('/api/burns/alerts?assessment_id=api-lifecycle').get_json()
        assert [a['id'] for a in listed['alerts']] == [alert_id]

        ack = self.client.post(f'/api/burns/alerts/{alert_id}/acknowledge', json={'user': 'nurse.a'})
        assert ack.status_code == 200
        assert ack.get_json()['status'] == 'acknowledged'

        again = self.client.post(f'/api/burns/alerts/{alert_id}/acknowledge', json={'user': 'nurse.a'})
        assert again.status_code == 400
        assert again.get_json()['error_code'] == 'ALERT_002'

        resolved = self.client.post(f'/api/burns/alerts/{alert_id}/resolve',
                                    json={'user': 'dr.b', 'resolution': 'Bolus given'})
        assert resolved.status_code == 200
        assert resolved.get_json()['status'] == 'resolved'

        dashboard = self.client.post('/api/burns/assessment/api-lifecycle/dashboard', json={
            'now': '2026-01-01T10:00:00',
        })
        assert dashboard.status_code == 200
        assert dashboard.get_json()['active_alerts'] == []

    def test_alerts_for_unknown_assessment(self):
        response = self.client.post('/api/burns/alerts', json={
            'assessment_id': 'api-never-assessed',
            'urine_outputs': [{'timestamp': '2026-01-01T10:00:00', 'volume_ml': 10}],
        })
        assert response.status_code == 400
        assert response.get_json()['error_code'] == 'APP_001'

    def test_unknown_alert_is_404(self):
        response = self.client.post('/api/burns/alerts/alert-missing-0/acknowledge',
                                    json={'user': 'nurse.a'})
        assert response.status_code == 404
        assert response.get_json()['error_code'] == 'ALERT_001'

    def test_assessment_missing_age(self):
        response = self.client.post('/api/burns/assessment', json={'weight_kg': 70, 'regions': []})
        assert response.status_code == 400
        assert response.get_json()['error_code'] == 'APP_002'

    def test_nutrition(self):
        response = self.client.post('/api/burns/nutrition', json={'weight_kg': 70, 'tbsa': 30, 'age': 40})
        assert response.status_code == 200
        assert response.get_json()['caloric_target'] == 2950

    def test_must(self):
        response = self.client.post('/api/burns/must', json={
            'weight_kg': 50, 'height_cm': 170, 'previous_weight': 60,
        })
        data = response.get_json()

        assert response.status_code == 200
        assert data['must_score'] == 4
        assert data['risk_level'] == 'High'

    def test_sepsis(self):
        response = self.client.post('/api/burns/sepsis', json={
            'respiratory_rate': 24, 'systolic_bp': 95, 'gcs': 14, 'platelets': 80,
        })
        data = response.get_json()

        assert response.status_code == 200
        assert data['qsofa']['score'] == 3
        assert data['sofa']['components']['coagulation'] == 2
        assert data['sofa']['components']['cns'] == 1

    def test_wound_care(self):
        response = self.client.post('/api/burns/wound-care', json={
            'depth': 'full_thickness', 'tbsa': 20, 'location': 'left hand',
        })
        data = response.get_json()

        assert response.status_code == 200
        assert data['protocol']['grafting']['type'] == 'Split-thickness autograft'
        assert data['healing']['min_days'] == 28

    def test_get_config(self):
        response = self.client.get('/api/burns/config')
        data = response.get_json()

        assert response.status_code == 200
        assert data['config']['default_formula'] == 'parkland'
        assert data['config_path'].endswith('burn_care.yaml')

    def test_rejected_config_update(self):
        response = self.client.post('/api/burns/config', json={'updates': {'phase_1_hours': 'abc'}})
        assert response.status_code == 400
        assert response.get_json()['error_code'] == 'CFG_002'
