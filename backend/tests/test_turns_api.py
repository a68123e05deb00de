from __future__ import annotations

from fastapi.testclient import TestClient

from backend.main import app
from backend.tests.scenario_fixtures import make_payload

client = TestClient(app)


def _new_session() -> dict:
    res = client.post('/v1/sessions', json={'scenario_id': 'zero_hour'})
    assert res.status_code == 200
    return res.json()['snapshot']


def test_health_lists_scenarios() -> None:
    res = client.get('/health')
    assert res.status_code == 200
    body = res.json()
    assert body['status'] == 'healthy'
    assert 'zero_hour' in body['scenarios']


def test_session_starts_at_day_one() -> None:
    snapshot = _new_session()
    assert snapshot['day'] == 1
    assert snapshot['ap'] == {'current_ap': 3, 'max_ap': 3}
    assert snapshot['stats']['cityChaos'] == 50


def test_unknown_scenario_returns_404() -> None:
    res = client.post('/v1/sessions', json={'scenario_id': 'atlantis'})
    assert res.status_code == 404
    payload = res.json()
    assert payload['error_code'] == 'SESSION_HTTP_404'
    assert 'atlantis' in payload['message']


def test_turn_applies_payload() -> None:
    snapshot = _new_session()
    res = client.post(
        '/v1/turns',
        json={
            'scenario_id': 'zero_hour',
            'snapshot': snapshot,
            'action_type': 'choice',
            'payload': make_payload(stats={'cityChaos': 10}),
        },
    )
    assert res.status_code == 200
    body = res.json()
    assert body['result']['accepted'] is True
    assert body['result']['snapshot']['stats']['cityChaos'] == 60
    assert body['result']['snapshot']['ap']['current_ap'] == 2
    assert '↑10' in body['summary']


def test_turn_with_text_payload_falls_back() -> None:
    snapshot = _new_session()
    res = client.post(
        '/v1/turns',
        json={'scenario_id': 'zero_hour', 'snapshot': snapshot, 'payload': 'the model rambled'},
    )
    assert res.status_code == 200
    result = res.json()['result']
    assert result['fallback_used'] is True
    assert result['snapshot'] == snapshot


def test_turn_rejects_unknown_action_type() -> None:
    snapshot = _new_session()
    res = client.post(
        '/v1/turns',
        json={'scenario_id': 'zero_hour', 'snapshot': snapshot, 'action_type': 'teleport', 'payload': make_payload()},
    )
    assert res.status_code == 400
    assert res.json()['error_code'] == 'TURN_HTTP_400'


def test_turn_after_ending_conflicts() -> None:
    snapshot = _new_session()
    snapshot['ended_with'] = 'ENDING_EXODUS'
    res = client.post('/v1/turns', json={'scenario_id': 'zero_hour', 'snapshot': snapshot, 'payload': make_payload()})
    assert res.status_code == 409


def test_turn_snapshot_from_other_scenario() -> None:
    snapshot = _new_session()
    snapshot['scenario_id'] = 'somewhere_else'
    res = client.post('/v1/turns', json={'scenario_id': 'zero_hour', 'snapshot': snapshot, 'payload': make_payload()})
    assert res.status_code == 400


def test_action_check_reports_shortfall() -> None:
    snapshot = _new_session()
    snapshot['ap']['current_ap'] = 0
    res = client.post(
        '/v1/actions/check',
        json={'scenario_id': 'zero_hour', 'snapshot': snapshot, 'action_type': 'exploration'},
    )
    assert res.status_code == 200
    body = res.json()
    assert body['affordable'] is False
    assert body['reason'] == 'needs 1 AP, 0 left today'


def test_choice_hints_compare_first_two() -> None:
    res = client.post(
        '/v1/choices/hint',
        json={'choices': ['무력으로 창고 입구를 막아선다', '폭도들의 대표와 협상을 시도한다']},
    )
    assert res.status_code == 200
    body = res.json()
    assert [h['category'] for h in body['hints']] == ['combat', 'diplomacy']
    assert body['comparison']['are_contrasting'] is True


def test_ending_evaluation_with_progress() -> None:
    snapshot = _new_session()
    snapshot['flags']['FLAG_ESCAPE_ROUTE'] = True
    res = client.post(
        '/v1/endings/evaluate',
        json={'scenario_id': 'zero_hour', 'snapshot': snapshot, 'explain': True},
    )
    assert res.status_code == 200
    body = res.json()
    assert body['ending']['id'] == 'ENDING_EXODUS'
    assert 'ENDING_TIME_UP' not in body['progress']
    assert body['progress']['ENDING_EXODUS'][0]['satisfied'] is True
