import pytest

from conftest import TLE_URL, TRANSMITTERS_URL, FakeResponse, tle_text
from models import TLE
from services.errors import RosterLoadFailed


class TestCronEndpoints:

    @pytest.mark.parametrize('path', ['/api/cron/sync-tle', '/api/cron/sync-transmitters'])
    def test_get_is_method_not_allowed(self, client, auth_header, path):
        response = client.get(path, headers=auth_header)

        assert response.status_code == 405
        assert response.get_json() == {'error': 'Method not allowed'}

    @pytest.mark.parametrize('headers', [
        {},
        {'Authorization': 'Bearer nope'},
        {'Authorization': 'test-secret'},
        {'Authorization': 'Basic test-secret'},
        {'Authorization': 'Bearer '},
    ])
    def test_bad_credentials_are_rejected(self, client, http, make_satellites, headers):
        make_satellites(25544)

        response = client.post('/api/cron/sync-tle', headers=headers)

        assert response.status_code == 401
        assert response.get_json() == {'error': 'Unauthorized'}
        assert http.calls == []

    def test_tle_sync_returns_summary(self, client, http, auth_header, make_satellites):
        make_satellites(25544, 43017)
        http.routes[TLE_URL.format(norad_id=25544)] = FakeResponse(200, tle_text(name='ISS (ZARYA)'))

        response = client.post('/api/cron/sync-tle', headers=auth_header)

        assert response.status_code == 200
        body = response.get_json()
        assert body['success'] is True
        assert body['processed'] == 2
        assert body['updated'] == 1
        assert body['failed'] == 1
        assert body['tle_upserts'] == 1
        assert body['duration'].endswith('ms')
        assert body['errors'][0]['norad_id'] == 43017
        assert TLE.query.count() == 1

    def test_transmitter_sync_reports_write_counts(self, client, http, auth_header, make_satellites):
        make_satellites(43017)
        http.routes[TRANSMITTERS_URL.format(norad_id=43017)] = FakeResponse(200, json_data=[
            {'description': 'Mode U/V FM', 'mode': 'FM'},
        ])

        body = client.post('/api/cron/sync-transmitters', headers=auth_header).get_json()

        assert (body['inserts'], body['updates'], body['deletes']) == (1, 0, 0)
        assert body['job'] == 'transmitters'

    def test_empty_roster_message(self, client, auth_header):
        body = client.post('/api/cron/sync-tle', headers=auth_header).get_json()

        assert body['success'] is True
        assert body['processed'] == 0
        assert body['message'] == 'No satellites to sync'

    def test_dry_run_and_limit_params(self, client, http, auth_header, make_satellites):
        make_satellites(25544, 43017)
        http.routes[TLE_URL.format(norad_id=25544)] = FakeResponse(200, tle_text())

        body = client.post('/api/cron/sync-tle?dry_run=true&limit=1', headers=auth_header).get_json()

        assert body['dry_run'] is True
        assert body['processed'] == 1
        assert body['tle_upserts'] == 1
        assert TLE.query.count() == 0

    @pytest.mark.parametrize('limit', ['0', '-1', 'abc'])
    def test_invalid_limit_is_rejected(self, client, http, auth_header, make_satellites, limit):
        make_satellites(25544)

        response = client.post(f'/api/cron/sync-tle?limit={limit}', headers=auth_header)

        assert response.status_code == 400
        assert response.get_json() == {'error': 'limit must be a positive integer'}
        assert http.calls == []

    def test_fatal_error_returns_500(self, client, orchestrator, auth_header, monkeypatch):
        def broken(limit=None):
            raise RosterLoadFailed('Failed to fetch satellites: no such table: satellites')

        monkeypatch.setattr(orchestrator.store, 'load_roster', broken)

        response = client.post('/api/cron/sync-tle', headers=auth_header)

        assert response.status_code == 500
        body = response.get_json()
        assert body['success'] is False
        assert 'no such table' in body['error']


class TestSchedulerEndpoints:

    @pytest.fixture
    def sync_scheduler(self, app, monkeypatch):
        sync_scheduler = app.extensions['sync_scheduler']
        monkeypatch.setattr(sync_scheduler.scheduler, 'start', lambda *args, **kwargs: None)
        return sync_scheduler

    def test_status_lists_sync_stats(self, client):
        body = client.get('/api/scheduler/status').get_json()

        assert body['running'] is False
        assert set(body['syncs']) == {'tle', 'transmitters'}
        assert body['syncs']['tle']['total_runs'] == 0

    def test_trigger_requires_credentials(self, client, sync_scheduler):
        response = client.post('/api/scheduler/trigger/tle')

        assert response.status_code == 401

    def test_trigger_unknown_job(self, client, sync_scheduler, auth_header):
        response = client.post('/api/scheduler/trigger/launches', headers=auth_header)

        assert response.status_code == 404

    def test_trigger_schedules_manual_run(self, client, sync_scheduler, auth_header):
        response = client.post('/api/scheduler/trigger/tle', headers=auth_header)

        assert response.status_code == 202
        assert response.get_json()['status'] == 'success'
        assert [job.id for job in sync_scheduler.scheduler.get_jobs()] == ['manual_tle_sync']


def test_health(client):
    body = client.get('/api/health').get_json()

    assert body['status'] == 'ok'
    assert 'CelesTrak' in body['data_sources']
