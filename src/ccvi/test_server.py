"""Tests for the local Flask backend and its in-memory storage."""

import pytest

from ccvi.server import create_app
from ccvi.storage import SEED_INDICATORS, SEED_VULNERABILITY, MemStorage


class BrokenStorage:

    def get_all_indicators(self):
        raise RuntimeError("database offline")

    def get_vulnerability_data(self, state=None, indicator=None):
        raise RuntimeError("database offline")

    def generate_export_data(self, filters=None):
        raise RuntimeError("database offline")


@pytest.fixture
def client():
    app = create_app(MemStorage())
    app.config['TESTING'] = True
    return app.test_client()


# ============================================================================
# Storage
# ============================================================================

def test_storage_seed():
    storage = MemStorage()

    indicators = storage.get_all_indicators()
    assert len(indicators) == len(SEED_INDICATORS)
    assert indicators[0]['id'] == 1
    assert indicators[0]['is_active'] is True
    assert len(storage.get_vulnerability_data()) == len(SEED_VULNERABILITY)


def test_storage_filters():
    storage = MemStorage()

    punjab = storage.get_vulnerability_data(state='punjab')
    assert sorted(r['county'] for r in punjab) == ['Lahore', 'Multan']

    by_name = storage.get_vulnerability_data(indicator='Exposure')
    assert [r['county'] for r in by_name] == ['Hyderabad']

    by_id = storage.get_vulnerability_data(state='Sindh', indicator='1')
    assert [r['county'] for r in by_id] == ['Karachi']

    assert storage.get_vulnerability_data(indicator='Unknown Indicator') == []


def test_storage_add_validation():
    storage = MemStorage(seed=False)

    with pytest.raises(ValueError):
        storage.add_indicator({'name': 'Heat'})
    with pytest.raises(ValueError):
        storage.add_vulnerability_data({'score': 50})
    with pytest.raises(ValueError):
        storage.add_vulnerability_data({'state': 'Punjab', 'score': 'high'})

    row = storage.add_vulnerability_data({'state': 'Punjab', 'score': '42.5'})
    assert row['id'] == 1
    assert row['score'] == 42.5
    assert storage.get_vulnerability_data()[0]['county'] is None


def test_storage_export_joins_indicator_name():
    rows = MemStorage().generate_export_data({'state': 'Sindh'})

    assert len(rows) == 2
    karachi = next(r for r in rows if r['county'] == 'Karachi')
    assert karachi['indicator'] == 'Overall Climate Vulnerability'
    assert set(karachi) == {'state', 'county', 'indicator', 'score', 'latitude', 'longitude'}


# ============================================================================
# Routes
# ============================================================================

def test_get_indicators(client):
    response = client.get('/api/indicators')

    assert response.status_code == 200
    assert [i['name'] for i in response.get_json()][:2] == ['Overall Climate Vulnerability', 'Exposure']


def test_get_vulnerability_data(client):
    response = client.get('/api/vulnerability-data?state=Punjab&indicator=1')

    assert response.status_code == 200
    assert len(response.get_json()) == 2


def test_export_json(client):
    response = client.post('/api/export-data', json={'format': 'json', 'filters': {}})
    body = response.get_json()

    assert response.status_code == 200
    assert body['success'] is True
    assert body['message'] == 'Data exported successfully'
    assert len(body['data']) == len(SEED_VULNERABILITY)


def test_export_csv(client):
    response = client.post('/api/export-data', json={'format': 'csv', 'filters': {'state': 'Balochistan'}})
    lines = response.get_json()['data'].strip().splitlines()

    assert lines[0] == 'state,county,indicator,score,latitude,longitude'
    assert len(lines) == 2
    assert lines[1].startswith('Balochistan,Quetta,Overall Climate Vulnerability')


@pytest.mark.parametrize('body', [
    {'format': 'xlsx'},
    {'format': 'json', 'filters': ['state']},
])
def test_export_rejects_bad_requests(client, body):
    response = client.post('/api/export-data', json=body)
    assert response.status_code == 400


def test_export_requires_json_body(client):
    response = client.post('/api/export-data', data='format=csv', content_type='text/plain')
    assert response.status_code == 400


def test_storage_failures_return_500():
    client = create_app(BrokenStorage()).test_client()

    response = client.get('/api/indicators')
    assert response.status_code == 500
    assert response.get_json() == {'message': 'Failed to fetch indicators'}

    response = client.get('/api/vulnerability-data')
    assert response.get_json() == {'message': 'Failed to fetch vulnerability data'}

    response = client.post('/api/export-data', json={'format': 'json'})
    assert response.status_code == 500
    assert response.get_json() == {'message': 'Failed to export data'}


def test_cors_headers(client):
    response = client.get('/api/indicators', headers={'Origin': 'http://localhost:3000'})
    assert response.headers.get('Access-Control-Allow-Origin') in ('*', 'http://localhost:3000')
