"""
Integration tests for the JSON API.
"""

import pytest

from rollsmith.core.config import Config
from rollsmith.web.server import create_app


@pytest.fixture
def client():
    """Flask test client over a fresh app."""
    app = create_app(Config())
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


class TestRollEndpoint:
    """Test POST /api/roll."""

    def test_plain_roll(self, client):
        """Test a plain formula is rolled and serialized."""
        response = client.post('/api/roll', json={'formula': '1d1 + @mod', 'data': {'mod': 2}})
        assert response.status_code == 200
        body = response.get_json()
        assert body['success'] is True
        assert body['total'] == 3
        assert body['error'] is None
        assert body['roll']['class'] == 'Roll'
        assert body['roll']['formula'] == '1d1 + 2'

    def test_check_roll(self, client):
        """Test check rolls include the chat projection."""
        response = client.post('/api/roll', json={'formula': '10 + 3', 'kind': 'check'})
        body = response.get_json()
        assert body['total'] == 13
        assert body['check']['static_roll'] == 10
        assert body['check']['flavor'] == '(Take 10)'
        assert body['roll']['state'] == 'static_override_applied'

    def test_damage_roll(self, client):
        """Test damage rolls include their damage info."""
        response = client.post('/api/roll', json={
            'formula': '1d1 + 1',
            'kind': 'damage',
            'options': {'type': 'crit', 'damage_type': {'values': ['fire'], 'custom': ''}},
        })
        body = response.get_json()
        assert body['total'] == 2
        assert body['damage'] == {'damage_types': ['fire'], 'is_critical': True}

    def test_failed_roll_is_contained(self, client):
        """Test a failing formula returns a zero roll with the error."""
        response = client.post('/api/roll', json={'formula': '1 / 0', 'context': 'API test'})
        assert response.status_code == 200
        body = response.get_json()
        assert body['total'] == 0
        assert body['error']['error_code'] == 'division_by_zero'
        assert body['error']['warning'] is False

    def test_oversized_result_is_contained(self, client):
        """Test a result too large to serialize still returns a JSON roll."""
        response = client.post('/api/roll', json={'formula': '10**5000'})
        assert response.status_code == 200
        body = response.get_json()
        assert body['total'] == 0
        assert body['error']['error_code'] == 'result_too_large'

    def test_missing_data_warning(self, client):
        """Test missing data is reported as a warning."""
        body = client.post('/api/roll', json={'formula': '@nope + 1'}).get_json()
        assert body['total'] == 1
        assert body['error']['warning'] is True
        assert body['error']['error_code'] == 'missing_data'

    def test_bad_requests(self, client):
        """Test missing formulas and unknown kinds are rejected."""
        assert client.post('/api/roll', json={}).status_code == 400
        response = client.post('/api/roll', json={'formula': '1d6', 'kind': 'spell'})
        assert response.status_code == 400
        assert 'Unknown roll kind' in response.get_json()['error']


class TestSimplifyEndpoint:
    """Test POST /api/simplify."""

    def test_simplify(self, client):
        """Test a formula is simplified."""
        body = client.post('/api/simplify', json={'formula': '1d8-1+32'}).get_json()
        assert body == {'success': True, 'formula': '1d8-1+32', 'simplified': '1d8 + 31'}

    def test_simplify_with_data(self, client):
        """Test data is substituted."""
        body = client.post('/api/simplify', json={
            'formula': 'ceil(@hd / 5)d6',
            'data': {'hd': 10},
        }).get_json()
        assert body['simplified'] == '2d6'

    def test_invalid_formula(self, client):
        """Test unparsable formulas return the error."""
        response = client.post('/api/simplify', json={'formula': '1 $ 2'})
        assert response.status_code == 400
        body = response.get_json()
        assert body['success'] is False
        assert body['error_code'] == 'formula_error'


class TestReferenceEndpoints:
    """Test the size-roll and functions endpoints."""

    def test_size_roll(self, client):
        """Test stepping dice by size."""
        body = client.get('/api/size-roll?count=1&faces=6&delta=1').get_json()
        assert body == {'success': True, 'count': 1, 'faces': 8, 'formula': '1d8'}

    def test_size_roll_initial_size(self, client):
        """Test the initial size parameter."""
        body = client.get('/api/size-roll?count=3&faces=6&delta=-1&initial=M').get_json()
        assert body['formula'] == '2d8'

    def test_size_roll_errors(self, client):
        """Test missing and invalid parameters."""
        assert client.get('/api/size-roll?count=1').status_code == 400
        response = client.get('/api/size-roll?count=1&faces=6&delta=1&initial=Q')
        assert response.status_code == 400
        assert response.get_json()['error_code'] == 'evaluation_error'

    def test_functions(self, client):
        """Test registered functions are listed in order."""
        body = client.get('/api/functions').get_json()
        names = [f['name'] for f in body['functions']]
        assert names == ['if', 'ifelse', 'lookup', 'sizeReach', 'sizeRoll']


def test_index_and_not_found(client):
    """Test the service description and JSON 404s."""
    body = client.get('/').get_json()
    assert body['name'] == 'rollsmith'
    assert '/api/roll' in body['endpoints']

    response = client.get('/api/nothing-here')
    assert response.status_code == 404
    assert response.get_json()['success'] is False
