import pytest


@pytest.mark.parametrize('query', ['', '?secret=', '?secret=wrong'])
def test_reset_requires_secret(client, sweet_id, query):
    id = sweet_id('Fudge')
    client.delete(f'/api/sweets/{id}')

    resp = client.post(f'/api/reset-database{query}')
    assert resp.status_code == 403
    assert resp.get_json() == {'success': False, 'error': 'Unauthorized'}
    assert client.get('/api/stats').get_json()['totalSweets'] == 19


def test_reset_restores_defaults(client, sweet_id):
    client.post('/api/auth/register', json={'email': 'temp@shop.com', 'password': 'x'})
    client.post('/api/sweets', json={'name': 'Extra', 'price': 1, 'quantity': 5})
    client.delete(f"/api/sweets/{sweet_id('Fudge')}")
    client.post(f"/api/sweets/{sweet_id('Chocolate Bar')}/purchase", json={'user_id': 2, 'quantity': 10})

    resp = client.post('/api/reset-database?secret=reset123')
    assert resp.get_json() == {'success': True, 'message': 'Database reset successfully'}

    assert client.get('/api/stats').get_json()['totalUsers'] == 2
    assert client.get('/api/stats').get_json()['totalPurchases'] == 0
    sweets = {s['name']: s for s in client.get('/api/sweets').get_json()['sweets']}
    assert len(sweets) == 20
    assert 'Extra' not in sweets
    assert sweets['Fudge']['quantity'] == 40
    assert sweets['Chocolate Bar']['quantity'] == 50

    assert client.post('/api/auth/login', json={'email': 'temp@shop.com', 'password': 'x'}).status_code == 401
    login = client.post('/api/auth/login', json={'email': 'admin@shop.com', 'password': 'admin123'})
    assert login.get_json()['user']['isAdmin'] is True


def test_reset_keeps_seed_user_ids(client):
    before = client.post('/api/auth/login', json={'email': 'user@shop.com', 'password': 'user123'})
    client.post('/api/reset-database?secret=reset123')
    after = client.post('/api/auth/login', json={'email': 'user@shop.com', 'password': 'user123'})
    assert before.get_json()['user']['id'] == after.get_json()['user']['id']


def test_reset_secret_is_configurable():
    from conftest import make_app

    client = make_app(RESET_SECRET='letmein').test_client()
    assert client.post('/api/reset-database?secret=reset123').status_code == 403
    assert client.post('/api/reset-database?secret=letmein').status_code == 200
