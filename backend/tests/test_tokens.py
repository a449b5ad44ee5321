from arcade import db
from arcade.models import User


def test_mint_moves_points_to_token_balance(client, login, submit):
    headers, _ = login('SPMINT')
    submit(headers, 'snake', 30, 300)
    res = client.post('/api/tokens/mint', json={'points': 200}, headers=headers)
    assert res.status_code == 200
    user = res.get_json()['user']
    assert user['totalPoints'] == 300
    assert user['mintedPoints'] == 200
    assert user['availablePoints'] == 100
    assert user['mintedOracles'] == 2.0


def test_mint_cannot_exceed_available_points(client, login, submit):
    headers, _ = login('SPMINT')
    submit(headers, 'snake', 5, 50)
    client.post('/api/tokens/mint', json={'points': 40}, headers=headers)
    res = client.post('/api/tokens/mint', json={'points': 11}, headers=headers)
    assert res.status_code == 400
    assert res.get_json() == {'message': 'Not enough available points'}
    user = client.get('/api/auth/verify', headers=headers).get_json()['user']
    assert user['mintedPoints'] == 40
    assert user['availablePoints'] == 10


def test_mint_validates_amount(client, login):
    headers, _ = login('SPMINT')
    for points in (0, -5, 'ten', 1.5, None, True, 2**31, 2**63):
        res = client.post('/api/tokens/mint', json={'points': points}, headers=headers)
        assert res.status_code == 400, points


def test_available_points_never_negative(flask_app, client, login, submit):
    headers, user = login('SPBAL')
    submit(headers, 'snake', 10, 100)
    client.post('/api/tokens/mint', json={'points': 100}, headers=headers)
    submit(headers, 'snake', 1, 10)
    client.post('/api/tokens/mint', json={'points': 10}, headers=headers)
    with flask_app.app_context():
        row = db.session.get(User, user['id'])
        assert row.minted_points <= row.total_points
        assert row.available_points == 0
        # Counters read back out of order still report zero, not negative
        row.total_points = 50
        assert row.available_points == 0


def test_mint_pushes_user_update(sio_factory, login, submit, client):
    from conftest import events_named, token_from

    headers, _ = login('SPPUSH')
    submit(headers, 'snake', 10, 100)
    player = sio_factory(token_from(headers))
    player.get_received('/ws')
    client.post('/api/tokens/mint', json={'points': 100}, headers=headers)
    updates = events_named(player.get_received('/ws'), 'user-updated')
    assert updates[0]['user']['mintedPoints'] == 100
