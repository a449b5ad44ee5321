import math

from arcade import db
from arcade.models import GameScore, User


def _seed_users(flask_app, count, points=lambda i: i):
    with flask_app.app_context():
        db.session.add_all([
            User(wallet_address=f'SP{i:04d}', total_points=points(i), minted_points=0)
            for i in range(count)
        ])
        db.session.commit()


def _seed_scores(flask_app, rows):
    with flask_app.app_context():
        for user_id, wallet, game_type, score in rows:
            db.session.add(GameScore(
                user_id=user_id, wallet_address=wallet, game_type=game_type,
                score=score, points=score * 10, game_data={},
            ))
        db.session.commit()


def test_overall_second_page_of_three(flask_app, client):
    _seed_users(flask_app, 120)
    res = client.get('/api/leaderboard/overall?page=2&limit=50')
    assert res.status_code == 200
    body = res.get_json()
    ranks = [e['rank'] for e in body['leaderboard']]
    assert ranks == list(range(51, 101))
    assert body['pagination'] == {
        'currentPage': 2,
        'totalPages': 3,
        'totalCount': 120,
        'hasNextPage': True,
        'hasPrevPage': True,
    }
    points = [e['totalPoints'] for e in body['leaderboard']]
    assert points == sorted(points, reverse=True)


def test_overall_last_page_is_partial(flask_app, client):
    _seed_users(flask_app, 120)
    body = client.get('/api/leaderboard/overall?page=3&limit=50').get_json()
    assert len(body['leaderboard']) == 20
    assert body['pagination']['hasNextPage'] is False
    assert body['leaderboard'][-1]['rank'] == 120


def test_pages_concatenate_to_full_ranking(flask_app, client):
    _seed_users(flask_app, 23, points=lambda i: (i * 7) % 5)
    limit = 4
    first = client.get(f'/api/leaderboard/overall?page=1&limit={limit}').get_json()
    assert first['pagination']['totalPages'] == math.ceil(23 / limit)

    wallets, ranks = [], []
    for page in range(1, first['pagination']['totalPages'] + 1):
        body = client.get(f'/api/leaderboard/overall?page={page}&limit={limit}').get_json()
        wallets.extend(e['walletAddress'] for e in body['leaderboard'])
        ranks.extend(e['rank'] for e in body['leaderboard'])

    assert len(wallets) == 23
    assert len(set(wallets)) == 23
    assert ranks == list(range(1, 24))


def test_tied_users_get_consecutive_ranks(flask_app, client, login, submit):
    alice, _ = login('SPALICE')
    bob, _ = login('SPBOB')
    submit(alice, 'snake', 10, 100)
    submit(bob, 'carRacing', 5, 100)
    board = client.get('/api/leaderboard/overall').get_json()['leaderboard']
    assert [e['totalPoints'] for e in board] == [100, 100]
    assert [e['rank'] for e in board] == [1, 2]
    # Ties fall back to insertion order
    assert [e['walletAddress'] for e in board] == ['SPALICE', 'SPBOB']


def test_overall_entries_carry_per_game_maps(flask_app, client, login, submit):
    headers, _ = login('SPMAPS')
    submit(headers, 'breakBricks', 9, 90)
    entry = client.get('/api/leaderboard/overall').get_json()['leaderboard'][0]
    assert entry['highScores']['breakBricks'] == 9
    assert entry['gamesPlayed']['breakBricks'] == 1
    assert set(entry['highScores']) == {'snake', 'fallingFruit', 'breakBricks', 'carRacing'}


def test_game_leaderboard_lists_individual_runs(flask_app, client):
    _seed_scores(flask_app, [
        (1, 'SPA', 'snake', 12),
        (1, 'SPA', 'snake', 5),
        (2, 'SPB', 'snake', 8),
        (2, 'SPB', 'carRacing', 99),
    ])
    body = client.get('/api/leaderboard/game/snake').get_json()
    assert body['gameType'] == 'snake'
    assert [e['score'] for e in body['leaderboard']] == [12, 8, 5]
    assert [e['rank'] for e in body['leaderboard']] == [1, 2, 3]
    assert body['pagination']['totalCount'] == 3


def test_highscores_keep_one_entry_per_wallet(flask_app, client):
    _seed_scores(flask_app, [
        (1, 'SPA', 'snake', 12),
        (1, 'SPA', 'snake', 5),
        (2, 'SPB', 'snake', 8),
        (3, 'SPC', 'snake', 8),
        (3, 'SPC', 'snake', 1),
        (3, 'SPC', 'fallingFruit', 50),
    ])
    body = client.get('/api/leaderboard/game/snake/highscores').get_json()
    board = body['leaderboard']
    wallets = [e['walletAddress'] for e in board]
    assert len(wallets) == len(set(wallets)) == 3
    assert board[0] == {
        'rank': 1,
        'walletAddress': 'SPA',
        'highScore': 12,
        'totalPoints': 170,
        'gamesPlayed': 2,
        'lastPlayed': board[0]['lastPlayed'],
    }
    assert board[0]['lastPlayed'] is not None
    assert [e['highScore'] for e in board] == [12, 8, 8]
    assert board[2]['gamesPlayed'] == 2
    assert body['pagination']['totalCount'] == 3


def test_highscores_paginate_over_wallets(flask_app, client):
    _seed_scores(flask_app, [(i, f'SP{i}', 'carRacing', i) for i in range(1, 8)])
    body = client.get('/api/leaderboard/game/carRacing/highscores?page=2&limit=3').get_json()
    assert [e['highScore'] for e in body['leaderboard']] == [4, 3, 2]
    assert [e['rank'] for e in body['leaderboard']] == [4, 5, 6]
    assert body['pagination']['totalPages'] == 3


def test_unknown_game_is_rejected(client):
    for url in ('/api/leaderboard/game/chess', '/api/leaderboard/game/chess/highscores'):
        res = client.get(url)
        assert res.status_code == 400
        assert res.get_json() == {'message': 'Invalid game type'}


def test_bad_paging_arguments(client):
    assert client.get('/api/leaderboard/overall?page=0').status_code == 400
    assert client.get('/api/leaderboard/overall?page=abc').status_code == 400
    assert client.get('/api/leaderboard/overall?limit=0').status_code == 400
    assert client.get('/api/leaderboard/overall?limit=1000').status_code == 400
    assert client.get(f'/api/leaderboard/overall?page={10**30}').status_code == 400
    res = client.get('/api/leaderboard/game/snake/highscores?page=100000000&limit=100')
    assert res.status_code == 400
    assert res.get_json() == {'message': 'page is out of range'}


def test_empty_leaderboard(client):
    body = client.get('/api/leaderboard/overall').get_json()
    assert body['leaderboard'] == []
    assert body['pagination']['totalPages'] == 0
    assert body['pagination']['hasNextPage'] is False
    assert body['pagination']['hasPrevPage'] is False


def test_game_stats_placeholders_and_holders(flask_app, client):
    _seed_scores(flask_app, [
        (1, 'SPA', 'snake', 12),
        (2, 'SPB', 'snake', 30),
    ])
    stats = client.get('/api/leaderboard/game-stats').get_json()['gameStats']
    assert set(stats) == {'snake', 'fallingFruit', 'breakBricks', 'carRacing'}
    assert stats['snake']['highestScore'] == 30
    assert stats['snake']['walletAddress'] == 'SPB'
    assert stats['snake']['points'] == 300
    assert stats['snake']['playedAt'] is not None
    assert stats['carRacing'] == {'highestScore': 0, 'walletAddress': None, 'points': 0, 'playedAt': None}
