import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///arcade.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Closed set of playable games; submissions for anything else are rejected
    GAME_TYPES = tuple(
        g.strip() for g in os.environ.get('GAME_TYPES', 'snake,fallingFruit,breakBricks,carRacing').split(',') if g.strip()
    )
    # Leaderboard paging
    LEADERBOARD_DEFAULT_PAGE_SIZE = int(os.environ.get('LEADERBOARD_DEFAULT_PAGE_SIZE', '50'))
    LEADERBOARD_MAX_PAGE_SIZE = int(os.environ.get('LEADERBOARD_MAX_PAGE_SIZE', '100'))
    HISTORY_DEFAULT_PAGE_SIZE = int(os.environ.get('HISTORY_DEFAULT_PAGE_SIZE', '10'))
    # Size of the leaderboard slices pushed to live viewers after a submission
    LEADERBOARD_PUSH_SIZE = int(os.environ.get('LEADERBOARD_PUSH_SIZE', '50'))
    # 'none' keeps retries as duplicate records; 'client-key' honours an idempotencyKey
    SCORE_IDEMPOTENCY = os.environ.get('SCORE_IDEMPOTENCY', 'none')
    AUTH_TOKEN_MAX_AGE_SEC = int(os.environ.get('AUTH_TOKEN_MAX_AGE_SEC', str(7 * 24 * 3600)))
    # Points converted into one token unit when minting
    ORACLE_POINT_RATE = int(os.environ.get('ORACLE_POINT_RATE', '100'))
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173',
        ).split(',') if o.strip()
    ]
