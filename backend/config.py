import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Coin-flip suspense before a missed threshold is resolved (seconds)
    COIN_FLIP_DELAY_SEC = 4.0
    # Optional: fixed seed for the coin flip and the defector shuffle. None uses system entropy.
    RANDOM_SEED = int(os.environ['GAME_RANDOM_SEED']) if os.environ.get('GAME_RANDOM_SEED') else None
