import os
import sys
import pytest

# Ensure the backend root (containing the `commons` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from commons import create_app, socketio
from commons.coordinator import EXTENSION_KEY, GameCoordinator


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    LOG_LEVEL = 'DEBUG'
    COIN_FLIP_DELAY_SEC = 0
    RANDOM_SEED = 7


class RecordingTransport:
    """Collects (event, payload, to) triples instead of emitting them."""

    def __init__(self):
        self.sent = []

    def send(self, event, payload=None, to=None):
        self.sent.append((event, payload, to))

    def events(self, name, to='any'):
        return [
            payload for event, payload, target in self.sent
            if event == name and (to == 'any' or target == to)
        ]

    def names(self):
        return [event for event, _, _ in self.sent]

    def clear(self):
        self.sent = []


class StubRandom:
    """Deterministic stand-in for random.Random: fixed draw, scripted shuffle."""

    def __init__(self, value=0.0, reverse_shuffle=False):
        self.value = value
        self.reverse_shuffle = reverse_shuffle
        self.shuffled = []

    def random(self):
        return self.value

    def shuffle(self, items):
        self.shuffled.append(list(items))
        if self.reverse_shuffle:
            items.reverse()


class ManualRunner:
    """Holds scheduled background work until the test fires it."""

    def __init__(self):
        self.tasks = []

    def __call__(self, fn, *args):
        self.tasks.append((fn, args))

    def run_all(self):
        tasks, self.tasks = self.tasks, []
        for fn, args in tasks:
            fn(*args)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application
        application.extensions[EXTENSION_KEY].shutdown()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
    )
    yield test_client
    try:
        test_client.disconnect()
    except Exception:
        pass


@pytest.fixture()
def transport():
    return RecordingTransport()


@pytest.fixture()
def runner():
    return ManualRunner()


@pytest.fixture()
def make_coordinator(transport):
    def _make(rng=None, run_task=None):
        return GameCoordinator(
            transport,
            run_task=run_task or (lambda fn, *args: fn(*args)),
            sleep=lambda seconds: None,
            rng=rng or StubRandom(),
            coin_delay=0,
        )
    return _make
