import os
import random
import sys
from datetime import datetime, timezone

import pytest

# Ensure the backend root (containing the `decode_daily` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from decode_daily import create_app, db, socketio
from decode_daily.services.puzzles.catalog import PuzzleCatalog
from decode_daily.services.puzzles.container import DailyServices
from decode_daily.services.puzzles.events import EventHub
from decode_daily.services.puzzles.storage import MemoryKeyValueStore, SqlKeyValueStore


FIXED_NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    KEY_VALUE_BACKEND = 'sql'
    CATALOG_DIR = None
    COUNTDOWN_TICKS = 3
    TICK_INTERVAL_SEC = 1
    ANAGRAMS_DURATION_SEC = 60
    FLASHDANCE_DURATION_SEC = 30
    DECODE_MAX_ATTEMPTS = 7
    DECODE_NUM_PEGS = 5
    DECODE_NUM_COLORS = 6
    ANAGRAMS_WORDS_PER_SET = 10
    FLASHDANCE_EQUATIONS_PER_SET = 20
    ARCHIVE_FALLBACK_DAYS = 30
    STRICT_SCORE_INPUTS = True
    ENABLE_ROUND_TIMERS = False


class Clock:
    """Settable clock so tests can cross midnight."""

    def __init__(self, now=FIXED_NOW):
        self.now = now

    def __call__(self):
        return self.now


CODE_CATALOG = [
    {'id': '2026-10-16', 'date': '2026-10-16', 'peg1': 1, 'peg2': 2, 'peg3': 3, 'peg4': 4, 'peg5': 5},
    {'id': '2026-10-17', 'date': '2026-10-17', 'peg1': 6, 'peg2': 6, 'peg3': 1, 'peg4': 2, 'peg5': 3},
    {'id': '2026-10-18', 'date': '2026-10-18', 'peg1': 1, 'peg2': 1, 'peg3': 2, 'peg4': 2, 'peg5': 3},
]
EQUATION_CATALOG = [
    {'id': '2026-10-18', 'date': '2026-10-18', 'equations': [
        {'expression': '2 + 3', 'answer': 5},
        {'expression': '9 - 4', 'answer': 5},
        {'expression': '3 × 4', 'answer': 12},
    ]},
]
WORD_CATALOG = [
    {'id': '2026-10-18', 'date': '2026-10-18', 'words': ['cat', 'dog']},
]
MASTER_WORDS = ['APPLE', 'BRAVE', 'CLOUD', 'DRIVE', 'EAGLE', 'FLAME', 'GRAPE', 'HOUSE', 'IVORY', 'JELLY', 'LEMON', 'MAPLE']


def make_catalogs():
    return {
        'decode': PuzzleCatalog.load('decode', CODE_CATALOG),
        'flashdance': PuzzleCatalog.load('flashdance', EQUATION_CATALOG),
        'anagrams': PuzzleCatalog.load('anagrams', WORD_CATALOG),
    }


@pytest.fixture()
def clock():
    return Clock()


@pytest.fixture()
def rng():
    return random.Random(1234)


@pytest.fixture()
def kv_store():
    return MemoryKeyValueStore()


@pytest.fixture()
def hub():
    return EventHub()


@pytest.fixture()
def events(hub):
    received = []
    hub.subscribe(lambda name, payload: received.append((name, payload)))
    return received


@pytest.fixture()
def services(kv_store, hub, clock, rng):
    settings = {k: getattr(TestConfig, k) for k in dir(TestConfig) if k.isupper()}
    return DailyServices(
        kv_store, settings=settings, clock=clock, rng=rng,
        catalogs=make_catalogs(), master_words=MASTER_WORDS, hub=hub,
    ).init()


@pytest.fixture()
def flask_app(clock, rng):
    app_services = DailyServices(
        SqlKeyValueStore(),
        settings={k: getattr(TestConfig, k) for k in dir(TestConfig) if k.isupper()},
        clock=clock, rng=rng, catalogs=make_catalogs(), master_words=MASTER_WORDS,
    )
    application = create_app(TestConfig, services=app_services)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')
