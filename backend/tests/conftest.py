import os
import sys
import pytest

# Ensure the backend root (containing the `xword` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from xword import create_app, db, event_log, sessions, socketio


class TestConfig:
    __test__ = False
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = []
    # Small chunks so replay paging is exercised
    REPLAY_CHUNK_SIZE = 2
    ECHO_TO_PROPOSER = True
    LOG_LEVEL = 'DEBUG'


class FakeClock:
    """Millisecond clock that advances one second per reading."""

    def __init__(self, start=1_000_000):
        self.now = start

    def __call__(self):
        self.now += 1000
        return self.now


CATS_PUZZLE = {
    'info': {'title': 'Cats', 'author': 'Tester', 'copyright': '', 'description': 'A tiny grid'},
    'solution': [['C', 'A'], ['T', 'S']],
    'clues': {'across': ['Feline start', 'Plural marker'], 'down': ['Feline pet', 'Lowercase a, s']},
    'circles': ['0', 'not-a-cell'],
}


def create_event(puzzle=None, pid='p1'):
    return {'type': 'create', 'params': {'pid': pid, 'version': 1.0, 'game': puzzle or CATS_PUZZLE}}


def join_events(user_id='u1', team_id='t1', name='Alice'):
    """Events that register a team (if needed) and put a user on it."""
    return [
        {'type': 'updateTeamName', 'params': {'teamId': team_id, 'teamName': f'Team {team_id}'}},
        {'type': 'updateDisplayName', 'params': {'id': user_id, 'displayName': name}},
        {'type': 'updateTeamId', 'params': {'id': user_id, 'teamId': team_id}},
    ]


@pytest.fixture()
def clock():
    original = event_log.clock
    fake = FakeClock()
    event_log.clock = fake
    yield fake
    event_log.clock = original


@pytest.fixture()
def flask_app(clock):
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import xword.models  # noqa: F401
        db.create_all()
        yield application
        sessions.close()
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
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def cats_game(flask_app):
    """A created CATS game with u1 on team t1; returns its gid."""
    gid = 'cats'
    event_log.propose(gid, create_event())
    for event in join_events():
        event_log.propose(gid, event)
    return gid
