import os
import sys
import pytest

# Ensure the backend root (containing the `versequest` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from versequest import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Tests drive the clock through the tick route
    TIMER_AUTO_TICK = False
    BCRYPT_LOG_ROUNDS = 4
    ADMIN_KEY = 'test-admin'
    LEADERBOARD_POLL_SEC = 0
    GAME_SEED = 7


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import versequest.models  # noqa: F401
        db.create_all()
        yield application
        application.extensions['versequest.leaderboard'].close()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def leaderboard(flask_app):
    return flask_app.extensions['versequest.leaderboard']


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
