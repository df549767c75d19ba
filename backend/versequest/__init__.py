from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
import hashlib
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
migrate = Migrate()
allowed_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def _prehash(secret):
    # bcrypt only reads the first 72 bytes
    return hashlib.sha256(secret.encode('utf-8')).hexdigest()


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # An empty content bank must fail here, never mid-game
    from versequest.engine.content import default_bank
    counts = default_bank().validate()
    flask_app.logger.info(f"[content] items per level type: {counts}")

    from versequest.services.store import SqlLeaderboardStore
    from versequest.services.leaderboard import LeaderboardSync
    admin_key_hash = bcrypt.generate_password_hash(_prehash(flask_app.config['ADMIN_KEY'])).decode('utf-8')
    flask_app.extensions['versequest.leaderboard'] = LeaderboardSync(
        SqlLeaderboardStore(flask_app),
        spawn=None if flask_app.config.get('TESTING') else socketio.start_background_task,
        poll_interval=float(flask_app.config.get('LEADERBOARD_POLL_SEC', 5)),
        limit=int(flask_app.config.get('LEADERBOARD_LIMIT', 100)),
        check_admin_key=lambda key: bcrypt.check_password_hash(admin_key_hash, _prehash(key)),
        hash_code=lambda code: bcrypt.generate_password_hash(code).decode('utf-8'),
    )

    from versequest.main import main
    flask_app.register_blueprint(main)

    from versequest.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    from versequest.api.leaderboard import leaderboard
    flask_app.register_blueprint(leaderboard, url_prefix='/api/leaderboard')

    from versequest.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('leaderboard-reset')
    def leaderboard_reset_command():
        """Deletes every leaderboard entry and bumps the snapshot version."""
        import versequest.models  # noqa: F401
        with flask_app.app_context():
            db.create_all()
            sync = flask_app.extensions['versequest.leaderboard']
            deleted, version = sync.store.delete_all()
            sync.refresh()
            print(f'Leaderboard has been reset! deleted={deleted} version={version}')

    flask_app.cli.add_command(leaderboard_reset_command)

    return flask_app
