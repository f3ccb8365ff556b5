from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

from xword.services.event_log import EventLog  # noqa: E402
from xword.services.broadcast import SessionBroadcastManager  # noqa: E402

event_log = EventLog()
sessions = SessionBroadcastManager()


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS', [])

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    event_log.init_app(flask_app)
    sessions.init_app(flask_app, socketio, event_log)

    from xword.main import main
    flask_app.register_blueprint(main)

    from xword.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from xword.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the event log tables."""
        import xword.models  # noqa: F401
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            click.echo('Database has been reset!')

    @click.command('replay-game')
    @click.argument('gid')
    def replay_game_command(gid):
        """Rebuilds a game's state from its event log and prints a summary."""
        with flask_app.app_context():
            event_log.evict(gid)
            state = event_log.current_state(gid)
            game = state.get('game') or {}
            info = game.get('info') or {}
            click.echo(f"game {gid}: head={event_log.head(gid)} title={info.get('title')!r}")
            click.echo(f"  solved={game.get('solved', False)} started={state.get('started')}")
            for team_id, team in sorted(state['teams'].items()):
                click.echo(f"  team {team_id} {team.get('name')!r}: score={team.get('score')}")
            for user_id, user in sorted(state['users'].items()):
                click.echo(f"  user {user_id} {user.get('displayName')!r} team={user.get('teamId')} score={user.get('score')}")

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(replay_game_command)

    return flask_app
