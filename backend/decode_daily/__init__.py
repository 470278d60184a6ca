from flask import Flask, current_app
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

SERVICES_KEY = 'decode_daily'


def get_services(app=None):
    """The app's DailyServices, initialised on first use."""
    app = app or current_app._get_current_object()
    return app.extensions[SERVICES_KEY].init()


def _build_store(flask_app):
    from decode_daily.services.puzzles.storage import MemoryKeyValueStore, SqlKeyValueStore
    backend = (flask_app.config.get('KEY_VALUE_BACKEND') or 'sql').lower()
    if backend == 'memory':
        return MemoryKeyValueStore()
    if backend != 'sql':
        flask_app.logger.warning(f"[config] unknown KEY_VALUE_BACKEND={backend!r}, using sql")
    return SqlKeyValueStore()


def create_app(config_class=Config, services=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Ensure models are registered with the metadata before create_all/migrations
    from decode_daily import models  # noqa: F401

    if services is None:
        from decode_daily.services.puzzles.container import DailyServices
        services = DailyServices.from_config(flask_app.config, _build_store(flask_app))
    flask_app.extensions[SERVICES_KEY] = services

    from decode_daily.main import main
    flask_app.register_blueprint(main)

    from decode_daily.api.puzzles import puzzles
    flask_app.register_blueprint(puzzles, url_prefix='/api')

    from decode_daily.socketio_events import register_socketio_handlers, forward_events
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))
    services.hub.subscribe(forward_events)

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates every table, wiping stored progress and scores."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    @click.command('catalog-check')
    def catalog_check_command():
        """Loads the bundled catalogs and reports what was found."""
        from decode_daily.services.puzzles import dates
        from decode_daily.services.puzzles.catalog import default_catalog_dir, load_catalogs
        catalogs = load_catalogs(
            flask_app.config.get('CATALOG_DIR') or default_catalog_dir(),
            num_pegs=int(flask_app.config.get('DECODE_NUM_PEGS', 5)),
            num_colors=int(flask_app.config.get('DECODE_NUM_COLORS', 6)),
        )
        today = dates.today()
        failed = False
        for game_id, catalog in catalogs.items():
            earliest, latest = catalog.date_range(today, int(flask_app.config.get('ARCHIVE_FALLBACK_DAYS', 30)))
            line = f"{game_id}: {len(catalog)} entries, {dates.day_key(earliest)} .. {dates.day_key(latest)}"
            if catalog.load_error:
                failed = True
                line += f" (load error: {catalog.load_error})"
            click.echo(line)
        if failed:
            raise click.ClickException('one or more catalogs failed to load')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(catalog_check_command)

    from decode_daily.services.puzzles.timers import start_daily_check
    start_daily_check(flask_app)

    return flask_app
