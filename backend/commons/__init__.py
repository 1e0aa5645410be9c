import random

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

allowed_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One game session per process, owned by the coordinator
    from commons.coordinator import EXTENSION_KEY, GameCoordinator
    from commons.services.games.scheduler import build_task_runner
    from commons.transport import SocketIOTransport

    coordinator = GameCoordinator(
        SocketIOTransport(socketio),
        run_task=build_task_runner(flask_app),
        sleep=socketio.sleep,
        rng=random.Random(flask_app.config.get('RANDOM_SEED')),
        coin_delay=float(flask_app.config.get('COIN_FLIP_DELAY_SEC', 4.0)),
        logger=flask_app.logger,
    )
    flask_app.extensions[EXTENSION_KEY] = coordinator

    from commons.main import main
    flask_app.register_blueprint(main)

    from commons.api.session import session_api
    flask_app.register_blueprint(session_api, url_prefix='/api/session')

    # Importing here ensures the handlers bind to the initialized socketio instance
    from commons.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    return flask_app
