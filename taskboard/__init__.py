from flask import Flask
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from pymongo import MongoClient

from .config import Settings
from .errors import register_error_handlers
from .models.models import ensure_indexes
from .auth.auth import auth_bp
from .auth.session import register_token_callbacks
from .routes.task_routes import task_bp
from .routes.team_routes import team_bp
from .routes.notification_routes import notification_bp
from .cli import register_commands


def create_app(config=None, settings=None):
    settings = settings or Settings.from_env()

    app = Flask(__name__)
    app.config.update(settings.flask_config())
    if config:
        app.config.update(config)
    CORS(app)

    # JWT config
    jwt = JWTManager(app)
    register_token_callbacks(jwt)

    # MongoDB connection
    if app.config.get("DB") is None:
        client = MongoClient(settings.mongo_uri)
        app.config["DB"] = client[settings.mongo_db]
    ensure_indexes(app.config["DB"])

    register_error_handlers(app)

    # Register routes
    app.register_blueprint(auth_bp)
    app.register_blueprint(task_bp)
    app.register_blueprint(team_bp)
    app.register_blueprint(notification_bp)

    register_commands(app)
    return app
