import logging

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from api import init_app as init_api
from config import Config
from models import db
from services.errors import EngineError


def handle_engine_error(exc: EngineError):
    if exc.status >= 500:
        current_app.logger.error(
            "%s on %s %s: %s", exc.code, request.method, request.path, exc.message
        )
    else:
        current_app.logger.info(
            "%s on %s %s: %s", exc.code, request.method, request.path, exc.message
        )
    return jsonify({"ok": False, "error": exc.code, "message": exc.message}), exc.status


def handle_http_error(exc: HTTPException):
    error = (exc.name or "error").lower().replace(" ", "_")
    return jsonify({"ok": False, "error": error, "message": exc.description}), exc.code


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object)

    level = app.config.get("LOG_LEVEL", "INFO")
    app.logger.setLevel(level)
    logging.getLogger("services").setLevel(level)

    db.init_app(app)
    init_api(app)

    app.register_error_handler(EngineError, handle_engine_error)
    app.register_error_handler(HTTPException, handle_http_error)

    @app.get("/health")
    def health():
        return jsonify({"ok": True, "data": {"status": "ok"}})

    return app
