# juryportal/__init__.py

import os

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_jwt_extended import JWTManager
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from juryportal.errors import JuryError

# Extensions are created unbound and attached to each app in create_app()
db = SQLAlchemy()
migrate = Migrate()
limiter = Limiter(key_func=get_remote_address, default_limits=["10000/hour"])
jwt = JWTManager()


def _unauthorized(message):
    return jsonify({"status": "unauthorized", "message": message}), 401


@jwt.unauthorized_loader
def missing_token_callback(reason):
    return _unauthorized(reason)


@jwt.invalid_token_loader
def invalid_token_callback(reason):
    return _unauthorized(reason)


@jwt.revoked_token_loader
def revoked_token_callback(jwt_header, jwt_payload):
    # Raised when the embedded secret no longer matches the stored one
    return _unauthorized("Token has been superseded")


@jwt.token_in_blocklist_loader
def token_secret_rotated(jwt_header, jwt_payload):
    from juryportal.services import get_services
    return not get_services().tokens.claims_match(jwt_payload)


def create_app(test_config=None, credentials=None, records=None):
    """Build the Flask app.

    `credentials` and `records` let callers inject storage adapters; by
    default both are backed by the SQL database.
    """
    app = Flask(__name__)
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'change-me-in-production')
    app.config['JWT_SECRET_KEY'] = os.environ.get('JWT_SECRET_KEY', 'change-me-in-production-jury-jwt')
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = False  # tokens die only by secret rotation
    app.config['JWT_TOKEN_LOCATION'] = ['headers']
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///jury.sqlite')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['API_SECRET'] = os.environ.get('JURY_API_SECRET', '')
    app.config['ADMIN_PASSWORD'] = os.environ.get('JURY_ADMIN_PASSWORD', '')
    app.config['MAX_PIN_ATTEMPTS'] = int(os.environ.get('MAX_PIN_ATTEMPTS', '3'))
    app.config['RESET_UNLOCK_MINUTES'] = int(os.environ.get('RESET_UNLOCK_MINUTES', '20'))
    app.config['AUDIT_LOG_DIR'] = os.environ.get('AUDIT_LOG_DIR', 'logs')
    app.config['RATELIMIT_STORAGE_URI'] = os.environ.get('REDIS_URL', 'memory://')
    if test_config:
        app.config.update(test_config)

    # Fix proxy headers for HTTPS
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    jwt.init_app(app)

    # Ensure model modules are imported so SQLAlchemy metadata is populated
    from juryportal.database import models  # noqa: F401
    from juryportal.services import build_services
    from juryportal import routes

    with app.app_context():
        db.create_all()

    app.extensions['jury'] = build_services(app, credentials=credentials, records=records)
    app.register_blueprint(routes.bp)
    _register_error_handlers(app)
    return app


def _register_error_handlers(app):
    @app.errorhandler(JuryError)
    def handle_jury_error(err):
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(429)
    def handle_rate_limited(err):
        return jsonify({"status": "error", "message": "Too many requests"}), 429

    @app.errorhandler(404)
    def handle_unknown_route(err):
        return jsonify({"status": "error", "message": "Unknown endpoint"}), 404

    @app.errorhandler(Exception)
    def handle_unexpected(err):
        if isinstance(err, HTTPException):
            return jsonify({"status": "error", "message": err.description}), err.code
        app.logger.exception("Unhandled error")
        return jsonify({"status": "error", "message": "Internal server error"}), 500
