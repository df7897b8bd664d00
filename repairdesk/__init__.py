from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import logging
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def _enable_sqlite_foreign_keys(engine):
    @event.listens_for(engine, 'connect')
    def _fk_pragma(dbapi_connection, connection_record):  # type: ignore
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///dev.db')
    app.config['SYSTEM_ACTOR_ID'] = os.getenv('SYSTEM_ACTOR_ID', 'system')
    app.config['DELETE_PREVIEW_SAMPLE_SIZE'] = int(os.getenv('DELETE_PREVIEW_SAMPLE_SIZE', '5'))
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')
    app.config['SQLITE_FOREIGN_KEYS'] = os.getenv('SQLITE_FOREIGN_KEYS', '1') not in ('0', 'false', 'False')

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    level = getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO)
    logging.getLogger('repairdesk').setLevel(level)
    app.logger.setLevel(level)

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    if db_url.startswith('sqlite') and app.config['SQLITE_FOREIGN_KEYS']:
        _enable_sqlite_foreign_keys(db_engine)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    from .models.base import load_models
    load_models()

    jwt.init_app(app)

    from .routes.customers import customers_bp
    from .routes.tickets import tickets_bp
    from .routes.appointments import appointments_bp
    app.register_blueprint(customers_bp, url_prefix='/customers')
    app.register_blueprint(tickets_bp, url_prefix='/tickets')
    app.register_blueprint(appointments_bp, url_prefix='/appointments')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    from .errors import DomainError

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, DomainError):
            if e.status >= 500:
                app.logger.error('%s: %s', e.kind, e.detail)
            return {'error': e.to_dict()}, e.status
        if isinstance(e, HTTPException):
            payload = {
                'error': {
                    'status': e.code,
                    'title': e.name,
                    'detail': e.description,
                }
            }
            return payload, e.code
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return {
            'error': {
                'status': 500,
                'title': 'Internal Server Error',
                'detail': 'Unexpected error'
            }
        }, 500

    return app


def get_db():
    return SessionLocal()
