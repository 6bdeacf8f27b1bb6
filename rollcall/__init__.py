import os
from datetime import timedelta
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate, upgrade
from dotenv import load_dotenv

# Load environment variables (override=True ensures .env values take precedence)
load_dotenv(override=True)

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()


def create_app(config_name=None):
    """Application factory pattern."""
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-me')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///dev.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Session configuration - 30 day persistent sessions
    app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(days=30)
    app.config['SESSION_COOKIE_SECURE'] = os.environ.get('RAILWAY_ENVIRONMENT') is not None  # HTTPS only in production
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'

    # Single admin account; a werkzeug hash takes precedence over the plain password
    app.config['ADMIN_EMAIL'] = os.environ.get('ADMIN_EMAIL', 'admin@example.com').strip().lower()
    app.config['ADMIN_PASSWORD'] = os.environ.get('ADMIN_PASSWORD')
    app.config['ADMIN_PASSWORD_HASH'] = os.environ.get('ADMIN_PASSWORD_HASH')

    # Remark generator (Gemini)
    app.config['GEMINI_API_KEY'] = os.environ.get('GEMINI_API_KEY')
    app.config['GEMINI_MODEL'] = os.environ.get('GEMINI_MODEL', 'gemini-2.5-flash')
    app.config['GROUP_NAME'] = os.environ.get('GROUP_NAME', 'Vakratunda')

    # Attendance snapshot window and resync interval
    app.config['SNAPSHOT_DAYS'] = int(os.environ.get('SNAPSHOT_DAYS', 30))
    app.config['SNAPSHOT_REFRESH_SECONDS'] = int(os.environ.get('SNAPSHOT_REFRESH_SECONDS', 30))

    if config_name == 'testing':
        app.config['TESTING'] = True
        app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite://'
        app.config['ADMIN_EMAIL'] = 'admin@example.com'
        app.config['ADMIN_PASSWORD'] = 'secret'
        app.config['ADMIN_PASSWORD_HASH'] = None
        app.config['GEMINI_API_KEY'] = None
        app.config['SNAPSHOT_REFRESH_SECONDS'] = 0

    # Fix for postgres:// vs postgresql:// (some providers use older postgres:// format)
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('postgres://'):
        app.config['SQLALCHEMY_DATABASE_URI'] = app.config['SQLALCHEMY_DATABASE_URI'].replace(
            'postgres://', 'postgresql://', 1
        )

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)

    # Register blueprints
    from rollcall.routes.main import main_bp
    from rollcall.routes.admin import admin_bp
    from rollcall.routes.api import api_bp
    app.register_blueprint(main_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(api_bp)

    # Import models so they're known to Flask-Migrate
    from rollcall import models

    if config_name == 'testing':
        with app.app_context():
            db.create_all()

    # Auto-run migrations in production (Railway)
    if os.environ.get('RAILWAY_ENVIRONMENT'):
        with app.app_context():
            upgrade()

    # Store adapter, identity provider and the live state container fed by both
    from rollcall.services.store import init_store
    from rollcall.services.identity import init_identity
    from rollcall.services.state import init_state
    store = init_store(app)
    identity = init_identity(app)
    init_state(app, store, identity)

    return app
