# config.py
"""
Application configuration for the Schedule Upload service
All values are read from the environment once, with development defaults
"""

import json
import os


def _database_url(value):
    """Rewrite provider URLs into the SQLAlchemy driver form"""
    if value.startswith('postgres://'):
        return value.replace('postgres://', 'postgresql://', 1)
    if value.startswith('mysql://'):
        return value.replace('mysql://', 'mysql+pymysql://', 1)
    return value


def _json_env(name, default):
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        return default


class Config:
    """Base configuration"""
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-me')
    APP_ENV = os.environ.get('APP_ENV', os.environ.get('FLASK_ENV', 'production'))

    # Database configuration
    SQLALCHEMY_DATABASE_URI = _database_url(os.environ.get('DATABASE_URL', 'sqlite:///schedules.db'))
    SQLALCHEMY_BINDS = {
        'registry': _database_url(
            os.environ.get('REGISTRY_DATABASE_URL', os.environ.get('DATABASE_URL', 'sqlite:///schedules.db'))
        ),
    }
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # File upload configuration
    ALLOWED_EXTENSIONS = {'xlsx', 'xlsm'}
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024
    WORKBOOK_READ_TIMEOUT = float(os.environ.get('WORKBOOK_READ_TIMEOUT', 30))

    # Schedule API the save pipeline talks to.
    # Unset: this app's own /api operations, called in-process
    SCHEDULE_API_URL = os.environ.get('SCHEDULE_API_URL') or None
    VALIDATION_TIMEOUT = float(os.environ.get('VALIDATION_TIMEOUT', 30))
    DATE_CHECK_TIMEOUT = float(os.environ.get('DATE_CHECK_TIMEOUT', 15))
    SAVE_TIMEOUT = float(os.environ.get('SAVE_TIMEOUT', 30))

    HOLIDAY_COUNTRY = os.environ.get('HOLIDAY_COUNTRY', 'CO')

    # Area gate: {"Operaciones": "<werkzeug password hash>", ...}
    AREA_PASSWORD_HASHES = _json_env('AREA_PASSWORD_HASHES', {})

    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')


class TestConfig(Config):
    """Configuration used by the test suite"""
    TESTING = True
    APP_ENV = 'test'
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_BINDS = {'registry': 'sqlite://'}
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SCHEDULE_API_URL = 'http://schedule-api.test/api'
    AREA_PASSWORD_HASHES = {}
