"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')

    # Session: open forms live in the signed session cookie
    SESSION_COOKIE_SECURE = os.getenv('SESSION_COOKIE_SECURE', 'false').lower() == 'true'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv('SESSION_COOKIE_SAMESITE', 'Lax')
    PERMANENT_SESSION_LIFETIME = 86400  # 24 hours

    # Inventory backend (catalog, ledgers, invoice storage)
    BACKEND_API_URL = os.getenv('BACKEND_API_URL', 'http://localhost:8000')
    BACKEND_API_TOKEN = os.getenv('BACKEND_API_TOKEN')
    BACKEND_TIMEOUT = float(os.getenv('BACKEND_TIMEOUT', '10'))  # seconds

    # Redis Cache
    REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    CACHE_ENABLED = os.getenv('CACHE_ENABLED', 'true').lower() == 'true'
    CACHE_DEFAULT_TTL = int(os.getenv('CACHE_DEFAULT_TTL', '60'))
    CACHE_CATALOG_TTL = int(os.getenv('CACHE_CATALOG_TTL', '60'))
    CACHE_KEY_PREFIX = os.getenv('CACHE_KEY_PREFIX', 'tradedesk')


class TestingConfig(Config):
    """Configuration for the test suite: no Redis, no CSRF, fake backend URL."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    WTF_CSRF_ENABLED = False
    CACHE_ENABLED = False
    BACKEND_API_URL = 'http://backend.test'
    BACKEND_API_TOKEN = 'test-token'
