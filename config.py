import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file)
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./app.db")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    API_RELOAD = bool(data.get("API_RELOAD", 0))
    API_WORKERS = int(data.get("API_WORKERS", 1))
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    ENABLE_LOGGING_MIDDLEWARE = bool(data.get("ENABLE_LOGGING_MIDDLEWARE", 1))
    JWT_SECRET = data.get("JWT_SECRET", "dev-secret-key-change-in-production")
    JWT_EXPIRE_MINUTES = int(data.get("JWT_EXPIRE_MINUTES", 60 * 24 * 30))
    ADMIN_API_KEY = data.get("ADMIN_API_KEY", "test-admin-key-12345")

    # Session lifecycle
    SESSION_TOKEN_HEADER = data.get("SESSION_TOKEN_HEADER", "X-Session-Token")
    SESSION_IDLE_TIMEOUT_MINUTES = int(data.get("SESSION_IDLE_TIMEOUT_MINUTES", 30))
    CONCURRENT_LOGIN_WINDOW_MINUTES = int(data.get("CONCURRENT_LOGIN_WINDOW_MINUTES", 5))
    SESSION_RETENTION_HOURS = int(data.get("SESSION_RETENTION_HOURS", 24))
    ONLINE_WINDOW_MINUTES = int(data.get("ONLINE_WINDOW_MINUTES", 5))

    # Rate limiting
    RATE_LIMIT_CONFIG_TTL_SECONDS = int(data.get("RATE_LIMIT_CONFIG_TTL_SECONDS", 30))
    MAINTENANCE_RETRY_AFTER_SECONDS = int(data.get("MAINTENANCE_RETRY_AFTER_SECONDS", 3600))

    # Startup / housekeeping
    AUTO_CREATE_TABLES = bool(data.get("AUTO_CREATE_TABLES", 1))
    MAINTENANCE_INTERVAL_MINUTES = int(data.get("MAINTENANCE_INTERVAL_MINUTES", 60))
