import os

# Folder holding this file; the default SQLite database lives next to it.
BASE_DIR = os.path.abspath(os.path.dirname(__file__))


class Config:
    # Signs API tokens; override in every real deployment
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-later")

    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL") or (
        "sqlite:///" + os.path.join(BASE_DIR, "app.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    TOKEN_TTL_HOURS = int(os.environ.get("TOKEN_TTL_HOURS", "12"))

    # 6 random bytes -> 12 hex characters
    INVITE_CODE_BYTES = int(os.environ.get("INVITE_CODE_BYTES", "6"))
    INVITE_CODE_MAX_ATTEMPTS = int(os.environ.get("INVITE_CODE_MAX_ATTEMPTS", "5"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key-with-enough-length"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_LEVEL = "DEBUG"
