import os
from dotenv import load_dotenv

load_dotenv()


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL")
    RESEND_API_KEY = os.getenv("RESEND_API_KEY")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Signed bearer tokens (seconds)
    TOKEN_MAX_AGE = int(os.getenv("TOKEN_MAX_AGE", 7 * 24 * 3600))
    RESET_TOKEN_MAX_AGE = 900

    # Planning defaults
    CREDITS_PER_SEMESTER = 15
    RECURRENCE_HORIZON_WEEKS = 16
    WORKLOAD_WEEKS = 8
    CLUSTER_HORIZON_DAYS = 30

    # Keep CREATE_DB False in production, use `flask db upgrade` instead
    CREATE_DB = False


class ProdConfig(BaseConfig):
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///royalplanner.db")
    # Heroku/old url fix
    if SQLALCHEMY_DATABASE_URI.startswith("postgres://"):
        SQLALCHEMY_DATABASE_URI = SQLALCHEMY_DATABASE_URI.replace(
            "postgres://", "postgresql://", 1
        )


class DevConfig(BaseConfig):
    DEBUG = True
    CREATE_DB = True
    LOG_LEVEL = "DEBUG"
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL") or "sqlite:///dev.db"


class TestConfig(BaseConfig):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    CREATE_DB = True
    RESEND_API_KEY = None
