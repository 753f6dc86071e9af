import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "default-secret")
    FLASK_ENV = os.getenv("FLASK_ENV", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    SITE_URL = os.getenv("SITE_URL", "https://theopenstudents.com")

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///openstudents.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    DB_CONNECT_ATTEMPTS = int(os.getenv("DB_CONNECT_ATTEMPTS", 3))
    DB_CONNECT_BASE_DELAY = float(os.getenv("DB_CONNECT_BASE_DELAY", 0.3))

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "jwt-secret")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=7)

    # Mail Configuration
    MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.zoho.com")
    MAIL_PORT = int(os.getenv("MAIL_PORT", 587))
    MAIL_USE_TLS = os.getenv("MAIL_USE_TLS", "True").lower() in ("true", "1", "yes")
    MAIL_USE_SSL = os.getenv("MAIL_USE_SSL", "False").lower() in ("true", "1", "yes")
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = (
        os.getenv("MAIL_SENDER_NAME", "The OPEN Students"),
        os.getenv("MAIL_SENDER_ADDRESS", "noreply@theopenstudents.com"),
    )
    MAIL_REPLY_TO = os.getenv("MAIL_REPLY_TO", "support@theopenstudents.com")

    # Payment Gateway
    PAYSTACK_SECRET_KEY = os.getenv("PAYSTACK_SECRET_KEY")
    PAYSTACK_PUBLIC_KEY = os.getenv("PAYSTACK_PUBLIC_KEY")
    PAYSTACK_BASE_URL = os.getenv("PAYSTACK_BASE_URL", "https://api.paystack.co")
    PAYSTACK_TIMEOUT = float(os.getenv("PAYSTACK_TIMEOUT", 10))

    # Seconds before admin settings are re-read from the database
    SETTINGS_CACHE_TTL = int(os.getenv("SETTINGS_CACHE_TTL", 60))


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "testing-jwt-secret-key-that-is-long-enough"
    PAYSTACK_SECRET_KEY = "sk_test_openstudents"
    MAIL_SUPPRESS_SEND = True
    DB_CONNECT_BASE_DELAY = 0
    SETTINGS_CACHE_TTL = 60


config_by_name = {
    "development": Config,
    "production": Config,
    "testing": TestingConfig,
}
