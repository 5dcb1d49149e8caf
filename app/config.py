import os

class BaseConfig:
    JSON_SORT_KEYS = False
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "*")
    SESSION_HEADER = "X-Session-ID"
    SESSION_IDLE_TIMEOUT_SEC = int(os.getenv("SESSION_IDLE_TIMEOUT_SEC", 3600))
    SESSION_MAX_ACTIVE = int(os.getenv("SESSION_MAX_ACTIVE", 10000))
    RATELIMIT_STORAGE_URL = os.getenv("RATELIMIT_STORAGE_URL", "memory://")
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "200 per hour")
    SIGNIN_LIMIT_PER_IP = os.getenv("SIGNIN_LIMIT_PER_IP", "10 per 30 minutes")
    RESET_LIMIT_PER_IP = os.getenv("RESET_LIMIT_PER_IP", "5 per 15 minutes")
    ORDER_LIMIT_PER_IP = os.getenv("ORDER_LIMIT_PER_IP", "20 per hour")
    JWT_SECRET = os.getenv("JWT_SECRET", "dev-insecure-jwt-key")
    RESET_TOKEN_LIFETIME_MIN = int(os.getenv("RESET_TOKEN_LIFETIME_MIN", 60))
    PASSWORD_RESET_URL = os.getenv("PASSWORD_RESET_URL", "http://localhost:8080/reset-password")
    MIN_PASSWORD_LENGTH = int(os.getenv("MIN_PASSWORD_LENGTH", 6))
    # Checkout pricing: free delivery strictly above the threshold
    FREE_DELIVERY_THRESHOLD = os.getenv("FREE_DELIVERY_THRESHOLD", "35.00")
    DELIVERY_FEE = os.getenv("DELIVERY_FEE", "4.99")
    ESTIMATED_DELIVERY_LABEL = os.getenv("ESTIMATED_DELIVERY_LABEL", "45-60 min")
    CART_MIRROR_EAGER = os.getenv("CART_MIRROR_EAGER", "0") == "1"
    OTEL_SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "freshmart-backend")
    OTEL_EXPORTER = os.getenv("OTEL_EXPORTER", "otlp")
    OTEL_EXPORTER_OTLP_ENDPOINT = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318/v1/traces")

class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-insecure-key")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///dev.db")
    CART_MIRROR_EAGER = os.getenv("CART_MIRROR_EAGER", "1") == "1"
    OTEL_EXPORTER = os.getenv("OTEL_EXPORTER", "console")

class TestingConfig(BaseConfig):
    TESTING = True
    SECRET_KEY = "test-key"
    JWT_SECRET = "test-jwt-key"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    CART_MIRROR_EAGER = True
    OTEL_EXPORTER = "none"
    RATELIMIT_DEFAULT = "10000 per hour"
    SIGNIN_LIMIT_PER_IP = "1000 per minute"
    RESET_LIMIT_PER_IP = "1000 per minute"
    ORDER_LIMIT_PER_IP = "1000 per minute"

class ProductionConfig(BaseConfig):
    DEBUG = False
    TESTING = False
    SECRET_KEY = os.getenv("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL")

    @staticmethod
    def validate():
        missing = []
        for key in ("SECRET_KEY", "DATABASE_URL", "JWT_SECRET"):
            if not os.getenv(key):
                missing.append(key)
        if missing:
            raise RuntimeError(
                f"Missing required env vars in production: {', '.join(missing)}"
            )

def get_config_class():
    env = os.getenv("APP_ENV", "development").lower()
    if env == "production":
        ProductionConfig.validate()
        return ProductionConfig
    if env == "testing":
        return TestingConfig
    return DevelopmentConfig
