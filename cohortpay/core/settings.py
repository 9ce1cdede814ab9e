import os

from dotenv import load_dotenv


def _getenv(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = _getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y", "on"}


def _getenv_float(name: str, default: float) -> float:
    raw = _getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        self.environment = (_getenv("ENVIRONMENT", "development") or "development").lower()
        self.database_url = _getenv("DATABASE_URL", "sqlite:///./cohortpay.db") or "sqlite:///./cohortpay.db"
        self.db_auto_create = _getenv_bool("DB_AUTO_CREATE", default=True)
        self.seed_demo_data = _getenv_bool("SEED_DEMO_DATA", default=(self.environment != "production"))
        self.log_level = (_getenv("LOG_LEVEL", "INFO") or "INFO").upper()
        self.cors_allow_origins = _getenv("CORS_ALLOW_ORIGINS")

        self.basic_auth_enabled = _getenv_bool(
            "BASIC_AUTH_ENABLED",
            default=(self.environment == "production"),
        )
        self.basic_auth_username = _getenv("BASIC_AUTH_USERNAME")
        self.basic_auth_password = _getenv("BASIC_AUTH_PASSWORD")

        self.payment_gateway_url = _getenv("PAYMENT_GATEWAY_URL")
        self.payment_gateway_api_key = _getenv("PAYMENT_GATEWAY_API_KEY")
        self.payment_gateway_timeout_s = _getenv_float("PAYMENT_GATEWAY_TIMEOUT_S", 30.0)
        self.payment_simulated_failure_rate = _getenv_float("PAYMENT_SIMULATED_FAILURE_RATE", 0.0)
        self.emi_interest_rate = _getenv_float("EMI_INTEREST_RATE", 0.05)

    def resolved_cors_origins(self) -> list[str]:
        raw = self.cors_allow_origins
        if raw is None:
            return ["http://localhost:5173", "http://localhost:8080"]
        if raw.strip() == "*":
            return ["*"]
        origins = [o.strip() for o in raw.split(",") if o.strip()]
        return origins


load_dotenv()
settings = Settings()
