"""
Configuration settings for the QAptain test engine.

All settings can be overridden via environment variables.
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


BROWSER_MODES = ("auto", "local", "serverless")
LLM_PROVIDERS = ("openai", "ollama", "none")


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Environment Configuration
    ENVIRONMENT: str = Field(default="development", description="Current environment")

    # API Configuration
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8080, description="API port")
    ENABLE_DOCS: bool = Field(default=True, description="Enable OpenAPI docs")
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="CORS allowed origins"
    )

    # Browser Session
    BROWSER_MODE: str = Field(
        default="auto",
        description="Launch strategy: auto (detect), local or serverless"
    )
    SERVERLESS_CHROMIUM_PATH: Optional[str] = Field(
        default=None,
        description="Packaged chromium binary for serverless environments"
    )
    SERVERLESS_HEADLESS: bool = Field(
        default=True,
        description="Headless flag used by the packaged serverless binary"
    )
    VIEWPORT_WIDTH: int = Field(default=1280, description="Browser viewport width")
    VIEWPORT_HEIGHT: int = Field(default=800, description="Browser viewport height")

    # Engine timeouts (milliseconds unless noted)
    NAVIGATION_TIMEOUT_MS: int = Field(default=60000, description="Page navigation timeout")
    SETTLE_TIMEOUT_MS: int = Field(default=5000, description="Best-effort network idle wait after clicks")
    ELEMENT_TIMEOUT_MS: int = Field(default=10000, description="Element visibility wait")
    ASSERT_TIMEOUT_MS: int = Field(default=5000, description="How long an assertion keeps polling")
    STEP_RETRIES: int = Field(default=1, description="Extra attempts for a fill, click or select that errors after its target was found")
    STEP_RETRY_DELAY_MS: int = Field(default=1000, description="Pause before retrying a step")
    WAIT_STEP_TIMEOUT_MS: int = Field(default=10000, description="Default 'wait for load' step timeout")
    SCREENSHOT_TIMEOUT_MS: int = Field(default=15000, description="Screenshot capture timeout")
    ORACLE_TIMEOUT_SECONDS: float = Field(default=45.0, description="Scenario oracle call timeout")
    ORACLE_RETRY_BACKOFF_SECONDS: float = Field(default=2.0, description="Pause before the single oracle retry")

    # Runner behaviour
    STOP_ON_STEP_FAILURE: bool = Field(
        default=False,
        description="Skip remaining steps of a scenario after the first failed step"
    )
    MAX_CONCURRENT_RUNS: int = Field(default=3, description="Max concurrent test runs")
    GOLDEN_SCENARIOS_PATH: Optional[str] = Field(
        default=None,
        description="JSON file of predefined scenarios that override generated steps"
    )

    # LLM provider
    LLM_PROVIDER: str = Field(default="openai", description="openai, ollama or none")
    LLM_MODEL_NAME: str = Field(default="gpt-4-turbo", description="Model name")
    LLM_BASE_URL: Optional[str] = Field(default=None, description="Base URL (Ollama or OpenAI-compatible)")
    LLM_TEMPERATURE: float = Field(default=0.7, description="Sampling temperature")
    LLM_MAX_TOKENS: int = Field(default=4000, description="Maximum tokens to generate")
    OPENAI_API_KEY: Optional[str] = Field(default=None, description="OpenAI API key")

    # Storage
    ARTIFACTS_PATH: str = Field(default="./data/artifacts", description="Artifacts storage path")
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./qaptain.db",
        description="SQLAlchemy async URL for saved scenarios"
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Log level")
    LOG_FORMAT: str = Field(default="json", description="Log format: json or text")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    def llm_config(self) -> dict:
        """Provider configuration consumed by the LLM provider factory."""
        return {
            "enabled": self.LLM_PROVIDER != "none",
            "provider": self.LLM_PROVIDER,
            "model_name": self.LLM_MODEL_NAME,
            "api_key": self.OPENAI_API_KEY,
            "base_url": self.LLM_BASE_URL,
            "temperature": self.LLM_TEMPERATURE,
            "max_tokens": self.LLM_MAX_TOKENS,
            "timeout": self.ORACLE_TIMEOUT_SECONDS,
        }


settings = Settings()


# Validation
def validate_settings(config: Optional[Settings] = None):
    """Validate critical settings on startup."""
    config = config or settings
    errors = []

    if config.BROWSER_MODE not in BROWSER_MODES:
        errors.append(
            f"BROWSER_MODE must be one of {', '.join(BROWSER_MODES)}, got '{config.BROWSER_MODE}'"
        )

    if config.LLM_PROVIDER not in LLM_PROVIDERS:
        errors.append(
            f"LLM_PROVIDER must be one of {', '.join(LLM_PROVIDERS)}, got '{config.LLM_PROVIDER}'"
        )
    elif config.LLM_PROVIDER == "openai" and not config.OPENAI_API_KEY:
        errors.append("LLM_PROVIDER is 'openai' but OPENAI_API_KEY is not set.")

    timeouts = {
        "NAVIGATION_TIMEOUT_MS": config.NAVIGATION_TIMEOUT_MS,
        "SETTLE_TIMEOUT_MS": config.SETTLE_TIMEOUT_MS,
        "ELEMENT_TIMEOUT_MS": config.ELEMENT_TIMEOUT_MS,
        "ASSERT_TIMEOUT_MS": config.ASSERT_TIMEOUT_MS,
        "WAIT_STEP_TIMEOUT_MS": config.WAIT_STEP_TIMEOUT_MS,
        "SCREENSHOT_TIMEOUT_MS": config.SCREENSHOT_TIMEOUT_MS,
        "ORACLE_TIMEOUT_SECONDS": config.ORACLE_TIMEOUT_SECONDS,
    }
    for name, value in timeouts.items():
        if value <= 0:
            errors.append(f"{name} must be positive")

    if config.STEP_RETRIES < 0 or config.STEP_RETRY_DELAY_MS < 0:
        errors.append("STEP_RETRIES and STEP_RETRY_DELAY_MS must not be negative")

    if config.MAX_CONCURRENT_RUNS < 1:
        errors.append("MAX_CONCURRENT_RUNS must be at least 1")

    if errors:
        raise ValueError("Configuration errors: " + "; ".join(errors))


# Secret patterns for redaction
SECRET_PATTERNS = [
    r"password",
    r"secret",
    r"token",
    r"api[_-]?key",
    r"auth",
    r"credential",
    r"bearer",
    r"jwt",
]
