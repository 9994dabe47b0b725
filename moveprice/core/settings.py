# moveprice/core/settings.py
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RULESET_PATH = (
    Path(__file__).resolve().parents[1] / "rules" / "rule_sets" / "v1.yaml"
)


class EngineSettings(BaseSettings):
    # --- Engine ---
    RULES_VERSION: str = "1.0.0"
    HASH_ALGORITHM: str = "sha256"
    DEFAULT_CALCULATED_BY: str = "system"

    # --- Rule sets ---
    RULESET_PATH: Path = DEFAULT_RULESET_PATH

    # --- Logging ---
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="MOVEPRICE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = EngineSettings()  # leest .env
