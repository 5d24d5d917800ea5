from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml

from greenbook.exceptions import ConfigError


class AppSettings(BaseSettings):
    name: str = "GreenBook AAR"
    version: str = "1.0.0"


class PathSettings(BaseSettings):
    data_file: Path = Path("./data/sample_snapshot.yaml")
    policy_file: Optional[Path] = None  # falls back to the built-in hierarchy table


class AccessSettings(BaseSettings):
    """
    Identity rules for the access resolver.
    Global access requires BOTH the admin role and the reserved username.
    """
    system_admin_username: str = "admin"
    admin_role: str = "admin"
    commander_role: str = "Commander"
    allow_lateral_peers: bool = True  # peers under the same parent unit are visible


class AnalysisSettings(BaseSettings):
    min_aars: int = 3
    min_bucket_items: int = 3
    max_insights: int = 3
    max_phrases: int = 3
    max_recommendation_phrases: int = 2
    phrase_min_length: int = 10
    phrase_max_length: int = 100
    # Recommendation priority historically divides a category's count by itself.
    # Flip to score against the whole bucket instead.
    priority_uses_bucket_total: bool = False


class ThresholdSettings(BaseSettings):
    severity_high: float = 0.7
    severity_medium: float = 0.3
    impact_high: float = 0.5
    impact_medium: float = 0.2
    priority_high: float = 0.6
    priority_medium: float = 0.3


class AISettings(BaseSettings):
    enabled: bool = False
    provider: str = "offline"  # offline|http
    base_url: Optional[str] = None  # used when provider=http
    api_key: Optional[str] = None
    model: str = "gpt-4o"
    max_tokens: int = 1500
    cache_ttl_minutes: int = 60
    temperature: float = 0.4


class LoggingSettings(BaseSettings):
    log_requests: bool = True
    level: str = "INFO"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GREENBOOK_", env_nested_delimiter="__", env_file=".env", extra="ignore"
    )
    app: AppSettings = AppSettings()
    paths: PathSettings = PathSettings()
    access: AccessSettings = AccessSettings()
    analysis: AnalysisSettings = AnalysisSettings()
    thresholds: ThresholdSettings = ThresholdSettings()
    ai: AISettings = AISettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        # Load from default path if exists
        default_path = Path("config/settings.yaml")
        path = config_path or (default_path if default_path.exists() else None)

        if not path:
            return cls()

        try:
            with open(path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Cannot read settings file {path}: {exc}") from exc

        if not isinstance(config_data, dict):
            raise ConfigError(f"Settings file {path} must contain a mapping")
        return cls(**config_data)


settings = Settings.load()
