"""Runtime settings for the Cloud Monitoring reporter.

Values come from the environment (case-insensitive) or a local ``.env`` file.
Mapping fields such as ``GCM_LABELS`` are given as JSON objects.
"""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Target project; GOOGLE_CLOUD_PROJECT is the fallback used by gcloud tooling
    GCM_PROJECT: str = ""
    GOOGLE_CLOUD_PROJECT: str = ""

    GCM_INTERVAL_SECONDS: float = 60.0
    # Consecutive failed writes before the reporter stops itself
    GCM_MAX_CONSECUTIVE_ERRORS: int = 10
    GCM_METRIC_PREFIX: str = "custom.googleapis.com"

    # Identifies the sending machine, exported as the "source" label
    GCM_SOURCE: str = ""
    GCM_LABELS: dict[str, str] = {}

    GCM_RESOURCE_TYPE: str = "global"
    GCM_RESOURCE_LABELS: dict[str, str] = {}

    GCM_DECLARE_DESCRIPTORS: bool = True
    GCM_WRITE_TIMEOUT_SECONDS: Optional[float] = None

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def project(self) -> str:
        return self.GCM_PROJECT or self.GOOGLE_CLOUD_PROJECT


_settings_cache: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings_cache
    if _settings_cache is None:
        _settings_cache = Settings()
    return _settings_cache
