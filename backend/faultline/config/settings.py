from __future__ import annotations

"""backend/faultline/config/settings.py

Application configuration using environment-driven settings.

This module centralizes:
- log level for the structured logger
- retry driver defaults (attempts, initial and maximum delay)
- HTTP demo server bind address and request limits
- failure simulation for the demo user store
"""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
  app_name: str = "faultline"
  environment: str = "development"

  # Logging: debug | info | warn | error (anything else means info)
  log_level: str = "info"

  # Retry driver defaults (seconds)
  retry_max_attempts: int = 5
  retry_initial_delay_seconds: float = 0.5
  retry_max_delay_seconds: float = 5.0

  # HTTP demo server
  api_host: str = "0.0.0.0"
  api_port: int = 8888
  max_body_bytes: int = 1 << 20

  # Probability that a user lookup fails with a temporary database error
  user_failure_rate: float = 0.0

  model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Return a cached Settings instance."""
  return Settings()
