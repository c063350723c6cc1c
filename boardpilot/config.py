from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
  model_config = SettingsConfigDict(env_file=".env", extra="ignore")

  database_url: str = "postgresql+asyncpg://boardpilot:boardpilot@db:5432/boardpilot"
  app_secret: str = "dev-secret-change-me"
  app_version: str = "v2026-10-19"
  build_sha: str = "dev"
  api_docs_enabled: bool = True
  log_level: str = "INFO"

  cors_origins: str = "http://localhost:5173,http://localhost:3000"
  cors_origin_regex: str = r"^http://(localhost|127\.0\.0\.1):(3000|5173)$"
  trusted_hosts: str = "localhost,127.0.0.1,0.0.0.0,api"

  default_board_name: str = "New Board"
  # 1 keeps batch acceptance sequential; raise only on storage that tolerates parallel writers.
  batch_concurrency: int = 1
  realtime_queue_size: int = 100

  def cors_origin_list(self) -> list[str]:
    return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

  def trusted_host_list(self) -> list[str]:
    return [h.strip() for h in self.trusted_hosts.split(",") if h.strip()]


settings = Settings()
