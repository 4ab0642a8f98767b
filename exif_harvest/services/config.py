from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseSettings):
	"""Runtime configuration, overridable through ``EXIF_HARVEST_*`` env vars."""

	catalog_url: str = Field(default="https://s3.amazonaws.com/waldo-recruiting", description="S3 bucket listing URL")
	blob_base_url: Optional[str] = Field(default=None, description="Base URL for objects; defaults to catalog_url")
	image_store: Path = Field(default=Path("./images"), description="Local blob directory")
	workers: int = Field(default=10, ge=1, description="Concurrent fetch/extract tasks")
	redis_url: str = Field(default="redis://localhost:6379/0")
	key_prefix: str = Field(default="i:")
	request_timeout: float = Field(default=30.0, gt=0)
	fail_fast: bool = Field(default=False, description="Abort the run on parse or store write failures")
	status_dir: Path = Field(default=Path("./jobs"))
	log_level: str = Field(default="INFO")

	model_config = SettingsConfigDict(env_prefix="EXIF_HARVEST_")

	@property
	def object_base_url(self) -> str:
		return (self.blob_base_url or self.catalog_url).rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
	return Settings()


def configure_logging(level: str = "INFO") -> None:
	logging.basicConfig(format=LOG_FORMAT, level=getattr(logging, level.upper(), logging.INFO))
