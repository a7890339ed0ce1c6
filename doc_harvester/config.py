"""YAML config loader with environment overrides for secrets."""

import os
from dataclasses import dataclass, field
from typing import List

import yaml
from dotenv import load_dotenv


@dataclass
class DownloadConfig:
    batch_size: int = 25
    max_concurrent_batches: int = 2
    attempts_per_strategy: int = 2
    timeout: float = 45.0
    slow_timeout: float = 90.0
    connect_timeout: float = 30.0
    retry_delay: float = 1.0
    timeout_delay: float = 2.0
    strategy_pause: float = 0.5
    max_file_size: int = 100 * 1024 * 1024
    max_documents: int = 500
    government_markers: List[str] = field(default_factory=lambda: ["publicaccess", "hillsclerk"])


@dataclass
class DriveConfig:
    folder_id: str = ""
    service_account_key: str = ""
    portal_pattern: str = "meetings.boardbook.org/public/organization"
    page_size: int = 100


@dataclass
class ExtractionConfig:
    api_key: str = ""
    base_url: str = "https://api.skop.dev"
    timeout: float = 30.0
    poll_interval: float = 8.0
    max_wait: float = 600.0
    prompt: str = "Extract all public meeting documents."


@dataclass
class ArchiveConfig:
    drive_prefix: str = "Google_Drive"
    compression_level: int = 6


@dataclass
class ApiConfig:
    token: str = ""
    rate_limit: str = "10/minute"


@dataclass
class AppConfig:
    log_dir: str = "logs"
    download: DownloadConfig = field(default_factory=DownloadConfig)
    drive: DriveConfig = field(default_factory=DriveConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    api: ApiConfig = field(default_factory=ApiConfig)


def _section(cls, raw: dict):
    return cls(**{k: v for k, v in (raw or {}).items() if k in cls.__dataclass_fields__})


def load_config(config_path: str = "config.yaml") -> AppConfig:
    """Load config from *config_path*; a missing file yields the defaults.

    Secrets are never read from YAML when the matching environment variable
    is set.
    """
    load_dotenv()

    raw: dict = {}
    if config_path and os.path.exists(config_path):
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

    config = AppConfig(
        log_dir=raw.get("log_dir", "logs"),
        download=_section(DownloadConfig, raw.get("download")),
        drive=_section(DriveConfig, raw.get("drive")),
        extraction=_section(ExtractionConfig, raw.get("extraction")),
        archive=_section(ArchiveConfig, raw.get("archive")),
        api=_section(ApiConfig, raw.get("api")),
    )

    config.drive.service_account_key = os.environ.get(
        "GOOGLE_SERVICE_ACCOUNT_KEY", config.drive.service_account_key)
    config.drive.folder_id = os.environ.get(
        "GOOGLE_DRIVE_FALLBACK_FOLDER_ID", config.drive.folder_id)
    config.extraction.api_key = os.environ.get("EXTRACTION_API_KEY", config.extraction.api_key)
    config.api.token = os.environ.get("HARVEST_API_TOKEN", config.api.token)
    return config
