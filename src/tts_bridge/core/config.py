"""
Configuration Management for tts-bridge.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Dataclass-based configuration objects
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages
    - Incremental updates, including the flat key names used by
      host configuration admins (isCloudAccount, hostname, apiKey, ...)

Configuration Hierarchy (highest priority first):
    1. Environment variables (TTS_BRIDGE_BACKEND, TTS_BRIDGE_API_KEY, ...)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    backend:
      kind: server
      scheme: http
      hostname: localhost
      port: 5002

    cache:
      base_dir: ./cache
      purge_on_update: false

    chunking:
      max_chars: 500
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import copy
import os
import re
import yaml


class ConfigValidationError(Exception):
    """
    Raised when configuration validation fails.

    This exception is thrown when a configuration value is outside
    acceptable bounds, of the wrong type, or when a backend cannot be
    built from the configuration (e.g. cloud without an API key).
    """
    pass


BACKEND_CLOUD = "cloud"
BACKEND_SERVER = "server"
BACKEND_KINDS = (BACKEND_CLOUD, BACKEND_SERVER)


class Defaults:
    """
    Centralized default configuration values.

    Sections:
        - Backend: Remote synthesis service and HTTP limits
        - Cache: Content-addressed disk cache
        - Chunking: Sentence-boundary text splitting
        - Synthesis: Per-request chunk scheduling
        - Logging: Log level and formatting
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Backend Settings
    # ─────────────────────────────────────────────────────────────────────────
    BACKEND_KIND = BACKEND_CLOUD
    BACKEND_SCHEME = "http"
    CLOUD_BASE_URL = "https://app.coqui.ai"
    CLOUD_SAMPLE_NAME = "Created by tts-bridge"
    CLOUD_PAGE_SIZE = 100               # Speakers per listing page
    CLOUD_MAX_PAGES = 10                # First page + 9 additional
    CONNECT_TIMEOUT_S = 10.0
    READ_TIMEOUT_S = 60.0
    MAX_DOWNLOAD_BYTES = 20000 * 1024   # ~20 MB per audio download

    # ─────────────────────────────────────────────────────────────────────────
    # Cache Settings (disk)
    # ─────────────────────────────────────────────────────────────────────────
    CACHE_BASE_DIR = "./cache"
    CACHE_PURGE_ON_UPDATE = False

    # ─────────────────────────────────────────────────────────────────────────
    # Text Chunking
    # ─────────────────────────────────────────────────────────────────────────
    CHUNKING_MAX_CHARS = 500
    # Split after . or ? followed by whitespace, but not after "e.g."-style
    # initials or "Mr."/"Dr."-style titles.
    CHUNKING_BOUNDARY_PATTERN = r"(?<!\w\.\w.)(?<![A-Z][a-z]\.)(?<=[.?])\s+"
    CHUNKING_ABBREVIATIONS: Tuple[str, ...] = ("Mrs.", "Ms.", "Jr.", "Sr.", "St.", "vs.")

    # ─────────────────────────────────────────────────────────────────────────
    # Synthesis
    # ─────────────────────────────────────────────────────────────────────────
    SYNTHESIS_MAX_WORKERS = 1           # 1 = strictly sequential chunks

    # ─────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────
    LOGGING_TEXT_PREVIEW_CHARS = 80
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG


@dataclass
class BackendConfig:
    """
    Remote synthesis backend configuration.

    ``kind`` selects the backend variant once, at configuration time:
    "cloud" for the hosted multi-step API, "server" for a self-hosted
    single-step TTS server reachable at scheme://hostname:port.
    """
    kind: str = Defaults.BACKEND_KIND
    scheme: str = Defaults.BACKEND_SCHEME
    hostname: Optional[str] = None
    port: Optional[int] = None
    api_key: Optional[str] = None
    base_url: str = Defaults.CLOUD_BASE_URL
    sample_name: str = Defaults.CLOUD_SAMPLE_NAME
    page_size: int = Defaults.CLOUD_PAGE_SIZE
    max_pages: int = Defaults.CLOUD_MAX_PAGES
    connect_timeout_s: float = Defaults.CONNECT_TIMEOUT_S
    read_timeout_s: float = Defaults.READ_TIMEOUT_S
    max_download_bytes: int = Defaults.MAX_DOWNLOAD_BYTES

    def fingerprint(self) -> str:
        """
        Stable description of the settings that change synthesized audio.

        Used as cache-key component and written to cache sidecar files.
        """
        if self.kind == BACKEND_CLOUD:
            return f"cloud={self.base_url}"
        return f"hostname={self.hostname},port={self.port}"


@dataclass
class CacheConfig:
    """
    Disk cache configuration.

    Synthesized audio is stored under base_dir, addressed by a hash of
    backend fingerprint, voice and text. There is no eviction; the whole
    directory is purged on configuration updates when purge_on_update is set.
    """
    base_dir: str = Defaults.CACHE_BASE_DIR
    purge_on_update: bool = Defaults.CACHE_PURGE_ON_UPDATE


@dataclass
class ChunkingConfig:
    """
    Text chunking configuration.

    max_chars is the backend's hard text limit. boundary_pattern and
    abbreviations define where sentences end.
    """
    max_chars: int = Defaults.CHUNKING_MAX_CHARS
    boundary_pattern: str = Defaults.CHUNKING_BOUNDARY_PATTERN
    abbreviations: Tuple[str, ...] = Defaults.CHUNKING_ABBREVIATIONS


@dataclass
class SynthesisConfig:
    """Chunk scheduling: max_workers > 1 fans chunks out to a thread pool."""
    max_workers: int = Defaults.SYNTHESIS_MAX_WORKERS


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL: Startup, shutdown, critical errors only
        2 = NORMAL: Request lifecycle, cache status (default)
        3 = VERBOSE: Per-stage timing, detailed flow
        4 = DEBUG: Internal state, full tracing
    """
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS
    level: int = Defaults.LOGGING_LEVEL


@dataclass
class ServiceConfig:
    """
    Validated configuration for SynthesisService.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = ServiceConfig.from_settings(settings)
        print(config.chunking.max_chars)
    """
    backend: BackendConfig = field(default_factory=BackendConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    synthesis: SynthesisConfig = field(default_factory=SynthesisConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ServiceConfig":
        """
        Create ServiceConfig from Settings with validation.

        Args:
            settings: Raw Settings object loaded from YAML.

        Returns:
            Validated ServiceConfig instance.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        # ─────────────────────────────────────────────────────────────────────
        # Backend configuration
        # ─────────────────────────────────────────────────────────────────────
        backend_raw = raw.get("backend", {}) or {}
        port_raw = backend_raw.get("port")
        try:
            port = int(port_raw) if port_raw not in (None, "") else None
        except (TypeError, ValueError):
            raise ConfigValidationError(f"backend.port must be an integer, got {port_raw!r}")

        backend = BackendConfig(
            kind=str(backend_raw.get("kind", Defaults.BACKEND_KIND)).strip().lower(),
            scheme=str(backend_raw.get("scheme", Defaults.BACKEND_SCHEME)).strip().lower(),
            hostname=backend_raw.get("hostname") or None,
            port=port,
            api_key=backend_raw.get("api_key") or None,
            base_url=str(backend_raw.get("base_url", Defaults.CLOUD_BASE_URL)).rstrip("/"),
            sample_name=str(backend_raw.get("sample_name", Defaults.CLOUD_SAMPLE_NAME)),
            page_size=_as_int("backend.page_size", backend_raw.get("page_size", Defaults.CLOUD_PAGE_SIZE)),
            max_pages=_as_int("backend.max_pages", backend_raw.get("max_pages", Defaults.CLOUD_MAX_PAGES)),
            connect_timeout_s=_as_float("backend.connect_timeout_s", backend_raw.get("connect_timeout_s", Defaults.CONNECT_TIMEOUT_S)),
            read_timeout_s=_as_float("backend.read_timeout_s", backend_raw.get("read_timeout_s", Defaults.READ_TIMEOUT_S)),
            max_download_bytes=_as_int("backend.max_download_bytes", backend_raw.get("max_download_bytes", Defaults.MAX_DOWNLOAD_BYTES)),
        )
        if backend.kind not in BACKEND_KINDS:
            raise ConfigValidationError(
                f"backend.kind must be one of {', '.join(BACKEND_KINDS)}, got {backend.kind!r}"
            )
        if backend.scheme not in ("http", "https"):
            raise ConfigValidationError(f"backend.scheme must be http or https, got {backend.scheme!r}")
        if backend.port is not None:
            cls._validate_range("backend.port", backend.port, 1, 65535)
        cls._validate_positive("backend.page_size", backend.page_size)
        cls._validate_positive("backend.max_pages", backend.max_pages)
        cls._validate_positive("backend.connect_timeout_s", backend.connect_timeout_s)
        cls._validate_positive("backend.read_timeout_s", backend.read_timeout_s)
        cls._validate_positive("backend.max_download_bytes", backend.max_download_bytes)

        # ─────────────────────────────────────────────────────────────────────
        # Cache configuration
        # ─────────────────────────────────────────────────────────────────────
        cache_raw = raw.get("cache", {}) or {}
        cache = CacheConfig(
            base_dir=str(cache_raw.get("base_dir", Defaults.CACHE_BASE_DIR)),
            purge_on_update=_as_bool(cache_raw.get("purge_on_update", Defaults.CACHE_PURGE_ON_UPDATE)),
        )

        # ─────────────────────────────────────────────────────────────────────
        # Chunking configuration
        # ─────────────────────────────────────────────────────────────────────
        chunking_raw = raw.get("chunking", {}) or {}
        abbreviations = chunking_raw.get("abbreviations", Defaults.CHUNKING_ABBREVIATIONS)
        chunking = ChunkingConfig(
            max_chars=_as_int("chunking.max_chars", chunking_raw.get("max_chars", Defaults.CHUNKING_MAX_CHARS)),
            boundary_pattern=str(chunking_raw.get("boundary_pattern", Defaults.CHUNKING_BOUNDARY_PATTERN)),
            abbreviations=tuple(str(a) for a in (abbreviations or ())),
        )
        cls._validate_positive("chunking.max_chars", chunking.max_chars)
        try:
            re.compile(chunking.boundary_pattern)
        except re.error as e:
            raise ConfigValidationError(f"chunking.boundary_pattern is not a valid regex: {e}")

        # ─────────────────────────────────────────────────────────────────────
        # Synthesis configuration
        # ─────────────────────────────────────────────────────────────────────
        synthesis_raw = raw.get("synthesis", {}) or {}
        synthesis = SynthesisConfig(
            max_workers=_as_int("synthesis.max_workers", synthesis_raw.get("max_workers", Defaults.SYNTHESIS_MAX_WORKERS)),
        )
        cls._validate_positive("synthesis.max_workers", synthesis.max_workers)

        # ─────────────────────────────────────────────────────────────────────
        # Logging configuration
        # ─────────────────────────────────────────────────────────────────────
        logging_raw = raw.get("logging", {}) or {}
        log_level_raw = logging_raw.get("level", Defaults.LOGGING_LEVEL)

        # Handle string log levels (e.g., "INFO", "DEBUG")
        if isinstance(log_level_raw, str):
            level_map = {
                "MINIMAL": 1, "1": 1,
                "NORMAL": 2, "INFO": 2, "2": 2,
                "VERBOSE": 3, "3": 3,
                "DEBUG": 4, "TRACE": 4, "4": 4,
            }
            log_level = level_map.get(log_level_raw.upper(), Defaults.LOGGING_LEVEL)
        else:
            log_level = _as_int("logging.level", log_level_raw)

        logging_cfg = LoggingConfig(
            text_preview_chars=_as_int("logging.text_preview_chars", logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS)),
            level=log_level,
        )
        cls._validate_non_negative("logging.text_preview_chars", logging_cfg.text_preview_chars)
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)

        return cls(
            backend=backend,
            cache=cache,
            chunking=chunking,
            synthesis=synthesis,
            logging=logging_cfg,
        )

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        """Validate that a value is positive (> 0)."""
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        """Validate that a value is non-negative (>= 0)."""
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        """Validate that a value is within a range [min_val, max_val]."""
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")


def _as_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigValidationError(f"{name} must be an integer, got {value!r}")


def _as_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigValidationError(f"{name} must be a number, got {value!r}")


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


# Flat keys pushed by host configuration admins -> (section, key)
_FLAT_KEYS: Dict[str, Tuple[str, str]] = {
    "scheme": ("backend", "scheme"),
    "hostname": ("backend", "hostname"),
    "port": ("backend", "port"),
    "apiKey": ("backend", "api_key"),
    "purgeCache": ("cache", "purge_on_update"),
}


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation. Use
    get_service_config() to get a validated ServiceConfig.

    Attributes:
        raw: Dictionary of raw configuration values.
    """
    raw: Dict[str, Any]

    @property
    def backend_kind(self) -> str:
        """Get the configured backend kind (cloud/server)."""
        return str((self.raw.get("backend", {}) or {}).get("kind", Defaults.BACKEND_KIND))

    @property
    def cache_dir(self) -> str:
        """Get the cache directory."""
        return str((self.raw.get("cache", {}) or {}).get("base_dir", Defaults.CACHE_BASE_DIR))

    def merged(self, updates: Dict[str, Any]) -> "Settings":
        """
        Return new Settings with ``updates`` applied on top of these.

        Nested sections are merged key by key. Flat keys as sent by a host
        configuration admin are also understood:
            isCloudAccount -> backend.kind, hostname/port/scheme/apiKey ->
            backend.*, purgeCache -> cache.purge_on_update

        Args:
            updates: Partial configuration.

        Returns:
            A new Settings instance; this one is left untouched.
        """
        raw = copy.deepcopy(self.raw)
        for key, value in (updates or {}).items():
            if value is None:
                continue
            if isinstance(value, dict):
                section = raw.setdefault(key, {})
                if not isinstance(section, dict):
                    section = raw[key] = {}
                section.update(value)
            elif key == "isCloudAccount":
                raw.setdefault("backend", {})["kind"] = BACKEND_CLOUD if _as_bool(value) else BACKEND_SERVER
            elif key in _FLAT_KEYS:
                section, name = _FLAT_KEYS[key]
                raw.setdefault(section, {})[name] = value
            else:
                raw[key] = value
        return Settings(raw=raw)

    def get_service_config(self) -> ServiceConfig:
        """
        Get validated ServiceConfig from these settings.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return ServiceConfig.from_settings(self)


def load_settings(path: str = "config/settings.yaml", missing_ok: bool = False) -> Settings:
    """
    Load settings from a YAML configuration file.

    Environment variable overrides:
        - TTS_BRIDGE_BACKEND: Override backend.kind
        - TTS_BRIDGE_API_KEY: Override backend.api_key
        - TTS_BRIDGE_CACHE_DIR: Override cache.base_dir

    Args:
        path: Path to the YAML configuration file.
        missing_ok: Start from an empty configuration (defaults plus
            environment) instead of raising when the file is absent.

    Returns:
        Settings object with loaded configuration.

    Raises:
        FileNotFoundError: If the settings file doesn't exist.
    """
    p = Path(path)
    raw: Dict[str, Any] = {}
    if p.exists():
        with p.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    elif not missing_ok:
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    # Apply environment variable overrides
    kind = os.getenv("TTS_BRIDGE_BACKEND")
    if kind:
        raw.setdefault("backend", {})["kind"] = kind
    api_key = os.getenv("TTS_BRIDGE_API_KEY")
    if api_key:
        raw.setdefault("backend", {})["api_key"] = api_key
    cache_dir = os.getenv("TTS_BRIDGE_CACHE_DIR")
    if cache_dir:
        raw.setdefault("cache", {})["base_dir"] = cache_dir

    return Settings(raw=raw)
