"""Configuration management for lakecleaner."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from lakecleaner.errors import InitError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "./data/lakefs.db"


@dataclass(frozen=True)
class LakeFsConfig:
    """Connection settings for the lakeFS API and its S3 gateway."""

    endpoint: str = "http://localhost:8000"
    access_key: str = ""
    secret_key: str = field(default="", repr=False)
    api_version: str = "v1"
    timeout_seconds: float = 30.0

    @property
    def api_url(self) -> str:
        """Base URL of the lakeFS REST API."""
        return f"{self.endpoint.rstrip('/')}/api/{self.api_version}"

    @property
    def s3_endpoint(self) -> str:
        """Endpoint host for DuckDB's s3_endpoint setting (no scheme)."""
        endpoint = self.endpoint
        for prefix in ("https://", "http://"):
            if endpoint.startswith(prefix):
                endpoint = endpoint[len(prefix) :]
                break
        return endpoint.rstrip("/")


@dataclass(frozen=True)
class FileConfig:
    """Which files to compact and how the compaction loop behaves.

    ``count`` is both the total number of files consumed by a run and the
    amount requested from lakeFS on every listing call.
    """

    size: int = 1024
    count: int = 100
    branch: str = "main"
    to_branch: str | None = None
    repo: str = ""
    key: str | None = None
    table_name: str | None = None
    scheme: str = "s3"
    reseed_after_flush: bool = True
    mirror_pass: bool = True
    dedupe: bool = False

    @property
    def working_table(self) -> str:
        """Name of the working table, fixed for the whole run."""
        return self.table_name or self.repo

    def validate(self) -> None:
        """Check that the file selection can drive a run.

        Raises:
            ValidationError: If the repo is empty or counts are not positive.
        """
        if not self.repo:
            msg = "file.repo must be set"
            raise ValidationError(msg)
        if not self.branch:
            msg = "file.branch must be set"
            raise ValidationError(msg)
        if self.count < 1:
            msg = f"file.count must be positive, got {self.count}"
            raise ValidationError(msg)
        if self.size < 1:
            msg = f"file.size must be positive, got {self.size}"
            raise ValidationError(msg)


@dataclass(frozen=True)
class CleanerConfig:
    """lakecleaner configuration with defaults, YAML/env loading and CLI override."""

    lakefs: LakeFsConfig = field(default_factory=LakeFsConfig)
    file: FileConfig = field(default_factory=FileConfig)
    db_path: str = DEFAULT_DB_PATH
    log_level: str = "INFO"
    config_file: str | None = None

    @classmethod
    def from_yaml(cls, path: str | Path) -> CleanerConfig:
        """Load configuration from a YAML file.

        Args:
            path: Path to the YAML configuration file.

        Returns:
            A CleanerConfig instance with values from the YAML file.

        Raises:
            FileNotFoundError: If the config file does not exist.
            ValidationError: If a section is not a mapping.
        """
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        config = cls._from_dict(data)
        return replace(config, config_file=str(path))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> CleanerConfig:
        """Load configuration from ``LAKEFS_*``, ``FILE_*`` and ``DB_PATH`` variables.

        Raises:
            InitError: If a required variable is missing.
            ValidationError: If a numeric variable is not an integer.
        """
        env = os.environ if environ is None else environ

        missing = [name for name in ("LAKEFS_ENDPOINT", "FILE_REPO") if not env.get(name)]
        if missing:
            msg = f"Missing required environment variables: {', '.join(missing)}"
            raise InitError(msg)

        lakefs = LakeFsConfig(
            endpoint=env["LAKEFS_ENDPOINT"],
            access_key=env.get("LAKEFS_ACCESS_KEY", ""),
            secret_key=env.get("LAKEFS_SECRET_KEY", ""),
            api_version=env.get("LAKEFS_API_VERSION", "v1"),
        )
        file_conf = FileConfig(
            size=_parse_int(env, "FILE_SIZE", FileConfig.size),
            count=_parse_int(env, "FILE_COUNT", FileConfig.count),
            branch=env.get("FILE_BRANCH", FileConfig.branch),
            to_branch=env.get("FILE_TO_BRANCH") or None,
            repo=env["FILE_REPO"],
            key=env.get("FILE_KEY") or None,
        )
        return cls(
            lakefs=lakefs,
            file=file_conf,
            db_path=env.get("DB_PATH", DEFAULT_DB_PATH),
            log_level=env.get("LOG_LEVEL", "INFO"),
        )

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> CleanerConfig:
        """Create config from a nested dictionary, ignoring unknown keys."""
        lakefs = _build_section(LakeFsConfig, data.get("lakefs"), "lakefs")
        file_conf = _build_section(FileConfig, data.get("file"), "file")
        top_level = {f.name for f in fields(cls)} - {"lakefs", "file"}
        filtered = {k: v for k, v in data.items() if k in top_level}
        return cls(lakefs=lakefs, file=file_conf, **filtered)

    def merge_cli_overrides(self, **kwargs: Any) -> CleanerConfig:
        """Return a new config with CLI overrides applied (non-None values only).

        Keys are matched against the top-level fields first, then the ``file``
        section, then the ``lakefs`` section.

        Args:
            **kwargs: CLI parameter overrides.

        Returns:
            A new CleanerConfig with overrides applied.
        """
        top_names = {f.name for f in fields(self)} - {"lakefs", "file"}
        file_names = {f.name for f in fields(FileConfig)}
        lakefs_names = {f.name for f in fields(LakeFsConfig)}

        top: dict[str, Any] = {}
        file_updates: dict[str, Any] = {}
        lakefs_updates: dict[str, Any] = {}
        for key, value in kwargs.items():
            if value is None:
                continue
            if key in top_names:
                top[key] = value
            elif key in file_names:
                file_updates[key] = value
            elif key in lakefs_names:
                lakefs_updates[key] = value

        return replace(
            self,
            lakefs=replace(self.lakefs, **lakefs_updates),
            file=replace(self.file, **file_updates),
            **top,
        )

    def setup_logging(self) -> None:
        """Configure logging based on the log_level setting."""
        logging.basicConfig(
            level=getattr(logging, self.log_level.upper(), logging.INFO),
            format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def _build_section(section_cls: type, data: Any, name: str) -> Any:
    if data is None:
        return section_cls()
    if not isinstance(data, dict):
        msg = f"Config section '{name}' must be a mapping, got {type(data).__name__}"
        raise ValidationError(msg)
    valid_fields = {f.name for f in fields(section_cls)}
    values = {}
    for key, value in data.items():
        if key not in valid_fields:
            continue
        kind = _NUMERIC_FIELDS.get(key)
        values[key] = _coerce_number(f"{name}.{key}", value, kind) if kind else value
    return section_cls(**values)


_NUMERIC_FIELDS: dict[str, type] = {"size": int, "count": int, "timeout_seconds": float}


def _coerce_number(name: str, value: Any, kind: type) -> Any:
    if isinstance(value, bool):
        msg = f"{name} must be a number, got {value!r}"
        raise ValidationError(msg)
    try:
        return kind(value)
    except (TypeError, ValueError):
        msg = f"{name} must be {'an integer' if kind is int else 'a number'}, got {value!r}"
        raise ValidationError(msg) from None


def _parse_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        msg = f"{name} must be an integer, got '{raw}'"
        raise ValidationError(msg) from None
