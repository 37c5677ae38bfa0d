"""Configuration loading and management."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass
class ProviderConfig:
    projects_dir: Path | None = None  # Provider default when unset


@dataclass
class UploadConfig:
    endpoint: str = "https://app.getpochi.com/api/clips"
    share_url: str = "https://app.getpochi.com/clip/{id}"
    timeout_seconds: float = 30.0


@dataclass
class LoggingConfig:
    log_dir: Path = field(default_factory=lambda: Path.home() / "session-share" / "logs")
    level: str = "INFO"


@dataclass
class Config:
    provider: str = "claude"
    providers: dict[str, ProviderConfig] = field(default_factory=dict)
    upload: UploadConfig = field(default_factory=UploadConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def expand_env_var(value: str) -> str:
    """Expand environment variables in string (e.g. ${VAR})."""
    if value.startswith("${") and value.endswith("}"):
        env_var = value[2:-1]
        return os.environ.get(env_var, value)
    return value


def expand_path(path_str: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expandvars(os.path.expanduser(path_str)))


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from YAML file."""
    if config_path is None:
        # Look for config in standard locations
        search_paths = [
            Path.cwd() / "config.yaml",
            Path.home() / ".config" / "session-share" / "config.yaml",
            Path("/etc/session-share/config.yaml"),
        ]
        for path in search_paths:
            if path.exists():
                config_path = path
                break

    if config_path is None or not config_path.exists():
        return Config()

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    # Parse provider configs
    providers = {}
    for name, provider_data in (data.get("providers") or {}).items():
        provider_data = provider_data or {}
        projects_dir = provider_data.get("projects_dir")
        providers[name] = ProviderConfig(
            projects_dir=expand_path(projects_dir) if projects_dir else None,
        )

    # Parse upload config
    upload_data = data.get("upload") or {}
    defaults = UploadConfig()
    upload = UploadConfig(
        endpoint=expand_env_var(upload_data.get("endpoint", defaults.endpoint)),
        share_url=expand_env_var(upload_data.get("share_url", defaults.share_url)),
        timeout_seconds=float(upload_data.get("timeout_seconds", defaults.timeout_seconds)),
    )

    # Parse logging config
    logging_data = data.get("logging") or {}
    logging_config = LoggingConfig(
        log_dir=expand_path(logging_data.get("log_dir", "~/session-share/logs")),
        level=str(logging_data.get("level", "INFO")),
    )

    return Config(
        provider=expand_env_var(data.get("provider", "claude")),
        providers=providers,
        upload=upload,
        logging=logging_config,
    )
