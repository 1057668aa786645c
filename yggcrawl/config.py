"""YAML configuration file loading."""

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

from yggcrawl.engine import DEFAULT_MAX_PARALLEL
from yggcrawl.rpc import DEFAULT_ENDPOINT, DEFAULT_MAX_RETRY

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".yggcrawl"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.yaml"


@dataclass
class CrawlConfig:
    """Top-level configuration for the yggcrawl tool.

    All fields have sensible defaults so the tool works out of the box
    against a daemon using its stock admin socket.

    Attributes:
        endpoint: Admin endpoint: ``unix:///path``, ``tcp://host:port`` or
            a bare socket path.
        max_parallel: Maximum number of nodes probed at once.
        max_retry: Attempts per RPC call before accepting a soft failure.
        dial_timeout: Seconds allowed to connect to the endpoint.
        read_timeout: Seconds allowed for each socket read or write.
    """

    endpoint: str = DEFAULT_ENDPOINT
    max_parallel: int = DEFAULT_MAX_PARALLEL
    max_retry: int = DEFAULT_MAX_RETRY
    dial_timeout: float = 1.0
    read_timeout: float = 30.0


# Keys in the YAML file that map to CrawlConfig fields.
_YAML_KEY_TO_FIELD: dict[str, str] = {
    "endpoint": "endpoint",
    "max_parallel": "max_parallel",
    "max_retry": "max_retry",
    "dial_timeout": "dial_timeout",
    "read_timeout": "read_timeout",
}

# Fields that must hold a number strictly greater than zero.
_POSITIVE_FIELDS: dict[str, type | tuple[type, ...]] = {
    "max_parallel": int,
    "max_retry": int,
    "dial_timeout": (int, float),
    "read_timeout": (int, float),
}


def load_config(path: Path | str | None = None) -> CrawlConfig:
    """Load configuration from a YAML file.

    Args:
        path: Explicit path to a YAML config file.  If ``None``, the
            default location (``~/.yggcrawl/config.yaml``) is tried.  If the
            default file doesn't exist, a ``CrawlConfig`` with all defaults
            is returned silently.

    Returns:
        A populated ``CrawlConfig`` instance.

    Raises:
        FileNotFoundError: If an explicit *path* was given but doesn't exist.
        ConfigError: If the file contains invalid YAML, has an unexpected
            top-level structure, or holds an out-of-range value.
    """
    resolved = _resolve_path(path)

    if resolved is None:
        logger.debug("No config file found; using defaults")
        return CrawlConfig()

    logger.debug("Loading config from %s", resolved)
    text = resolved.read_text(encoding="utf-8")

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {resolved}: {exc}") from exc

    if raw is None:
        # Empty file: treat as all-defaults.
        return CrawlConfig()

    if not isinstance(raw, dict):
        raise ConfigError(
            f"Expected a YAML mapping at the top level in {resolved}, "
            f"got {type(raw).__name__}"
        )

    return _build_config(raw, source=resolved)


class ConfigError(Exception):
    """Raised when a configuration file is malformed or unreadable."""


# ------------------------------------------------------------------
# Internal helpers
# ------------------------------------------------------------------


def _resolve_path(path: Path | str | None) -> Path | None:
    """Return a concrete ``Path`` to read, or ``None`` if nothing to read.

    Raises:
        FileNotFoundError: If the caller supplied an explicit path that
            doesn't exist on disk.
    """
    if path is not None:
        p = Path(path).expanduser()
        if not p.is_file():
            raise FileNotFoundError(f"Config file not found: {p}")
        return p

    # Try the default location.
    default = DEFAULT_CONFIG_PATH.expanduser()
    if default.is_file():
        return default
    return None


def _build_config(raw: dict, source: Path) -> CrawlConfig:
    """Map raw YAML dict to a ``CrawlConfig``, ignoring unknown keys."""
    kwargs: dict[str, object] = {}

    for yaml_key, field_name in _YAML_KEY_TO_FIELD.items():
        if yaml_key in raw:
            kwargs[field_name] = raw[yaml_key]

    unknown = set(raw) - set(_YAML_KEY_TO_FIELD)
    if unknown:
        logger.warning(
            "Ignoring unknown config keys in %s: %s",
            source,
            ", ".join(sorted(unknown)),
        )

    for name, kind in _POSITIVE_FIELDS.items():
        if name not in kwargs:
            continue
        value = kwargs[name]
        if isinstance(value, bool) or not isinstance(value, kind) or value <= 0:
            raise ConfigError(
                f"{name} in {source} must be a positive number, got {value!r}"
            )

    if "endpoint" in kwargs and not isinstance(kwargs["endpoint"], str):
        raise ConfigError(
            f"endpoint in {source} must be a string, got {kwargs['endpoint']!r}"
        )

    return CrawlConfig(**kwargs)
