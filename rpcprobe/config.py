"""YAML configuration file loading."""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

from rpcprobe.aggregator import DEFAULT_TIMEOUT_MS
from rpcprobe.models import DEFAULT_PLACEHOLDER_MARKERS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".rpcprobe"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_CHAINS_URL = "https://chainid.network/chains.json"
DEFAULT_REFETCH_INTERVAL_MS = 60_000


@dataclass
class ProbeConfig:
    """Top-level configuration for the rpcprobe tool.

    All fields have defaults so the tool works without a config file.

    Attributes:
        timeout_ms: Per-probe timeout in milliseconds; ``0`` disables it.
        refetch_interval_ms: Delay between runs in ``--watch`` mode.
        max_concurrency: Cap on simultaneous probes, or None for no cap.
        placeholder_markers: URL substrings that mean "needs a secret we
            don't have"; such endpoints are skipped.
        chains_url: Location of the chain registry JSON.
        preferred_rpcs: Chain id → RPC URL to move to the front of that
            chain's endpoint list.
    """

    timeout_ms: int = DEFAULT_TIMEOUT_MS
    refetch_interval_ms: int = DEFAULT_REFETCH_INTERVAL_MS
    max_concurrency: int | None = None
    placeholder_markers: list[str] = field(
        default_factory=lambda: list(DEFAULT_PLACEHOLDER_MARKERS)
    )
    chains_url: str = DEFAULT_CHAINS_URL
    preferred_rpcs: dict[int, str] = field(default_factory=dict)


# Every ProbeConfig field can be set from the YAML file under its own name.
_CONFIG_KEYS = frozenset(f.name for f in fields(ProbeConfig))


class ConfigError(Exception):
    """Raised when a configuration file is malformed or unreadable."""


def load_config(path: Path | str | None = None) -> ProbeConfig:
    """Build the probe settings for one CLI invocation.

    Keys present in the YAML file override the ``ProbeConfig`` defaults;
    keys it leaves out keep them.  With no *path*, a missing
    ``~/.rpcprobe/config.yaml`` simply means "use the defaults", so the
    tool runs without any setup.

    Args:
        path: YAML file to read instead of ``~/.rpcprobe/config.yaml``.

    Returns:
        The effective ``ProbeConfig``.

    Raises:
        FileNotFoundError: If *path* was given and is not a file.
        ConfigError: If the YAML is unparsable, is not a mapping, or
            carries a timeout, interval, concurrency cap, marker list or
            preferred-RPC map of the wrong type or range.
    """
    config_file = _config_file(path)
    if config_file is None:
        logger.debug("No config file; probing with default settings")
        return ProbeConfig()

    raw = _read_mapping(config_file)
    logger.debug("Probe settings from %s: %s", config_file, sorted(raw))
    return _build_config(raw, source=config_file)


# ------------------------------------------------------------------
# Internal helpers
# ------------------------------------------------------------------


def _config_file(path: Path | str | None) -> Path | None:
    """Pick the YAML file to read: *path* if given, else the user default."""
    if path is None:
        candidate = DEFAULT_CONFIG_PATH.expanduser()
        return candidate if candidate.is_file() else None

    candidate = Path(path).expanduser()
    if not candidate.is_file():
        raise FileNotFoundError(f"Config file not found: {candidate}")
    return candidate


def _read_mapping(config_file: Path) -> dict:
    """Parse *config_file*; an empty document counts as an empty mapping."""
    try:
        raw = yaml.safe_load(config_file.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {config_file}: {exc}") from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Expected a YAML mapping at the top level in {config_file}, "
            f"got {type(raw).__name__}"
        )
    return raw


def _build_config(raw: dict, source: Path) -> ProbeConfig:
    """Validate the known keys of *raw* and apply them over the defaults."""
    unknown = set(raw) - _CONFIG_KEYS
    if unknown:
        logger.warning(
            "Ignoring unknown config keys in %s: %s",
            source,
            ", ".join(sorted(map(str, unknown))),
        )

    overrides = {key: value for key, value in raw.items() if key in _CONFIG_KEYS}
    _validate(overrides, source)
    return ProbeConfig(**overrides)


def _validate(kwargs: dict[str, object], source: Path) -> None:
    """Check value types and ranges in place, normalizing where needed."""
    for key in ("timeout_ms", "refetch_interval_ms"):
        if key in kwargs:
            value = kwargs[key]
            if not _is_int(value) or value < 0:
                raise ConfigError(
                    f"{key} in {source} must be a non-negative integer, got {value!r}"
                )

    if kwargs.get("max_concurrency") is not None:
        value = kwargs["max_concurrency"]
        if not _is_int(value) or value < 1:
            raise ConfigError(
                f"max_concurrency in {source} must be a positive integer "
                f"or null, got {value!r}"
            )

    if "placeholder_markers" in kwargs:
        markers = kwargs["placeholder_markers"]
        if not isinstance(markers, list) or not all(
            isinstance(m, str) and m for m in markers
        ):
            raise ConfigError(
                f"placeholder_markers in {source} must be a list of non-empty strings"
            )

    if "preferred_rpcs" in kwargs:
        preferred = kwargs["preferred_rpcs"] or {}
        if not isinstance(preferred, dict):
            raise ConfigError(f"preferred_rpcs in {source} must be a mapping")
        try:
            kwargs["preferred_rpcs"] = {int(k): str(v) for k, v in preferred.items()}
        except ValueError as exc:
            raise ConfigError(
                f"preferred_rpcs in {source} must be keyed by chain id: {exc}"
            ) from exc


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
