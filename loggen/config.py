"""Configuration as a frozen dataclass built from YAML, env vars, and CLI flags."""

import argparse
import logging
import os
from dataclasses import dataclass, field, fields

import yaml

from loggen.models import DEFAULT_USER_IDS
from loggen.serializer import VALID_FORMATS

logger = logging.getLogger(__name__)

SINK_FILE = "file"
SINK_PUSH = "push"
VALID_SINKS = (SINK_FILE, SINK_PUSH)


class ConfigError(ValueError):
    """Raised when the configuration is invalid or incomplete."""


def _parse_labels(items) -> dict[str, str]:
    """Turn ``["k=v", ...]`` (or a ``"k=v,k=v"`` string) into a label dict."""
    if isinstance(items, str):
        items = [p for p in items.split(",") if p.strip()]
    labels = {}
    for item in items:
        if "=" not in item:
            raise ConfigError(f"Invalid label '{item}'. Expected key=value.")
        key, value = item.split("=", 1)
        key = key.strip()
        if not key:
            raise ConfigError(f"Invalid label '{item}'. Empty key.")
        labels[key] = value.strip()
    return labels


def _parse_user_ids(val: str) -> tuple[int, ...]:
    try:
        return tuple(int(p) for p in val.split(",") if p.strip())
    except ValueError as exc:
        raise ConfigError(f"Invalid USER_IDS '{val}': {exc}") from exc


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got '{raw}'") from exc


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got '{raw}'") from exc


@dataclass(frozen=True)
class EngineConfig:
    sink_mode: str = SINK_FILE
    log_file: str = "application.log"
    max_file_size: int = 5 * 1024 * 1024
    log_interval_ms: int = 5000
    log_format: str = "text"
    push_url: str | None = None
    push_labels: dict = field(default_factory=dict)
    push_timeout: float = 10.0
    user_ids: tuple = DEFAULT_USER_IDS

    def validate(self) -> "EngineConfig":
        """Return self, or raise ConfigError describing the first problem found."""
        if self.sink_mode not in VALID_SINKS:
            raise ConfigError(
                f"sink_mode must be one of {VALID_SINKS}, got '{self.sink_mode}'"
            )
        if self.log_format not in VALID_FORMATS:
            raise ConfigError(
                f"log_format must be one of {VALID_FORMATS}, got '{self.log_format}'"
            )
        if self.log_interval_ms <= 0:
            raise ConfigError("log_interval_ms must be positive")
        if self.sink_mode == SINK_FILE:
            if not self.log_file:
                raise ConfigError("log_file is required for the file sink")
            if self.max_file_size <= 0:
                raise ConfigError("max_file_size must be positive")
        if self.sink_mode == SINK_PUSH:
            if not self.push_url:
                raise ConfigError("push_url is required for the push sink")
            if not self.push_url.startswith(("http://", "https://")):
                raise ConfigError(f"push_url must be an http(s) URL, got '{self.push_url}'")
            if self.push_timeout <= 0:
                raise ConfigError("push_timeout must be positive")
        for key, value in self.push_labels.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise ConfigError("push_labels keys and values must be strings")
        return self


_YAML_INT_KEYS = ("max_file_size", "log_interval_ms")
_YAML_STR_KEYS = ("sink_mode", "log_file", "log_format", "push_url")


def _coerce_yaml(section: dict, path: str) -> dict:
    """Check and convert YAML values to the types EngineConfig expects."""
    values = {}
    for key, raw in section.items():
        if key in _YAML_INT_KEYS:
            if isinstance(raw, bool) or not isinstance(raw, int):
                raise ConfigError(f"{key} in {path} must be an integer, got {raw!r}")
            values[key] = raw
        elif key == "push_timeout":
            if isinstance(raw, bool) or not isinstance(raw, (int, float)):
                raise ConfigError(f"push_timeout in {path} must be a number, got {raw!r}")
            values[key] = float(raw)
        elif key in _YAML_STR_KEYS:
            if raw is None and key == "push_url":
                values[key] = None
            elif not isinstance(raw, str):
                raise ConfigError(f"{key} in {path} must be a string, got {raw!r}")
            else:
                values[key] = raw
        elif key == "push_labels":
            if raw is None:
                values[key] = {}
            elif isinstance(raw, dict):
                values[key] = {str(k): str(v) for k, v in raw.items()}
            elif isinstance(raw, (str, list)):
                if not all(isinstance(item, str) for item in raw):
                    raise ConfigError(f"push_labels in {path} must hold key=value strings")
                values[key] = _parse_labels(raw)
            else:
                raise ConfigError(f"push_labels in {path} must be a mapping, got {raw!r}")
        elif key == "user_ids":
            if raw is None:
                values[key] = ()
            elif isinstance(raw, list) and all(
                isinstance(uid, int) and not isinstance(uid, bool) for uid in raw
            ):
                values[key] = tuple(raw)
            else:
                raise ConfigError(f"user_ids in {path} must be a list of integers, got {raw!r}")
    return values


def load_yaml(path: str) -> dict:
    """Load and type-check the ``generator`` section of a YAML config file."""
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    section = data.get("generator", {}) if isinstance(data, dict) else None
    if not isinstance(section, dict):
        raise ConfigError(f"Config file {path} has no 'generator' mapping")
    unknown = set(section) - {f.name for f in fields(EngineConfig)}
    if unknown:
        raise ConfigError(f"Unknown keys in {path}: {', '.join(sorted(unknown))}")
    values = _coerce_yaml(section, path)
    logger.info("Loaded generator settings from %s", path)
    return values


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Synthetic log generator with file and push sinks",
        epilog="Actual intervals are randomized by up to ±2 seconds around the "
               "base interval, never below 1 second.",
    )
    parser.add_argument("-c", "--config", default=None, help="YAML config file")
    parser.add_argument("--sink", choices=VALID_SINKS, default=None)
    parser.add_argument("-s", "--max-file-size", type=int, default=None,
                        help="Maximum log file size in KB")
    parser.add_argument("-f", "--log-file", default=None, help="Log file name")
    parser.add_argument("-i", "--log-interval", type=float, default=None,
                        help="Base log interval in seconds")
    parser.add_argument("--format", type=str.lower, choices=VALID_FORMATS,
                        default=None, dest="log_format")
    parser.add_argument("--json", action="store_true", default=False,
                        help="Shorthand for --format json")
    parser.add_argument("--push-url", default=None,
                        help="Push endpoint, e.g. http://localhost:3100/loki/api/v1/push")
    parser.add_argument("-l", "--label", action="append", default=None,
                        help="Static push label as key=value (repeatable)")
    parser.add_argument("--push-timeout", type=float, default=None,
                        help="Push request timeout in seconds")
    parser.add_argument("--random-user-ids", action="store_true", default=False,
                        help="Draw user ids from [0, 10000) instead of the fixed pool")
    return parser


def load_config(argv=None) -> EngineConfig:
    """Build EngineConfig from defaults < YAML file < env vars < CLI flags.

    Pass argv for testability; when None, argparse reads sys.argv.

    Raises:
        ConfigError: If any source holds an invalid value or the result fails
            validation.
    """
    args = _build_parser().parse_args(argv)

    values = {}
    config_path = args.config or os.environ.get("CONFIG_PATH")
    if config_path:
        values.update(load_yaml(config_path))

    base = EngineConfig(**values) if values else EngineConfig()

    # Env vars override the file
    sink_mode = os.environ.get("SINK_MODE", base.sink_mode).strip().lower()
    log_file = os.environ.get("LOG_FILE", base.log_file)
    max_file_size = _int_env("MAX_FILE_SIZE", base.max_file_size)
    log_interval_ms = _int_env("LOG_INTERVAL_MS", base.log_interval_ms)
    log_format = os.environ.get("LOG_FORMAT", base.log_format).strip().lower()
    push_url = os.environ.get("PUSH_URL", base.push_url)
    push_labels = base.push_labels
    if "PUSH_LABELS" in os.environ:
        push_labels = _parse_labels(os.environ["PUSH_LABELS"])
    push_timeout = _float_env("PUSH_TIMEOUT", base.push_timeout)
    user_ids = base.user_ids
    if "USER_IDS" in os.environ:
        user_ids = _parse_user_ids(os.environ["USER_IDS"])

    # CLI flags override env vars
    if args.sink is not None:
        sink_mode = args.sink
    if args.log_file is not None:
        log_file = args.log_file
    if args.max_file_size is not None:
        max_file_size = args.max_file_size * 1024
    if args.log_interval is not None:
        log_interval_ms = int(args.log_interval * 1000)
    if args.log_format is not None:
        log_format = args.log_format
    if args.json:
        log_format = "json"
    if args.push_url is not None:
        push_url = args.push_url
        if args.sink is None:
            sink_mode = SINK_PUSH
    if args.label:
        push_labels = {**push_labels, **_parse_labels(args.label)}
    if args.push_timeout is not None:
        push_timeout = args.push_timeout
    if args.random_user_ids:
        user_ids = ()

    return EngineConfig(
        sink_mode=sink_mode,
        log_file=log_file,
        max_file_size=max_file_size,
        log_interval_ms=log_interval_ms,
        log_format=log_format,
        push_url=push_url,
        push_labels=push_labels,
        push_timeout=push_timeout,
        user_ids=user_ids,
    ).validate()
