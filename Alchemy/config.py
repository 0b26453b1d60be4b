"""Load, normalise, and save resolver configuration from DefaultConfig.yaml."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError
from .resolver_logging import LogLevel
from .resources import get_resource_path, resolve_relative

DEFAULT_CONFIG_PATH = get_resource_path("Alchemy/DefaultConfig.yaml")

BOOK_FORMATS = ("yaml", "json")


@dataclass
class DataSettings:
    elements_file: Path = Path("littlealchemy2.json")
    history_file: Path = Path("history.json")
    use_history: bool = True  # False behaves like --no-history


@dataclass
class LoggingSettings:
    level: LogLevel = LogLevel.SUMMARY
    log_file: Optional[Path] = None


@dataclass
class BookSettings:
    output_file: Path = Path("book.yaml")
    format: str = "yaml"  # yaml | json
    include_unreachable: bool = True


@dataclass
class UserConfig:
    data: DataSettings = field(default_factory=DataSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    book: BookSettings = field(default_factory=BookSettings)


def _parse_level(raw: Any) -> LogLevel:
    if isinstance(raw, LogLevel):
        return raw
    if isinstance(raw, int) and not isinstance(raw, bool):
        try:
            return LogLevel(raw)
        except ValueError:
            pass
    elif isinstance(raw, str):
        try:
            return LogLevel[raw.strip().upper()]
        except KeyError:
            pass
    names = ", ".join(level.name for level in LogLevel)
    raise ConfigError(f"invalid logging level {raw!r} (expected one of {names})")


def _parse_format(raw: Any) -> str:
    value = str(raw).strip().lower()
    if value not in BOOK_FORMATS:
        raise ConfigError(f"invalid book format {raw!r} (expected yaml or json)")
    return value


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    block = raw.get(name) or {}
    if not isinstance(block, dict):
        raise ConfigError(f"section '{name}' must be a mapping")
    return block


def load_config(path: Optional[Path] = None) -> UserConfig:
    """
    Load and normalise configuration YAML into a UserConfig dataclass.

    Relative file paths in a user supplied config resolve against the
    directory holding that config; paths in the bundled default stay
    relative to the working directory.

    Raises
    ------
    ConfigError
        If the file is not valid YAML or holds invalid values.
    """
    cfg_path = path or DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        return UserConfig()

    try:
        with cfg_path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {cfg_path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"{cfg_path} must contain a mapping")

    def to_path(value: Any) -> Path:
        p = Path(str(value))
        return resolve_relative(p, cfg_path) if path is not None else p

    defaults = UserConfig()

    # Data files
    data_raw = _section(raw, "data")
    data = DataSettings(
        elements_file=to_path(data_raw.get("elementsFile", defaults.data.elements_file)),
        history_file=to_path(data_raw.get("historyFile", defaults.data.history_file)),
        use_history=bool(data_raw.get("useHistory", True)),
    )

    # Logging
    logging_raw = _section(raw, "logging")
    log_file = logging_raw.get("logFile")
    logging = LoggingSettings(
        level=_parse_level(logging_raw.get("level", defaults.logging.level.name)),
        log_file=to_path(log_file) if log_file else None,
    )

    # Book export
    book_raw = _section(raw, "book")
    book = BookSettings(
        output_file=to_path(book_raw.get("outputFile", defaults.book.output_file)),
        format=_parse_format(book_raw.get("format", defaults.book.format)),
        include_unreachable=bool(book_raw.get("includeUnreachable", True)),
    )

    return UserConfig(data=data, logging=logging, book=book)


def save_config(config: UserConfig, path: Optional[Path] = None) -> None:
    """
    Save UserConfig back to a YAML file.

    Parameters
    ----------
    config : UserConfig
        The configuration to save
    path : Path, optional
        Path to save to. Defaults to DefaultConfig.yaml
    """
    cfg_path = path or DEFAULT_CONFIG_PATH

    data: Dict[str, Any] = {
        "data": {
            "elementsFile": str(config.data.elements_file),
            "historyFile": str(config.data.history_file),
            "useHistory": config.data.use_history,
        },
        "logging": {
            "level": config.logging.level.name,
            "logFile": str(config.logging.log_file) if config.logging.log_file else None,
        },
        "book": {
            "outputFile": str(config.book.output_file),
            "format": config.book.format,
            "includeUnreachable": config.book.include_unreachable,
        },
    }

    with cfg_path.open("w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False, allow_unicode=True, sort_keys=False)
