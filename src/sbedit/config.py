"""SbeditConfig: user config for sbedit.

Looked up at $SBEDIT_CONFIG, else ~/.config/sbedit/sbedit.toml. A missing
file means defaults. $SBEDIT_ARCHIVE overrides [archive].path.

sbedit.toml example:

    [archive]
    path = "~/Library/Application Support/com.apple.sharedfilelist/com.apple.LSSharedFileList.FavoriteItems.sfl3"

    [locator]
    factory = "sbedit.locator:FileUrlLocator"

    [reload]
    killall = "/usr/bin/killall"
    daemon = "sharedfilelistd"
    finder = "Finder"
    auto = false          # reload after every successful save
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sbedit.errors import ConfigError
from sbedit.locator import DEFAULT_FACTORY
from sbedit.storage import default_archive_path

CONFIG_ENV = "SBEDIT_CONFIG"
ARCHIVE_ENV = "SBEDIT_ARCHIVE"
_CONFIG_FILENAME = "sbedit.toml"


def default_config_path() -> Path:
    return Path.home() / ".config" / "sbedit" / _CONFIG_FILENAME


@dataclass
class LocatorConfig:
    factory: str = DEFAULT_FACTORY


@dataclass
class ReloadConfig:
    killall: str = "/usr/bin/killall"
    daemon: str = "sharedfilelistd"
    finder: str = "Finder"
    auto: bool = False


@dataclass
class SbeditConfig:
    """Resolved configuration."""

    archive_path: Path = field(default_factory=default_archive_path)
    locator: LocatorConfig = field(default_factory=LocatorConfig)
    reload: ReloadConfig = field(default_factory=ReloadConfig)
    source: Path | None = None      # file the settings came from, if any


def _resolve_config_path(path: Path | str | None) -> Path:
    if path:
        return Path(path).expanduser()
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return Path(env_path).expanduser()
    return default_config_path()


def _section(raw: dict[str, Any], name: str, config_path: Path) -> dict[str, Any]:
    section = raw.get(name, {})
    if not isinstance(section, dict):
        msg = f"{config_path}: [{name}] must be a table"
        raise ConfigError(msg)
    return section


def load_config(path: Path | str | None = None) -> SbeditConfig:
    """Load sbedit.toml (explicit path, $SBEDIT_CONFIG, or the default location)."""
    config_path = _resolve_config_path(path)

    raw: dict[str, Any] = {}
    source: Path | None = None
    if config_path.exists():
        try:
            with config_path.open("rb") as f:
                raw = tomllib.load(f)
        except (tomllib.TOMLDecodeError, OSError) as exc:
            msg = f"cannot read {config_path}: {exc}"
            raise ConfigError(msg) from exc
        source = config_path

    archive_section = _section(raw, "archive", config_path)
    loc_section = _section(raw, "locator", config_path)
    rel_section = _section(raw, "reload", config_path)

    auto = rel_section.get("auto", ReloadConfig.auto)
    if not isinstance(auto, bool):
        msg = f"{config_path}: [reload].auto must be true or false, got {auto!r}"
        raise ConfigError(msg)

    # Environment overrides the file for the archive location
    archive_raw = os.environ.get(ARCHIVE_ENV) or archive_section.get("path")
    archive_path = Path(str(archive_raw)).expanduser() if archive_raw else default_archive_path()

    defaults = ReloadConfig()
    return SbeditConfig(
        archive_path=archive_path,
        locator=LocatorConfig(
            factory=str(loc_section.get("factory", DEFAULT_FACTORY)),
        ),
        reload=ReloadConfig(
            killall=str(rel_section.get("killall", defaults.killall)),
            daemon=str(rel_section.get("daemon", defaults.daemon)),
            finder=str(rel_section.get("finder", defaults.finder)),
            auto=auto,
        ),
        source=source,
    )


def init_config(path: Path | str | None = None) -> Path:
    """Write a default sbedit.toml. Raises if one already exists."""
    config_path = _resolve_config_path(path)
    if config_path.exists():
        msg = f"sbedit.toml already exists at {config_path}"
        raise FileExistsError(msg)

    content = f"""\
[archive]
# path = "{default_archive_path()}"   # default; or set SBEDIT_ARCHIVE

[locator]
# Anything importable as "module:attribute" that provides
# encode_location(path) -> bytes and decode_location(token) -> (path, stale)
factory = "{DEFAULT_FACTORY}"

[reload]
# killall = "/usr/bin/killall"
# daemon = "sharedfilelistd"
# finder = "Finder"
# auto = false   # reload the sidebar after every successful save
"""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(content)
    return config_path
