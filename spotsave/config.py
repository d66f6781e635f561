from __future__ import annotations

import configparser
import os
from dataclasses import dataclass
from pathlib import Path

from spotsave.errors import ConfigError
from spotsave.models import Threshold
from spotsave.paths import default_output_dir, default_source_dir

SECTION = "spotsave"
DEFAULT_MINIMUM_WIDTH = 1080
DEFAULT_MINIMUM_HEIGHT = 1080

# (key, comment) in file order
FIELDS = [
    ("SourceDir", "Windows Spotlight's content delivery manager folder"),
    ("OutputDir", "Folder to save images"),
    ("MinimumWidth", "Minimum image width to be considered as a wallpaper"),
    ("MinimumHeight", "Minimum image height to be considered as a wallpaper"),
]


@dataclass(frozen=True)
class RunConfig:
    source_dir: Path
    output_dir: Path
    minimum_width: int = DEFAULT_MINIMUM_WIDTH
    minimum_height: int = DEFAULT_MINIMUM_HEIGHT

    @property
    def threshold(self) -> Threshold:
        return Threshold(minimum_width=self.minimum_width, minimum_height=self.minimum_height)

    def as_ini_values(self) -> dict[str, str]:
        return {
            "SourceDir": str(self.source_dir),
            "OutputDir": str(self.output_dir),
            "MinimumWidth": str(self.minimum_width),
            "MinimumHeight": str(self.minimum_height),
        }


def default_config() -> RunConfig:
    return RunConfig(source_dir=default_source_dir(), output_dir=default_output_dir())


def render_config(config: RunConfig) -> str:
    values = config.as_ini_values()
    lines = [f"[{SECTION}]"]
    for key, comment in FIELDS:
        lines.append(f"; {comment}")
        lines.append(f"{key} = {values[key]}")
        lines.append("")
    return "\n".join(lines)


def save_config(config: RunConfig, path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_config(config), encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"couldn't write configuration {path}: {exc}") from exc


def restore_config(path: Path) -> RunConfig:
    """Write the default configuration to ``path`` and return it."""

    config = default_config()
    save_config(config, path)
    return config


def _has_section_header(text: str) -> bool:
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith((";", "#")):
            continue
        return stripped.startswith("[")
    return False


def _parse_dir(section: configparser.SectionProxy, key: str) -> Path:
    raw = (section.get(key) or "").strip().strip('"')
    if not raw:
        raise ConfigError(f"{key} is missing")
    return Path(os.path.expandvars(raw)).expanduser()


def _parse_dimension(section: configparser.SectionProxy, key: str) -> int:
    raw = section.get(key)
    if raw is None or not raw.strip():
        raise ConfigError(f"{key} is missing")
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc
    if value < 0:
        raise ConfigError(f"{key} must not be negative, got {value}")
    return value


def parse_config(text: str, source: str = "<config>") -> RunConfig:
    # files written by the first releases carried no section header
    if not _has_section_header(text):
        text = f"[{SECTION}]\n{text}"

    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read_string(text, source=source)
    except configparser.Error as exc:
        raise ConfigError(f"couldn't parse {source}: {exc}") from exc

    if not parser.has_section(SECTION):
        raise ConfigError(f"{source} has no [{SECTION}] section")
    section = parser[SECTION]

    return RunConfig(
        source_dir=_parse_dir(section, "SourceDir"),
        output_dir=_parse_dir(section, "OutputDir"),
        minimum_width=_parse_dimension(section, "MinimumWidth"),
        minimum_height=_parse_dimension(section, "MinimumHeight"),
    )


def load_config(path: Path) -> tuple[RunConfig, bool]:
    """Load ``path``; when it does not exist, persist and return the defaults.

    Returns the configuration and whether the defaults were just written.
    """

    if not path.exists():
        return restore_config(path), True

    try:
        # Windows editors may prepend a BOM
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"couldn't read configuration {path}: {exc}") from exc
    return parse_config(text, source=str(path)), False
