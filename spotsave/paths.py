from __future__ import annotations

import os
import platform
from pathlib import Path

SPOTLIGHT_PACKAGE = "Microsoft.Windows.ContentDeliveryManager_cw5n1h2txyewy"
CONFIG_FILENAME = "wspotsave.ini"
LOG_FILENAME = "logs.txt"


def _expand(path_str: str) -> Path:
    return Path(path_str.replace("$HOME", str(Path.home())).replace('"', "")).expanduser()


def _read_xdg_user_dir(key: str) -> Path | None:
    env_dir = os.getenv(key)
    if env_dir:
        return _expand(env_dir)

    user_dirs = Path.home() / ".config" / "user-dirs.dirs"
    if not user_dirs.exists():
        return None

    try:
        for line in user_dirs.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line.startswith(f"{key}="):
                value = line.split("=", 1)[1].strip()
                return _expand(value)
    except OSError:
        return None
    return None


def _windows_home() -> Path:
    userprofile = os.getenv("USERPROFILE")
    return Path(userprofile) if userprofile else Path.home()


def default_source_dir() -> Path:
    """Spotlight's content delivery manager asset cache."""

    local_app_data = os.getenv("LOCALAPPDATA")
    base = Path(local_app_data) if local_app_data else _windows_home() / "AppData" / "Local"
    return base / "Packages" / SPOTLIGHT_PACKAGE / "LocalState" / "Assets"


def default_output_dir() -> Path:
    system = platform.system().lower()
    if system == "windows":
        return _windows_home() / "Pictures"

    if system != "darwin":
        xdg = _read_xdg_user_dir("XDG_PICTURES_DIR")
        if xdg is not None:
            return xdg

    return Path.home() / "Pictures"


def config_dir() -> Path:
    if platform.system().lower() == "windows":
        app_data = os.getenv("APPDATA")
        base = Path(app_data) if app_data else _windows_home() / "AppData" / "Roaming"
        return base / "spotsave"

    xdg_config = os.getenv("XDG_CONFIG_HOME")
    base = Path(xdg_config).expanduser() if xdg_config else Path.home() / ".config"
    return base / "spotsave"


def config_path() -> Path:
    override = os.getenv("SPOTSAVE_CONFIG")
    if override:
        return Path(override).expanduser()
    return config_dir() / CONFIG_FILENAME


def log_path(cfg_path: Path) -> Path:
    return cfg_path.parent / LOG_FILENAME
