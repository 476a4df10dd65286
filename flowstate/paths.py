from __future__ import annotations

import os
from pathlib import Path

APP_DIR_NAME = "FlowState"
DATA_DIR_ENV = "FLOWSTATE_DATA_DIR"


def data_directory() -> Path:
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser()
    if os.name == "nt":
        local_appdata = os.environ.get("LOCALAPPDATA")
        base = Path(local_appdata) if local_appdata else Path.home() / "AppData" / "Local"
        return base / APP_DIR_NAME
    xdg_data = os.environ.get("XDG_DATA_HOME")
    base = Path(xdg_data) if xdg_data else Path.home() / ".local" / "share"
    return base / APP_DIR_NAME.lower()


def database_path() -> Path:
    return data_directory() / "flowstate.sqlite3"


def log_path() -> Path:
    return data_directory() / "logs" / "flowstate.log"


def ensure_directories() -> None:
    log_path().parent.mkdir(parents=True, exist_ok=True)
