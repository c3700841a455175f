from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_data_dir

APP_NAME = "Homework Planner"
APP_AUTHOR = "HomeworkPlanner"
DATA_DIR = Path(os.getenv("HOMEWORK_PLANNER_DATA_DIR") or user_data_dir(APP_NAME, APP_AUTHOR))
STORAGE_PREFIX = "homework-planner-"


def ensure_data_dir(path: Path | None = None) -> Path:
    target = path or DATA_DIR
    target.mkdir(parents=True, exist_ok=True)
    return target
