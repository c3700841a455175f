"""Application-wide paths and constants."""

from .config import APP_AUTHOR, APP_NAME, DATA_DIR, STORAGE_PREFIX, ensure_data_dir

__all__ = ["APP_AUTHOR", "APP_NAME", "DATA_DIR", "STORAGE_PREFIX", "ensure_data_dir"]
