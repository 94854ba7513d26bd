"""Reference controllers and their repository helpers."""

from .config import ConfigController, SettingsController, read_setting, setting_uri, write_setting
from .env import EnvironmentVariableController
from .file import (
    PhysicalFileController,
    delete_file,
    file_uri,
    get_file,
    read_text_file,
    write_text_file,
)
from .memory import InMemoryController

__all__ = [
    "ConfigController",
    "EnvironmentVariableController",
    "InMemoryController",
    "PhysicalFileController",
    "SettingsController",
    "delete_file",
    "file_uri",
    "get_file",
    "read_setting",
    "read_text_file",
    "setting_uri",
    "write_setting",
    "write_text_file",
]
