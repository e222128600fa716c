from __future__ import annotations

import os

from .services import state


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev")
    MAX_CONTENT_LENGTH = state.MAX_UPLOAD_MB * 1024 * 1024
    TESTING = False


class TestingConfig(BaseConfig):
    TESTING = True


CONFIG_BY_NAME = {
    "default": BaseConfig,
    "testing": TestingConfig,
}
