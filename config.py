from __future__ import annotations
import os
from pathlib import Path

class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    BASE_DIR = Path(__file__).resolve().parent
    # SQLite file in project directory
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'app.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    SCHOOL_TZ = os.getenv("SCHOOL_TZ", "America/Sao_Paulo")

    # CSRF для JSON API: токен приходит в заголовке
    WTF_CSRF_TIME_LIMIT = None
    WTF_CSRF_HEADERS = ["X-CSRF-Token", "X-CSRFToken"]

    # rate limit логина
    AUTH_RL_MAX = 5
    AUTH_RL_WINDOW = 300

    # ---- генерация расписания ----
    TIMETABLE_LESSON_MINUTES = 50
    TIMETABLE_SUBJECT_DAILY_CAP = 2
    TIMETABLE_BACKTRACK_BUDGET_PER_UNIT = 200
    TIMETABLE_BACKTRACK_MIN_BUDGET = 1000

class DevConfig(BaseConfig):
    DEBUG = True
    SEED_TEST_DATA = True
    DEFAULT_USERS = [
        {"email": "diretor@example.com", "password": "pass", "name": "Diretor", "role": "DIRECTOR"},
    ]

class TestConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SEED_TEST_DATA = False
    DEFAULT_USERS = []
    AUTH_RL_MAX = 50

class ProdConfig(BaseConfig):
    DEBUG = False
    JSON_SORT_KEYS = False
    SEED_TEST_DATA = False
    DEFAULT_USERS = []

config_map = {
    "dev": DevConfig,
    "test": TestConfig,
    "prod": ProdConfig,
    "default": DevConfig,
}
