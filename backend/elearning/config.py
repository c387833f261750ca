"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent


class Settings:
    ENV: str
    DATABASE_URL: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_HOURS: int
    AUTH_COOKIE_NAME: str
    COOKIE_SECURE: bool
    MAX_UPLOAD_BYTES: int
    AVATAR_DIR: Path
    ALLOW_INSECURE_JWT: bool
    ALLOW_DEV_CORS: bool
    LOG_LEVEL: str
    LOGIN_RATE_LIMIT_PER_MIN: int
    LOGIN_RATE_LIMIT_WINDOW_SECONDS: int
    DEFAULT_PASSING_SCORE: int

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'elearning.db'}")
        self.JWT_SECRET = os.getenv("JWT_SECRET", "change_me_for_prod")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", str(7 * 24)))  # one week, like the session cookie
        self.AUTH_COOKIE_NAME = os.getenv("AUTH_COOKIE_NAME", "auth-token")
        self.COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() == "true"
        self.MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(2 * 1024 * 1024)))  # 2 MB default
        self.AVATAR_DIR = Path(os.getenv("AVATAR_DIR", str(BASE / "data" / "avatars"))).expanduser()
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.LOGIN_RATE_LIMIT_PER_MIN = int(os.getenv("LOGIN_RATE_LIMIT_PER_MIN", "10"))
        self.LOGIN_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("LOGIN_RATE_LIMIT_WINDOW_SECONDS", "60"))
        self.DEFAULT_PASSING_SCORE = int(os.getenv("DEFAULT_PASSING_SCORE", "70"))
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == "change_me_for_prod":
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if not 0 <= self.DEFAULT_PASSING_SCORE <= 100:
            raise RuntimeError("DEFAULT_PASSING_SCORE must be between 0 and 100")
        if self.LOGIN_RATE_LIMIT_PER_MIN < 1:
            raise RuntimeError("LOGIN_RATE_LIMIT_PER_MIN must be >= 1")


settings = Settings()
