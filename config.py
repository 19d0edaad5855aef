import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _get_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "course_marketplace")

JWT_SECRET = os.getenv("JWT_SECRET") or "dev-secret-key-change-in-prod"
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS", "*"))


PLACEHOLDER_SECRETS = {"", "dev-secret-key-change-in-prod", "change-me"}


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET.strip() in PLACEHOLDER_SECRETS:
        raise RuntimeError("JWT_SECRET must be set in production.")
