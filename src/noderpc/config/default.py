# noderpc/config/default.py
import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8332
DEFAULT_USERNAME = "user"
DEFAULT_PASSWORD = "pass"
DEFAULT_PROTOCOL = "https"
PROTOCOLS = ("http", "https")

# Tri-level logger names accepted next to the standard logging levels
LOG_LEVELS = {
    "none": 100,  # above CRITICAL, nothing is emitted
    "normal": 20,
    "debug": 10,
}

ENV_PREFIX = "NODERPC_"


def env(name: str, default: str | None = None) -> str | None:
    return os.getenv(ENV_PREFIX + name, default)
