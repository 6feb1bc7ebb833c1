import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))


def resolve_path(path: str) -> str:
    """Relative paths are taken from the backend directory, where alembic also runs."""
    return path if os.path.isabs(path) else os.path.join(BACKEND_DIR, path)


ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
MODEL_ID = os.getenv("ZENTASK_MODEL", "claude-sonnet-4-5")
MAX_TOKENS = _env_int("ZENTASK_MAX_TOKENS", 512)
# Prioritize answers grow with the task list: a uuid4 id costs about 25 tokens
TOKENS_PER_PRIORITIZED_TASK = _env_int("ZENTASK_TOKENS_PER_PRIORITIZED_TASK", 40)

DATABASE_PATH = resolve_path(os.getenv("ZENTASK_DATABASE_PATH", "zentask.db"))
# Single storage key holding the whole serialized task collection
STORAGE_KEY = os.getenv("ZENTASK_STORAGE_KEY", "zen_todos")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ZENTASK_CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("ZENTASK_LOG_LEVEL", "INFO").upper()


def api_key_configured() -> bool:
    return bool(ANTHROPIC_API_KEY) and ANTHROPIC_API_KEY != "your-api-key-here"
