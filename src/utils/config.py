import os

from pydantic import BaseModel


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() not in {"0", "false", "no"}


class Settings(BaseModel):
    """Worker client settings, read from the environment."""

    server_url: str = os.getenv("WORKLIST_SERVER_URL", "https://localhost:51368")
    db_path: str = os.getenv("WORKLIST_CLIENT_DB", "data/client.sqlite")
    default_user_name: str = os.getenv("WORKLIST_USER", "David")
    # the development server uses a self-signed certificate
    verify_tls: bool = _env_flag("WORKLIST_VERIFY_TLS", "0")
    timeout_seconds: float = float(os.getenv("WORKLIST_TIMEOUT", "10"))


settings = Settings()
