import os

from pydantic import BaseModel


class Settings(BaseModel):
    db_path: str = os.getenv("WORKLIST_SERVER_DB", "data/server.sqlite")
    # drop-and-seed endpoint, development only
    enable_management: bool = os.getenv(
        "WORKLIST_ENABLE_MANAGEMENT", "1"
    ).strip().lower() not in {"0", "false", "no"}
    host: str = os.getenv("WORKLIST_HOST", "127.0.0.1")
    port: int = int(os.getenv("WORKLIST_PORT", "51368"))


settings = Settings()
