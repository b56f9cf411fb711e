import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Project root is where .env lives
project_root = Path(__file__).parent.parent
env_path = project_root / ".env"

DEFAULT_PORT = 4000
MAX_UPLOAD_BYTES = 5 * 1024 * 1024  # 5MB


class Settings(BaseModel):
    mongodb_uri: Optional[str] = None
    db_name: str = "fixmyroad"
    collection_name: str = "reports"
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    uploads_dir: Path = Field(default_factory=lambda: Path.cwd() / "uploads")
    public_dir: Path = Field(default_factory=lambda: Path.cwd() / "public")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    log_level: str = "INFO"


def _port_from_env(raw: Optional[str]) -> int:
    try:
        port = int(raw) if raw else DEFAULT_PORT
    except ValueError:
        return DEFAULT_PORT
    return port if port > 0 else DEFAULT_PORT


def load_settings() -> Settings:
    """
    Read settings from the process environment, falling back to .env in the
    project root. Variables already set in the environment win.
    """
    load_dotenv(dotenv_path=env_path)

    cwd = Path.cwd()
    origins = os.getenv("CORS_ORIGINS")
    return Settings(
        mongodb_uri=os.getenv("MONGODB_URI") or None,
        db_name=os.getenv("DB_NAME", "fixmyroad"),
        collection_name=os.getenv("REPORTS_COLLECTION", "reports"),
        host=os.getenv("HOST", "0.0.0.0"),
        port=_port_from_env(os.getenv("PORT")),
        uploads_dir=Path(os.getenv("UPLOADS_DIR") or cwd / "uploads"),
        public_dir=Path(os.getenv("PUBLIC_DIR") or cwd / "public"),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()] if origins else ["*"],
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
