from typing import Literal, Self

from pydantic import model_validator
from pydantic_settings import BaseSettings

GIB = 1024 * 1024 * 1024


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    cors_origins: list[str] = []

    # Admin credential: a bcrypt hash is preferred, a plaintext password is hashed at startup
    admin_password_hash: str | None = None
    admin_password: str | None = None

    token_secret_key: str
    token_previous_keys: list[str] = []  # Older signing keys still accepted for verification, oldest first
    token_ttl_hours: int = 24

    login_max_failures: int = 5
    login_lockout_minutes: int = 15
    login_limiter_backend: Literal["memory", "mongo"] = "memory"
    trust_forwarded_for: bool = False  # Let uvicorn take the client address from X-Forwarded-For sent by trusted proxies
    forwarded_allow_ips: str = "127.0.0.1"  # Comma-separated proxy addresses whose forwarding headers are trusted

    files_path: str  # Directory path for storing uploaded files
    max_upload_size: int = 2 * GIB
    stream_chunk_size: int = 64 * 1024

    # Build metadata injected during Docker build via environment variables
    git_commit_hash: str = "unknown"
    build_time: str = "unknown"

    model_config = {
        "env_file": [".env"],
        "env_prefix": "ALGOSHELF_",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def check_admin_credential(self) -> Self:
        if not self.admin_password_hash and not self.admin_password:
            raise ValueError("Either admin_password_hash or admin_password must be set")
        return self
