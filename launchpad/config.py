"""Application configuration via environment variables."""

from pathlib import Path
from pydantic import model_validator
from pydantic_settings import BaseSettings

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    database_url: str = "sqlite:///./launchpad.db"
    encryption_key: str = ""  # Fernet key for keypair files at rest; empty stores plain JSON
    log_level: str = "INFO"
    operator_api_key: str = ""  # Bearer token for /api/credentials and system ops; empty closes them
    cors_origins: list[str] = ["http://localhost:3000"]

    # Credential pools
    keypairs_dir: Path = PROJECT_ROOT / "keypairs"
    used_keypairs_dir: Path = PROJECT_ROOT / "used_keypairs"
    claim_ttl_seconds: int = 900
    session_ttl_seconds: int = 600
    sweep_interval_seconds: int = 60

    # Network and collaborators
    rpc_url: str = "https://api.mainnet-beta.solana.com"
    upload_url: str = "http://localhost:3000/api/upload"
    broadcast_url: str = "http://localhost:3000/api/send-transaction"
    token_api_url: str = "https://datapi.jup.ag"
    http_timeout_seconds: float = 30.0

    max_logo_bytes: int = 2 * 1024 * 1024  # 2 MB

    model_config = {"env_prefix": "LP_", "env_file": ".env"}

    @model_validator(mode="after")
    def claim_outlives_session(self):
        # An abandoned session must be failed before its claim can be recycled
        if self.claim_ttl_seconds <= self.session_ttl_seconds:
            raise ValueError(
                f"claim_ttl_seconds ({self.claim_ttl_seconds}) must exceed "
                f"session_ttl_seconds ({self.session_ttl_seconds})"
            )
        return self


settings = Settings()
