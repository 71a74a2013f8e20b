import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError

DEFAULT_ULTRA_API = "https://api.jup.ag/ultra/v1"
DEFAULT_EXPLORER_TX_URL = "https://solscan.io/tx/"
DEFAULT_DOTENV_PATH = Path(__file__).parent.parent / ".env"

LAMPORTS_PER_SOL = 1_000_000_000
# Minimum SOL kept for network fees before anything is submitted.
MIN_FEE_RESERVE_LAMPORTS = 1_000_000

# Poll policy for POST /execute: fixed spacing, hard ceiling on total calls.
EXECUTE_POLL_INTERVAL_SECONDS = 5.0
EXECUTE_MAX_ATTEMPTS = 24

REQUIRED_ENV_VARS = ("SOLANA_RPC_URL", "PRIVATE_KEY", "JUPITER_API_KEY")


class Settings(BaseModel):
    """Process-wide configuration, built once at startup and handed to each component."""

    model_config = ConfigDict(frozen=True)

    rpc_url: str
    private_key: str = Field(repr=False)
    api_key: str = Field(repr=False)
    ultra_api_url: str = DEFAULT_ULTRA_API
    explorer_tx_url: str = DEFAULT_EXPLORER_TX_URL
    http_timeout: float = 30.0
    min_fee_reserve_lamports: int = MIN_FEE_RESERVE_LAMPORTS
    poll_interval: float = EXECUTE_POLL_INTERVAL_SECONDS
    max_execute_attempts: int = Field(EXECUTE_MAX_ATTEMPTS, ge=1)

    @classmethod
    def from_env(cls, dotenv_path: Optional[Path] = DEFAULT_DOTENV_PATH) -> "Settings":
        """Reads settings from the environment, loading a .env file first if present.

        Raises ConfigurationError naming every missing required variable.
        """
        if dotenv_path is not None:
            load_dotenv(dotenv_path=dotenv_path)

        missing = [name for name in REQUIRED_ENV_VARS if not os.getenv(name)]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        try:
            return cls(
                rpc_url=os.environ["SOLANA_RPC_URL"],
                private_key=os.environ["PRIVATE_KEY"].strip(),
                api_key=os.environ["JUPITER_API_KEY"],
                ultra_api_url=os.getenv("JUPITER_ULTRA_API", DEFAULT_ULTRA_API).rstrip("/"),
                explorer_tx_url=os.getenv("EXPLORER_TX_URL", DEFAULT_EXPLORER_TX_URL),
                http_timeout=os.getenv("HTTP_TIMEOUT_SECONDS", "30"),
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
