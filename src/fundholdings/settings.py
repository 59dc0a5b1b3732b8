"""
Configuration module for FundHoldings timing policy, paths and environment overrides.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """
    Application settings using Pydantic for validation
    and environment variable support.
    """

    # Project root directory
    root_dir: Path = Field(
        default_factory=lambda: Path(__file__).resolve().parent.parent.parent
    )

    # Data directories
    data_dir: Optional[Path] = None
    cache_path: Optional[Path] = None

    # Waterfall policy
    attempt_timeout: float = Field(
        default=10.0, gt=0, description="Per-provider attempt timeout in seconds"
    )
    inter_attempt_delay: float = Field(
        default=0.5, ge=0, description="Pause between provider attempts in seconds"
    )
    inter_fund_delay: float = Field(
        default=0.1, ge=0, description="Pause between funds in batch mode in seconds"
    )
    max_concurrent_funds: int = Field(
        default=1, ge=1, description="Funds processed concurrently in batch mode"
    )

    # HTTP retry policy
    max_retries: int = Field(
        default=2, ge=0, description="Retries after the first HTTP attempt"
    )
    backoff_base: float = Field(
        default=0.5, ge=0, description="Backoff unit in seconds (2**attempt * base)"
    )
    request_timeout: float = Field(
        default=10.0, gt=0, description="Socket timeout for each HTTP request"
    )
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="HTTP User-Agent")

    # Cache settings
    cache_max_age_days: int = Field(
        default=7, ge=0, description="Cached holdings younger than this are reused"
    )

    # General settings
    log_level: str = Field(default="INFO", description="Logging level")

    model_config = {
        "env_prefix": "FUNDHOLDINGS_",
        "case_sensitive": False,
        "validate_default": True,
    }

    @field_validator("data_dir")
    @classmethod
    def set_data_dir(cls, v, info):
        return v or info.data.get("root_dir", Path.cwd()) / "data"

    @field_validator("cache_path")
    @classmethod
    def set_cache_path(cls, v, info):
        data_dir = info.data.get("data_dir") or (
            info.data.get("root_dir", Path.cwd()) / "data"
        )
        return v or data_dir / "holdings.db"

    def create_directories(self) -> None:
        """Create the data directory and the cache file's parent if missing."""
        for directory in (self.data_dir, self.cache_path.parent):
            if directory:
                directory.mkdir(parents=True, exist_ok=True)


settings = Settings()
