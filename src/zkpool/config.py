"""
Pool configuration.

Reads environment variables (optionally from `.env`) via pydantic-settings.

Environment variables:
    ZKPOOL_TREE_HEIGHT                 (int, default 23)
    ZKPOOL_ROOT_HISTORY_SIZE           (int, default 100)
    ZKPOOL_MINIMAL_WITHDRAWAL_AMOUNT   (int, default 0.05 token in wei)
    ZKPOOL_MAXIMUM_DEPOSIT_AMOUNT      (int, default 1 token in wei)
    ZKPOOL_L1_CHAIN_ID                 (int, default 1)
    ZKPOOL_OUTPUT_ORDERING             ("sorted" | "random", default "sorted")
    ZKPOOL_WITHDRAWAL_ROUTING          ("flag" | "direct" | "bridge", default "flag")
    ZKPOOL_DATABASE_URL                (str, default "sqlite:///zkpool.db")
    ZKPOOL_LOG_LEVEL                   (str, default "INFO")
"""

import logging
from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from zkpool.constants import DEFAULT_ROOT_HISTORY_SIZE, DEFAULT_TREE_HEIGHT, MAX_EXT_AMOUNT

ETHER = 10**18


class OutputOrdering(str, Enum):
    """How the two outputs of a transaction are ordered in the log."""

    SORTED = "sorted"  # ascending commitment value
    RANDOM = "random"  # uniform shuffle


class WithdrawalRouting(str, Enum):
    """Which egress path pays a withdrawal."""

    FLAG = "flag"  # bridge iff ext_data.is_l1_withdrawal
    DIRECT = "direct"
    BRIDGE = "bridge"


class PoolSettings(BaseSettings):
    tree_height: int = Field(DEFAULT_TREE_HEIGHT, ge=1, le=32, description="Accumulator height")
    root_history_size: int = Field(
        DEFAULT_ROOT_HISTORY_SIZE, ge=1, description="Number of recent roots accepted"
    )
    minimal_withdrawal_amount: int = Field(ETHER // 20, ge=0)
    maximum_deposit_amount: int = Field(ETHER, ge=0)
    l1_chain_id: int = Field(1, description="Chain id governance messages must come from")
    output_ordering: OutputOrdering = OutputOrdering.SORTED
    withdrawal_routing: WithdrawalRouting = WithdrawalRouting.FLAG
    database_url: str = "sqlite:///zkpool.db"
    log_level: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")

    model_config = SettingsConfigDict(
        env_prefix="ZKPOOL_", env_file=".env", case_sensitive=False, extra="ignore"
    )

    @field_validator("maximum_deposit_amount")
    @classmethod
    def _check_deposit_bound(cls, v: int) -> int:
        if v >= MAX_EXT_AMOUNT:
            raise ValueError("maximum_deposit_amount must be below MAX_EXT_AMOUNT")
        return v

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def _check_limits(self) -> "PoolSettings":
        if self.minimal_withdrawal_amount >= MAX_EXT_AMOUNT:
            raise ValueError("minimal_withdrawal_amount must be below MAX_EXT_AMOUNT")
        return self


@lru_cache(maxsize=1)
def get_settings() -> PoolSettings:
    """Cached settings accessor."""
    return PoolSettings()


def configure_logging(settings: PoolSettings = None) -> None:
    """Set the root logging level and format from settings."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
