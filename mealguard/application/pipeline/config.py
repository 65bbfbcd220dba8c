"""
Pipeline configuration.

Defaults live on the model; ``from_env`` reads ``MEALGUARD_*`` variables,
optionally loading a ``.env`` file first.

Example .env:
    MEALGUARD_MAX_RETRIES=3
    MEALGUARD_ENABLE_BLOCKING_VALIDATION=false
    MEALGUARD_RESPONSE_BLOCK_THRESHOLD_PCT=25
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "MEALGUARD_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


class PipelineConfig(BaseModel):
    """Options for one pipeline invocation."""

    model_config = ConfigDict(frozen=True)

    reconciliation_tolerance_pct: float = Field(default=0.15, gt=0, lt=1)
    meal_tolerance_pct: float = Field(default=0.10, gt=0, lt=1)
    max_retries: int = Field(default=2, ge=0, le=5)
    enable_blocking_validation: bool = True
    response_block_threshold_pct: float = Field(default=20.0, ge=0, le=100)
    macro_tolerance_pct: float = Field(default=0.05, gt=0, lt=1)
    enable_reconciliation: bool = True
    allow_protein_scaling: bool = False
    lookup_concurrency: int = Field(default=8, ge=1)
    lookup_timeout_s: float = Field(default=5.0, gt=0)
    lookup_retries: int = Field(default=1, ge=0)
    generation_timeout_s: float = Field(default=30.0, gt=0)
    trace_id: Optional[str] = None

    @classmethod
    def from_env(
        cls, env_file: Optional[Union[str, Path]] = None, **overrides: Any
    ) -> PipelineConfig:
        """
        Build config from environment variables.

        Args:
            env_file: Optional .env file loaded before reading (never
                overrides variables already set)
            **overrides: Explicit values that win over the environment

        Returns:
            PipelineConfig

        Example:
            >>> os.environ["MEALGUARD_MAX_RETRIES"] = "3"
            >>> PipelineConfig.from_env().max_retries
            3
        """
        if env_file is not None:
            load_dotenv(env_file)

        values: dict[str, Any] = {}
        for name, field in cls.model_fields.items():
            env_name = f"{ENV_PREFIX}{name.upper()}"
            raw = os.getenv(env_name)
            if raw is None or raw == "":
                continue
            if field.annotation is bool:
                values[name] = _parse_bool(env_name, raw)
            else:
                values[name] = raw

        values.update(overrides)
        return cls(**values)
