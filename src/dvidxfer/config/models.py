"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, dvidxfer.toml only contains
overrides. Most transfers need no config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from dvidxfer import __version__
from dvidxfer.domain.partition import DEFAULT_AXIS_ORDER

# Largest payload the DVID raw endpoints handle reliably in one exchange.
DEFAULT_BYTE_CEILING = 2_000_000_000


class TransferConfig(BaseModel):
    """[transfer] section."""

    model_config = {"frozen": True}

    byte_ceiling: int = Field(default=DEFAULT_BYTE_CEILING, gt=0)
    label_bytes_per_voxel: int = Field(default=8, gt=0)
    blob_bytes_per_voxel: int = Field(default=1, gt=0)
    axis_order: str = DEFAULT_AXIS_ORDER
    cover_remainder: bool = True
    strict_block_shape: bool = False
    chunk_size: int = Field(default=1 << 20, gt=0)


class HttpConfig(BaseModel):
    """[http] section."""

    model_config = {"frozen": True}

    timeout: float | None = None
    user_agent: str = f"dvidxfer/{__version__}"
