"""SigSettings — tunables for issuance and envelope decoding.

None of these settings affect whether a token verifies; they only trade
token size against CPU and bound the work done on untrusted input.
"""
from __future__ import annotations

import zlib
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SigSettings(BaseSettings):
    """Process-wide signer settings, read from ``TLS_SIG_*`` variables.

    Parameters
    ----------
    compression_level:
        zlib level used when packing tokens. ``0`` (no compression) is the
        default; ``-1`` selects zlib's default level.
    default_expire:
        Token lifetime in seconds used when a caller does not pass one
        (the CLI does this).
    pool_max_idle:
        Maximum number of idle compressors kept per pool.
    max_token_size:
        Upper bound, in bytes, on the decompressed JSON document accepted
        by :func:`~tls_sig.envelope.unpack`.
    """

    model_config = SettingsConfigDict(
        env_prefix="TLS_SIG_",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    compression_level: int = Field(default=zlib.Z_NO_COMPRESSION, ge=-1, le=9)
    default_expire: int = Field(default=86400 * 180, gt=0)
    pool_max_idle: int = Field(default=16, ge=0)
    max_token_size: int = Field(default=64 * 1024, gt=0)


@lru_cache(maxsize=1)
def get_settings() -> SigSettings:
    """Return the process default settings, read once from the environment."""
    return SigSettings()


__all__ = ["SigSettings", "get_settings"]
