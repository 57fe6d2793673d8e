"""
nfc_nft.config — runtime settings for the ledger host, CLI and logging.

This module has NO third-party deps and is safe to import very early.

Configuration precedence:
  1) Environment variables (NFC_NFT_*)
  2) Hardcoded safe defaults below

Key env vars:
  - NFC_NFT_DB                   (str)   default: ":memory:"
  - NFC_NFT_LOG_LEVEL            (str)   default: "INFO"
  - NFC_NFT_LOG_FORMAT           (str)   default: "" (auto: json off-tty, text on tty)
  - NFC_NFT_DEFAULT_MAX_TOKENS   (int)   default: 10_000
  - NFC_NFT_MAX_MESSAGE_BYTES    (int)   default: 4_096

Numeric values outside their allowed range are clamped; unparsable values
fall back to the default.

Usage:
    from nfc_nft.config import load_config
    CFG = load_config()
    kv = open_kv(CFG.db_url)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict

U32_MAX = (1 << 32) - 1

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")
_LOG_FORMATS = ("", "json", "text")


# ----------------------------- helpers ---------------------------------------


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = raw.strip()
    return raw or default


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw, 0)
    except ValueError:
        return default
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


def _env_choice(name: str, default: str, choices: tuple, *, upper: bool = False) -> str:
    val = _env_str(name, default)
    norm = val.upper() if upper else val.lower()
    return norm if norm in choices else default


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class NftConfig:
    # Storage location for the CLI host (":memory:", a path, or sqlite:// URL)
    db_url: str

    # Logging
    log_level: str
    log_format: str

    # Contract-facing limits
    default_max_tokens: int
    max_message_bytes: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "db_url": self.db_url,
            "log_level": self.log_level,
            "log_format": self.log_format,
            "default_max_tokens": self.default_max_tokens,
            "max_message_bytes": self.max_message_bytes,
        }


@lru_cache(maxsize=1)
def load_config() -> NftConfig:
    """
    Build and cache an NftConfig from environment + safe defaults.
    Call `load_config.cache_clear()` after changing the environment.
    """
    return NftConfig(
        db_url=_env_str("NFC_NFT_DB", ":memory:"),
        log_level=_env_choice("NFC_NFT_LOG_LEVEL", "INFO", _LOG_LEVELS, upper=True),
        log_format=_env_choice("NFC_NFT_LOG_FORMAT", "", _LOG_FORMATS),
        default_max_tokens=_env_int(
            "NFC_NFT_DEFAULT_MAX_TOKENS", 10_000, min_v=1, max_v=U32_MAX
        ),
        max_message_bytes=_env_int(
            "NFC_NFT_MAX_MESSAGE_BYTES", 4_096, min_v=32, max_v=1_048_576
        ),
    )


__all__ = ["NftConfig", "load_config", "U32_MAX"]
