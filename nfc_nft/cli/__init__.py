"""Command line entry point (`nfc-nft`)."""

from .main import app, main

__all__ = ["app", "main"]
