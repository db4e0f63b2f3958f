"""
Global configuration for the registry engine.

This module contains environment-specific settings shared by all components.
"""

import os
from pathlib import Path

_SUPPORTED_ZKCERT_ENVS: list[str] = ["prod", "test"]

ZKCERT_ENV = os.environ.get("ZKCERT_ENV", "prod").lower()
"""The environment flag ('prod' or 'test'). Defaults to 'prod'."""

if ZKCERT_ENV not in _SUPPORTED_ZKCERT_ENVS:
    raise ValueError(
        f"Invalid ZKCERT_ENV environment variable: '{ZKCERT_ENV}'. "
        f"Supported values: {_SUPPORTED_ZKCERT_ENVS}"
    )

ZKCERT_CACHE_DIR = Path(os.environ.get("ZKCERT_CACHE_DIR", "merkleTreeCache"))
"""Directory holding the leaf log cache files."""
