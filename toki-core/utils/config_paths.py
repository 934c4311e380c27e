from __future__ import annotations

import os
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]


def config_candidates(filename: str) -> list[Path]:
    """Locations searched for ``filename``, most specific first.

    1. ``TOKI_CONFIG_DIR`` environment variable, if set.
    2. ``/app/config`` (mounted runtime volume).
    3. ``<repo>/config``.
    4. ``./config`` relative to the working directory.
    """
    candidates: list[Path] = []
    env_config_dir = os.getenv("TOKI_CONFIG_DIR")
    if env_config_dir:
        candidates.append(Path(env_config_dir) / filename)
    candidates.extend(
        [
            Path("/app/config") / filename,
            REPO_ROOT / "config" / filename,
            Path.cwd() / "config" / filename,
        ]
    )
    return candidates


def resolve_config_file(filename: str) -> Path | None:
    for path in config_candidates(filename):
        if path.is_file():
            return path
    return None
