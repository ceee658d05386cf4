#!/usr/bin/env python3
"""
Atomic file operations for runner state.

Ensures state files are written completely or not at all, so a crash
mid-save never leaves a half-written JSON document behind.
"""

import os
import tempfile
from contextlib import contextmanager
from pathlib import Path


@contextmanager
def atomic_write(target_path: Path, mode: str = 'w'):
    """
    Context manager for atomic file writes.

    Writes to a temp file first, then atomically moves to target.
    If an exception occurs, the temp file is cleaned up and target is unchanged.

    Usage:
        with atomic_write(Path('user_goals_v2.json')) as f:
            f.write(payload)

    Args:
        target_path: Final destination path
        mode: File mode ('w' for text, 'wb' for binary)
    """
    target_path = Path(target_path)
    target_dir = target_path.parent
    target_dir.mkdir(parents=True, exist_ok=True)

    # Temp file in the same directory so the rename stays on one filesystem
    fd, temp_path = tempfile.mkstemp(
        dir=target_dir,
        prefix=f'.{target_path.name}.',
        suffix='.tmp'
    )

    try:
        with os.fdopen(fd, mode) as f:
            yield f
        os.replace(temp_path, target_path)

    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


def safe_write_text(path: Path, text: str):
    """Safely write a text document atomically."""
    with atomic_write(path) as f:
        f.write(text)
