# src/toons_library/utils/resilient_io.py
"""
Atomic JSON writes for the credential file.

The file holds long-lived refresh tokens, so it is written to a temporary file
in the same directory, restricted to the owner and moved into place. A crash
mid-write leaves the previous file intact.
"""

import json
import os
import tempfile
import logging
from pathlib import Path
from typing import Any, Union


def _restrict_to_owner(path: Union[str, Path], logger: logging.Logger) -> None:
    try:
        os.chmod(path, 0o600)
    except OSError as e:
        # Windows may not support POSIX modes
        logger.debug(f"Could not restrict permissions on {path}: {e}")


def safe_write_json(
    path: Union[str, Path],
    data: Any,
    logger: logging.Logger,
    indent: int = 2,
    secure_permissions: bool = False,
) -> bool:
    """
    Serialize `data` and atomically replace `path` with it.

    Args:
        path: File path to write to
        data: JSON-serializable data
        logger: Logger for warnings
        indent: JSON indentation level (default: 2)
        secure_permissions: Set file permissions to 0o600 before the move

    Returns:
        True on success, False on failure (never raises)
    """
    path = Path(path)
    tmp_path = None

    try:
        content = json.dumps(data, indent=indent, sort_keys=True) + "\n"
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.stem}_", suffix=".tmp", text=True
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        if secure_permissions:
            _restrict_to_owner(tmp_path, logger)

        os.replace(tmp_path, path)
        tmp_path = None
        return True

    except (OSError, TypeError, ValueError) as e:
        logger.warning(f"Failed to write JSON to {path}: {e}")
        return False

    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            try:
                os.unlink(tmp_path)
            except OSError as e:
                logger.debug(f"Could not remove temporary file {tmp_path}: {e}")
