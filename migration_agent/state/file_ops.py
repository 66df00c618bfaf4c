"""
JSON file operations for file-backed state.

Provides atomic read/write operations with:
- Atomic writes using temp file + fsync + rename
- Missing or empty files read as None
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from ..exceptions import StateStoreError


async def ensure_directory(path: Path) -> None:
    """Ensure directory exists, creating if necessary.

    Args:
        path: Directory path to ensure exists
    """
    try:
        await aiofiles.os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise StateStoreError("create_directory", path=str(path), cause=e) from e


async def read_json(path: Path) -> dict[str, Any] | None:
    """Read a JSON object file.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON data or None if file doesn't exist or is empty
    """
    try:
        if not await aiofiles.os.path.exists(path):
            return None
        async with aiofiles.open(path, encoding="utf-8") as f:
            content = await f.read()
    except OSError as e:
        raise StateStoreError("read_json", path=str(path), cause=e) from e

    if not content.strip():
        return None
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise StateStoreError("parse_json", path=str(path), cause=e) from e
    if not isinstance(data, dict):
        raise StateStoreError(
            "parse_json", path=str(path), cause=ValueError("top-level value is not an object")
        )
    return data


async def write_json_atomic(path: Path, data: dict[str, Any]) -> None:
    """Write JSON file atomically using temp file + rename.

    Args:
        path: Target path for JSON file
        data: Data to serialize as JSON
    """
    await ensure_directory(path.parent)

    fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=".tmp_",
        suffix=".json",
    )
    try:
        os.close(fd)
        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, indent=2))
            await f.flush()
            os.fsync(f.fileno())

        await aiofiles.os.rename(temp_path, path)
    except Exception as e:
        try:
            await aiofiles.os.remove(temp_path)
        except OSError:
            pass
        raise StateStoreError("write_json", path=str(path), cause=e) from e
