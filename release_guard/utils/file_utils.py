"""File operation utilities"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Union

import aiofiles
import aiofiles.os


def ensure_parent_dir(file_path: Path) -> Path:
    """
    Ensure parent directory exists

    Args:
        file_path: File path

    Returns:
        The file path
    """
    file_path.parent.mkdir(parents=True, exist_ok=True)
    return file_path


def atomic_write(file_path: Path,
                 content: Union[str, bytes],
                 mode: str = 'w') -> None:
    """
    Write file atomically

    The content is written to a temporary file in the same directory,
    flushed to disk and renamed over the target.

    Args:
        file_path: Target file path
        content: Content to write
        mode: Write mode
    """
    ensure_parent_dir(file_path)
    temp_fd, temp_path = tempfile.mkstemp(dir=file_path.parent, prefix=f".{file_path.name}.")

    try:
        with os.fdopen(temp_fd, mode) as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        os.replace(temp_path, file_path)

    except Exception:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise


def read_json(file_path: Path) -> Dict[str, Any]:
    """
    Read a JSON object from file

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the content is not a JSON object
    """
    with open(file_path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object in {file_path}")
    return data


def write_json_atomic(file_path: Path, data: Dict[str, Any]) -> None:
    """Atomically replace ``file_path`` with ``data`` as JSON"""
    atomic_write(file_path, json.dumps(data, indent=2, sort_keys=True) + "\n")


async def write_json_durable(file_path: Path,
                             data: Dict[str, Any],
                             exclusive: bool = False) -> Path:
    """
    Write JSON and fsync it before returning

    Args:
        file_path: Target file path
        data: JSON-serializable mapping
        exclusive: Refuse to overwrite an existing file

    Returns:
        The written path

    Raises:
        FileExistsError: If ``exclusive`` and the file already exists
    """
    await aiofiles.os.makedirs(file_path.parent, exist_ok=True)

    content = json.dumps(data, indent=2, sort_keys=True) + "\n"
    async with aiofiles.open(file_path, 'x' if exclusive else 'w', encoding='utf-8') as f:
        await f.write(content)
        await f.flush()
        os.fsync(f.fileno())

    return file_path


async def read_json_async(file_path: Path) -> Dict[str, Any]:
    """Async variant of :func:`read_json`"""
    async with aiofiles.open(file_path, 'r', encoding='utf-8') as f:
        content = await f.read()

    data = json.loads(content)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object in {file_path}")
    return data


async def read_text_async(file_path: Path) -> str:
    """Read a whole text file"""
    async with aiofiles.open(file_path, 'r', encoding='utf-8') as f:
        return await f.read()
