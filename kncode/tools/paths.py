"""Path handling shared by the file tools: normalisation, target resolution and atomic writes."""

from __future__ import annotations

import os
import uuid
from pathlib import Path
from typing import Union

from kncode.tools.traits import PermissionDenied, ToolIOError, ValidationFailed

PathLike = Union[str, os.PathLike]


def normalize_path(cwd: PathLike, path: PathLike) -> Path:
    """Resolve '.' and '..' lexically, without touching the file system.

    Relative paths are taken from ``cwd``. A '..' that would climb above the
    root raises PermissionDenied.
    """
    cwd = Path(cwd)
    path = Path(path)
    joined = path if path.is_absolute() else cwd / path
    if joined.drive:
        raise PermissionDenied("Path contains a prefix (e.g., drive letter)")

    parts = joined.parts[1:] if joined.anchor else joined.parts
    stack: list[str] = []
    for part in parts:
        if part == "..":
            if not stack:
                raise PermissionDenied("Path escapes working directory via '..'")
            stack.pop()
        elif part != ".":
            stack.append(part)
    return Path(joined.anchor, *stack)


def resolve_target(cwd: PathLike, requested: PathLike) -> Path:
    """Resolve the file a write or edit should land on.

    ``cwd`` must already be canonical. An existing file is fully resolved; a new
    file in an existing directory resolves through that directory; anything
    deeper is normalised lexically. The caller checks containment in ``cwd``.
    """
    cwd = Path(cwd)
    requested = Path(requested)
    path = requested if requested.is_absolute() else cwd / requested

    if path.exists():
        try:
            return path.resolve(strict=True)
        except OSError as error:
            raise PermissionDenied(f"Cannot resolve file path: {error}") from error

    parent = path.parent
    if parent.exists():
        try:
            canonical_parent = parent.resolve(strict=True)
        except OSError as error:
            raise PermissionDenied(f"Cannot resolve parent directory: {error}") from error
        if path.name in ("", ".", ".."):
            raise ValidationFailed("Path has no file name component")
        return canonical_parent / path.name

    return normalize_path(cwd, path)


def atomic_write(path: PathLike, content: str) -> None:
    """Write UTF-8 text through a temporary sibling file and rename it into place."""
    path = Path(path)
    temp = path.with_name(f"{path.stem}.kn-tmp.{os.getpid()}.{uuid.uuid4()}")
    try:
        with open(temp, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
    except OSError as error:
        raise ToolIOError(error) from error
    try:
        os.replace(temp, path)
    except OSError as error:
        try:
            temp.unlink()
        except OSError:
            pass
        raise ToolIOError(error) from error