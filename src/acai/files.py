"""File discovery for prompt context.

Public API (the "studs"):
    FileInfo: A file path with its text content
    get_file_info: Walk a directory and read the matching files
    get_content_blocks: Render FileInfo objects as JSON-ready dicts
    parse_patterns: Split a comma-separated pattern list
    should_include_file: Apply include/exclude glob patterns to a path
"""

from __future__ import annotations

import fnmatch
import logging
import os
from pathlib import Path

from pydantic import BaseModel

_logger = logging.getLogger(__name__)


class FileInfo(BaseModel):
    path: Path
    content: str


def parse_patterns(patterns: str | None) -> list[str]:
    """Split "a, b,c" into ["a", "b", "c"]; None or "" gives []."""
    if not patterns:
        return []
    return [p.strip() for p in patterns.split(",") if p.strip()]


def should_include_file(path: Path, include: list[str], exclude: list[str]) -> bool:
    """Decide whether a file is part of the context.

    Patterns are matched against the resolved absolute path. An include
    match wins over an exclude match; with no include patterns every file
    not excluded is taken.
    """
    path_str = str(path.resolve())
    if any(fnmatch.fnmatch(path_str, p) for p in include):
        return True
    if any(fnmatch.fnmatch(path_str, p) for p in exclude):
        return False
    return not include


def get_file_info(path: Path, include: list[str], exclude: list[str]) -> list[FileInfo]:
    """Read every matching text file below ``path``.

    Hidden files and directories are skipped. Files that are not valid
    UTF-8 are logged and skipped.
    """
    files: list[FileInfo] = []
    for dirpath, dirnames, filenames in os.walk(path):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for filename in sorted(filenames):
            if filename.startswith("."):
                continue
            file_path = Path(dirpath) / filename
            if not should_include_file(file_path, include, exclude):
                continue
            try:
                content = file_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                _logger.error("Skipping %s: %s", file_path, e)
                continue
            files.append(FileInfo(path=file_path, content=content))
    return files


def get_content_blocks(files: list[FileInfo]) -> list[dict[str, str]]:
    return [{"path": str(f.path), "content": f.content} for f in files]


__all__ = [
    "FileInfo",
    "get_file_info",
    "get_content_blocks",
    "parse_patterns",
    "should_include_file",
]
