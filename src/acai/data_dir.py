"""Local data directory for conversation history and logs.

Public API (the "studs"):
    DataDir: Saves message histories as JSON files under ~/.cache/acai
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel

_logger = logging.getLogger(__name__)


class DataDir:
    """Local data directory.

    Histories are stored as a JSON array in
    ``<root>/history/<epoch-ms>.json``. The log file lives in ``<root>``.
    """

    def __init__(self, root: Path | None = None) -> None:
        """Initialize DataDir.

        Args:
            root: Directory to use. Defaults to ~/.cache/acai/
        """
        if root is None:
            root = Path.home() / ".cache" / "acai"
        self._root = root
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def history_dir(self) -> Path:
        return self._root / "history"

    def save_messages(self, messages: Sequence[BaseModel | dict[str, Any]]) -> Path | None:
        """Persist a message or conversation-item list.

        Filesystem failures are logged, not raised.

        Args:
            messages: Pydantic models or wire-form dicts, in order

        Returns:
            Path of the written file, or None on failure
        """
        try:
            self.history_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            _logger.error("Failed to create directory: %s", e)
            return None

        # Two saves within one millisecond must not overwrite each other
        stamp = time.time_ns() // 1_000_000
        path = self.history_dir / f"{stamp}.json"
        while path.exists():
            stamp += 1
            path = self.history_dir / f"{stamp}.json"

        records = [m.model_dump(mode="json", exclude_none=True) if isinstance(m, BaseModel) else m for m in messages]
        data = json.dumps(records, indent=2)
        try:
            path.write_text(data)
        except OSError as e:
            _logger.error("Failed to write to file: %s", e)
            return None

        _logger.debug("Saved %d messages to %s", len(messages), path)
        return path


__all__ = ["DataDir"]
