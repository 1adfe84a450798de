"""JSON file store.

Keeps each document as a pretty-printed JSON file inside a directory
(``.monitoring`` by default), creating the directory on first write.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import buildmon.errors as errors
import buildmon.stores.base as base


class JsonStore(base.BaseStore):
    """Directory of JSON documents."""

    kind: Literal["json"] = "json"
    path: str = ".monitoring"

    def _file(self, name: str) -> Path:
        return Path(self.path) / name

    def describe(self, name: str) -> str:
        return str(self._file(name))

    def _read(self, name: str) -> str | None:
        file = self._file(name)
        if not file.exists():
            return None
        return file.read_text(encoding="utf-8")

    def _write(self, name: str, text: str) -> None:
        file = self._file(name)
        try:
            file.parent.mkdir(parents=True, exist_ok=True)
            file.write_text(text, encoding="utf-8")
        except OSError as e:
            raise errors.StoreError(str(file), str(e)) from e
