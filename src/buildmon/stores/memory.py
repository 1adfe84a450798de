"""In-memory store for tests and dry runs."""

from __future__ import annotations

from typing import Literal

import pydantic as pdt

import buildmon.stores.base as base


class MemoryStore(base.BaseStore):
    """Holds documents in a dict for the lifetime of the instance."""

    kind: Literal["memory"] = "memory"

    _documents: dict[str, str] = pdt.PrivateAttr(default_factory=dict)

    def describe(self, name: str) -> str:
        return f"memory:{name}"

    def _read(self, name: str) -> str | None:
        return self._documents.get(name)

    def _write(self, name: str, text: str) -> None:
        self._documents[name] = text
