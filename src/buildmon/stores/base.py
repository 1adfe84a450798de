"""Base class for buildmon state stores.

A store persists three documents: the build history, the alert log and the
optional manually saved baseline snapshot. Reads are tolerant: a missing
document yields a fresh default and a corrupt one is logged and replaced by
a fresh default rather than failing the caller. Writes replace the whole
document. There is no locking; one writer at a time is assumed.
"""

from __future__ import annotations

import logging
from typing import TypeVar

import pydantic as pdt

import buildmon.records as records

logger = logging.getLogger(__name__)

HISTORY = "build-history.json"
ALERTS = "alerts.json"
BASELINE = "baseline-config.json"

RecordT = TypeVar("RecordT", bound=records.Record)


class BaseStore(pdt.BaseModel, strict=True, frozen=True, extra="forbid"):
    """Store backend interface.

    Concrete implementations provide ``_read`` and ``_write`` for raw
    documents; (de)serialization and the tolerant-read policy live here.
    """

    def _read(self, name: str) -> str | None:
        """Return the raw document, or None if it doesn't exist."""
        raise NotImplementedError("Store._read() not implemented")

    def _write(self, name: str, text: str) -> None:
        """Replace the raw document."""
        raise NotImplementedError("Store._write() not implemented")

    def describe(self, name: str) -> str:
        """Human-readable location of a document, for messages."""
        return name

    def _load(self, name: str, model: type[RecordT]) -> RecordT | None:
        try:
            text = self._read(name)
        except OSError as e:
            logger.warning("Failed to read %s, starting fresh: %s", self.describe(name), e)
            return None
        if text is None:
            return None
        try:
            return model.model_validate_json(text)
        except pdt.ValidationError as e:
            logger.warning(
                "Failed to load %s, starting fresh: %s",
                self.describe(name),
                e.errors()[0]["msg"] if e.errors() else e,
            )
            return None

    def _save(self, name: str, record: records.Record) -> None:
        self._write(name, record.model_dump_json(by_alias=True, indent=2))

    def load_history(self) -> records.BuildHistory:
        return self._load(HISTORY, records.BuildHistory) or records.BuildHistory()

    def save_history(self, history: records.BuildHistory) -> None:
        self._save(HISTORY, history)

    def load_alerts(self) -> records.AlertLog:
        return self._load(ALERTS, records.AlertLog) or records.AlertLog()

    def save_alerts(self, alerts: records.AlertLog) -> None:
        self._save(ALERTS, alerts)

    def load_baseline(self) -> records.ConfigSnapshot | None:
        return self._load(BASELINE, records.ConfigSnapshot)

    def save_baseline(self, snapshot: records.ConfigSnapshot) -> None:
        self._save(BASELINE, snapshot)
