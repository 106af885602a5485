"""JSON file storage for the persisted store state."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from dupliverse.services.persistence import StateStorage

logger = logging.getLogger(__name__)


@dataclass
class JsonFileStateStorage(StateStorage):
    """Keeps every key in one JSON document on disk."""

    path: Path

    def load(self, key: str) -> dict[str, object] | None:
        """Return the payload stored under `key`, if the file has one."""
        entry = self._read().get(key)
        return entry if isinstance(entry, dict) else None

    def save(self, key: str, payload: dict[str, object]) -> None:
        """Write `payload` under `key`, keeping other keys."""
        document = self._read()
        document[key] = payload
        self._write(document)

    def delete(self, key: str) -> None:
        """Remove `key` from the document."""
        document = self._read()
        if document.pop(key, None) is not None:
            self._write(document)

    def _read(self) -> dict[str, object]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            document = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupt state file %s", self.path)
            return {}
        return document if isinstance(document, dict) else {}

    def _write(self, document: dict[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)
