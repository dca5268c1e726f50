from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from threading import RLock
from typing import Iterable, List, Optional, Protocol

from pydantic import ValidationError

from ..config import Settings
from ..domain.models import SavedArtifact

logger = logging.getLogger("genfeatures.vault")


class Vault(Protocol):
    def save_all(self, records: Iterable[SavedArtifact]) -> None: ...

    def load_all(self) -> List[SavedArtifact]: ...

    def remove(self, artifact_id: str) -> bool: ...


class InMemoryVault:
    def __init__(self) -> None:
        self._records: List[SavedArtifact] = []
        self._lock = RLock()

    def save_all(self, records: Iterable[SavedArtifact]) -> None:
        with self._lock:
            self._records = list(records)

    def load_all(self) -> List[SavedArtifact]:
        with self._lock:
            return list(self._records)

    def remove(self, artifact_id: str) -> bool:
        with self._lock:
            before = len(self._records)
            self._records = [r for r in self._records if r.id != artifact_id]
            return len(self._records) != before


class FileVault:
    """JSON file-backed vault for local persistence.

    Structure: a JSON list of saved artifact objects, newest first. A file that
    fails to parse is treated as empty (and logged) rather than crashing start-up.
    """

    def __init__(self, file_path: Optional[str] = None) -> None:
        self._lock = RLock()
        root = Path(__file__).resolve().parents[3]
        default_path = root / "run" / "vault.json"
        self._path = Path(file_path or os.getenv("GENFEATURES_VAULT_FILE", str(default_path)))
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def load_all(self) -> List[SavedArtifact]:
        with self._lock:
            if not self._path.exists():
                return []
            try:
                data = json.loads(self._path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                logger.error("vault_parse_failed", extra={"path": str(self._path), "err": str(exc)})
                return []
            records: List[SavedArtifact] = []
            for item in data if isinstance(data, list) else []:
                try:
                    records.append(SavedArtifact.model_validate(item))
                except ValidationError:
                    logger.warning("vault_record_skipped", extra={"path": str(self._path)})
            return records

    def save_all(self, records: Iterable[SavedArtifact]) -> None:
        with self._lock:
            payload = [r.model_dump() for r in records]
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def remove(self, artifact_id: str) -> bool:
        with self._lock:
            records = self.load_all()
            kept = [r for r in records if r.id != artifact_id]
            if len(kept) == len(records):
                return False
            self.save_all(kept)
            return True


def build_vault(settings: Optional[Settings] = None) -> Vault:
    settings = settings or Settings.from_env()
    if settings.vault_impl == "file":
        return FileVault(settings.vault_file)
    return InMemoryVault()
