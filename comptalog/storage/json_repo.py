from __future__ import annotations

import glob
import json
import logging
import shutil
import threading
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)


def _json_default(o: Any) -> Any:
    if isinstance(o, (date, datetime)):
        return o.isoformat()
    if isinstance(o, Decimal):
        return str(o)  # pas de float : on garde les millimes exacts
    raise TypeError(f"Object of type {o.__class__.__name__} is not JSON serializable")


class JsonRepository:
    """
    Journal JSON en ajout seul (grand livre de trésorerie, journal TVA).
    - un verrou sérialise les écritures
    - sauvegarde horodatée avant chaque purge (backup_keep dernières gardées)
    """

    def __init__(
        self,
        filepath: Union[str, Path],
        entity_name: str = "entry",
        *,
        backup_enabled: bool = True,
        backup_keep: int = 5,
    ) -> None:
        self.filepath = Path(filepath)
        self.entity_name = entity_name
        self._lock = threading.Lock()
        self.backup_enabled = backup_enabled
        self.backup_keep = max(0, int(backup_keep))

        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        if not self.filepath.exists():
            self._write_raw([])

    # ---------------- I/O bas niveau ---------------- #

    def _read_raw(self) -> List[Dict[str, Any]]:
        try:
            with self.filepath.open("r", encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, list) else []
        except FileNotFoundError:
            return []
        except json.JSONDecodeError:
            # Fichier corrompu → mis de côté, on repart sur une liste vide
            backup = self.filepath.with_suffix(".corrupt.json")
            shutil.copy2(self.filepath, backup)
            logger.warning("%s corrompu, copié vers %s", self.filepath, backup)
            return []

    def _write_raw(self, data: Iterable[Mapping[str, Any]]) -> None:
        dump = json.dumps(list(data), ensure_ascii=False, indent=2, default=_json_default)
        with self.filepath.open("w", encoding="utf-8") as f:
            f.write(dump)

    def _backup(self) -> None:
        if not self.backup_enabled or not self.filepath.exists():
            return
        ts = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        shutil.copy2(self.filepath, self.filepath.with_suffix(f".{ts}.bak.json"))
        pattern = str(self.filepath.with_suffix(".*.bak.json"))
        files = sorted(glob.glob(pattern))
        # garde les plus récentes
        for old in files[: max(0, len(files) - self.backup_keep)]:
            Path(old).unlink(missing_ok=True)

    # ---------------- Journal ---------------- #

    @staticmethod
    def _to_dict(item: Union[BaseModel, Mapping[str, Any]]) -> Dict[str, Any]:
        if isinstance(item, BaseModel):
            return item.model_dump()
        return dict(item)

    def list_all(self) -> List[Dict[str, Any]]:
        with self._lock:
            return self._read_raw()

    def append(self, item: Union[BaseModel, Mapping[str, Any]]) -> Dict[str, Any]:
        record = self._to_dict(item)
        with self._lock:
            data = self._read_raw()
            data.append(record)
            self._write_raw(data)
        return record

    def replace_all(self, items: Iterable[Union[BaseModel, Mapping[str, Any]]]) -> None:
        records = [self._to_dict(i) for i in items]
        with self._lock:
            self._write_raw(records)

    def truncate(self) -> None:
        with self._lock:
            self._backup()
            self._write_raw([])
        logger.info("Journal %s purgé (%s)", self.entity_name, self.filepath)
