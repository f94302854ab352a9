"""EntityStore: departments, professors and students in one JSON document.

Every call reads the whole document, changes it in memory and writes the
whole document back. A full snapshot goes to the backup directory right
before each write, so any mutation can be undone by hand (or via restore()).
There is no locking: two concurrent writers can lose each other's changes.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from unistore.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    StorageError,
    StoreError,
    ValidationError,
    wrap_error,
)
from unistore.files import FileSystem, LocalFileSystem
from unistore.schema import KINDS, Kind, collection_name, get_schema, validate

if TYPE_CHECKING:
    from unistore.config import StoreConfig

logger = logging.getLogger(__name__)

COLLECTIONS = tuple(collection_name(k) for k in KINDS)

BACKUP_PREFIX = "backup_"
BACKUP_PATTERN = f"{BACKUP_PREFIX}*.json"

Record = dict[str, Any]


def empty_document() -> dict[str, Record]:
    return {name: {} for name in COLLECTIONS}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def backup_filename(moment: datetime) -> str:
    """``backup_<ISO-8601 UTC with ':' and '.' replaced by '-'>.json``."""
    stamp = moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    return f"{BACKUP_PREFIX}{re.sub(r'[:.]', '-', stamp)}.json"


def matches(record: Mapping[str, Any], criteria: Mapping[str, Any]) -> bool:
    """True if ``record`` satisfies every (field, value) pair in ``criteria``.

    String values match case-insensitively as substrings of a string field.
    Anything else must be equal; booleans never equal numbers. A record
    missing the field never matches.
    """
    for field, value in criteria.items():
        if field not in record:
            return False
        actual = record[field]
        if isinstance(value, str):
            if not isinstance(actual, str) or value.lower() not in actual.lower():
                return False
        elif isinstance(actual, bool) != isinstance(value, bool) or actual != value:
            return False
    return True


class EntityStore:
    """CRUD and search over the department/professor/student document."""

    def __init__(
        self,
        data_file: Path,
        backup_dir: Path | None = None,
        *,
        backup_keep: int = 0,
        files: FileSystem | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.data_file = Path(data_file)
        self.backup_dir = Path(backup_dir) if backup_dir else self.data_file.parent / "backups"
        self.backup_keep = backup_keep
        self.files: FileSystem = files or LocalFileSystem()
        self._clock = clock

    @classmethod
    def from_config(cls, config: StoreConfig, **kwargs: Any) -> EntityStore:
        return cls(
            config.data_file,
            config.resolved_backup_dir,
            backup_keep=config.backup_keep,
            **kwargs,
        )

    # ── Setup ─────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Create the empty document if missing and make sure backups/ exists. Idempotent."""
        try:
            if not await self.files.exists(self.data_file):
                await self.files.make_dirs(self.data_file.parent)
                await self._write(empty_document())
                logger.info("Created empty document: %s", self.data_file)
            await self.files.make_dirs(self.backup_dir)
        except Exception as exc:
            raise self._fail("Failed to initialize store", exc) from exc

    # ── Document I/O (internal) ───────────────────────────────

    async def _read(self) -> dict[str, Record]:
        try:
            data = json.loads(await self.files.read_text(self.data_file))
        except Exception as exc:
            raise StorageError(f"Failed to read data: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError("Failed to read data: document is not an object")
        for name in COLLECTIONS:
            data.setdefault(name, {})
        return data

    async def _write(self, data: Mapping[str, Any]) -> None:
        try:
            await self.files.write_text(self.data_file, _dumps(data))
        except Exception as exc:
            raise StorageError(f"Failed to write data: {exc}") from exc

    async def _backup(self, text: str) -> Path:
        """Write ``text`` as a new snapshot; never overwrites an existing one."""
        await self.files.make_dirs(self.backup_dir)
        name = backup_filename(self._clock())
        path = self.backup_dir / name
        counter = 2
        while await self.files.exists(path):
            path = self.backup_dir / name.replace(".json", f"_{counter:04d}.json")
            counter += 1
        await self.files.write_text(path, text)
        logger.info("Backup written: %s", path.name)

        if self.backup_keep > 0:
            await self._prune(self.backup_keep)
        return path

    def _collection(self, data: dict[str, Record], kind: str) -> Record:
        get_schema(kind)
        records = data[collection_name(kind)]
        if not isinstance(records, dict):
            raise StorageError(f"Failed to read data: {collection_name(kind)} is not an object")
        return records

    def _fail(self, prefix: str, exc: Exception) -> StoreError:
        logger.warning("%s: %s", prefix, exc)
        return wrap_error(prefix, exc)

    # ── CRUD ──────────────────────────────────────────────────

    async def add(self, kind: Kind, record: Mapping[str, Any]) -> Record:
        """Insert a new record. Returns the stored record."""
        try:
            validate(record, kind)
            data = await self._read()
            records = self._collection(data, kind)
            record_id = record["id"]
            if record_id in records:
                raise ConflictError(f"{kind} with ID {record_id} already exists")

            await self._backup(_dumps(data))
            stored = dict(record)
            records[record_id] = stored
            await self._write(data)
        except Exception as exc:
            raise self._fail(f"Failed to add {kind}", exc) from exc
        logger.info("Added %s: %s", kind, record_id)
        return stored

    async def update(self, kind: Kind, id: str, updates: Mapping[str, Any]) -> Record:
        """Shallow-merge ``updates`` onto an existing record and re-validate."""
        try:
            if not isinstance(updates, Mapping):
                raise ValidationError("Updates must be an object")
            data = await self._read()
            records = self._collection(data, kind)
            existing = records.get(id)
            if existing is None:
                raise NotFoundError(f"{kind} with ID {id} not found")
            if "id" in updates and updates["id"] != id:
                raise ValidationError(f"Cannot change id of {kind} {id}")

            updated = {**existing, **updates}
            validate(updated, kind)

            await self._backup(_dumps(data))
            records[id] = updated
            await self._write(data)
        except Exception as exc:
            raise self._fail(f"Failed to update {kind}", exc) from exc
        logger.info("Updated %s: %s (fields: %s)", kind, id, list(updates))
        return updated

    async def delete(self, kind: Kind, id: str) -> bool:
        """Remove a record. Departments with assigned professors can't be deleted."""
        try:
            data = await self._read()
            records = self._collection(data, kind)
            if id not in records:
                raise NotFoundError(f"{kind} with ID {id} not found")

            # Only department <- professor references are enforced
            if kind == "department":
                professors = self._collection(data, "professor")
                if any(p.get("department") == id for p in professors.values()):
                    raise DependencyError("Cannot delete department with assigned professors")

            await self._backup(_dumps(data))
            del records[id]
            await self._write(data)
        except Exception as exc:
            raise self._fail(f"Failed to delete {kind}", exc) from exc
        logger.info("Deleted %s: %s", kind, id)
        return True

    async def get(self, kind: Kind, id: str) -> Record:
        """Return a single record by id."""
        try:
            data = await self._read()
            record = self._collection(data, kind).get(id)
            if record is None:
                raise NotFoundError(f"{kind} with ID {id} not found")
        except Exception as exc:
            raise self._fail(f"Failed to get {kind}", exc) from exc
        return record

    async def search(self, kind: Kind, criteria: Mapping[str, Any]) -> list[Record]:
        """Linear scan: records whose fields satisfy every criterion."""
        try:
            if not isinstance(criteria, Mapping):
                raise ValidationError("Criteria must be an object")
            data = await self._read()
            items = list(self._collection(data, kind).values())
            found = [item for item in items if matches(item, criteria)]
        except Exception as exc:
            raise self._fail("Search failed", exc) from exc
        logger.debug("Search %s %r: %d of %d", kind, dict(criteria), len(found), len(items))
        return found

    async def list_records(self, kind: Kind) -> list[Record]:
        """All records of a kind."""
        return await self.search(kind, {})

    # ── Backups ───────────────────────────────────────────────

    async def list_backups(self) -> list[Path]:
        """Backup files, oldest first."""
        paths = await self.files.list_files(self.backup_dir, BACKUP_PATTERN)
        return sorted(paths, key=lambda p: p.name)

    async def restore(self, backup: Path | str) -> None:
        """Replace the document with a backup snapshot.

        A bare file name is looked up in the backup directory. The current
        document is snapshotted first so the restore itself can be undone.
        """
        path = Path(backup)
        if not path.is_absolute() and path.parent == Path("."):
            path = self.backup_dir / path
        try:
            try:
                snapshot = json.loads(await self.files.read_text(path))
            except Exception as exc:
                raise StorageError(f"Failed to read backup {path.name}: {exc}") from exc
            if not isinstance(snapshot, dict) or not all(
                isinstance(snapshot.get(name), dict) for name in COLLECTIONS
            ):
                raise ValidationError(f"{path.name} is not a valid document")
            for kind in KINDS:
                for key, record in snapshot[collection_name(kind)].items():
                    validate(record, kind)
                    if record["id"] != key:
                        raise ValidationError(
                            f"{path.name}: {kind} stored under {key} has id {record['id']}"
                        )

            # Raw text, so a corrupt document is still kept
            if await self.files.exists(self.data_file):
                await self._backup(await self.files.read_text(self.data_file))
            await self._write(snapshot)
        except Exception as exc:
            raise self._fail("Failed to restore backup", exc) from exc
        logger.info("Restored document from %s", path.name)

    async def prune_backups(self, keep: int) -> int:
        """Delete all but the newest ``keep`` backups. Returns count removed."""
        try:
            if keep < 0:
                raise ValidationError(f"keep must be >= 0, got {keep}")
            return await self._prune(keep)
        except Exception as exc:
            raise self._fail("Failed to prune backups", exc) from exc

    async def _prune(self, keep: int) -> int:
        backups = await self.list_backups()
        stale = backups[: max(len(backups) - keep, 0)]
        for path in stale:
            await self.files.remove(path)
        if stale:
            logger.info("Pruned %d old backups (keeping %d)", len(stale), keep)
        return len(stale)


def _dumps(data: Mapping[str, Any]) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2) + "\n"
