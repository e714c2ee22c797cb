"""Durable store of cluster descriptors.

The store is a single JSON document (an array of descriptor objects) in the
configured directory. It is read lazily on first access and rewritten in full
on every upsert. Writes go to a temporary file in the same directory which is
then renamed over the original, so readers never observe a half-written
document.

Entries that do not parse as descriptors are skipped by readers but kept
verbatim in the document, so an upsert never drops them.

The store is owned by one process. Concurrent upserts must be serialized by
the caller; inside the asyncio service this holds because ``upsert`` never
yields to the event loop.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from clusterconf.descriptor import ClusterDescriptor, IdentityKey
from clusterconf.errors import PersistenceError
from clusterconf.logging import get_logger

logger = get_logger(__name__)


def dedupe_by_identity(descriptors: list[ClusterDescriptor]) -> list[ClusterDescriptor]:
    """Collapse descriptors sharing an identity key.

    The last descriptor for a key wins; the result keeps the position at which
    each key first appeared.
    """
    latest: dict[IdentityKey, ClusterDescriptor] = {}
    for descriptor in descriptors:
        latest[descriptor.identity_key] = descriptor
    # dict preserves first-insertion order even when values are reassigned
    return list(latest.values())


class ConfigStore:
    """JSON-file backed store of ``ClusterDescriptor`` entries keyed by identity."""

    def __init__(self, path: Path) -> None:
        """Initialize the store.

        Args:
            path: Location of the JSON document (normally ``<config_dir>/clusters.json``).
        """
        self._path = path
        # Parsed descriptors interleaved with raw entries that failed to parse
        self._rows: list[ClusterDescriptor | Any] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        """Whether the backing document is present on disk."""
        return self._path.is_file()

    def load(self) -> list[ClusterDescriptor]:
        """Return all stored descriptors in file order.

        Returns an empty list when the document does not exist yet. Entries
        that are not valid descriptors are left out.

        Raises:
            PersistenceError: If the document cannot be read or is not a JSON array.
        """
        return [row for row in self._load_rows() if isinstance(row, ClusterDescriptor)]

    def distinct(self) -> list[ClusterDescriptor]:
        """Return the sweep set: one descriptor per identity key, last write wins."""
        return dedupe_by_identity(self.load())

    def upsert(self, descriptor: ClusterDescriptor) -> None:
        """Insert or replace the descriptor with the same identity key.

        Every stored row with the key is dropped and the new descriptor takes
        the position of the first of them, or is appended when there was none.
        Entries that could not be parsed are written back unchanged. The whole
        document is rewritten before this method returns.

        Raises:
            PersistenceError: If the current document cannot be read or the new
                one cannot be written. The in-memory state is left unchanged.
        """
        updated: list[ClusterDescriptor | Any] = []
        replaced = 0
        for row in self._load_rows():
            if isinstance(row, ClusterDescriptor) and row.identity_key == descriptor.identity_key:
                if not replaced:
                    updated.append(descriptor)
                replaced += 1
                continue
            updated.append(row)
        if not replaced:
            updated.append(descriptor)

        self._write(updated)
        self._rows = updated
        if replaced > 1:
            logger.info(
                "Collapsed %d rows for cluster %s in %s", replaced, descriptor.identity, self._path
            )
        logger.info(
            "%s cluster %s in %s (%d entries)",
            "Updated" if replaced else "Added",
            descriptor.identity,
            self._path,
            len(updated),
        )

    def _load_rows(self) -> list[ClusterDescriptor | Any]:
        if self._rows is None:
            self._rows = self._read()
        return list(self._rows)

    def _read(self) -> list[ClusterDescriptor | Any]:
        try:
            raw_text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("Config store %s does not exist yet", self._path)
            return []
        except OSError as e:
            raise PersistenceError(f"Failed to read {self._path}: {e}") from e
        except UnicodeDecodeError as e:
            raise PersistenceError(f"Failed to decode {self._path} as UTF-8: {e}") from e

        if not raw_text.strip():
            return []

        try:
            raw: Any = json.loads(raw_text)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Failed to parse {self._path}: {e}") from e

        if not isinstance(raw, list):
            raise PersistenceError(
                f"Failed to parse {self._path}: expected a JSON array, got {type(raw).__name__}"
            )

        rows: list[ClusterDescriptor | Any] = []
        for position, entry in enumerate(raw):
            try:
                rows.append(ClusterDescriptor.from_dict(entry))
            except ValueError as e:
                logger.warning("Skipping invalid entry %d in %s: %s", position, self._path, e)
                rows.append(entry)
        return rows

    def _write(self, rows: list[ClusterDescriptor | Any]) -> None:
        payload = json.dumps(
            [row.to_dict() if isinstance(row, ClusterDescriptor) else row for row in rows],
            indent=2,
        )
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as e:
            raise PersistenceError(f"Failed to write {self._path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug("Could not remove temporary file %s", tmp_name)


__all__ = ["ConfigStore", "dedupe_by_identity"]
