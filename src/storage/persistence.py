"""JSON file store for the list of storage systems."""

import json
import os
from pathlib import Path

import structlog

from storage.exceptions import StoreCorruptedError
from storage.model.serialization import dump_system, load_system
from storage.model.system import StorageSystem

logger = structlog.get_logger(__name__)


class SystemStore:
    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def load(self) -> list[StorageSystem]:
        """Read every system back; a missing file starts an empty store."""
        if not self.path.exists():
            logger.info("store_created", path=str(self.path))
            self.path.write_text("[]", encoding="utf-8")

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise StoreCorruptedError(f"Database file is invalid: {exc}") from exc

        if not isinstance(data, list):
            raise StoreCorruptedError("Database file is invalid: the top level must be an array")

        systems = []
        names = set()
        for index, record in enumerate(data):
            try:
                system = load_system(record, f"systems[{index}]")
            except ValueError as exc:
                raise StoreCorruptedError(f"Database file is invalid: {exc}") from exc
            if system.name in names:
                raise StoreCorruptedError(f"Database file is invalid: system {system.name!r} appears twice")
            ids = [location.id for location in system.locations()]
            if len(ids) != len(set(ids)):
                raise StoreCorruptedError(
                    f"Database file is invalid: system {system.name!r} registers a location more than once"
                )
            names.add(system.name)
            systems.append(system)

        logger.info("store_loaded", path=str(self.path), systems=len(systems))
        return systems

    def encode(self, systems: list[StorageSystem]) -> str:
        return json.dumps([dump_system(system) for system in systems], indent=2)

    def save(self, systems: list[StorageSystem]) -> None:
        self.write(self.encode(systems))

    def write(self, payload: str) -> None:
        """Replace the file with ``payload`` in one step; readers never see a partial file."""
        scratch = self.path.with_name(self.path.name + ".tmp")
        scratch.write_text(payload, encoding="utf-8")
        os.replace(scratch, self.path)
        logger.debug("store_saved", path=str(self.path))
