"""Profile persistence

The engine treats the stored profile as an opaque JSON object: stores only
load and save it. Shape validation happens in the engine (validators.parse_profile).

Stores:
- JsonFileProfileStore: one JSON file under DATA_PATH, replaced atomically
- InMemoryProfileStore: keeps the last saved payload in memory (tests, demos)
"""
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

from progression_engine.config import DATA_PATH, PROFILE_FILENAME
from progression_engine.exceptions import wrap_persistence_exception

logger = logging.getLogger(__name__)


@runtime_checkable
class ProfileStore(Protocol):
    """Durable storage for the progression profile"""

    async def load(self) -> Optional[Any]:
        """Return the stored payload, or None if nothing is stored"""
        ...

    async def save(self, payload: dict) -> bool:
        """Persist the payload, True on success"""
        ...


class JsonFileProfileStore:
    """Store the profile as a JSON file"""

    name = "json_file"

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else DATA_PATH / PROFILE_FILENAME

    async def load(self) -> Optional[Any]:
        """
        Read the stored profile

        Returns:
            Decoded JSON payload, or None if the file does not exist

        Raises:
            ProfileLoadError: If the file is not valid JSON
            PersistenceError: If the file cannot be read
        """
        if not self.path.exists():
            logger.info(f"No stored profile at {self.path}")
            return None

        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise wrap_persistence_exception(
                e, operation="load_profile", store=self.name, context={"path": str(self.path)}
            )

    async def save(self, payload: dict) -> bool:
        """
        Write the profile

        Writes to a temporary file first and replaces the target, so a failed
        write never leaves a truncated profile behind.

        Raises:
            PersistenceError: If the file cannot be written
        """
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            raise wrap_persistence_exception(
                e, operation="save_profile", store=self.name, context={"path": str(self.path)}
            )

        logger.debug(f"Saved profile to {self.path}")
        return True


class InMemoryProfileStore:
    """Keep the profile in memory (NOT durable)"""

    name = "memory"

    def __init__(self, initial: Optional[Any] = None):
        self._payload = copy.deepcopy(initial)
        self.save_count = 0

    async def load(self) -> Optional[Any]:
        return copy.deepcopy(self._payload)

    async def save(self, payload: dict) -> bool:
        self._payload = copy.deepcopy(payload)
        self.save_count += 1
        return True

    @property
    def payload(self) -> Optional[Any]:
        return self._payload
