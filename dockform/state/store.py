"""
State store - joblib-backed persistence of managed resources.

Every record passes through the migration pipeline on load, so callers only
ever see current-schema state. Records that had to be upgraded are written
back immediately.
"""

import logging
import threading
from pathlib import Path
from typing import Any

import joblib
from pydantic import ValidationError

from ..errors import MigrationError, StateStoreError
from ..migration import MigrationPipeline, build_default_pipeline
from ..models import ManagedResource

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class StateStore:
    """
    Thread-safe store of ManagedResource records keyed by resource id.

    Features:
    - Load/save using joblib, atomic write via temp file + rename
    - Re-entrant lock around every read-modify-write
    - Schema upgrades applied and persisted on load
    """

    def __init__(self, state_file: Path, pipeline: MigrationPipeline | None = None):
        self.state_file = Path(state_file)
        self.pipeline = pipeline or build_default_pipeline()
        self._lock = threading.RLock()

    def _read_raw(self) -> dict[str, Any]:
        if not self.state_file.exists():
            logger.info(f"State file {self.state_file} does not exist, starting empty")
            return {}
        try:
            data = joblib.load(self.state_file)
        except Exception as e:
            raise StateStoreError(f"Could not load state file {self.state_file}: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("resources", {}), dict):
            raise StateStoreError(f"State file {self.state_file} has an unexpected layout")
        return data.get("resources", {})

    def _write(self, resources: dict[str, ManagedResource]) -> None:
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "format_version": FORMAT_VERSION,
            "resources": {key: resource.model_dump(mode="json") for key, resource in resources.items()},
        }
        temp_file = self.state_file.with_suffix(".tmp")
        try:
            joblib.dump(data, temp_file)
            temp_file.replace(self.state_file)
        except Exception as e:
            raise StateStoreError(f"Could not save state file {self.state_file}: {e}") from e
        logger.debug(f"Saved {len(resources)} resources to {self.state_file}")

    def _upgrade(self, key: str, resource: ManagedResource) -> bool:
        if not self.pipeline.needs_upgrade(resource.kind, resource.state):
            return False
        try:
            resource.state = self.pipeline.upgrade(resource.kind, resource.state)
        except MigrationError as e:
            raise MigrationError(f"{resource.kind.value} '{key}': {e.message}", e.path) from e
        return True

    def _load(self) -> tuple[dict[str, ManagedResource], list[str]]:
        with self._lock:
            resources: dict[str, ManagedResource] = {}
            upgraded = []
            for key, raw in self._read_raw().items():
                try:
                    resource = ManagedResource.model_validate(raw)
                except ValidationError as e:
                    raise StateStoreError(f"Invalid record '{key}' in {self.state_file}: {e}") from e
                if self._upgrade(key, resource):
                    upgraded.append(key)
                resources[key] = resource

            if upgraded:
                logger.info(f"Upgraded {len(upgraded)} resources in {self.state_file}")
                self._write(resources)
            return resources, upgraded

    def load(self) -> dict[str, ManagedResource]:
        """All records at their current schema version.

        Raises:
            StateStoreError: unreadable file or record
            MigrationError: a record cannot be upgraded
        """
        return self._load()[0]

    def upgrade(self) -> list[str]:
        """Load and rewrite the file; returns the keys that were upgraded."""
        return self._load()[1]

    def get(self, resource_id: str) -> ManagedResource | None:
        return self.load().get(resource_id)

    def put(self, resource: ManagedResource) -> None:
        if not resource.exists:
            raise StateStoreError(f"Cannot store a {resource.kind.value} without an id")
        with self._lock:
            resources = self.load()
            resources[resource.id] = resource
            self._write(resources)

    def delete(self, resource_id: str) -> bool:
        with self._lock:
            resources = self.load()
            if resources.pop(resource_id, None) is None:
                return False
            self._write(resources)
            return True
