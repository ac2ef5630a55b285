"""
State migration pipeline.

Every resource kind has a current schema version. A persisted state of an
older version is upgraded one version at a time, ``V -> V+1`` until current,
so shipping a new version only ever needs one new step.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from ..errors import ConfigurationError, MigrationError
from ..models import PersistedState, ResourceKind
from .flatmap import expand
from .schema import SchemaDescriptor

logger = logging.getLogger(__name__)

UpgradeFunc = Callable[[dict[str, Any], SchemaDescriptor], dict[str, Any]]


@dataclass(frozen=True)
class MigrationStep:
    """Upgrade of one kind from ``descriptor.version`` to the next version.

    Attributes:
        upgrade: Pure function over a deep copy of the attributes
        descriptor: Shape of the input version
        description: Human readable summary, used in logs
    """

    upgrade: UpgradeFunc
    descriptor: SchemaDescriptor
    description: str = ""

    @property
    def kind(self) -> ResourceKind:
        return self.descriptor.kind

    @property
    def from_version(self) -> int:
        return self.descriptor.version

    @property
    def to_version(self) -> int:
        return self.descriptor.version + 1


class MigrationPipeline:
    """
    Ordered chain of migration steps per resource kind.

    Example:
        >>> pipeline = MigrationPipeline({ResourceKind.NETWORK: 1})
        >>> pipeline.register(MigrationStep(migrate_labels_only, NETWORK_V0))
        >>> pipeline.upgrade(ResourceKind.NETWORK, PersistedState(schema_version=0, attributes=raw))
    """

    def __init__(
        self,
        current_versions: Mapping[ResourceKind, int],
        steps: Iterable[MigrationStep] = (),
    ):
        self.current_versions = dict(current_versions)
        self._steps: dict[tuple[ResourceKind, int], MigrationStep] = {}
        for step in steps:
            self.register(step)

    def register(self, step: MigrationStep) -> None:
        key = (step.kind, step.from_version)
        if key in self._steps:
            raise ConfigurationError(
                f"duplicate migration step for {step.kind.value} v{step.from_version}"
            )
        if step.to_version > self.current_versions.get(step.kind, 0):
            raise ConfigurationError(
                f"migration step for {step.kind.value} v{step.from_version} goes past the current version"
            )
        self._steps[key] = step

    def current_version(self, kind: ResourceKind) -> int:
        return self.current_versions.get(kind, 0)

    def steps_for(self, kind: ResourceKind) -> list[MigrationStep]:
        return sorted(
            (step for (k, _), step in self._steps.items() if k == kind),
            key=lambda step: step.from_version,
        )

    def validate(self) -> list[str]:
        """Every kind must have an unbroken chain from v0 to its current version."""
        issues = []
        for kind, current in self.current_versions.items():
            for version in range(current):
                if (kind, version) not in self._steps:
                    issues.append(f"missing migration step for {kind.value} v{version} -> v{version + 1}")
        return issues

    def needs_upgrade(self, kind: ResourceKind, state: PersistedState) -> bool:
        return state.schema_version != self.current_version(kind) or state.flat

    def upgrade(self, kind: ResourceKind, state: PersistedState) -> PersistedState:
        """
        Bring ``state`` to the current schema version of ``kind``.

        The input is never mutated; each step works on a deep copy and the
        result is a new PersistedState.

        Raises:
            MigrationError: malformed state, unknown future version or a
                missing step
        """
        current = self.current_version(kind)
        version = state.schema_version

        if version > current:
            raise MigrationError(
                f"{kind.value} state has schema version {version}, newer than supported version {current}"
            )
        if version == current:
            if state.flat:
                raise MigrationError(f"{kind.value} state v{version} is still in flatmap form")
            return state

        step = self._steps.get((kind, version))
        if step is None:
            raise MigrationError(f"unexpected schema version: {version} (no {kind.value} migration step)")

        attributes = state.copy_attributes()
        flat = state.flat
        if flat and not step.descriptor.flat:
            logger.debug(f"Expanding flatmap {kind.value} state v{version}")
            attributes = expand(attributes, step.descriptor.block)
            flat = False

        logger.info(f"Found {kind.value} state v{version}; migrating to v{step.to_version}")
        if step.description:
            logger.debug(f"{kind.value} v{version} -> v{step.to_version}: {step.description}")

        try:
            migrated = step.upgrade(attributes, step.descriptor)
        except MigrationError as e:
            raise MigrationError(
                f"{kind.value} v{version} -> v{step.to_version}: {e.message}", e.path
            ) from e

        return self.upgrade(
            kind,
            PersistedState(schema_version=step.to_version, attributes=migrated, flat=flat),
        )
