"""
Unit tests for the label map to label set migrations.
"""

import copy

import pytest

from dockform.errors import MigrationError
from dockform.labels import records_to_map
from dockform.migration import migrate_container_labels, migrate_labels_only, migrate_service_labels
from dockform.migration.descriptors import CONTAINER_V1, NETWORK_V0, SERVICE_V0


def test_container_labels_become_records():
    migrated = migrate_container_labels({"labels": {"env": "dev", "team": "x"}}, CONTAINER_V1)

    assert sorted(migrated["labels"], key=lambda r: r["label"]) == [
        {"label": "env", "value": "dev"},
        {"label": "team", "value": "x"},
    ]
    assert migrated["mounts"] == []


def test_absent_labels_become_empty_set():
    migrated = migrate_container_labels({"image": "nginx"}, CONTAINER_V1)
    assert migrated["labels"] == []
    assert migrated["image"] == "nginx"


def test_mount_volume_option_labels_are_migrated():
    raw = {
        "labels": {},
        "mounts": [
            {"target": "/data", "type": "volume", "volume_options": [{"labels": {"backup": "daily"}}]},
            {"target": "/tmp", "type": "tmpfs"},
        ],
    }

    migrated = migrate_container_labels(raw, CONTAINER_V1)

    data, tmp = migrated["mounts"]
    assert data["volume_options"][0]["labels"] == [{"label": "backup", "value": "daily"}]
    assert data["bind_options"] == []
    assert tmp["volume_options"] == []


def test_labels_of_wrong_type_name_the_path():
    with pytest.raises(MigrationError) as exc_info:
        migrate_container_labels({"mounts": [{"volume_options": [{"labels": "x"}]}]}, CONTAINER_V1)
    assert exc_info.value.path == "mounts.0.volume_options.0.labels"


def test_container_migration_is_idempotent():
    once = migrate_container_labels({"labels": {"env": "dev"}, "mounts": [{"target": "/a"}]}, CONTAINER_V1)
    twice = migrate_container_labels(copy.deepcopy(once), CONTAINER_V1)
    assert twice == once


def test_network_labels():
    assert migrate_labels_only({"name": "net"}, NETWORK_V0) == {"name": "net", "labels": []}
    migrated = migrate_labels_only({"labels": {"a": "1"}}, NETWORK_V0)
    assert records_to_map(migrated["labels"]) == {"a": "1"}


class TestServiceLabels:
    """Service labels, including the embedded container spec."""

    def _raw(self):
        return {
            "name": "web",
            "labels": {"svc": "1"},
            "task_spec": [{
                "container_spec": [{
                    "image": "nginx",
                    "labels": {"c": "2"},
                    "mounts": [{"target": "/data", "volume_options": [{"labels": {"v": "3"}}]}],
                }],
            }],
        }

    def test_service_and_container_spec_labels(self):
        migrated = migrate_service_labels(self._raw(), SERVICE_V0)

        assert migrated["labels"] == [{"label": "svc", "value": "1"}]
        container_spec = migrated["task_spec"][0]["container_spec"][0]
        assert container_spec["labels"] == [{"label": "c", "value": "2"}]
        assert container_spec["mounts"][0]["volume_options"][0]["labels"] == [{"label": "v", "value": "3"}]

    def test_container_spec_gets_same_treatment_as_container(self):
        raw = self._raw()
        container_alone = migrate_container_labels(
            copy.deepcopy(raw["task_spec"][0]["container_spec"][0]), CONTAINER_V1
        )
        container_spec = migrate_service_labels(raw, SERVICE_V0)["task_spec"][0]["container_spec"][0]

        assert container_spec["labels"] == container_alone["labels"]
        assert container_spec["mounts"][0]["volume_options"] == container_alone["mounts"][0]["volume_options"]

    def test_missing_task_spec_is_an_error(self):
        with pytest.raises(MigrationError) as exc_info:
            migrate_service_labels({"labels": {}}, SERVICE_V0)
        assert exc_info.value.path == "task_spec"

    def test_missing_container_spec_is_an_error(self):
        with pytest.raises(MigrationError) as exc_info:
            migrate_service_labels({"task_spec": [{}]}, SERVICE_V0)
        assert exc_info.value.path == "task_spec.0.container_spec"
