"""
Tests for the Pulumi dynamic providers with the Docker client mocked out.
"""

from unittest.mock import Mock, patch

import pytest

from dockform.errors import ResourceClientError, ResourceNotFoundError
from dockform.pulumi_providers import NetworkProvider, ServiceProvider, VolumeProvider
from dockform.reconcilers import NetworkReconciler, ServiceReconciler, VolumeReconciler

NETWORK = {
    "Id": "net-1",
    "Name": "backend",
    "Driver": "bridge",
    "Scope": "local",
    "Options": {},
    "Labels": {"env": "dev"},
}

SERVICE = {
    "ID": "svc-1",
    "Spec": {
        "Name": "web",
        "Mode": {"Replicated": {"Replicas": 1}},
        "TaskTemplate": {"ContainerSpec": {"Image": "nginx"}},
        "EndpointSpec": {"Mode": "vip"},
    },
}


@pytest.fixture
def client():
    return Mock()


class TestNetworkProvider:
    """Create/read/delete/diff of networks."""

    @pytest.fixture
    def provider(self, client, fast_settings):
        provider = NetworkProvider()
        with patch.object(
            NetworkProvider, "_reconciler", return_value=NetworkReconciler(client, settings=fast_settings)
        ):
            yield provider

    def test_create(self, provider, client):
        client.create.return_value = "net-1"
        client.inspect.return_value = NETWORK

        result = provider.create({"name": "backend", "labels": {"env": "dev"}, "attributes": None})

        assert result.id == "net-1"
        assert result.outs["name"] == "backend"
        assert result.outs["schema_version"] == 1
        assert result.outs["attributes"]["labels"] == [{"label": "env", "value": "dev"}]

    def test_read_upgrades_old_state(self, provider, client):
        client.inspect.return_value = NETWORK
        props = {"name": "backend", "attributes": {"labels": {"env": "dev"}}, "schema_version": 0}

        result = provider.read("net-1", props)

        assert result.id == "net-1"
        assert result.outs["schema_version"] == 1

    def test_read_of_missing_network(self, provider, client):
        client.inspect.side_effect = ResourceNotFoundError("net-1")

        assert provider.read("net-1", {"name": "backend"}).id == ""

    def test_delete(self, provider, client):
        client.inspect.return_value = NETWORK

        provider.delete("net-1", {"name": "backend"})

        client.remove.assert_called_once_with("net-1")

    def test_any_change_replaces(self, provider):
        old = {"name": "backend", "driver": "bridge", "attributes": {"x": 1}}
        new = {"name": "backend", "driver": "overlay", "attributes": None}

        diff = provider.diff("net-1", old, new)

        assert diff.changes is True
        assert diff.replaces == ["driver"]

    def test_outputs_only_do_not_count_as_change(self, provider):
        diff = provider.diff("net-1", {"name": "a", "attributes": {"x": 1}}, {"name": "a", "attributes": None})
        assert diff.changes is False


def test_volume_provider_delete_waits_for_release(client, fast_settings):
    client.remove.side_effect = [ResourceClientError("remove data: volume is in use - [abc]"), None]
    with patch.object(VolumeProvider, "_reconciler", return_value=VolumeReconciler(client, settings=fast_settings)):
        VolumeProvider().delete("data", {"name": "data"})

    assert client.remove.call_count == 2


class TestServiceProvider:
    """Services update in place and replace only on rename."""

    @pytest.fixture
    def provider(self, client, fast_settings):
        provider = ServiceProvider()
        with patch.object(
            ServiceProvider, "_reconciler", return_value=ServiceReconciler(client, settings=fast_settings)
        ):
            yield provider

    def test_create_and_update(self, provider, client):
        client.create.return_value = "svc-1"
        client.list.return_value = [SERVICE]
        client.inspect.return_value = SERVICE

        created = provider.create({"name": "web", "image": "nginx", "attributes": None})
        updated = provider.update("svc-1", created.outs, {"name": "web", "image": "nginx:2", "attributes": None})

        assert created.id == "svc-1"
        assert created.outs["schema_version"] == 2
        client.update.assert_called_once()
        assert client.update.call_args.args[1].image == "nginx:2"
        assert updated.outs["image"] == "nginx:2"

    def test_rename_replaces(self, provider):
        diff = provider.diff("svc-1", {"name": "web", "image": "a"}, {"name": "api", "image": "b"})
        assert diff.replaces == ["name"]
        assert diff.changes is True

    def test_image_change_updates_in_place(self, provider):
        diff = provider.diff("svc-1", {"name": "web", "image": "a"}, {"name": "web", "image": "b"})
        assert diff.replaces == []
        assert diff.changes is True
