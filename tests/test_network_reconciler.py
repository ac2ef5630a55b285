"""
Tests for the network reconciler against a mocked client.
"""

from unittest.mock import Mock

import pytest

from dockform.errors import ConvergenceTimeoutError, FatalProbeError, ResourceClientError, ResourceNotFoundError
from dockform.models import ManagedResource, ResourceKind
from dockform.reconcilers import NetworkReconciler
from dockform.reconcilers.network import network_attributes
from dockform.specs import NetworkSpec


def inspected(scope="local", options=None, labels=None):
    return {
        "Id": "net-1",
        "Name": "backend",
        "Driver": "overlay" if scope == "swarm" else "bridge",
        "Scope": scope,
        "Internal": False,
        "Attachable": True,
        "Options": options or {},
        "Labels": labels or {},
        "IPAM": {"Driver": "default", "Config": [{"Subnet": "10.0.0.0/24", "Gateway": "10.0.0.1"}]},
    }


@pytest.fixture
def client():
    return Mock()


@pytest.fixture
def reconciler(client, fast_settings):
    return NetworkReconciler(client, settings=fast_settings)


def existing(resource_id="net-1"):
    return ManagedResource(kind=ResourceKind.NETWORK, id=resource_id)


def test_create_waits_until_network_is_visible(client, reconciler):
    client.create.return_value = "net-1"
    client.inspect.side_effect = [
        ResourceNotFoundError("net-1"),
        inspected(labels={"env": "dev"}),
    ]

    resource = reconciler.create(NetworkSpec(name="backend"))

    assert resource.id == "net-1"
    assert resource.state.schema_version == 1
    assert resource.state.get("labels") == [{"label": "env", "value": "dev"}]
    assert resource.state.get("ipam_config")[0]["subnet"] == "10.0.0.0/24"
    assert client.inspect.call_count == 2


def test_overlay_scope_without_options_stays_pending(client, reconciler):
    client.inspect.side_effect = [
        inspected(scope="overlay"),
        inspected(scope="overlay", options={"com.docker.network.driver.overlay.vxlanid_list": "4097"}),
    ]

    resource = reconciler.read(existing())

    assert client.inspect.call_count == 2
    assert resource.state.get("options") == {"com.docker.network.driver.overlay.vxlanid_list": "4097"}


def test_other_scopes_accept_empty_options(client, reconciler):
    client.inspect.return_value = inspected(scope="local")

    resource = reconciler.read(existing())

    assert client.inspect.call_count == 1
    assert resource.state.get("options") == {}


def test_read_of_missing_network_clears_id(client, reconciler):
    client.inspect.side_effect = ResourceNotFoundError("net-1")
    resource = existing()
    resource.state.attributes["name"] = "backend"

    reconciler.read(resource)

    assert resource.id == ""
    assert resource.state.get("name") == "backend"


def test_read_error_is_fatal(client, reconciler):
    client.inspect.side_effect = ResourceClientError("permission denied")

    with pytest.raises(FatalProbeError, match="permission denied"):
        reconciler.read(existing())
    assert client.inspect.call_count == 1


class TestRemove:
    """Removal retries while endpoints are still attached."""

    def test_active_endpoints_are_retried(self, client, reconciler):
        client.inspect.return_value = inspected()
        client.remove.side_effect = [
            ResourceClientError("error while removing network: network backend id net-1 has active endpoints"),
            ResourceClientError("error while removing network: network backend id net-1 has active endpoints"),
            None,
        ]
        resource = existing()

        reconciler.remove(resource)

        assert client.remove.call_count == 3
        assert resource.id == ""

    def test_endpoint_message_is_matched_case_sensitively(self, client, reconciler):
        client.inspect.return_value = inspected()
        client.remove.side_effect = ResourceClientError("network backend Has Active Endpoints")

        with pytest.raises(FatalProbeError, match="Has Active Endpoints"):
            reconciler.remove(existing())
        assert client.remove.call_count == 1

    def test_already_gone(self, client, reconciler):
        client.inspect.side_effect = ResourceNotFoundError("net-1")

        reconciler.remove(existing())

        client.remove.assert_not_called()

    def test_other_errors_are_fatal(self, client, reconciler):
        client.inspect.return_value = inspected()
        client.remove.side_effect = ResourceClientError("permission denied")

        with pytest.raises(FatalProbeError):
            reconciler.remove(existing())
        assert client.remove.call_count == 1

    def test_endpoints_never_detach(self, client, fast_settings):
        fast_settings.network_timeout = 0.2
        client.inspect.return_value = inspected()
        client.remove.side_effect = ResourceClientError("network has active endpoints")
        resource = existing()

        with pytest.raises(ConvergenceTimeoutError) as exc_info:
            NetworkReconciler(client, settings=fast_settings).remove(resource)

        assert exc_info.value.last_state == "pending"
        assert resource.id == "net-1"


def test_network_attributes_flags():
    attributes = network_attributes({**inspected(), "EnableIPv6": True, "Internal": True})
    assert attributes["ipv6"] is True
    assert attributes["internal"] is True
    assert attributes["attachable"] is True
    assert attributes["labels"] == []


def test_network_attributes_keep_every_label():
    attributes = network_attributes(inspected(labels={"plumless": "a", "buckeroo": "b"}))
    assert attributes["labels"] == [
        {"label": "buckeroo", "value": "b"},
        {"label": "plumless", "value": "a"},
    ]
