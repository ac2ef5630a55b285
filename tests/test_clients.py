"""
Tests for the Docker SDK backed clients.
"""

from unittest.mock import Mock

import docker.errors
import pytest

from dockform.clients import DockerNetworkClient, DockerVolumeClient, ResourceClient, translate_errors
from dockform.errors import ResourceClientError, ResourceNotFoundError
from dockform.specs import NetworkSpec, VolumeSpec


def test_not_found_is_translated():
    with pytest.raises(ResourceNotFoundError) as exc_info:
        with translate_errors("net-1"):
            raise docker.errors.NotFound("404", explanation="network net-1 not found")

    assert exc_info.value.resource_id == "net-1"
    assert "network net-1 not found" in str(exc_info.value)


def test_api_error_keeps_daemon_message():
    with pytest.raises(ResourceClientError) as exc_info:
        with translate_errors("data"):
            raise docker.errors.APIError("409", explanation="remove data: volume is in use - [abc]")

    assert not isinstance(exc_info.value, ResourceNotFoundError)
    assert str(exc_info.value) == "remove data: volume is in use - [abc]"


@pytest.fixture
def docker_client():
    client = Mock()
    client.api.create_network.return_value = {"Id": "net-1", "Warning": ""}
    client.api.create_volume.return_value = {"Name": "data"}
    return client


def test_clients_satisfy_protocol(docker_client):
    assert isinstance(DockerNetworkClient(docker_client), ResourceClient)
    assert isinstance(DockerVolumeClient(docker_client), ResourceClient)


def test_network_create(docker_client):
    spec = NetworkSpec(name="backend", driver="overlay", attachable=True, labels={"env": "dev"})

    assert DockerNetworkClient(docker_client).create(spec) == "net-1"

    args, kwargs = docker_client.api.create_network.call_args
    assert args == ("backend",)
    assert kwargs["driver"] == "overlay"
    assert kwargs["attachable"] is True
    assert kwargs["labels"] == {"env": "dev"}
    assert kwargs["ipam"] is None


def test_network_remove_translates_errors(docker_client):
    docker_client.api.remove_network.side_effect = docker.errors.APIError(
        "403", explanation="error while removing network: network backend has active endpoints"
    )

    with pytest.raises(ResourceClientError, match="active endpoints"):
        DockerNetworkClient(docker_client).remove("net-1")


def test_volume_create_returns_name(docker_client):
    spec = VolumeSpec(name="data", driver_opts={"type": "tmpfs"})

    assert DockerVolumeClient(docker_client).create(spec) == "data"
    docker_client.api.create_volume.assert_called_once()
