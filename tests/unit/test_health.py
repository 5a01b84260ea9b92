"""Unit tests for the cluster health scorer."""

from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from astarte_operator.lifecycle.health import (
    UNLISTABLE_DEPLOYMENTS_PENALTY,
    compute_cluster_health,
    health_from_count,
)
from astarte_operator.types.models import ClusterHealth

from fakes import api_error, workload

ONLY_VERNEMQ = {
    "rabbitmq": {"deploy": False},
    "cassandra": {"deploy": False},
    "cfssl": {"deploy": False},
}


def deployments(*ready):
    return SimpleNamespace(items=[workload(replicas=1, ready=count) for count in ready])


@pytest.mark.parametrize(
    "not_ready, expected",
    [
        (0, ClusterHealth.GREEN),
        (1, ClusterHealth.YELLOW),
        (2, ClusterHealth.RED),
        (UNLISTABLE_DEPLOYMENTS_PENALTY, ClusterHealth.RED),
    ],
)
def test_health_from_count(not_ready, expected):
    assert health_from_count(not_ready) is expected


class TestComputeClusterHealth:
    @pytest.mark.asyncio
    async def test_single_ready_dependency_is_green(self, make_astarte):
        astarte = make_astarte(**ONLY_VERNEMQ)
        astarte.apps_v1_api.list_namespaced_deployment.return_value = deployments()
        astarte.apps_v1_api.read_namespaced_stateful_set.return_value = workload(ready=1)

        assert await compute_cluster_health(astarte) is ClusterHealth.GREEN
        assert (
            astarte.apps_v1_api.list_namespaced_deployment.await_args.kwargs["label_selector"]
            == "component=astarte,app.kubernetes.io/instance=astarte"
        )

    @pytest.mark.asyncio
    async def test_single_unready_dependency_is_yellow(self, make_astarte):
        astarte = make_astarte(**ONLY_VERNEMQ)
        astarte.apps_v1_api.list_namespaced_deployment.return_value = deployments()
        astarte.apps_v1_api.read_namespaced_stateful_set.return_value = workload(ready=0)

        assert await compute_cluster_health(astarte) is ClusterHealth.YELLOW

    @pytest.mark.asyncio
    async def test_missing_dependency_counts_as_unready(self, make_astarte):
        astarte = make_astarte(**ONLY_VERNEMQ)
        astarte.apps_v1_api.list_namespaced_deployment.return_value = deployments()
        astarte.apps_v1_api.read_namespaced_stateful_set.side_effect = api_error(404, "NotFound")

        assert await compute_cluster_health(astarte) is ClusterHealth.YELLOW

    @pytest.mark.asyncio
    async def test_three_of_seven_unready_is_red(self, make_astarte):
        astarte = make_astarte(**ONLY_VERNEMQ)
        astarte.apps_v1_api.list_namespaced_deployment.return_value = deployments(
            1, 0, 1, 0, 1, 0, 1
        )
        astarte.apps_v1_api.read_namespaced_stateful_set.return_value = workload(ready=1)

        assert await compute_cluster_health(astarte) is ClusterHealth.RED

    @pytest.mark.asyncio
    async def test_scaled_down_deployments_are_ignored(self, make_astarte):
        astarte = make_astarte(**ONLY_VERNEMQ)
        astarte.apps_v1_api.list_namespaced_deployment.return_value = SimpleNamespace(
            items=[workload(replicas=0, ready=0), workload(replicas=1, ready=1)]
        )
        astarte.apps_v1_api.read_namespaced_stateful_set.return_value = workload(ready=1)

        assert await compute_cluster_health(astarte) is ClusterHealth.GREEN

    @pytest.mark.asyncio
    async def test_listing_failure_is_red(self, make_astarte):
        astarte = make_astarte(**ONLY_VERNEMQ)
        astarte.apps_v1_api.list_namespaced_deployment.side_effect = api_error(403, "Forbidden")
        astarte.apps_v1_api.read_namespaced_stateful_set.return_value = workload(ready=1)

        assert await compute_cluster_health(astarte) is ClusterHealth.RED

    @pytest.mark.asyncio
    async def test_cfssl_kind_follows_version(self, make_astarte):
        astarte = make_astarte(rabbitmq={"deploy": False}, cassandra={"deploy": False})
        astarte.apps_v1_api.list_namespaced_deployment.return_value = deployments()
        astarte.apps_v1_api.read_namespaced_stateful_set.return_value = workload(ready=1)
        astarte.apps_v1_api.read_namespaced_deployment.return_value = workload(ready=0)

        assert await compute_cluster_health(astarte) is ClusterHealth.YELLOW
        assert (
            astarte.apps_v1_api.read_namespaced_deployment.await_args.kwargs["name"]
            == "astarte-cfssl"
        )

    @pytest.mark.asyncio
    async def test_cfssl_found_by_kind_when_version_is_invalid(self, make_astarte):
        astarte = make_astarte(
            version="latest", rabbitmq={"deploy": False}, cassandra={"deploy": False}
        )
        astarte.apps_v1_api.list_namespaced_deployment.return_value = deployments()
        astarte.apps_v1_api.read_namespaced_stateful_set.return_value = workload(ready=1)
        astarte.apps_v1_api.read_namespaced_deployment.side_effect = api_error(404, "NotFound")

        assert await compute_cluster_health(astarte) is ClusterHealth.GREEN
        stateful_sets = [
            call.kwargs["name"]
            for call in astarte.apps_v1_api.read_namespaced_stateful_set.await_args_list
        ]
        assert stateful_sets == ["astarte-vernemq", "astarte-cfssl"]

    @pytest.mark.asyncio
    async def test_nothing_is_written(self, make_astarte):
        astarte = make_astarte(**ONLY_VERNEMQ)
        astarte.sensor = Mock()
        astarte.apps_v1_api.list_namespaced_deployment.return_value = deployments(0, 0)
        astarte.apps_v1_api.read_namespaced_stateful_set.return_value = workload(ready=1)

        assert await compute_cluster_health(astarte) is ClusterHealth.RED
        assert astarte.custom_objects_api.status_writes == []
        astarte.sensor.on_health_computed.assert_called_once_with(
            "astarte", "astarte-ns", "red", 2
        )
