"""Unit tests for the create-or-patch convergence of managed objects."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
from kubernetes_asyncio.client import V1ConfigMap, V1ObjectMeta

from astarte_operator.common.models.labels import Labels
from astarte_operator.resources.base import HASH_ANNOTATION, BaseResource, SyncOutcome


def config_map(data=None, annotations=None):
    return V1ConfigMap(
        metadata=V1ObjectMeta(name="astarte-config", namespace="astarte-ns", annotations=annotations),
        data=data or {"key": "value"},
    )


def live(hash_value):
    return SimpleNamespace(metadata=SimpleNamespace(annotations={HASH_ANNOTATION: hash_value}))


@pytest.fixture
def resource():
    return BaseResource("astarte", "astarte-ns", "config", Labels())


class TestDesiredHash:
    def test_stable(self, resource):
        assert resource.prepare_desired_hash(config_map()) == resource.prepare_desired_hash(
            config_map()
        )

    def test_ignores_hash_annotation(self, resource):
        plain = resource.prepare_desired_hash(config_map())
        annotated = resource.prepare_desired_hash(
            config_map(annotations={HASH_ANNOTATION: "0123456789abcdef"})
        )
        assert plain == annotated

    def test_content_changes_hash(self, resource):
        assert resource.prepare_desired_hash(config_map()) != resource.prepare_desired_hash(
            config_map({"key": "other"})
        )


class TestConverge:
    @pytest.mark.asyncio
    async def test_creates_missing_object(self, resource):
        create = AsyncMock()
        outcome = await resource.converge(
            "config_map",
            config_map(),
            fetch=AsyncMock(return_value=None),
            create=create,
            patch=AsyncMock(),
        )
        assert outcome is SyncOutcome.CREATED
        created = create.await_args.args[0]
        assert created.metadata.annotations[HASH_ANNOTATION] == resource.prepare_desired_hash(
            config_map()
        )

    @pytest.mark.asyncio
    async def test_second_pass_is_unchanged(self, resource):
        patch = AsyncMock()
        outcome = await resource.converge(
            "config_map",
            config_map(),
            fetch=AsyncMock(return_value=live(resource.prepare_desired_hash(config_map()))),
            create=AsyncMock(),
            patch=patch,
        )
        assert outcome is SyncOutcome.UNCHANGED
        patch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_drift_is_patched(self, resource):
        resource.sensor = Mock()
        patch = AsyncMock()
        outcome = await resource.converge(
            "config_map",
            config_map(),
            fetch=AsyncMock(return_value=live("stale")),
            create=AsyncMock(),
            patch=patch,
        )
        assert outcome is SyncOutcome.UPDATED
        patch.assert_awaited_once()
        resource.sensor.on_resource_drift_detected.assert_called_once()
        resource.sensor.on_resource_sync_complete.assert_called_once()

    @pytest.mark.asyncio
    async def test_create_only_objects_are_never_patched(self, resource):
        outcome = await resource.converge(
            "secret",
            config_map(),
            fetch=AsyncMock(return_value=live("stale")),
            create=AsyncMock(),
        )
        assert outcome is SyncOutcome.UNCHANGED

    @pytest.mark.asyncio
    async def test_owner_reference(self, resource, kopf_calls):
        owner = {"metadata": {"name": "astarte", "uid": "uid"}}
        await resource.converge(
            "config_map",
            config_map(),
            fetch=AsyncMock(return_value=None),
            create=AsyncMock(),
            owner=owner,
        )
        assert kopf_calls.adopt.call_args.kwargs["owner"] is owner

    @pytest.mark.asyncio
    async def test_failed_write_is_reported_and_raised(self, resource):
        resource.sensor = Mock()
        with pytest.raises(RuntimeError):
            await resource.converge(
                "config_map",
                config_map(),
                fetch=AsyncMock(return_value=None),
                create=AsyncMock(side_effect=RuntimeError("boom")),
            )
        args = resource.sensor.on_resource_sync_complete.call_args.args
        assert args[-2] is False
        assert isinstance(args[-1], RuntimeError)
