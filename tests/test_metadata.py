"""Tests for metadata descriptors and the attacher."""

import asyncio

import pytest

from dochistory import (
    AsyncDerive,
    MetadataDescriptor,
    MetadataError,
    StaticCopy,
    SyncDerive,
    attach_metadata,
    build_history_record,
)


@pytest.fixture
def record():
    return build_history_record({"_id": 1}, "update", "users")


class TestAttachMetadata:
    @pytest.mark.asyncio
    async def test_static_copy_and_sync_derive(self, record):
        descriptors = [
            MetadataDescriptor("k1", StaticCopy("field1")),
            MetadataDescriptor("k2", SyncDerive(lambda o, u: o["x"] + u["x"])),
        ]
        result = await attach_metadata({"x": 1}, {"x": 2, "field1": "A"}, record, descriptors)

        assert result.k1 == "A"
        assert result.k2 == 3
        assert result.metadata == {"k1": "A", "k2": 3}

    @pytest.mark.asyncio
    async def test_static_copy_without_updated_gives_none(self, record):
        result = await attach_metadata(
            None, None, record, [MetadataDescriptor("who", StaticCopy("updatedBy"))]
        )
        assert result.metadata == {"who": None}

    @pytest.mark.asyncio
    async def test_static_copy_of_missing_field_gives_none(self, record):
        result = await attach_metadata(
            {}, {"a": 1}, record, [MetadataDescriptor("who", StaticCopy("updatedBy"))]
        )
        assert result.metadata == {"who": None}

    @pytest.mark.asyncio
    async def test_async_derive(self, record):
        async def lookup(original, updated):
            await asyncio.sleep(0)
            return f"user-{updated['uid']}"

        result = await attach_metadata(
            None, {"uid": 7}, record, [MetadataDescriptor("user", AsyncDerive(lookup))]
        )
        assert result.user == "user-7"

    @pytest.mark.asyncio
    async def test_descriptors_run_concurrently(self, record):
        ready = asyncio.Event()

        async def waiter(original, updated):
            await ready.wait()
            return "waited"

        async def setter(original, updated):
            ready.set()
            return "set"

        descriptors = [
            MetadataDescriptor("a", AsyncDerive(waiter)),
            MetadataDescriptor("b", AsyncDerive(setter)),
        ]
        result = await asyncio.wait_for(attach_metadata(None, {}, record, descriptors), 1)
        assert result.metadata == {"a": "waited", "b": "set"}

    @pytest.mark.asyncio
    async def test_failure_raises_and_leaves_record_untouched(self, record):
        def boom(original, updated):
            raise LookupError("no user")

        descriptors = [
            MetadataDescriptor("ok", StaticCopy("a")),
            MetadataDescriptor("bad", SyncDerive(boom)),
        ]
        with pytest.raises(MetadataError) as exc_info:
            await attach_metadata(None, {"a": 1}, record, descriptors)

        assert exc_info.value.key == "bad"
        assert isinstance(exc_info.value.cause, LookupError)
        assert record.metadata == {}

    @pytest.mark.asyncio
    async def test_no_descriptors_returns_record(self, record):
        assert await attach_metadata(None, {}, record, []) is record


class TestCallbackAdapter:
    @pytest.mark.asyncio
    async def test_callback_value(self, record):
        def producer(original, updated, done):
            done(None, updated["n"] * 2)

        rule = AsyncDerive.from_callback(producer)
        result = await attach_metadata(None, {"n": 4}, record, [MetadataDescriptor("n2", rule)])
        assert result.n2 == 8

    @pytest.mark.asyncio
    async def test_callback_error(self, record):
        def producer(original, updated, done):
            asyncio.get_running_loop().call_soon(done, "lookup failed")

        rule = AsyncDerive.from_callback(producer)
        with pytest.raises(MetadataError, match="lookup failed"):
            await attach_metadata(None, {}, record, [MetadataDescriptor("x", rule)])


class TestMetadataDescriptor:
    def test_from_config_picks_rule(self):
        async def derive(original, updated):
            return 1

        assert MetadataDescriptor.from_config("a", "field").rule == StaticCopy("field")
        assert isinstance(MetadataDescriptor.from_config("b", derive).rule, AsyncDerive)
        assert isinstance(MetadataDescriptor.from_config("c", lambda o, u: 1).rule, SyncDerive)

    @pytest.mark.asyncio
    async def test_from_config_adapts_callback_producer(self, record):
        def producer(original, updated, done):
            done(None, updated["owner"])

        descriptor = MetadataDescriptor.from_config("user", producer)
        assert isinstance(descriptor.rule, AsyncDerive)
        assert await descriptor.resolve(None, {"owner": "ann"}) == "ann"

    def test_reserved_key_rejected(self):
        with pytest.raises(ValueError):
            MetadataDescriptor("data", StaticCopy("x"))

    def test_unknown_rule_rejected(self):
        with pytest.raises(TypeError):
            MetadataDescriptor("k", "field")  # type: ignore[arg-type]
