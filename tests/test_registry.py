import pytest

from lanbeacon.discovery.events import EventDispatcher, ServiceEvent
from lanbeacon.discovery.protocol import MessageType
from lanbeacon.discovery.registry import ServiceRegistry
from lanbeacon.discovery.service import ServiceDescriptor
from lanbeacon.exceptions import AddressResolutionError


@pytest.fixture
def sent():
    return []


@pytest.fixture
def events():
    dispatcher = EventDispatcher()
    seen = {ServiceEvent.SERVICE_ANNOUNCED: [], ServiceEvent.SERVICE_RENOUNCED: []}
    for event, records in seen.items():
        dispatcher.subscribe(event, records.append)
    dispatcher.seen = seen
    return dispatcher


@pytest.fixture
def registry(events, sent, resolver):
    return ServiceRegistry(
        dispatcher=events,
        send=lambda msg_type, records: sent.append((msg_type, records)),
        resolver=resolver,
    )


API = ServiceDescriptor('10.0.0.5', 8080, 'api')


class TestUpsertLocal:

    @pytest.mark.asyncio
    async def test_inserts_owned_and_announces_once(self, registry, sent):
        key = await registry.upsert_local({'host': '10.0.0.5', 'port': 8080, 'name': 'api'})

        assert key == '10.0.0.5:8080:api'
        assert registry.get(key).owned_locally is True
        assert len(sent) == 1
        msg_type, records = sent[0]
        assert msg_type == MessageType.ANNOUNCE
        assert [r.key for r in records] == [key]

    @pytest.mark.asyncio
    async def test_idempotent(self, registry, sent):
        first = await registry.upsert_local(API)
        second = await registry.upsert_local(API)

        assert first == second
        assert len(sent) == 1
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_resolves_missing_host(self, registry, resolver):
        key = await registry.upsert_local({'port': 8080, 'name': 'api'})
        assert key == '192.168.1.20:8080:api'
        assert resolver.calls == 1

    @pytest.mark.asyncio
    async def test_does_not_mutate_caller_descriptor(self, registry):
        descriptor = {'port': 8080, 'name': 'api'}
        await registry.upsert_local(descriptor)
        assert 'host' not in descriptor

    @pytest.mark.asyncio
    async def test_incomplete_returns_none(self, registry, sent, resolver):
        assert await registry.upsert_local({'host': 'h', 'name': 'api'}) is None
        assert await registry.upsert_local({'host': 'h', 'port': 1}) is None
        assert await registry.upsert_local("not a descriptor") is None
        assert sent == []
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_resolution_failure_raises(self, registry, resolver, sent):
        resolver.address = None
        with pytest.raises(AddressResolutionError):
            await registry.upsert_local({'port': 8080, 'name': 'api'})
        assert sent == []

    @pytest.mark.asyncio
    async def test_existing_remote_key_not_taken_over(self, registry, sent):
        registry.apply_remote_announce(API)
        key = await registry.upsert_local(API)

        assert key == API.key
        assert registry.get(key).owned_locally is False
        assert sent == []


class TestRemoveLocal:

    @pytest.mark.asyncio
    async def test_by_key_renounces_then_deletes(self, registry, sent):
        key = await registry.upsert_local(API)
        sent.clear()

        assert registry.remove_local(key) is True
        assert key not in registry
        assert len(sent) == 1
        assert sent[0][0] == MessageType.RENOUNCE
        assert sent[0][1][0].key == key

    @pytest.mark.asyncio
    async def test_by_descriptor(self, registry):
        await registry.upsert_local(API)
        assert registry.remove_local({'host': '10.0.0.5', 'port': 8080, 'name': 'api'}) is True

    def test_peer_owned_is_untouched(self, registry, sent):
        registry.apply_remote_announce(API)
        assert registry.remove_local(API.key) is False
        assert API.key in registry
        assert sent == []

    def test_unknown_and_malformed(self, registry):
        assert registry.remove_local('1.2.3.4:1:x') is False
        assert registry.remove_local('') is False
        assert registry.remove_local({'host': 'h', 'name': 'n'}) is False
        assert registry.remove_local(None) is False


class TestRemote:

    def test_announce_inserts_and_fires_once(self, registry, events):
        assert registry.apply_remote_announce(API) is True
        assert registry.apply_remote_announce(ServiceDescriptor('10.0.0.5', 8080, 'api', {'v': 2})) is False

        assert len(registry) == 1
        assert registry.get(API.key).owned_locally is False
        assert registry.get(API.key).descriptor.extra == {}
        fired = events.seen[ServiceEvent.SERVICE_ANNOUNCED]
        assert [r.key for r in fired] == [API.key]

    @pytest.mark.asyncio
    async def test_announce_never_overwrites_local(self, registry, events):
        await registry.upsert_local(API)
        registry.apply_remote_announce(API)

        assert registry.get(API.key).owned_locally is True
        assert events.seen[ServiceEvent.SERVICE_ANNOUNCED] == []

    def test_renounce_removes_and_fires(self, registry, events):
        registry.apply_remote_announce(API)

        assert registry.apply_remote_renounce(API) is True
        assert API.key not in registry
        fired = events.seen[ServiceEvent.SERVICE_RENOUNCED]
        assert len(fired) == 1
        assert fired[0].descriptor == API

    def test_renounce_unknown_is_silent(self, registry, events):
        assert registry.apply_remote_renounce(API) is False
        assert events.seen[ServiceEvent.SERVICE_RENOUNCED] == []

    @pytest.mark.asyncio
    async def test_renounce_honoured_for_local_records(self, registry, events):
        await registry.upsert_local(API)
        assert registry.apply_remote_renounce(API) is True
        assert API.key not in registry
        assert events.seen[ServiceEvent.SERVICE_RENOUNCED][0].owned_locally is True


class TestSnapshot:

    def test_snapshot_is_deep_copy(self, registry):
        registry.apply_remote_announce(ServiceDescriptor('h', 1, 'n', {'tags': ['a']}))

        snap = registry.snapshot()
        snap['h:1:n'].descriptor.extra['tags'].append('b')
        snap['h:1:n'].owned_locally = True
        del snap['h:1:n']

        again = registry.snapshot()
        assert again['h:1:n'].descriptor.extra == {'tags': ['a']}
        assert again['h:1:n'].owned_locally is False
