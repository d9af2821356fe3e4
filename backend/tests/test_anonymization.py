import asyncio
from uuid import uuid4

from trackdash.dataloaders.loader import LoaderRegistry
from trackdash.services.anonymization import AnonymizationService


def test_register_is_stable_and_idempotent(session):
    service = AnonymizationService(session, registry=LoaderRegistry())
    rut = f"{uuid4().hex[:8]}-K"
    anonymous_id = service.register(rut)
    assert anonymous_id != rut
    assert service.register(rut) == anonymous_id
    assert service.register(anonymous_id) == anonymous_id


def test_lookup_translates_real_ids_and_keeps_others(session):
    setup = AnonymizationService(session, registry=LoaderRegistry())
    rut = f"{uuid4().hex[:8]}-1"
    anonymous_id = setup.register(rut)

    async def scenario():
        service = AnonymizationService(session, registry=LoaderRegistry())
        return await asyncio.gather(
            service.get_anonymous_id_or_get_it_back(rut),
            service.get_anonymous_id_or_get_it_back(anonymous_id),
            service.get_anonymous_id_or_get_it_back("desconocido"),
        )

    translated, again, unknown = asyncio.run(scenario())
    assert translated == anonymous_id
    assert again == anonymous_id
    assert unknown == "desconocido"


def test_lookups_share_one_batch(session):
    calls = []
    service = AnonymizationService(session, registry=LoaderRegistry())
    original = service.loader.batch_load_fn

    async def recording(keys):
        calls.append(list(keys))
        return await original(keys)

    service.loader.batch_load_fn = recording

    async def scenario():
        return await asyncio.gather(*(service.get_anonymous_id_or_get_it_back(key) for key in ["a", "b", "a"]))

    assert asyncio.run(scenario()) == ["a", "b", "a"]
    assert calls == [["a", "b"]]
