import asyncio
import json

import pytest

from fittings_portal.cache.products import CategoryCache, ProductCache
from fittings_portal.cache.quotations import FollowUpCache, QuotationCache
from fittings_portal.validation import FormValidationError
from pydantic import ValidationError


@pytest.mark.asyncio
async def test_refetch_reads_remote_and_mirrors_local(remote, local):
    remote.tables["categories"] = [
        {"id": "c2", "name": "Valves", "created_at": "2025-01-02T00:00:00+00:00"},
        {"id": "c1", "name": "Adhesives", "created_at": "2025-01-01T00:00:00+00:00"},
    ]
    cache = CategoryCache(remote, local)

    items = await cache.refetch()

    assert [c.name for c in items] == ["Adhesives", "Valves"]
    assert cache.loading is False
    mirrored = json.loads(local.get_item("catalog-categories"))
    assert {row["id"] for row in mirrored} == {"c1", "c2"}


@pytest.mark.asyncio
async def test_empty_product_snapshot_seeds_catalog_once(unconfigured_remote, local):
    cache = ProductCache(unconfigured_remote, local)

    first = await cache.refetch()
    second = await cache.refetch()

    assert len(first) == 8
    assert [p.id for p in second] == [p.id for p in first]
    assert len(json.loads(local.get_item("catalog-products"))) == 8


@pytest.mark.asyncio
async def test_non_product_caches_seed_empty(unconfigured_remote, local):
    quotations = QuotationCache(unconfigured_remote, local)
    assert await quotations.refetch() == []
    assert local.get_item("quotation-requests") == "[]"


@pytest.mark.asyncio
async def test_corrupt_snapshot_is_reseeded(unconfigured_remote, local):
    local.set_item("catalog-products", "{not json")
    cache = ProductCache(unconfigured_remote, local)

    items = await cache.refetch()

    assert len(items) == 8


@pytest.mark.asyncio
async def test_remote_failure_falls_back_to_last_mirror(remote, local):
    remote.tables["categories"] = [{"id": "c1", "name": "Valves"}]
    cache = CategoryCache(remote, local)
    await cache.refetch()

    remote.failing = True
    items = await cache.refetch()

    assert [c.id for c in items] == ["c1"]


@pytest.mark.asyncio
async def test_add_then_refetch_yields_entity_once(remote, local, make_quote_payload):
    cache = QuotationCache(remote, local)
    await cache.refetch()

    added = await cache.add(make_quote_payload())
    items = await cache.refetch()

    assert [q.id for q in items].count(added.id) == 1


@pytest.mark.asyncio
async def test_add_offline_assigns_local_id_and_timestamps(unconfigured_remote, local, clock, make_quote_payload):
    cache = QuotationCache(unconfigured_remote, local, clock=clock)
    await cache.refetch()

    added = await cache.add(make_quote_payload())

    ms, suffix = added.id.split("-")
    assert ms == str(int(clock.now.timestamp() * 1000))
    assert len(suffix) == 6
    assert added.created_at == clock.now
    assert cache.items == [added]
    again = await cache.refetch()
    assert [q.id for q in again] == [added.id]


@pytest.mark.asyncio
async def test_add_rejects_invalid_entity_before_any_store_call(remote, local):
    cache = QuotationCache(remote, local)

    with pytest.raises(ValidationError):
        await cache.add({"email": "x@example.com"})

    assert remote.calls == []


@pytest.mark.asyncio
async def test_update_reflects_partial_and_keeps_other_fields(remote, local, make_quote_payload):
    cache = QuotationCache(remote, local)
    added = await cache.add(make_quote_payload())

    updated = await cache.update(added.id, {"phone": "0411 111 111", "company": "New Co"})

    assert updated.phone == "0411 111 111"
    assert updated.company == "New Co"
    assert updated.customer_name == added.customer_name
    assert updated.items == added.items


@pytest.mark.asyncio
async def test_update_offline_stamps_updated_at(unconfigured_remote, local, clock, make_quote_payload):
    cache = QuotationCache(unconfigured_remote, local, clock=clock)
    added = await cache.add(make_quote_payload())
    clock.now = clock.now.replace(hour=12)

    updated = await cache.update(added.id, {"phone": "123"})

    assert updated.updated_at == clock.now
    assert updated.created_at == added.created_at
    stored = json.loads(local.get_item("quotation-requests"))
    assert stored[0]["phone"] == "123"


@pytest.mark.asyncio
async def test_update_unknown_id_is_noop(remote, local):
    cache = QuotationCache(remote, local)
    assert await cache.update("missing", {"phone": "1"}) is None
    assert remote.calls == []


@pytest.mark.asyncio
async def test_remove_then_read_never_includes_id(remote, local, make_quote_payload):
    cache = QuotationCache(remote, local)
    added = await cache.add(make_quote_payload())

    await cache.remove(added.id)

    assert cache.get(added.id) is None
    assert added.id not in [q.id for q in await cache.refetch()]


@pytest.mark.asyncio
async def test_offline_add_then_remove_leaves_snapshot_empty(unconfigured_remote, local, make_quote_payload):
    cache = QuotationCache(unconfigured_remote, local)
    await cache.refetch()

    added = await cache.add(make_quote_payload())
    await cache.remove(added.id)

    assert json.loads(local.get_item("quotation-requests")) == []


@pytest.mark.asyncio
async def test_remove_during_outage_still_drops_entry(remote, local, make_quote_payload):
    cache = QuotationCache(remote, local)
    added = await cache.add(make_quote_payload())
    remote.failing = True

    await cache.remove(added.id)

    assert cache.items == []


@pytest.mark.asyncio
async def test_stale_refetch_is_discarded(remote, local):
    gate = asyncio.Event()

    class SlowFirstRemote(type(remote)):
        def __init__(self):
            super().__init__()
            self.selects = 0

        async def select(self, table, **kwargs):
            self.selects += 1
            if self.selects == 1:
                await gate.wait()
                return [{"id": "old", "name": "Old"}]
            return [{"id": "new", "name": "New"}]

    slow = SlowFirstRemote()
    cache = CategoryCache(slow, local)

    first = asyncio.create_task(cache.refetch())
    await asyncio.sleep(0)
    await cache.refetch()
    gate.set()
    await first

    assert [c.id for c in cache.items] == ["new"]
    assert cache.loading is False


@pytest.mark.asyncio
async def test_follow_ups_ordered_by_due_date(remote, local):
    remote.tables["follow_ups"] = [
        {"id": "b", "quotation_id": "q", "message": "later", "follow_up_date": "2025-04-01T00:00:00+00:00"},
        {"id": "a", "quotation_id": "q", "message": "sooner", "follow_up_date": "2025-03-01T00:00:00+00:00"},
    ]
    cache = FollowUpCache(remote, local)

    assert [f.id for f in await cache.refetch()] == ["a", "b"]

    # Same order when read back from the local mirror.
    remote.failing = True
    assert [f.id for f in await cache.refetch()] == ["a", "b"]


@pytest.mark.asyncio
async def test_unknown_fields_never_reach_the_remote(remote, local, make_quote_payload):
    cache = QuotationCache(remote, local)

    await cache.add(make_quote_payload(terms_accepted=True, urgency="high"))

    stored = remote.tables["quotation_requests"][0]
    assert "terms_accepted" not in stored
    assert "urgency" not in stored


@pytest.mark.asyncio
async def test_category_create_rejects_duplicates(remote, local):
    cache = CategoryCache(remote, local)
    await cache.create("Valves")

    with pytest.raises(FormValidationError) as exc:
        await cache.create("  valves ")

    assert "name" in exc.value.field_errors
    with pytest.raises(FormValidationError):
        await cache.create("   ")


@pytest.mark.asyncio
async def test_offline_quote_survives_recovery_and_next_outage(remote, local, make_quote_payload):
    cache = QuotationCache(remote, local)
    remote.failing = True
    offline = await cache.add(make_quote_payload())

    remote.failing = False
    await cache.refetch()
    online = await cache.add(make_quote_payload(customer_name="Online Co"))
    stored = {row["id"] for row in json.loads(local.get_item("quotation-requests"))}
    assert {offline.id, online.id} <= stored

    remote.failing = True
    items = await cache.refetch()

    assert {offline.id, online.id} == {q.id for q in items}


@pytest.mark.asyncio
async def test_removing_offline_quote_after_recovery_drops_it(remote, local, make_quote_payload):
    cache = QuotationCache(remote, local)
    remote.failing = True
    offline = await cache.add(make_quote_payload())
    remote.failing = False

    await cache.remove(offline.id)
    remote.failing = True

    assert offline.id not in [q.id for q in await cache.refetch()]


@pytest.mark.asyncio
async def test_invalid_snapshot_row_is_skipped_not_reseeded(unconfigured_remote, local, make_quote_payload):
    cache = QuotationCache(unconfigured_remote, local)
    kept = await cache.add(make_quote_payload())
    rows = json.loads(local.get_item("quotation-requests"))
    rows.append({"id": "broken", "customer_name": "No Items"})
    local.set_item("quotation-requests", json.dumps(rows))

    items = await cache.refetch()

    assert [q.id for q in items] == [kept.id]


@pytest.mark.asyncio
async def test_unreadable_inserted_row_keeps_submitted_record(remote, local, make_quote_payload):
    class LossyRemote(type(remote)):
        async def insert(self, table, row):
            stored = await super().insert(table, row)
            return {"id": stored["id"], "items": "not-a-list"}

    lossy = LossyRemote()
    cache = QuotationCache(lossy, local)

    added = await cache.add(make_quote_payload())

    assert added.id == lossy.tables["quotation_requests"][0]["id"]
    assert added.customer_name == "Jane Builder"
    assert cache.get(added.id) is added
