from datetime import timedelta

import pytest

from fittings_portal.cache.visitors import VisitorCache, VisitorSessionCache
from fittings_portal.services.visitor_service import VisitorService


@pytest.fixture
def service(unconfigured_remote, local, clock):
    return VisitorService(
        VisitorCache(unconfigured_remote, local, clock=clock),
        VisitorSessionCache(unconfigured_remote, local, clock=clock),
        clock=clock,
    )


@pytest.mark.asyncio
async def test_same_email_registers_one_visitor(service):
    first = await service.register_visitor({"name": "Sam", "email": "sam@example.com"})
    second = await service.register_visitor({"name": "Sam Smith", "email": "SAM@example.com", "company": "Acme"})

    assert second.id == first.id
    assert len(service.visitors.items) == 1
    assert service.visitors.items[0].name == "Sam Smith"
    assert service.visitors.items[0].company == "Acme"


@pytest.mark.asyncio
async def test_sessions_grow_and_get_generated_ids(service, clock):
    visitor = await service.register_visitor({"name": "Sam", "email": "sam@example.com"})

    s1 = await service.track_session(visitor.id, page_visited="/products")
    clock.now += timedelta(minutes=5)
    s2 = await service.track_session(visitor.id, session_id="abc", page_visited="/quote")

    assert s1.session_id == f"session_{int((clock.now - timedelta(minutes=5)).timestamp() * 1000)}"
    assert s2.session_id == "abc"

    [row] = service.visitors_with_sessions()
    assert row.total_visits == 2
    assert [s.page_visited for s in row.sessions] == ["/quote", "/products"]
    assert row.last_visit == clock.now


@pytest.mark.asyncio
async def test_last_visit_falls_back_to_created_at(service):
    visitor = await service.register_visitor({"name": "Lee", "email": "lee@example.com"})

    [row] = service.visitors_with_sessions()

    assert row.total_visits == 0
    assert row.last_visit == visitor.created_at


@pytest.mark.asyncio
async def test_analytics(service, clock):
    clock.now -= timedelta(days=2)
    old = await service.register_visitor({"name": "Old", "email": "old@example.com"})
    clock.now += timedelta(days=2)
    new = await service.register_visitor({"name": "New", "email": "new@example.com"})
    for _ in range(3):
        await service.track_session(old.id)
    await service.track_session(new.id)

    assert service.analytics() == {
        "total_visitors": 2,
        "new_visitors_today": 1,
        "total_sessions": 4,
        "average_sessions_per_visitor": 2.0,
    }


def test_analytics_with_no_visitors(service):
    assert service.analytics()["average_sessions_per_visitor"] == 0
