from __future__ import annotations

import pytest

from gatehouse.core.events import EventKind
from gatehouse.session.models import UserIdentity

from .helpers.fakes import FakeOutbox, start_request


def test_user_changed_overwrites_cached_user(service):
    ctx = start_request(service)
    service.bus.trigger(EventKind.USER_CHANGED, ctx, {"id": 3, "name": "Old"})
    service.bus.trigger(EventKind.USER_CHANGED, ctx, UserIdentity(id=3, name="New", locale="fr"))
    assert ctx.user.name == "New"
    assert ctx.user.model_dump()["locale"] == "fr"


def test_user_changed_keeps_identified_flag(wired):
    ctx = start_request(wired)
    wired.bus.passes(EventKind.LOGIN, ctx, "ada@example.com", "correct horse")
    wired.bus.trigger(EventKind.USER_CHANGED, ctx, {"id": 7, "name": "Ada Lovelace"})
    assert ctx.identified is True
    assert ctx.user.name == "Ada Lovelace"


def test_clearing_user_also_clears_identified(wired):
    ctx = start_request(wired)
    wired.bus.passes(EventKind.LOGIN, ctx, "ada@example.com", "correct horse")
    wired.bus.trigger(EventKind.USER_CHANGED, ctx, None)
    assert ctx.user is None
    assert ctx.identified is False


def test_user_changed_rejects_non_mapping(service):
    ctx = start_request(service)
    with pytest.raises(TypeError):
        service.bus.trigger(EventKind.USER_CHANGED, ctx, 42)


def test_outbox_changed_pulls_fresh_summary(service):
    provider = FakeOutbox(items=[{"id": 1}])
    service.bus.subscribe(EventKind.OUTBOX, provider)
    ctx = start_request(service)

    service.bus.trigger(EventKind.OUTBOX_CHANGED, ctx)
    assert ctx.outbox == [{"id": 1}]

    provider.items = [{"id": 1}, {"id": 2}]
    service.bus.trigger(EventKind.OUTBOX_CHANGED, ctx)
    assert ctx.outbox == [{"id": 1}, {"id": 2}]
    assert provider.calls == 2


def test_outbox_without_provider_is_empty(service):
    ctx = start_request(service)
    ctx.record.outbox = [{"id": 9}]
    service.bus.trigger(EventKind.OUTBOX_CHANGED, ctx)
    assert ctx.outbox == []
