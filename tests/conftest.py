from __future__ import annotations

import pytest

from gatehouse.core.config.models import GatehouseConfig
from gatehouse.core.events import EventBus
from gatehouse.core.security_events import SecurityAuditLogger
from gatehouse.session.service import SessionService
from gatehouse.session.store import InMemorySessionStore

from .helpers.fakes import FakeDirectory, FakeOutbox, FakePolicy, wire_collaborators


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store():
    # gc_probability=0: no random sweeps during tests
    return InMemorySessionStore(max_lifetime_seconds=3600, gc_probability=0)


@pytest.fixture
def security_log(tmp_path):
    return str(tmp_path / "logs" / "security.jsonl")


@pytest.fixture
def service(bus, store, security_log):
    svc = SessionService(cfg=GatehouseConfig(), store=store, bus=bus, audit_logger=SecurityAuditLogger(path=security_log))
    svc.bootstrap()
    return svc


@pytest.fixture
def directory():
    d = FakeDirectory()
    d.add("ada@example.com", "correct horse", id=7, name="Ada")
    d.add("bob@example.com", "battery staple", id=8, name="Bob")
    return d


@pytest.fixture
def policy():
    return FakePolicy(allow=True)


@pytest.fixture
def outbox():
    return FakeOutbox(items=[{"id": 1, "subject": "Welcome"}])


@pytest.fixture
def wired(service, directory, policy, outbox):
    wire_collaborators(service.bus, directory=directory, policy=policy, outbox=outbox)
    return service
