from dataclasses import dataclass

import pytest

from shared.application.message_bus import MessageBus
from shared.application.uow import InMemoryUnitOfWork
from shared.domain.base import Aggregate, DomainEvent


@dataclass
class Pinged(DomainEvent):
    name: str = ''


@dataclass
class Ping:
    name: str


def test_one_handler_per_command():
    bus = MessageBus()
    bus.register_command_handler(Ping, lambda command: command.name.upper())

    assert bus.handle_command(Ping("hi")) == "HI"
    with pytest.raises(ValueError):
        bus.register_command_handler(Ping, lambda command: None)


def test_unknown_command():
    with pytest.raises(LookupError):
        MessageBus().handle_command(Ping("hi"))


def test_failing_event_handler_does_not_stop_the_others():
    bus = MessageBus()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    bus.register_event_handler(Pinged, broken)
    bus.register_event_handler(Pinged, seen.append)
    bus.publish_events([Pinged(name="a")])

    assert [e.name for e in seen] == ["a"]


def test_events_are_published_only_on_commit():
    bus = MessageBus()
    seen = []
    bus.register_event_handler(Pinged, seen.append)
    aggregate = Aggregate()
    aggregate.add_event(Pinged(name="kept"))

    with InMemoryUnitOfWork(bus) as uow:
        uow.collect_events(aggregate)
        assert seen == []

    assert [e.name for e in seen] == ["kept"]
    assert aggregate.events == []


def test_rollback_discards_events():
    bus = MessageBus()
    seen = []
    bus.register_event_handler(Pinged, seen.append)

    with pytest.raises(RuntimeError):
        with InMemoryUnitOfWork(bus) as uow:
            uow.add_event(Pinged(name="lost"))
            raise RuntimeError("abort")

    assert seen == []
