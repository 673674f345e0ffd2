from parish.models import Adherent, Sex
from parish.services.events import ChangeKind, EventBus, table_topic


def test_subscribe_same_handler_twice_returns_same_handle():
    bus = EventBus()
    received = []
    first = bus.subscribe("topic", received.append)
    second = bus.subscribe("topic", received.append)
    assert first is second
    bus.publish("topic", 1)
    assert received == [1]


def test_unsubscribe_is_idempotent():
    bus = EventBus()
    received = []
    sub = bus.subscribe("topic", received.append)
    sub.unsubscribe()
    sub.unsubscribe()
    bus.publish("topic", 1)
    assert received == []
    assert bus.subscriber_count("topic") == 0


def test_failing_handler_does_not_stop_delivery():
    bus = EventBus()
    received = []

    def broken(payload):
        raise RuntimeError("boom")

    bus.subscribe("topic", broken)
    bus.subscribe("topic", received.append)
    bus.publish("topic", "x")
    assert received == ["x"]


def test_change_feed_publishes_after_commit(db, bus, feed):
    events = []
    bus.subscribe(table_topic("adherent"), events.append)

    member = Adherent(surname="Rabe", given_name="Hery", sex=Sex.MALE, communicant=False)
    db.add(member)
    db.flush()
    assert events == []
    db.commit()
    assert [e.kind for e in events] == [ChangeKind.INSERT]
    assert events[0].new["surname"] == "Rabe"

    assert member.neighborhood is None
    member.neighborhood = "Ambalakininy"
    db.commit()
    assert events[-1].kind is ChangeKind.UPDATE
    assert events[-1].new["neighborhood"] == "Ambalakininy"
    assert events[-1].old["neighborhood"] is None

    assert member.surname == "Rabe"
    db.delete(member)
    db.commit()
    assert events[-1].kind is ChangeKind.DELETE
    assert events[-1].old["surname"] == "Rabe"


def test_change_feed_discards_rolled_back_changes(db, bus, feed):
    events = []
    bus.subscribe(table_topic("adherent"), events.append)
    db.add(Adherent(surname="Rabe", given_name="Hery", sex=Sex.MALE, communicant=False))
    db.flush()
    db.rollback()
    db.commit()
    assert events == []


def test_change_feed_start_stop_idempotent(db, bus):
    from parish.db.base import SessionLocal
    from parish.services.events import ChangeFeed

    feed = ChangeFeed(bus, SessionLocal)
    feed.start()
    feed.start()
    assert feed.running
    feed.stop()
    feed.stop()
    assert not feed.running

    events = []
    bus.subscribe(table_topic("adherent"), events.append)
    db.add(Adherent(surname="Rabe", given_name="Hery", sex=Sex.MALE, communicant=False))
    db.commit()
    assert events == []
