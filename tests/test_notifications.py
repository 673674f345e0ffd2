from decimal import Decimal

import pytest

from parish.models import Sex
from parish.services.contribution import ContributionRepository
from parish.services.events import ChangeEvent, ChangeKind, table_topic
from parish.services.group import GroupRepository
from parish.services.notifications import NOTIFICATION_TOPIC, NotificationCenter, NotificationType


@pytest.fixture
def toasts():
    return []


@pytest.fixture
def center(bus, toasts):
    notification_center = NotificationCenter(bus, member_name_lookup=lambda member_id: "Jean Rakoto",
                                             toast=toasts.append)
    notification_center.start()
    yield notification_center
    notification_center.stop()


def test_insert_becomes_success_notification(bus, center, toasts):
    bus.publish(table_topic("adherent"), ChangeEvent("adherent", ChangeKind.INSERT, new={"given_name": "Jean", "surname": "Rakoto"}))

    [notification] = center.notifications()
    assert notification.type is NotificationType.SUCCESS
    assert notification.title == "Nouvel adhérent"
    assert notification.message == "Jean Rakoto a été ajouté avec succès."
    assert notification.read is False
    assert toasts == [notification]


def test_most_recent_first_and_republished(bus, center):
    published = []
    bus.subscribe(NOTIFICATION_TOPIC, published.append)
    bus.publish(table_topic("parish_group"), ChangeEvent("parish_group", ChangeKind.INSERT, new={"name": "Chorale"}))
    bus.publish(table_topic("parish_group"), ChangeEvent("parish_group", ChangeKind.DELETE, old={"name": "Chorale"}))

    titles = [n.title for n in center.notifications()]
    assert titles == ["Groupe supprimé", "Nouveau groupe"]
    assert center.notifications()[0].type is NotificationType.WARNING
    assert [n.title for n in published] == ["Nouveau groupe", "Groupe supprimé"]


def test_unwatched_tables_are_ignored(bus, center):
    bus.publish(table_topic("dues_record"), ChangeEvent("dues_record", ChangeKind.INSERT, new={}))
    assert center.notifications() == []


def test_read_and_remove(center):
    first = center.add(NotificationType.INFO, "A", "a")
    second = center.add(NotificationType.ERROR, "B", "b")
    assert center.unread_count() == 2

    assert center.mark_as_read(first.id) is True
    assert center.unread_count() == 1
    assert center.remove(second.id) is True
    assert center.remove(second.id) is False
    assert [n.read for n in center.notifications()] == [True]

    center.add(NotificationType.INFO, "C", "c")
    center.mark_all_as_read()
    assert center.unread_count() == 0
    center.clear()
    assert center.notifications() == []


def test_start_and_stop_are_idempotent(bus, center):
    center.start()
    assert bus.subscriber_count() == len(NotificationCenter.WATCHED_TABLES)
    center.stop()
    center.stop()
    assert not center.running
    assert bus.subscriber_count() == 0


def test_committed_rows_reach_the_center(db, feed, center, make_member):
    member = make_member("Rakoto", "Jean", Sex.MALE)
    ContributionRepository(db).create({"member_id": member.id, "type": "dime", "amount": Decimal("15000")})
    GroupRepository(db).create({"name": "Tanora"})

    titles = [n.title for n in center.notifications()]
    assert titles == ["Nouveau groupe", "Nouvelle contribution", "Nouvel adhérent"]
    assert center.notifications()[1].message == "Contribution de 15 000 Ar reçue de Jean Rakoto."
