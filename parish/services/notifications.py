"""In-app notifications built from committed table changes.

``NotificationCenter`` turns each change event on a watched table into one
notification, keeps them most recent first and hands every new one to a
toast sink. New notifications are also republished on ``NOTIFICATION_TOPIC``
for live listeners.
"""
import enum
import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Dict, List, Optional
from uuid import UUID

from parish.services.events import ChangeEvent, ChangeKind, EventBus, Subscription, table_topic
from parish.services.reports import format_ariary

logger = logging.getLogger(__name__)

NOTIFICATION_TOPIC = "notifications"

MemberNameLookup = Callable[[UUID], Optional[str]]
ToastSink = Callable[["Notification"], None]


class NotificationType(str, enum.Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


SEVERITY_BY_KIND = {
    ChangeKind.INSERT: NotificationType.SUCCESS,
    ChangeKind.UPDATE: NotificationType.INFO,
    ChangeKind.DELETE: NotificationType.WARNING,
}


@dataclass(frozen=True)
class Notification:
    type: NotificationType
    title: str
    message: str
    id: UUID = field(default_factory=uuid.uuid4)
    timestamp: datetime = field(default_factory=datetime.utcnow)
    read: bool = False


def log_toast(notification: Notification) -> None:
    logger.info("[%s] %s: %s", notification.type.value, notification.title, notification.message)


def _person(row: Dict) -> str:
    return f"{row.get('given_name') or ''} {row.get('surname') or ''}".strip()


class NotificationCenter:
    WATCHED_TABLES = ("adherent", "contribution", "parish_group", "system_setting")

    def __init__(self, bus: EventBus, member_name_lookup: Optional[MemberNameLookup] = None,
                 toast: ToastSink = log_toast):
        self.bus = bus
        self.member_name_lookup = member_name_lookup
        self.toast = toast
        self._lock = threading.Lock()
        self._notifications: List[Notification] = []
        self._subscriptions: List[Subscription] = []
        self._handlers = {
            "adherent": self._on_adherent,
            "contribution": self._on_contribution,
            "parish_group": self._on_group,
            "system_setting": self._on_setting,
        }

    @property
    def running(self) -> bool:
        return bool(self._subscriptions)

    def start(self) -> None:
        if self._subscriptions:
            return
        self._subscriptions = [
            self.bus.subscribe(table_topic(table), self._handlers[table]) for table in self.WATCHED_TABLES
        ]
        logger.info("Notification center listening on %d tables", len(self._subscriptions))

    def stop(self) -> None:
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []

    # Store operations

    def notifications(self) -> List[Notification]:
        with self._lock:
            return list(self._notifications)

    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for n in self._notifications if not n.read)

    def add(self, type: NotificationType, title: str, message: str) -> Notification:
        notification = Notification(type=type, title=title, message=message)
        with self._lock:
            self._notifications.insert(0, notification)
        self.toast(notification)
        self.bus.publish(NOTIFICATION_TOPIC, notification)
        return notification

    def mark_as_read(self, notification_id: UUID) -> bool:
        with self._lock:
            for i, n in enumerate(self._notifications):
                if n.id == notification_id:
                    self._notifications[i] = replace(n, read=True)
                    return True
        return False

    def mark_all_as_read(self) -> None:
        with self._lock:
            self._notifications = [replace(n, read=True) for n in self._notifications]

    def remove(self, notification_id: UUID) -> bool:
        with self._lock:
            before = len(self._notifications)
            self._notifications = [n for n in self._notifications if n.id != notification_id]
            return len(self._notifications) != before

    def clear(self) -> None:
        with self._lock:
            self._notifications = []

    # Change handlers

    def _member_name(self, member_id) -> Optional[str]:
        if self.member_name_lookup is None or member_id is None:
            return None
        try:
            return self.member_name_lookup(member_id)
        except Exception:
            logger.warning("Member name lookup failed for %s", member_id, exc_info=True)
            return None

    def _on_adherent(self, change: ChangeEvent) -> None:
        severity = SEVERITY_BY_KIND[change.kind]
        if change.kind is ChangeKind.INSERT:
            self.add(severity, "Nouvel adhérent", f"{_person(change.new)} a été ajouté avec succès.")
        elif change.kind is ChangeKind.UPDATE:
            self.add(severity, "Adhérent modifié", f"Les informations de {_person(change.new)} ont été mises à jour.")
        else:
            self.add(severity, "Adhérent supprimé", "Un adhérent a été supprimé de la base de données.")

    def _on_contribution(self, change: ChangeEvent) -> None:
        severity = SEVERITY_BY_KIND[change.kind]
        if change.kind is ChangeKind.DELETE:
            self.add(severity, "Contribution supprimée", "Une contribution a été supprimée.")
            return
        name = self._member_name(change.new.get("member_id"))
        if change.kind is ChangeKind.INSERT:
            amount = format_ariary(change.new.get("amount") or 0)
            message = (
                f"Contribution de {amount} reçue de {name}." if name
                else f"Nouvelle contribution de {amount} enregistrée."
            )
            self.add(severity, "Nouvelle contribution", message)
        else:
            message = f"Contribution de {name} modifiée." if name else "Contribution modifiée."
            self.add(severity, "Contribution modifiée", message)

    def _on_group(self, change: ChangeEvent) -> None:
        severity = SEVERITY_BY_KIND[change.kind]
        if change.kind is ChangeKind.INSERT:
            self.add(severity, "Nouveau groupe", f"Le groupe \"{change.new.get('name')}\" a été créé.")
        elif change.kind is ChangeKind.UPDATE:
            self.add(severity, "Groupe modifié", f"Le groupe \"{change.new.get('name')}\" a été mis à jour.")
        else:
            self.add(severity, "Groupe supprimé", f"Le groupe \"{change.old.get('name')}\" a été supprimé.")

    def _on_setting(self, change: ChangeEvent) -> None:
        self.add(NotificationType.INFO, "Paramètres système", "Les paramètres du système ont été mis à jour.")
