from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Audience:
    """Either one user or everybody holding a role."""

    user_id: Optional[int] = None
    role: Optional[Role] = None

    def __post_init__(self) -> None:
        if (self.user_id is None) == (self.role is None):
            raise ValueError("Audience needs exactly one of user_id or role")

    @classmethod
    def for_user(cls, user_id: int) -> "Audience":
        return cls(user_id=int(user_id))

    @classmethod
    def for_role(cls, role: Role) -> "Audience":
        return cls(role=Role(role))

    def __str__(self) -> str:
        return f"user:{self.user_id}" if self.user_id is not None else f"role:{self.role.value}"


class NotificationDispatcher(Protocol):
    def notify(self, audience: Audience, title: str, body: str, metadata: Mapping[str, Any]) -> None:
        raise NotImplementedError


class LoggingNotificationDispatcher(NotificationDispatcher):
    """Dispatcher for environments without a delivery channel."""

    def notify(self, audience: Audience, title: str, body: str, metadata: Mapping[str, Any]) -> None:
        logger.info("notify %s: %s | %s", audience, title, body)


class MySQLNotificationDispatcher(NotificationDispatcher):
    """Stores notifications as in-app inbox rows; push delivery reads them elsewhere."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def notify(self, audience: Audience, title: str, body: str, metadata: Mapping[str, Any]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO notifications(audience_user_id, audience_role, title, body, metadata)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (
                    audience.user_id,
                    audience.role.value if audience.role else None,
                    title,
                    body,
                    json.dumps(dict(metadata), default=str),
                ),
            )


class NotificationPublisher:
    """Fire-and-forget wrapper: delivery problems never fail the caller."""

    def __init__(self, dispatcher: NotificationDispatcher):
        self._dispatcher = dispatcher

    def publish(self, audience: Audience, title: str, body: str, metadata: Optional[Dict[str, Any]] = None) -> bool:
        try:
            self._dispatcher.notify(audience, title, body, dict(metadata or {}))
            return True
        except Exception:
            logger.warning("notification to %s dropped (%s)", audience, title, exc_info=True)
            return False
