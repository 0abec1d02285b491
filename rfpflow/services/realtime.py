"""
Realtime change feed.

Clients connect over a websocket, scoped to their organization and optionally
to a subset of tables. Every event carries a unique ``event_id`` and a
per-process monotonically increasing ``sequence`` so clients can drop
duplicates and detect gaps.
"""
import itertools
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)

REALTIME_TABLES = frozenset({"projects", "comments", "subtasks", "notifications"})


class EventType:
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass
class Subscriber:
    websocket: WebSocket
    user_id: str
    organization_id: str
    tables: Set[str] = field(default_factory=lambda: set(REALTIME_TABLES))

    def wants(self, table: str) -> bool:
        return table in self.tables


def parse_tables(raw: Optional[str]) -> Set[str]:
    """Parse the ``tables`` query parameter; empty means every table."""
    if not raw:
        return set(REALTIME_TABLES)
    requested = {t.strip() for t in raw.split(",") if t.strip()}
    return requested & REALTIME_TABLES


def to_record(obj: Any) -> Dict[str, Any]:
    """Column values of an ORM row, JSON ready"""
    if obj is None:
        return None
    return jsonable_encoder({c.key: getattr(obj, c.key) for c in obj.__table__.columns})


class ConnectionManager:
    def __init__(self):
        # organization_id -> {connection_id: Subscriber}
        self.active_connections: Dict[str, Dict[str, Subscriber]] = {}
        self._sequence = itertools.count(1)
        self.last_sequence = 0

    async def connect(self, websocket: WebSocket, user_id: str, organization_id: str,
                      tables: Optional[Iterable[str]] = None) -> str:
        """Accept the socket and register it on the organization channel"""
        await websocket.accept()
        connection_id = str(uuid.uuid4())
        subscriber = Subscriber(
            websocket=websocket,
            user_id=user_id,
            organization_id=organization_id,
            tables=set(tables) if tables is not None else set(REALTIME_TABLES),
        )
        self.active_connections.setdefault(organization_id, {})[connection_id] = subscriber
        logger.info(f"Realtime client connected: user={user_id} org={organization_id} tables={sorted(subscriber.tables)}")
        return connection_id

    def disconnect(self, connection_id: str, organization_id: str):
        connections = self.active_connections.get(organization_id)
        if not connections:
            return
        connections.pop(connection_id, None)
        if not connections:
            del self.active_connections[organization_id]

    def connection_count(self, organization_id: Optional[str] = None) -> int:
        if organization_id is not None:
            return len(self.active_connections.get(organization_id, {}))
        return sum(len(c) for c in self.active_connections.values())

    def build_event(self, table: str, event_type: str, organization_id: str,
                    record: Optional[Dict[str, Any]] = None,
                    old_record: Optional[Dict[str, Any]] = None,
                    user_id: Optional[str] = None) -> Dict[str, Any]:
        sequence = next(self._sequence)
        self.last_sequence = sequence
        return {
            "event_id": str(uuid.uuid4()),
            "sequence": sequence,
            "table": table,
            "type": event_type,
            "record": record,
            "old_record": old_record,
            "organization_id": organization_id,
            "user_id": user_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def broadcast(self, table: str, event_type: str, organization_id: str,
                        record: Optional[Dict[str, Any]] = None,
                        old_record: Optional[Dict[str, Any]] = None,
                        user_id: Optional[str] = None) -> Dict[str, Any]:
        """Send a change event to subscribers of the table in the organization.

        When ``user_id`` is given, only that user's connections receive it.
        """
        event = self.build_event(table, event_type, organization_id, record, old_record, user_id)
        connections = self.active_connections.get(organization_id, {})
        for connection_id, subscriber in list(connections.items()):
            if not subscriber.wants(table):
                continue
            if user_id is not None and subscriber.user_id != user_id:
                continue
            try:
                await subscriber.websocket.send_json(event)
            except Exception as e:
                logger.warning(f"Dropping realtime connection {connection_id}: {e}")
                self.disconnect(connection_id, organization_id)
        return event


# Global connection manager instance
manager = ConnectionManager()


async def publish(table: str, event_type: str, organization_id: str, record: Any = None,
                  old_record: Optional[Dict[str, Any]] = None, user_id: Optional[str] = None) -> None:
    """Best-effort broadcast of a row change; never raises."""
    try:
        payload = record if isinstance(record, dict) or record is None else to_record(record)
        await manager.broadcast(table, event_type, organization_id, payload, old_record, user_id)
    except Exception:
        logger.exception(f"Realtime publish failed for {table} {event_type}")
