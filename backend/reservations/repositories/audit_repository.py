from typing import List, Optional

from reservations.db.base import AuditLog
from reservations.domain.entities import ActorKind, AuditEntry
from reservations.domain.interfaces import IAuditRepository


class AuditRepository(IAuditRepository):
    def __init__(self, db_session) -> None:
        self.db = db_session

    def append(self, entry: AuditEntry) -> AuditEntry:
        db_entry = AuditLog(
            actor_kind=entry.actor_kind.value,
            actor_id=entry.actor_id,
            action=entry.action,
            table_affected=entry.table_affected,
            entity_id=entry.entity_id,
        )
        self.db.add(db_entry)
        self.db.flush()
        return self._to_domain(db_entry)

    def list_entries(
        self,
        actor_kind: Optional[ActorKind] = None,
        actor_id: Optional[int] = None,
    ) -> List[AuditEntry]:
        query = self.db.query(AuditLog)
        if actor_kind is not None:
            query = query.filter(AuditLog.actor_kind == ActorKind(actor_kind).value)
        if actor_id is not None:
            query = query.filter(AuditLog.actor_id == actor_id)
        return [self._to_domain(row) for row in query.order_by(AuditLog.id.asc())]

    def _to_domain(self, db_entry: AuditLog) -> AuditEntry:
        return AuditEntry(
            id=db_entry.id,
            actor_kind=db_entry.actor_kind,
            actor_id=db_entry.actor_id,
            action=db_entry.action,
            table_affected=db_entry.table_affected,
            entity_id=db_entry.entity_id,
            timestamp=db_entry.timestamp,
        )
