"""
Audit logger - append-only trail of mutating actions.

``record`` is the last step of every mutating orchestration and runs in the
same unit of work, so an audit row commits only with the change it
describes. The only validation is that the actor exists; what happens when
it does not is governed by ``AUDIT_FAILURE_POLICY``.
"""

import logging
from typing import Optional

from reservations.core import config
from reservations.core.exceptions import AuditError
from reservations.domain.entities import ActorKind, AuditEntry

logger = logging.getLogger(__name__)


class AuditLogger:
    def __init__(self, policy: Optional[str] = None):
        self._policy = policy

    @property
    def policy(self) -> str:
        return self._policy or config.get_audit_failure_policy()

    def record(
        self,
        uow,
        actor_kind: ActorKind,
        actor_id: int,
        action: str,
        table_affected: str,
        entity_id: Optional[int] = None,
    ) -> Optional[AuditEntry]:
        """Append an audit entry.

        Returns the stored entry, or None when the actor is unknown and the
        policy is best-effort.

        Raises:
            AuditError: the actor is unknown and the policy is strict.
        """
        actor_kind = ActorKind(actor_kind)
        if not self._actor_exists(uow, actor_kind, actor_id):
            context = {
                "actor_kind": actor_kind.value,
                "actor_id": actor_id,
                "action": action,
                "table_affected": table_affected,
            }
            if self.policy == config.AUDIT_POLICY_STRICT:
                raise AuditError("Audit actor not found", context=context)
            logger.warning(
                "Audit entry skipped: actor not found", extra={"context": context}
            )
            return None

        return uow.audit.append(
            AuditEntry(
                actor_kind=actor_kind,
                actor_id=actor_id,
                action=action,
                table_affected=table_affected,
                entity_id=entity_id,
            )
        )

    def _actor_exists(self, uow, actor_kind: ActorKind, actor_id: int) -> bool:
        if actor_kind == ActorKind.PATIENT:
            return uow.patients.patient_exists(actor_id)
        return uow.users.exists(actor_id)
