"""
Cease and Desist Registry

Per-case opt-out state under 15 U.S.C. § 1692c(c).

While an order is active only three communication types may be sent:
acknowledgment of the request, notice of a lawsuit, and notice of a
specific remedy. Everything else is a violation.

An order never expires on its own. Lifting requires a reason and is logged.
"""
import logging
from dataclasses import replace
from typing import List, Optional, Union

from ...errors import ComplianceValidationError, require_non_blank
from ...models.compliance import (
    CeaseDesistCheckResult,
    CeaseDesistMethod,
    CeaseDesistRecord,
    CommunicationType,
)
from .clock import ClockSource
from .store import ComplianceStore

logger = logging.getLogger(__name__)

ALLOWED_WHEN_CEASE_DESIST = [
    CommunicationType.CEASE_DESIST_ACKNOWLEDGMENT.value,
    CommunicationType.LAWSUIT_NOTICE.value,
    CommunicationType.SPECIFIC_REMEDY_NOTICE.value,
]

BLOCKED_ACTIONS = [
    "Send messages",
    "Make calls",
    "Send emails",
    "Contact debtor regarding debt",
]


class CeaseDesistRegistry:
    def __init__(self, store: ComplianceStore, clock: ClockSource):
        self.store = store
        self.clock = clock

    def register(
        self,
        case_id: str,
        debtor_id: str,
        method: Union[CeaseDesistMethod, str],
        notes: Optional[str] = None,
    ) -> CeaseDesistRecord:
        """
        Record a cease-and-desist request.

        Re-registering an existing case refreshes it: active again, new
        requested_at, acknowledgment and lift details cleared.
        """
        require_non_blank(case_id=case_id, debtor_id=debtor_id)
        try:
            method = CeaseDesistMethod(method)
        except ValueError:
            raise ComplianceValidationError(f"Invalid cease-and-desist method: {method}")

        record = CeaseDesistRecord(
            case_id=case_id,
            debtor_id=debtor_id,
            active=True,
            requested_at=self.clock.now(),
            request_method=method,
            notes=notes,
        )
        with self.store.lock(f"case:{case_id}"):
            self.store.save_cease_desist(record)

        logger.info(f"Cease and desist registered for case {case_id} via {method.value}")
        return record

    def acknowledge(self, case_id: str, by: str) -> Optional[CeaseDesistRecord]:
        require_non_blank(case_id=case_id, by=by)
        with self.store.lock(f"case:{case_id}"):
            record = self.store.get_cease_desist(case_id)
            if record is None:
                return None
            record = replace(record, acknowledged_at=self.clock.now(), acknowledged_by=by)
            self.store.save_cease_desist(record)

        logger.info(f"Cease and desist acknowledged for case {case_id} by {by}")
        return record

    def check(self, case_id: str) -> CeaseDesistCheckResult:
        record = self.store.get_cease_desist(case_id)

        if record is None or not record.active:
            return CeaseDesistCheckResult(
                active=False,
                record=None,
                allowed_types=["all"],
                blocked_actions=[],
            )

        return CeaseDesistCheckResult(
            active=True,
            record=record,
            allowed_types=list(ALLOWED_WHEN_CEASE_DESIST),
            blocked_actions=list(BLOCKED_ACTIONS),
        )

    def is_communication_allowed(
        self,
        case_id: str,
        communication_type: Union[CommunicationType, str, None],
    ) -> bool:
        if not self.check(case_id).active:
            return True
        if communication_type is None:
            return False
        value = communication_type.value if isinstance(communication_type, CommunicationType) else communication_type
        return value in ALLOWED_WHEN_CEASE_DESIST

    def lift(self, case_id: str, reason: str, by: str) -> bool:
        """
        Deactivate an order. Returns False when the case has no active order.

        Raises:
            ComplianceValidationError: reason or lifted-by is blank
        """
        require_non_blank(case_id=case_id, reason=reason, by=by)
        with self.store.lock(f"case:{case_id}"):
            record = self.store.get_cease_desist(case_id)
            if record is None or not record.active:
                return False
            self.store.save_cease_desist(replace(
                record,
                active=False,
                lifted_at=self.clock.now(),
                lifted_by=by,
                lift_reason=reason,
            ))

        logger.info(f"Cease and desist lifted for case {case_id} by {by}: {reason}")
        return True

    def active_cases(self) -> List[CeaseDesistRecord]:
        return [r for r in self.store.list_cease_desist() if r.active]
