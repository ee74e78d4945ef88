# symtex_ledger/integration/auditor.py
"""
Collaborator-facing wrapper around a Ledger.

Dashboard code calls this instead of the Ledger directly: every call returns
an outcome value carrying either the result or the LedgerError, so a bad
payload or filter never surfaces as an exception in UI code.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from symtex_ledger.core.cancel import CancelToken
from symtex_ledger.core.errors import LedgerError
from symtex_ledger.core.types import LedgerEntry, SixWPayload
from symtex_ledger.ledger import Ledger
from symtex_ledger.query.filters import Page
from symtex_ledger.verify.verifier import VerificationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppendOutcome:
    entry: Optional[LedgerEntry] = None
    error: Optional[LedgerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def sequence(self) -> Optional[int]:
        return self.entry.sequence if self.entry else None


@dataclass(frozen=True)
class QueryOutcome:
    page: Optional[Page] = None
    error: Optional[LedgerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def entries(self) -> List[LedgerEntry]:
        return list(self.page.entries) if self.page else []


@dataclass(frozen=True)
class VerifyOutcome:
    """`ok` means the audit ran; `is_valid` means it found the chain intact."""

    result: Optional[VerificationResult] = None
    error: Optional[LedgerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def is_valid(self) -> bool:
        return self.result is not None and self.result.is_valid

    def __str__(self) -> str:
        if self.result is None:
            return f"Verification did not run: {self.error}"
        return str(self.result)


class LedgerAuditor:
    """Records and reads ledger events on behalf of UI / agent collaborators."""

    def __init__(self, ledger: Optional[Ledger] = None, storage_uri: Optional[str] = None):
        self.ledger = ledger if ledger is not None else Ledger(storage_uri)

    def record(self, payload: Union[SixWPayload, Mapping[str, Any]]) -> AppendOutcome:
        try:
            return AppendOutcome(entry=self.ledger.append(payload))
        except LedgerError as e:
            logger.warning("Rejected ledger event: %s", e)
            return AppendOutcome(error=e)

    def log_cognate_action(
        self,
        cognate_id: str,
        action_type: str,
        description: str,
        *,
        cognate_name: str = "",
        category: str = "action",
        severity: str = "info",
        status: str = "completed",
        trigger: str = "automation",
        reasoning: Optional[str] = None,
        confidence: Optional[float] = None,
        space_id: Optional[str] = None,
        project_id: Optional[str] = None,
        tools: Sequence[str] = (),
        model: Optional[str] = None,
        result: Optional[str] = None,
        tags: Sequence[str] = (),
        parent_id: Optional[str] = None,
    ) -> AppendOutcome:
        """Shorthand for the most common event: something a Cognate did."""
        payload: Dict[str, Any] = {
            "who": {"type": "cognate", "id": cognate_id, "name": cognate_name},
            "what": {"type": action_type, "description": description, "category": category,
                     "severity": severity, "status": status, "result": result},
            "where": {"space_id": space_id, "project_id": project_id},
            "why": {"trigger": trigger, "reasoning": reasoning, "confidence": confidence},
            "how": {"approach": "cognate", "tools": list(tools), "model": model},
            "tags": list(tags),
            "parent_id": parent_id,
        }
        try:
            coerced = SixWPayload.from_dict(payload)
        except LedgerError as e:
            return AppendOutcome(error=e)
        return self.record(coerced)

    def query(
        self,
        filter: Optional[Mapping[str, Any]] = None,
        sort: Optional[Mapping[str, Any]] = None,
        pagination: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> QueryOutcome:
        cancel = CancelToken(timeout) if timeout is not None else None
        try:
            return QueryOutcome(page=self.ledger.query(filter, sort, pagination, cancel=cancel))
        except LedgerError as e:
            logger.warning("Rejected ledger query: %s", e)
            return QueryOutcome(error=e)

    def flag(self, sequence: int, flagged: bool = True) -> AppendOutcome:
        try:
            return AppendOutcome(entry=self.ledger.flag(sequence, flagged))
        except LedgerError as e:
            return AppendOutcome(error=e)

    def verify(
        self,
        start: Optional[int] = None,
        end: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> VerifyOutcome:
        cancel = CancelToken(timeout) if timeout is not None else None
        try:
            return VerifyOutcome(result=self.ledger.verify(start, end, cancel=cancel))
        except LedgerError as e:
            logger.warning("Verification not run: %s", e)
            return VerifyOutcome(error=e)

    def export_chain(self) -> List[Dict[str, Any]]:
        return [entry.to_dict() for entry in self.ledger.snapshot()]

    def close(self):
        self.ledger.close()
