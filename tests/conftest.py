# tests/conftest.py
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Sequence

import pytest

from symtex_ledger.config import LedgerConfig
from symtex_ledger.ledger import Ledger
from symtex_ledger.seed import SEED_FIRST_SEQUENCE, seed_ledger

BASE_TIME = datetime(2026, 1, 31, 14, 0, tzinfo=timezone.utc)


class StepClock:
    """Deterministic clock: every call returns one second later than the previous one."""

    def __init__(self, start: datetime = BASE_TIME, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.now
        self.now += self.step
        return value


def make_payload(
    actor_type: str = "cognate",
    actor_id: str = "cog-support",
    name: str = "Support Cognate",
    action_type: str = "respond_to_ticket",
    description: str = "Responded to customer support ticket",
    category: str = "action",
    severity: str = "info",
    status: str = "completed",
    when: Optional[Any] = None,
    space_id: Optional[str] = "space-support",
    project_id: Optional[str] = None,
    tags: Sequence[str] = (),
    parent_id: Optional[str] = None,
) -> Dict[str, Any]:
    payload = {
        "who": {"type": actor_type, "id": actor_id, "name": name},
        "what": {"type": action_type, "description": description, "category": category,
                 "severity": severity, "status": status},
        "where": {"space_id": space_id, "project_id": project_id},
        "why": {"trigger": "user_request", "reasoning": "Customer asked"},
        "how": {"approach": "symbolic", "tools": ["knowledge-base"]},
        "tags": list(tags),
    }
    if when is not None:
        payload["when"] = when
    if parent_id is not None:
        payload["parent_id"] = parent_id
    return payload


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def ledger(clock: StepClock) -> Ledger:
    """Empty in-memory ledger with a deterministic clock."""
    return Ledger(clock=clock)


@pytest.fixture
def seeded(clock: StepClock) -> Ledger:
    """In-memory ledger holding the 20 demo events, sequences 1001..1020."""
    led = Ledger(config=LedgerConfig(initial_sequence=SEED_FIRST_SEQUENCE), clock=clock)
    seed_ledger(led, now=BASE_TIME)
    return led
