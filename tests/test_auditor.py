# tests/test_auditor.py
from pathlib import Path

from symtex_ledger.core.errors import LedgerError, OperationCancelled, QueryError, ValidationError
from symtex_ledger.integration.auditor import LedgerAuditor

from conftest import make_payload


def test_record_returns_outcome(ledger):
    auditor = LedgerAuditor(ledger)
    outcome = auditor.record(make_payload())
    assert outcome.ok
    assert outcome.sequence == 1
    assert outcome.entry is ledger.tail


def test_rejected_payload_is_a_value(ledger, caplog):
    auditor = LedgerAuditor(ledger)
    outcome = auditor.record(make_payload(severity="apocalyptic"))
    assert not outcome.ok
    assert isinstance(outcome.error, ValidationError)
    assert outcome.sequence is None
    assert len(ledger) == 0
    assert "Rejected ledger event" in caplog.text


def test_log_cognate_action(ledger):
    auditor = LedgerAuditor(ledger)
    outcome = auditor.log_cognate_action(
        "cog-finance", "generate_invoice", "Generated 156 monthly invoices",
        space_id="space-finance", project_id="proj-billing", tools=["invoice-generator"],
        confidence=0.9, tags=["finance"],
    )
    assert outcome.ok
    entry = outcome.entry
    assert entry.who.type.value == "cognate"
    assert entry.who.name == "cog-finance"
    assert entry.why.trigger.value == "automation"
    assert entry.how.tools == ("invoice-generator",)
    assert entry.tags == ("finance",)

    child = auditor.log_cognate_action("cog-finance", "send_invoice", "Sent invoices",
                                       category="communication", parent_id=entry.id)
    assert ledger.children(entry.id) == [child.entry]


def test_log_cognate_action_validation(ledger):
    auditor = LedgerAuditor(ledger)
    outcome = auditor.log_cognate_action("cog-x", "guess", "Guessed", confidence=1.5)
    assert isinstance(outcome.error, ValidationError)
    assert "why.confidence" in str(outcome.error)
    assert len(ledger) == 0


def test_query_outcomes(seeded):
    auditor = LedgerAuditor(seeded)
    outcome = auditor.query({"actorType": ["integration"]}, {"field": "sequence", "direction": "asc"})
    assert outcome.ok
    assert [entry.sequence for entry in outcome.entries] == [1006, 1019]

    bad = auditor.query({"category": ["gossip"]})
    assert isinstance(bad.error, QueryError)
    assert bad.entries == []

    timed_out = auditor.query({"search": "report"}, timeout=0)
    assert isinstance(timed_out.error, OperationCancelled)


def test_flag_outcome(seeded):
    auditor = LedgerAuditor(seeded)
    assert auditor.flag(1010).entry.is_flagged
    missing = auditor.flag(5)
    assert isinstance(missing.error, LedgerError)


def test_verify_and_export(seeded):
    auditor = LedgerAuditor(seeded)
    outcome = auditor.verify()
    assert outcome.ok and outcome.is_valid
    assert outcome.result.checked == 20
    exported = auditor.export_chain()
    assert len(exported) == 20
    assert exported[0]["sequence"] == 1001
    assert exported[-1]["crypto"]["content_hash"] == seeded.tail.crypto.content_hash


def test_verify_outcomes_are_values(seeded):
    auditor = LedgerAuditor(seeded)
    inverted = auditor.verify(1010, 1005)
    assert not inverted.ok
    assert isinstance(inverted.error, QueryError)
    assert inverted.is_valid is False
    assert "did not run" in str(inverted)

    timed_out = auditor.verify(timeout=0)
    assert isinstance(timed_out.error, OperationCancelled)

    ranged = auditor.verify(1005, 1010)
    assert ranged.is_valid
    assert ranged.result.checked == 6


def test_unserializable_payload_is_a_value(ledger):
    auditor = LedgerAuditor(ledger)
    payload = make_payload()
    payload["who"]["metadata"] = {"seen": {1, 2}}
    outcome = auditor.record(payload)
    assert isinstance(outcome.error, ValidationError)
    assert outcome.error.field == "who"
    assert len(ledger) == 0


def test_auditor_owns_storage(tmp_path: Path):
    uri = f"sqlite://{tmp_path / 'auditor.db'}"
    auditor = LedgerAuditor(storage_uri=uri)
    auditor.record(make_payload())
    auditor.record(make_payload())
    auditor.close()

    reopened = LedgerAuditor(storage_uri=uri)
    assert len(reopened.ledger) == 2
    assert reopened.verify().is_valid
    reopened.close()
