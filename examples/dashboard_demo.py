# examples/dashboard_demo.py
# Run with: python examples/dashboard_demo.py
#
# No external services needed: everything runs against an in-memory ledger.

from dataclasses import replace

from symtex_ledger import Ledger, LedgerConfig
from symtex_ledger.integration.auditor import LedgerAuditor
from symtex_ledger.seed import SEED_FIRST_SEQUENCE, seed_ledger


if __name__ == "__main__":
    print("=" * 70)
    print("SYMTEX LEDGER DASHBOARD DEMO")
    print("=" * 70)
    print()

    # Step 1: Seed the demo activity
    ledger = Ledger(config=LedgerConfig(initial_sequence=SEED_FIRST_SEQUENCE))
    seed_ledger(ledger)
    auditor = LedgerAuditor(ledger)
    print(f"1. Seeded {len(ledger)} events (#{ledger.snapshot().first_sequence}..#{ledger.tail.sequence})")
    print()

    # Step 2: The dashboard's filter panel
    print("2. Cognate activity in Customer Support, newest first:")
    print("-" * 50)
    outcome = auditor.query({"actorType": ["cognate"], "spaceId": ["space-support"]})
    for entry in outcome.entries:
        print(f"   #{entry.sequence} {entry.what.description}")
    print()

    # Step 3: Counters for the summary cards
    stats = ledger.stats()
    print("3. Summary cards:")
    print("-" * 50)
    print(f"   Total: {stats['total']}  Flagged: {stats['flagged']}")
    print(f"   Actions: {ledger.get_category_count('action')}  Changes: {ledger.get_category_count('change')}")
    print(f"   Cognates: {ledger.get_actor_type_count('cognate')}  Users: {ledger.get_actor_type_count('user')}")
    print()

    # Step 4: Rejected input comes back as a value
    print("4. A bad filter from the UI:")
    print("-" * 50)
    bad = auditor.query({"severity": ["apocalyptic"]})
    print(f"   ok={bad.ok} error={bad.error}")
    print()

    # Step 5: Flag for review; the chain is untouched
    auditor.flag(1010)
    print("5. Flagged #1010 for review")
    print(f"   Flagged now: {[e.sequence for e in auditor.query({'flaggedOnly': True}).entries]}")
    print(f"   Verification: {auditor.verify()}")
    print()

    # Step 6: Tamper detection
    print("6. Demonstrating tamper detection...")
    print("-" * 50)
    entries = ledger.snapshot().to_list()
    victim = entries[4]
    entries[4] = replace(victim, what=replace(victim.what, description="Nothing to see here"))
    tampered = ledger.verifier.verify_entries(entries)
    print(f"   Original #{victim.sequence}: \"{victim.what.description}\"")
    print(f"   Verification: {tampered}")
    print(f"   Tampering detected: {not tampered.is_valid}")
    print()

    print(f"Merkle root: {ledger.merkle_root()}")
    print("=" * 70)
    print("DEMO COMPLETE")
    print("=" * 70)
