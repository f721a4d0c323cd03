#!/usr/bin/env python3
"""
Quick start guide for the shielded pool.

Run this to see a complete workflow example.
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from zkpool.client.scanner import unspent_notes
from zkpool.client.transaction import transaction
from zkpool.config import PoolSettings, configure_logging
from zkpool.core.compliance import ComplianceReport
from zkpool.core.keypair import Keypair
from zkpool.core.note import Note
from zkpool.core.pool import ShieldedPool
from zkpool.crypto.zk_snark import trusted_setup
from zkpool.ledger import OmniBridge, TokenLedger

ETHER = 10**18


def eth(amount: int) -> str:
    return f"{amount / ETHER:.2f} WETH"


def main():
    """Run a simple example of the shielded pool."""

    print("=" * 70)
    print("SHIELDED POOL QUICK START EXAMPLE")
    print("=" * 70)
    print()

    # Step 1: Deploy the pool
    print("Step 1: Deploy the pool")
    print("-" * 70)
    settings = PoolSettings(tree_height=8, database_url="sqlite:///:memory:", log_level="WARNING")
    configure_logging(settings)
    prover, verifiers = trusted_setup()
    token = TokenLedger()
    token.mint("alice", 5 * ETHER)
    pool = ShieldedPool(verifiers, token, omni_bridge=OmniBridge(token), settings=settings)
    print(f"✓ Pool created with {settings.tree_height}-level tree (supports {2 ** settings.tree_height} notes)")
    print(f"  Root: {hex(pool.current_root())[:34]}...")
    print()

    # Step 2: Alice deposits
    print("Step 2: Alice deposits 1 WETH")
    print("-" * 70)
    alice, bob = Keypair(), Keypair()
    token.approve("alice", pool.address, ETHER)
    receipt = transaction(pool, prover, outputs=[Note(amount=ETHER, keypair=alice)], sender="alice")
    print("✓ Deposit applied")
    print(f"  Transaction: {receipt.tx_hash[:34]}...")
    print(f"  Leaf indices: {receipt.commitment_indices}")
    print()

    # Step 3: Private transfer to Bob
    print("Step 3: Alice sends 0.4 WETH to Bob's shielded address")
    print("-" * 70)
    note = unspent_notes(alice, pool.events)[0]
    transaction(
        pool,
        prover,
        inputs=[note],
        outputs=[
            Note(amount=4 * ETHER // 10, keypair=Keypair.from_address(bob.address())),
            Note(amount=6 * ETHER // 10, keypair=alice),
        ],
    )
    print("✓ Transfer applied: no amounts or owners in the public log")
    print(f"  Alice's notes: {[eth(n.amount) for n in unspent_notes(alice, pool.events)]}")
    print(f"  Bob's notes:   {[eth(n.amount) for n in unspent_notes(bob, pool.events)]}")
    print()

    # Step 4: Bob withdraws
    print("Step 4: Bob withdraws to a fresh account")
    print("-" * 70)
    transaction(pool, prover, inputs=unspent_notes(bob, pool.events), recipient="bob-fresh-account")
    print(f"✓ Withdrawal applied: bob-fresh-account holds {eth(token.balance_of('bob-fresh-account'))}")
    print()

    # Step 5: Alice discloses her first note
    print("Step 5: Alice proves her deposit was spent")
    print("-" * 70)
    result = ComplianceReport.from_note(note).verify(pool)
    print(f"✓ Compliance check: {'compliant' if result.compliant else 'not compliant'}")
    print(f"  Nullifier: {hex(result.nullifier)[:34]}...")
    print()

    # Step 6: System status
    print("Step 6: System Status")
    print("-" * 70)
    stats = pool.get_statistics()
    print("✓ Pool Statistics:")
    print(f"  Transactions: {stats['total_transactions']}")
    print(f"  Deposited: {eth(stats['total_deposited'])}")
    print(f"  Withdrawn: {eth(stats['total_withdrawn'])}")
    print(f"  Commitments: {stats['num_commitments']}")
    print(f"  Nullifiers: {stats['num_nullifiers']}")
    print(f"  Custody: {eth(stats['custody'])}")
    print()

    print("=" * 70)
    print("✓ QUICK START COMPLETE")
    print("=" * 70)


if __name__ == "__main__":
    try:
        main()
    except Exception as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(1)
