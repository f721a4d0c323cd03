"""
Spent-nullifier registry.

A nullifier is published exactly once, when its note is spent. It cannot be
linked to the commitment it comes from without the owner's signature, so
the registry is public while spends stay unlinkable.

Any duplicate nullifier reveals a double-spend attempt; the set only grows.
"""

import json
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Dict, Iterable, Optional, Tuple

from zkpool.exceptions import DoubleSpendError


@dataclass
class NullifierRecord:
    """
    Record of a spent nullifier.

    Tracks when and by which transaction a nullifier was used.
    """

    nullifier: int
    transaction_hash: str
    spent_at: str
    merkle_root_at_spending: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "nullifier": hex(self.nullifier),
            "transaction_hash": self.transaction_hash,
            "spent_at": self.spent_at,
            "merkle_root_at_spending": (
                hex(self.merkle_root_at_spending)
                if self.merkle_root_at_spending is not None
                else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "NullifierRecord":
        root = data.get("merkle_root_at_spending")
        return cls(
            nullifier=int(data["nullifier"], 16),
            transaction_hash=data["transaction_hash"],
            spent_at=data["spent_at"],
            merkle_root_at_spending=int(root, 16) if root is not None else None,
        )


class NullifierSet:
    """
    Maintains the set of spent nullifiers.

    Key properties:
      - Membership is public
      - Insertion is the only mutation (outside of transition rollback)
      - Re-inserting a nullifier is a double spend
    """

    def __init__(self):
        """Initialize empty nullifier set."""
        self.records: Dict[int, NullifierRecord] = {}

    def contains(self, nullifier: int) -> bool:
        return nullifier in self.records

    def __contains__(self, nullifier: int) -> bool:
        return self.contains(nullifier)

    def is_spent(self, nullifier: int) -> bool:
        """Check if a nullifier has been spent."""
        return self.contains(nullifier)

    def insert(
        self,
        nullifier: int,
        transaction_hash: str = "",
        merkle_root: Optional[int] = None,
    ) -> NullifierRecord:
        """
        Record a nullifier as spent.

        Args:
            nullifier: The nullifier field element
            transaction_hash: Transaction that spent it
            merkle_root: Root the spending proof was anchored to

        Returns:
            NullifierRecord: The stored record

        Raises:
            DoubleSpendError: If the nullifier is already spent
        """
        if self.contains(nullifier):
            raise DoubleSpendError(f"Nullifier already spent: {hex(nullifier)}")

        record = NullifierRecord(
            nullifier=nullifier,
            transaction_hash=transaction_hash,
            spent_at=datetime.now(UTC).isoformat(),
            merkle_root_at_spending=merkle_root,
        )
        self.records[nullifier] = record
        return record

    def get_record(self, nullifier: int) -> Optional[NullifierRecord]:
        """Get spending record for a nullifier."""
        return self.records.get(nullifier)

    @property
    def size(self) -> int:
        """Get number of spent nullifiers."""
        return len(self.records)

    def __len__(self) -> int:
        return self.size

    def __iter__(self):
        return iter(self.records)

    def snapshot(self) -> Tuple[int, ...]:
        """Spent nullifiers in insertion order."""
        return tuple(self.records)

    def restore(self, snapshot: Tuple[int, ...]) -> None:
        """Drop every nullifier inserted after snapshot was taken."""
        keep = set(snapshot)
        for nullifier in [n for n in self.records if n not in keep]:
            del self.records[nullifier]

    @classmethod
    def from_events(cls, events: Iterable) -> "NullifierSet":
        """Rebuild the set from NewNullifier entries of the public log."""
        from zkpool.core.events import NewNullifier

        nullifier_set = cls()
        for event in events:
            if isinstance(event, NewNullifier):
                nullifier_set.insert(event.nullifier)
        return nullifier_set

    def serialize(self) -> str:
        """Serialize nullifier set to JSON."""
        return json.dumps(
            {
                "records": [record.to_dict() for record in self.records.values()],
                "total_spent": self.size,
            }
        )

    @classmethod
    def deserialize(cls, json_str: str) -> "NullifierSet":
        """Deserialize nullifier set from JSON."""
        data = json.loads(json_str)

        nullifier_set = cls()
        for record_data in data["records"]:
            record = NullifierRecord.from_dict(record_data)
            nullifier_set.records[record.nullifier] = record

        return nullifier_set
