"""Public log entries emitted by the pool."""

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Type, TypeVar, Union

from zkpool.utils.encoding import bytes_to_hex, hex_to_bytes, hex_to_int


@dataclass(frozen=True)
class NewCommitment:
    """A commitment appended to the accumulator, with its encrypted note."""

    commitment: int
    index: int
    encrypted_output: bytes

    def to_dict(self) -> dict:
        return {
            "event": "NewCommitment",
            "commitment": hex(self.commitment),
            "index": self.index,
            "encrypted_output": bytes_to_hex(self.encrypted_output),
        }


@dataclass(frozen=True)
class NewNullifier:
    """A nullifier marking a note as spent."""

    nullifier: int

    def to_dict(self) -> dict:
        return {"event": "NewNullifier", "nullifier": hex(self.nullifier)}


@dataclass(frozen=True)
class PublicKey:
    """An account advertising the address notes should be sent to."""

    owner: str
    key: str

    def to_dict(self) -> dict:
        return {"event": "PublicKey", "owner": self.owner, "key": self.key}


PoolEvent = Union[NewCommitment, NewNullifier, PublicKey]

E = TypeVar("E")


def event_from_dict(data: dict) -> PoolEvent:
    """Inverse of the events' to_dict()."""
    kind = data.get("event")
    if kind == "NewCommitment":
        return NewCommitment(
            commitment=hex_to_int(data["commitment"]),
            index=int(data["index"]),
            encrypted_output=hex_to_bytes(data["encrypted_output"]),
        )
    if kind == "NewNullifier":
        return NewNullifier(nullifier=hex_to_int(data["nullifier"]))
    if kind == "PublicKey":
        return PublicKey(owner=data["owner"], key=data["key"])
    raise ValueError(f"Unknown event kind: {kind}")


class EventLog:
    """Append-only, ordered public log."""

    def __init__(self, events: Iterable[PoolEvent] = ()):
        self._events: List[PoolEvent] = list(events)

    def append(self, event: PoolEvent) -> None:
        self._events.append(event)

    def append_all(self, events: Iterable[PoolEvent]) -> None:
        self._events.extend(events)

    def of_type(self, kind: Type[E]) -> List[E]:
        return [event for event in self._events if isinstance(event, kind)]

    def since(self, position: int) -> List[PoolEvent]:
        """Events appended at or after position."""
        return self._events[position:]

    def truncate(self, length: int) -> None:
        """Drop events past length. Only used to roll back a failed transition."""
        del self._events[length:]

    def to_dict(self) -> List[dict]:
        return [event.to_dict() for event in self._events]

    def __iter__(self) -> Iterator[PoolEvent]:
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)

    def __getitem__(self, position):
        return self._events[position]
