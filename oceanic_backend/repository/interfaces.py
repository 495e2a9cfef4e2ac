from typing import List, Protocol, Sequence

from ..atc.models import ClearanceCandidate


class ClearanceRepository(Protocol):
    def find_cleared(self, entry_fix: str, flight_level: int, time_labels: Sequence[str]) -> List[ClearanceCandidate]:
        """Issued clearances at this fix and level whose entry restriction is in time_labels."""
        ...

    def find_pending(self, entry_fix: str, flight_level: int, time_labels: Sequence[str]) -> List[ClearanceCandidate]:
        """Requests not yet cleared at this fix and level whose entry time is in time_labels."""
        ...


class TrackDirectory(Protocol):
    def resolve_entry_fix(self, track_id: int) -> str:
        ...


class AuthorityDirectory(Protocol):
    def is_auto_acknowledging(self, authority_id: str) -> bool:
        ...

    def describe(self, authority_id: str) -> str:
        ...


class MessagingGateway(Protocol):
    def notify(self, recipient: str, authority: str, message: str) -> None:
        ...
