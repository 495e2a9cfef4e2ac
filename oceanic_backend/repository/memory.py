import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from ..atc.models import CandidateSource, ClearanceCandidate, ClearanceRequest, first_token
from ..errors import DuplicateCallsign
from .rtree_filter import TimeLevelIndex

logger = logging.getLogger(__name__)


@dataclass
class StoredClearance:
    entry_fix: str
    flight_level: int
    entry_time: str
    issued_at: datetime


@dataclass
class StoredRequest:
    id: int
    request: ClearanceRequest
    request_time: datetime
    clearance: Optional[StoredClearance] = None

    @property
    def is_pending(self) -> bool:
        return self.clearance is None


class InMemoryClearanceRepository:
    """
    Non-durable store of submitted requests and issued clearances.
    Each entry fix gets its own time x level index per source kind.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._requests: Dict[int, StoredRequest] = {}
        self._pending: Dict[str, TimeLevelIndex] = {}
        self._cleared: Dict[str, TimeLevelIndex] = {}
        # request id -> (entry fix, index record id)
        self._pending_slots: Dict[int, tuple] = {}
        self._next_id = 1

    def record_request(self, request: ClearanceRequest, request_time: datetime,
                       unique_callsign: bool = False) -> StoredRequest:
        """
        Store a request as pending traffic. With unique_callsign the live
        callsign check and the insert happen under one lock.
        """
        if not request.entry_fix:
            raise ValueError(f"{request.callsign}: entry fix must be resolved before storing")

        with self._lock:
            if unique_callsign and self._callsign_taken(request.callsign):
                raise DuplicateCallsign(request.callsign)
            stored = StoredRequest(id=self._next_id, request=request, request_time=request_time)
            self._next_id += 1
            self._requests[stored.id] = stored

            idx = self._pending.setdefault(request.entry_fix, TimeLevelIndex())
            slot = idx.insert(stored, request.entry_time, request.flight_level)
            self._pending_slots[stored.id] = (request.entry_fix, slot)

        logger.info(f"Recorded RCL {stored.id} ({request.callsign}) via "
                    f"{request.entry_fix}/{request.entry_time} F{request.flight_level:03d}")
        return stored

    def record_clearance(self, request_id: int, entry_fix: str, flight_level: int,
                         entry_time: str, issued_at: datetime) -> StoredRequest:
        with self._lock:
            stored = self._requests.get(request_id)
            if stored is None:
                raise LookupError(f"No request with id {request_id}")
            if not stored.is_pending:
                raise ValueError(f"Request {request_id} ({stored.request.callsign}) is already cleared")

            fix, slot = self._pending_slots.pop(request_id)
            self._pending[fix].remove(slot)

            stored.clearance = StoredClearance(entry_fix=entry_fix, flight_level=flight_level,
                                               entry_time=entry_time, issued_at=issued_at)
            self._cleared.setdefault(entry_fix, TimeLevelIndex()).insert(stored, entry_time, flight_level)

        logger.info(f"Cleared {stored.request.callsign} via {entry_fix}/{entry_time} F{flight_level:03d}")
        return stored

    def find_cleared(self, entry_fix: str, flight_level: int, time_labels: Sequence[str]) -> List[ClearanceCandidate]:
        labels = set(time_labels)
        with self._lock:
            idx = self._cleared.get(entry_fix)
            hits = idx.query(flight_level, labels) if idx is not None else []

        return [
            ClearanceCandidate(
                callsign=s.request.callsign,
                flight_level=s.clearance.flight_level,
                entry_time=s.clearance.entry_time,
                source=CandidateSource.CLEARED,
                entry_fix=s.clearance.entry_fix,
            )
            for s in hits
            if s.clearance.flight_level == flight_level and s.clearance.entry_time in labels
        ]

    def find_pending(self, entry_fix: str, flight_level: int, time_labels: Sequence[str]) -> List[ClearanceCandidate]:
        labels = set(time_labels)
        with self._lock:
            idx = self._pending.get(entry_fix)
            hits = idx.query(flight_level, labels) if idx is not None else []

        return [
            ClearanceCandidate(
                callsign=s.request.callsign,
                flight_level=s.request.flight_level,
                entry_time=s.request.entry_time,
                source=CandidateSource.PENDING,
                entry_fix=s.request.entry_fix,
            )
            for s in hits
            if s.is_pending and s.request.flight_level == flight_level and s.request.entry_time in labels
        ]

    def get(self, request_id: int) -> Optional[StoredRequest]:
        return self._requests.get(request_id)

    def list_pending(self) -> List[StoredRequest]:
        with self._lock:
            return [s for s in self._requests.values() if s.is_pending]

    def has_live_callsign(self, callsign: str) -> bool:
        with self._lock:
            return self._callsign_taken(callsign)

    def _callsign_taken(self, callsign: str) -> bool:
        # Caller holds self._lock
        wanted = callsign.upper()
        return any(s.request.callsign.upper() == wanted for s in self._requests.values())


@dataclass
class Track:
    id: int
    identifier: str
    last_routeing: str
    active: bool = True


class InMemoryTrackDirectory:
    def __init__(self, tracks: Sequence[Track] = ()):
        self._tracks: Dict[int, Track] = {t.id: t for t in tracks}

    def add(self, track: Track) -> Track:
        self._tracks[track.id] = track
        return track

    def get(self, track_id: int) -> Track:
        track = self._tracks.get(track_id)
        if track is None:
            raise LookupError(f"No track with id {track_id}")
        return track

    def all(self) -> List[Track]:
        return sorted(self._tracks.values(), key=lambda t: t.identifier)

    def resolve_entry_fix(self, track_id: int) -> str:
        # Entry fix is the first waypoint of the track's last known routeing
        fix = first_token(self.get(track_id).last_routeing)
        if fix is None:
            raise LookupError(f"Track {track_id} has no routeing")
        return fix


@dataclass
class DatalinkAuthority:
    id: str
    description: str
    auto_acknowledge_participant: bool = False


DEFAULT_AUTHORITIES = (
    DatalinkAuthority("SYST", "System"),
    DatalinkAuthority("EGGX", "Shanwick Oceanic", auto_acknowledge_participant=True),
    DatalinkAuthority("CZQX", "Gander Oceanic", auto_acknowledge_participant=True),
    DatalinkAuthority("BIRD", "Reykjavik Oceanic"),
    DatalinkAuthority("LPPO", "Santa Maria Oceanic"),
    DatalinkAuthority("KZNY", "New York Oceanic"),
)


class InMemoryAuthorityDirectory:
    def __init__(self, authorities: Sequence[DatalinkAuthority] = DEFAULT_AUTHORITIES):
        self._authorities = {a.id: a for a in authorities}

    def find(self, authority_id: str) -> Optional[DatalinkAuthority]:
        return self._authorities.get(authority_id)

    def is_auto_acknowledging(self, authority_id: str) -> bool:
        authority = self.find(authority_id)
        return bool(authority and authority.auto_acknowledge_participant)

    def describe(self, authority_id: str) -> str:
        authority = self.find(authority_id)
        return authority.description if authority else authority_id
