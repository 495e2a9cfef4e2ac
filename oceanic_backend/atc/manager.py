import logging
from dataclasses import replace
from typing import Any, Dict, Optional

from ..config import Settings
from ..core_math.time_of_day import Clock, system_clock
from ..errors import DuplicateCallsign
from ..repository.memory import InMemoryClearanceRepository, InMemoryTrackDirectory
from .models import ClearanceRequest, FieldError, first_token
from .scanner import ConflictScanner
from .validator import ClearanceRequestValidator

logger = logging.getLogger(__name__)

CALLSIGN_TAKEN = "The callsign has already been taken."


class ClearanceManager:
    """
    Oceanic clearance desk. Holds the wiring between the engine and its
    collaborators:
    1. validate + record incoming RCLs as pending traffic
    2. turn pending RCLs into cleared traffic when a clearance is issued
    3. scan any request against both
    """
    def __init__(self,
                 settings: Settings,
                 repository: InMemoryClearanceRepository,
                 tracks: InMemoryTrackDirectory,
                 validator: ClearanceRequestValidator,
                 clock: Clock = system_clock):
        self.settings = settings
        self.repository = repository
        self.tracks = tracks
        self.validator = validator
        self.clock = clock
        self.scanner = ConflictScanner(repository, fetch_timeout_s=settings.fetch_timeout_s)

    def resolve_entry_fix(self, request: ClearanceRequest) -> ClearanceRequest:
        """Fill in the entry fix from the routeing when the pilot did not give one."""
        if request.entry_fix:
            return request
        if request.routeing.track_id is not None:
            return replace(request, entry_fix=self.tracks.resolve_entry_fix(request.routeing.track_id))
        return replace(request, entry_fix=first_token(request.routeing.random_routeing))

    def validate(self, request: ClearanceRequest):
        return self.validator.validate(request, self.clock(), self.settings.window)

    async def scan(self, request: ClearanceRequest, span_minutes: Optional[int] = None):
        span = self.settings.conflict_span_minutes if span_minutes is None else span_minutes
        return await self.scanner.scan(self.resolve_entry_fix(request), span)

    async def propose_request(self, request: ClearanceRequest) -> Dict[str, Any]:
        """
        Evaluate a submitted RCL. Rejected requests are not stored; accepted
        ones become pending traffic and come back with their current conflicts.
        """
        request = self.resolve_entry_fix(request)
        result = self.validate(request)
        if self.repository.has_live_callsign(request.callsign):
            logger.info(f"RCL {request.callsign} already has a live request")
            result.errors.insert(0, FieldError("callsign", CALLSIGN_TAKEN))

        if not result.passed:
            return {"status": "REJECTED", "errors": result.as_dict()}

        # Scan before storing so the request does not see itself as pending traffic
        scan = await self.scanner.scan(request, self.settings.conflict_span_minutes)
        try:
            stored = self.repository.record_request(request, request_time=self.clock(), unique_callsign=True)
        except DuplicateCallsign:
            # Another submission took the callsign while this one was being scanned
            logger.info(f"RCL {request.callsign} already has a live request")
            return {"status": "REJECTED", "errors": {"callsign": [CALLSIGN_TAKEN]}}
        level = scan.overall_level.value if scan.overall_level is not None else "unknown"
        logger.info(f"RCL {request.callsign} accepted as request {stored.id}, conflict level {level}")
        return {
            "status": "ACCEPTED",
            "request_id": stored.id,
            "datalink_message": self.datalink_message(request),
            "scan": scan,
        }

    def issue_clearance(self, request_id: int,
                        entry_fix: Optional[str] = None,
                        flight_level: Optional[int] = None,
                        entry_time: Optional[str] = None):
        """Clears a pending request, by default exactly as requested."""
        stored = self.repository.get(request_id)
        if stored is None:
            raise LookupError(f"No request with id {request_id}")
        req = stored.request
        return self.repository.record_clearance(
            request_id,
            entry_fix=entry_fix or req.entry_fix,
            flight_level=flight_level if flight_level is not None else req.flight_level,
            entry_time=entry_time or req.entry_time,
            issued_at=self.clock(),
        )

    def datalink_message(self, request: ClearanceRequest) -> str:
        track_identifier = None
        if request.routeing.track_id is not None:
            track_identifier = self.tracks.get(request.routeing.track_id).identifier
        return request.datalink_message(track_identifier)
