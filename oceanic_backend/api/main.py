import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator, model_validator

from oceanic_backend.atc.checker import CheckerState, apply_event
from oceanic_backend.atc.manager import ClearanceManager
from oceanic_backend.atc.models import ClearanceRequest, PerformanceProfile, RouteingChoice, ScanResult
from oceanic_backend.atc.validator import ClearanceRequestValidator
from oceanic_backend.config import load_settings
from oceanic_backend.core_math.time_of_day import parse_time_of_day, system_clock
from oceanic_backend.errors import ParseError
from oceanic_backend.repository.memory import (
    InMemoryAuthorityDirectory,
    InMemoryClearanceRepository,
    InMemoryTrackDirectory,
    Track,
)
from oceanic_backend.repository.messaging import DatalinkMessagingGateway

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Oceanic Clearance Conflict API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

repository = InMemoryClearanceRepository()
track_directory = InMemoryTrackDirectory()
authority_directory = InMemoryAuthorityDirectory()
datalink = DatalinkMessagingGateway()

# Built at startup, once window bounds and feature flags are known
atc_manager: Optional[ClearanceManager] = None

LEVEL_PATTERN = r"^[0-9]{3}$"
MIN_LEVEL = 55


def _level(value: Optional[str]) -> Optional[int]:
    return int(value) if value is not None else None


class RclRequestBody(BaseModel):
    callsign: str = Field(max_length=7, pattern=r"^[A-Za-z0-9]+$")
    destination: str = Field(pattern=r"^[A-Za-z]{4}$")
    flight_level: str = Field(pattern=LEVEL_PATTERN)
    max_flight_level: Optional[str] = Field(None, pattern=LEVEL_PATTERN)
    upper_flight_level: Optional[str] = Field(None, pattern=LEVEL_PATTERN)
    mach: str = Field(pattern=r"^[0-9]{3}$")
    entry_fix: Optional[str] = Field(None, max_length=5)
    entry_time: str
    tmi: int = Field(ge=1, le=366)
    track_id: Optional[int] = None
    random_routeing: Optional[str] = Field(None, pattern=r"^[A-Z/0-9 _]*[A-Z/0-9][A-Z/0-9 _]*$")
    is_concorde: bool = False
    target_datalink_authority_id: str = Field(min_length=1)

    @field_validator("entry_time")
    @classmethod
    def entry_time_is_clock_value(cls, v: str) -> str:
        try:
            parse_time_of_day(v)
        except ParseError as e:
            raise ValueError(str(e)) from e
        return v

    @model_validator(mode="after")
    def levels_for_profile(self):
        for name in ("flight_level", "max_flight_level", "upper_flight_level"):
            value = getattr(self, name)
            if value is not None and int(value) < MIN_LEVEL:
                raise ValueError(f"{name} must be at least {MIN_LEVEL:03d}")
        if self.is_concorde and self.upper_flight_level is None:
            raise ValueError("upper_flight_level is required for supersonic flights")
        if not self.is_concorde:
            if self.max_flight_level is None:
                raise ValueError("max_flight_level is required")
            if int(self.max_flight_level) > 450:
                raise ValueError("You must file a valid maximum flight level.")
        return self

    def to_request(self) -> ClearanceRequest:
        return ClearanceRequest(
            callsign=self.callsign.upper(),
            destination=self.destination.upper(),
            flight_level=int(self.flight_level),
            mach=self.mach,
            entry_time=self.entry_time,
            routeing=RouteingChoice(track_id=self.track_id, random_routeing=self.random_routeing or None),
            target_authority_id=self.target_datalink_authority_id,
            entry_fix=self.entry_fix.upper() if self.entry_fix else None,
            tmi=self.tmi,
            profile=PerformanceProfile.SUPERSONIC if self.is_concorde else PerformanceProfile.STANDARD,
            max_flight_level=_level(self.max_flight_level),
            upper_flight_level=_level(self.upper_flight_level),
        )


class ClearanceBody(BaseModel):
    request_id: int
    entry_fix: Optional[str] = Field(None, max_length=5)
    flight_level: Optional[str] = Field(None, pattern=LEVEL_PATTERN)
    entry_time: Optional[str] = None

    @field_validator("entry_time")
    @classmethod
    def entry_time_is_clock_value(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            try:
                parse_time_of_day(v)
            except ParseError as e:
                raise ValueError(str(e)) from e
        return v


class TrackBody(BaseModel):
    id: int
    identifier: str = Field(min_length=1, max_length=2)
    last_routeing: str = Field(min_length=1)
    active: bool = True


def format_scan(scan: ScanResult) -> dict:
    def rows(items):
        return [{
            "id": c.id,
            "callsign": c.callsign,
            "level": c.level,
            "time": c.time,
            "diffVisual": c.diff_visual,
            "diffMinutes": c.diff_minutes,
        } for c in items]

    return {
        "conflict_level": scan.overall_level.value if scan.overall_level is not None else None,
        "conflicts": rows(scan.cleared_conflicts),
        "pending_conflicts": rows(scan.pending_conflicts),
        "cleared_available": scan.cleared_available,
        "pending_available": scan.pending_available,
    }


def get_manager() -> ClearanceManager:
    if atc_manager is None:
        raise HTTPException(status_code=503, detail="Clearance desk not initialised")
    return atc_manager


def _resolved(manager: ClearanceManager, body: RclRequestBody) -> ClearanceRequest:
    try:
        return manager.resolve_entry_fix(body.to_request())
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/api/rcl/validate")
def validate_rcl(body: RclRequestBody):
    manager = get_manager()
    request = _resolved(manager, body)
    result = manager.validate(request)
    return {"passed": result.passed, "entry_fix": request.entry_fix, "errors": result.as_dict()}


@app.post("/api/rcl/conflicts")
async def conflicts_for_rcl(body: RclRequestBody, span: Optional[int] = None):
    if span is not None and span < 0:
        raise HTTPException(status_code=422, detail="span must be >= 0")
    manager = get_manager()
    request = _resolved(manager, body)
    return format_scan(await manager.scan(request, span))


@app.post("/api/rcl")
async def submit_rcl(body: RclRequestBody):
    manager = get_manager()
    try:
        outcome = await manager.propose_request(body.to_request())
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if outcome["status"] == "REJECTED":
        return JSONResponse(status_code=422, content=outcome)
    outcome["scan"] = format_scan(outcome["scan"])
    return outcome


@app.get("/api/rcl/pending")
def list_pending():
    return [{
        "id": s.id,
        "callsign": s.request.callsign,
        "entry_fix": s.request.entry_fix,
        "entry_time": s.request.entry_time,
        "flight_level": s.request.flight_level,
        "request_time": s.request_time.isoformat(),
    } for s in repository.list_pending()]


@app.post("/api/clx")
def issue_clearance(body: ClearanceBody):
    manager = get_manager()
    try:
        stored = manager.issue_clearance(
            body.request_id,
            entry_fix=body.entry_fix.upper() if body.entry_fix else None,
            flight_level=_level(body.flight_level),
            entry_time=body.entry_time,
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))

    clx = stored.clearance
    return {
        "status": "CLEARED",
        "request_id": stored.id,
        "callsign": stored.request.callsign,
        "entry_fix": clx.entry_fix,
        "flight_level": clx.flight_level,
        "entry_time": clx.entry_time,
    }


@app.get("/api/tracks")
def list_tracks():
    return [{"id": t.id, "identifier": t.identifier, "last_routeing": t.last_routeing, "active": t.active}
            for t in track_directory.all()]


@app.post("/api/tracks")
def add_track(body: TrackBody):
    track = track_directory.add(Track(id=body.id, identifier=body.identifier.upper(),
                                      last_routeing=body.last_routeing.upper(), active=body.active))
    return {"status": "success", "id": track.id}


@app.get("/api/datalink/outbox")
def datalink_outbox(recipient: Optional[str] = None):
    messages = datalink.sent_to(recipient.upper()) if recipient else list(datalink.outbox)
    return [{"author": m.author, "recipient": m.recipient, "authority": m.authority,
             "message": m.message, "sent_at": m.sent_at} for m in messages]


@app.websocket("/ws/conflicts")
async def conflict_checker(websocket: WebSocket):
    """
    Live conflict checker. First message opens it:
        {"entry_fix": "MALOT", "flight_level": 350, "entry_time": "1230"}
    then each field edit is an event:
        {"event": "levelChanged" | "timeChanged" | "trackChanged" | "rrChanged", "value": "..."}
    Every message is answered with the current scan.
    """
    await websocket.accept()
    manager = get_manager()
    state = None
    try:
        while True:
            data = await websocket.receive_json()
            try:
                if state is None:
                    candidate = CheckerState.open(str(data["entry_fix"]).upper(), int(data["flight_level"]),
                                                  str(data["entry_time"]))
                else:
                    candidate = apply_event(state, data.get("event", ""), data.get("value"), track_directory)
                scan = await manager.scanner.scan_at(candidate.entry_fix, candidate.flight_level,
                                                     candidate.entry_time, manager.settings.conflict_span_minutes)
                # Session keeps the last state that scanned cleanly
                state = candidate
            except (KeyError, ValueError, LookupError) as e:
                await websocket.send_json({"type": "error", "detail": str(e)})
                continue
            await websocket.send_json({"type": "conflicts", "entry_fix": state.entry_fix,
                                       "flight_level": state.flight_level, "entry_time": state.entry_time,
                                       **format_scan(scan)})
    except WebSocketDisconnect:
        logger.info("Conflict checker disconnected")


@app.on_event("startup")
async def startup_event():
    global atc_manager
    settings = load_settings()
    validator = ClearanceRequestValidator(
        time_constraints_enabled=settings.time_constraints_enabled,
        auto_acknowledgement_enabled=settings.auto_acknowledgement_enabled,
        authorities=authority_directory,
        messaging=datalink,
    )
    atc_manager = ClearanceManager(settings, repository, track_directory, validator, clock=system_clock)
    logger.info("Oceanic clearance desk ready")


@app.get("/")
def root():
    return {"status": "Oceanic Clearance Backend Running"}
