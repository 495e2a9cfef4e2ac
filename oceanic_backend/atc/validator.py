import logging
import re
from datetime import datetime
from typing import Callable, List, Optional

from ..core_math.entry_window import SubmissionWindow, is_within_window
from ..core_math.time_of_day import is_time_label
from ..repository.interfaces import AuthorityDirectory, MessagingGateway
from ..repository.messaging import contact_by_voice_message
from .models import (
    MAX_FILEABLE_LEVEL,
    RVSM_FORBIDDEN_LEVELS,
    ClearanceRequest,
    FieldError,
    PerformanceProfile,
    ValidationResult,
)

logger = logging.getLogger(__name__)

MACH_RE = re.compile(r"\b0[1-9][0-9]\b")

TRACK_OR_RR_CONFLICT = ("You can only request either a NAT track or a random routeing. Check which one you are "
                        "allocated in your CTP booking. (NAT Tracks are identified by a letter.)")
TRACK_OR_RR_MISSING = ("You need to request either a NAT track or a random routeing. Check which one you are "
                       "allocated in your CTP booking. (NAT Tracks are identified by a letter.)")
MAX_FL_TOO_LOW = "Your maximum flight level must be equal to or higher than your requested flight level."
RVSM_INVALID = "Your flight levels must be valid (420 and 440 are not valid)."
FL_INVALID = "You must file a valid flight level."
MACH_INVALID = "Mach must be in format 0xx (e.g. .74 = 074)"
ENTRY_WINDOW = ("You are either too early or too late to submit oceanic clearance. If you are entering the oceanic "
                "more than {upper} minutes from now, come back when within {upper} minutes. If your entry is within "
                "{lower} minutes, or you have already entered, request clearance via voice.")

Rule = Callable[[ClearanceRequest], List[FieldError]]


def routeing_exclusivity(request: ClearanceRequest) -> List[FieldError]:
    r = request.routeing
    has_track = r.track_id is not None
    has_rr = bool(r.random_routeing)
    if has_track and has_rr:
        return [FieldError("select_one_routeing", TRACK_OR_RR_CONFLICT)]
    if not has_track and not has_rr:
        return [FieldError("select_one_routeing", TRACK_OR_RR_MISSING)]
    return []


def max_level_not_below_requested(request: ClearanceRequest) -> List[FieldError]:
    if request.max_flight_level is None or request.flight_level > request.max_flight_level:
        return [FieldError("max_fl", MAX_FL_TOO_LOW)]
    return []


def rvsm_levels(request: ClearanceRequest) -> List[FieldError]:
    if request.flight_level in RVSM_FORBIDDEN_LEVELS or request.max_flight_level in RVSM_FORBIDDEN_LEVELS:
        return [FieldError("rvsm", RVSM_INVALID)]
    return []


def level_ceiling(request: ClearanceRequest) -> List[FieldError]:
    if request.flight_level > MAX_FILEABLE_LEVEL:
        return [FieldError("flight_level.max", FL_INVALID)]
    return []


def mach_format(request: ClearanceRequest) -> List[FieldError]:
    if not MACH_RE.search(str(request.mach)):
        return [FieldError("mach.regex", MACH_INVALID)]
    return []


COMMON_RULES: List[Rule] = [routeing_exclusivity]
STANDARD_RULES: List[Rule] = [max_level_not_below_requested, rvsm_levels, level_ceiling, mach_format]


def window_error(window: SubmissionWindow) -> FieldError:
    # Guidance quotes each bound narrowed by one minute
    return FieldError(
        "entry_time.range",
        ENTRY_WINDOW.format(lower=window.lower_bound_minutes + 1, upper=window.upper_bound_minutes - 1),
    )


class ClearanceRequestValidator:
    """
    Cross-field checks for an RCL. Every rule runs; the result carries all
    violations at once. Structural checks (lengths, charsets, digits) happen
    before this, at the request model.
    """

    def __init__(self,
                 time_constraints_enabled: bool = True,
                 auto_acknowledgement_enabled: bool = False,
                 authorities: Optional[AuthorityDirectory] = None,
                 messaging: Optional[MessagingGateway] = None):
        self.time_constraints_enabled = time_constraints_enabled
        self.auto_acknowledgement_enabled = auto_acknowledgement_enabled
        self.authorities = authorities
        self.messaging = messaging

    def rules_for(self, profile: PerformanceProfile) -> List[Rule]:
        if profile is PerformanceProfile.STANDARD:
            return COMMON_RULES + STANDARD_RULES
        if profile is PerformanceProfile.SUPERSONIC:
            return list(COMMON_RULES)
        raise ValueError(f"Unknown performance profile: {profile!r}")

    def validate(self, request: ClearanceRequest, now: datetime, window: SubmissionWindow) -> ValidationResult:
        result = ValidationResult()
        for rule in self.rules_for(request.profile):
            result.errors.extend(rule(request))

        if request.profile is PerformanceProfile.STANDARD:
            result.errors.extend(self.check_entry_window(request, now, window))

        if result.errors:
            logger.info(f"RCL {request.callsign} failed validation: {sorted({e.field for e in result.errors})}")
        return result

    def check_entry_window(self, request: ClearanceRequest, now: datetime, window: SubmissionWindow) -> List[FieldError]:
        if not self.time_constraints_enabled or not is_time_label(request.entry_time):
            return []
        if is_within_window(request.entry_time, now, window):
            return []

        logger.info(f"RCL {request.callsign} entry {request.entry_time} outside submission window at {now:%H%M}")
        self._maybe_send_contact(request)
        return [window_error(window)]

    def _maybe_send_contact(self, request: ClearanceRequest):
        if not self.auto_acknowledgement_enabled or self.authorities is None or self.messaging is None:
            return
        try:
            if not self.authorities.is_auto_acknowledging(request.target_authority_id):
                return
            authority = self.authorities.describe(request.target_authority_id)
            self.messaging.notify(request.callsign, request.target_authority_id, contact_by_voice_message(authority))
        except Exception:
            # Verdict stands regardless of delivery
            logger.exception(f"Contact-by-voice message to {request.callsign} failed")
