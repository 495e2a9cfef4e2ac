import logging
import threading
import time
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)

CONTACT_BY_VOICE = "RCL REJECTED. CONTACT {authority} BY VOICE FOR OCEANIC CLEARANCE"
SYSTEM_AUTHOR = "SYST"


def contact_by_voice_message(authority_description: str) -> str:
    return CONTACT_BY_VOICE.format(authority=authority_description.upper())


@dataclass
class DatalinkMessage:
    author: str
    recipient: str
    authority: str
    message: str
    sent_at: float


class DatalinkMessagingGateway:
    """Outbox-backed gateway. Messages are logged and kept for inspection."""

    def __init__(self, author: str = SYSTEM_AUTHOR):
        self.author = author
        self.outbox: List[DatalinkMessage] = []
        self._lock = threading.Lock()

    def notify(self, recipient: str, authority: str, message: str) -> None:
        msg = DatalinkMessage(author=self.author, recipient=recipient, authority=authority,
                              message=message, sent_at=time.time())
        with self._lock:
            self.outbox.append(msg)
        logger.info(f"Datalink {self.author} -> {recipient} [{authority}]: {message}")

    def sent_to(self, recipient: str) -> List[DatalinkMessage]:
        with self._lock:
            return [m for m in self.outbox if m.recipient == recipient]
