from dataclasses import dataclass
from typing import Optional


class Stage:
    LANDING = "landing"
    NAME_FIRST = "nameStep1"
    NAME_LAST = "nameStep2"
    TRANSITION = "transition"
    EMAIL = "emailStep"
    FINAL = "final"


class EmailStage:
    EMAIL = "email"
    CODE = "code"


class SendStatus:
    IDLE = "idle"
    SENDING = "sending"
    SENT = "sent"
    ERROR = "error"


@dataclass
class Acknowledgment:
    letter: str
    copy: str
    hold: float


@dataclass
class WizardSession:
    """Everything the wizard knows about the current visit."""
    generation: int = 0
    stage: str = Stage.LANDING
    email_stage: str = EmailStage.EMAIL
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    access_code: str = ""
    code_input: str = ""
    send_status: str = SendStatus.IDLE
    send_message: str = ""
    acknowledgment: Optional[Acknowledgment] = None
    scene: Optional[str] = None
