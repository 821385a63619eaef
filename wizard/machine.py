import asyncio
from typing import Any, Callable, Dict, Optional
from loguru import logger

from wizard.payload import (
    EMAIL_MAX,
    FIRST_NAME_MAX,
    LAST_NAME_MAX,
    build_lead_payload,
    generate_access_code,
    is_valid_email,
    safe_trim_max,
)
from wizard.scheduler import StageScheduler
from wizard.state import Acknowledgment, EmailStage, SendStatus, Stage, WizardSession

FINAL_APP_URL = "https://app.balancecipher.info/"

SEND_MESSAGE_LIMIT = 500

ACK_FIRST_NAME = Acknowledgment("B", "", 0.95)
ACK_LAST_NAME = Acknowledgment(
    "A",
    "When was the last time you felt a shift inside you, and you knew you couldn't go back?\n"
    "Not because life got easier. Because you finally saw it.",
    2.3,
)
ACK_EMAIL = Acknowledgment("L", "Map delivery unlocked.", 1.15)

# Intro cinematic on nameStep1; the dock holding the first-name field lands at 18.0s.
INTRO_SEQUENCE = (
    ("fade_in", 0.8),
    ("cipher", 6.1),
    ("copilot", 5.7),
    ("you", 4.3),
    ("equation", 1.1),
    ("dock", 0.0),
)

# Awakening screen between the name and email steps.
TRANSITION_SEQUENCE = (
    ("awakening", 1.2),
    ("lights_on", 2.6),
    ("shift", 2.2),
)


class LeadWizard:
    """
    Headless lead capture wizard.

    Stages run landing -> nameStep1 -> nameStep2 -> transition ->
    emailStep(email|code) -> final, with reset() returning to landing from
    anywhere. Timed steps go through one StageScheduler; async submission
    results are dropped when the session they belong to has been reset.
    """

    def __init__(
        self,
        relay: Any,
        scheduler: Optional[StageScheduler] = None,
        client_context: Optional[Dict[str, Any]] = None,
        on_change: Optional[Callable[[WizardSession], None]] = None,
    ):
        self.relay = relay
        self.scheduler = scheduler or StageScheduler()
        self.client_context = client_context or {}
        self.on_change = on_change
        self.session = WizardSession(generation=self.scheduler.generation)

    @property
    def busy(self) -> bool:
        """True while an acknowledgment overlay is up; input is ignored then."""
        return self.session.acknowledgment is not None

    def _emit(self) -> None:
        if self.on_change:
            self.on_change(self.session)

    def _go(self, stage: str) -> None:
        logger.info(f"Wizard stage {self.session.stage} -> {stage}")
        self.session.stage = stage
        self._emit()

    def _show_scene(self, cue: str) -> None:
        self.session.scene = cue
        self._emit()

    def _acknowledge(self, ack: Acknowledgment, after: Callable[[], None]) -> None:
        self.session.acknowledgment = ack
        self._emit()

        def finish() -> None:
            self.session.acknowledgment = None
            after()

        self.scheduler.after(ack.hold, finish)

    def reset(self) -> None:
        """Back to landing with nothing captured and nothing pending."""
        generation = self.scheduler.next_generation()
        self.session = WizardSession(generation=generation)
        logger.info(f"Wizard reset (generation {generation})")
        self._emit()

    def start(self) -> bool:
        self.reset()
        self._go(Stage.NAME_FIRST)
        self.scheduler.run_sequence(INTRO_SEQUENCE, self._show_scene)
        return True

    def submit_first_name(self, value: str) -> bool:
        if self.session.stage != Stage.NAME_FIRST or self.busy:
            return False
        first_name = safe_trim_max(value, FIRST_NAME_MAX)
        if not first_name:
            return False

        self.scheduler.cancel_pending()
        self.session.first_name = first_name
        self.session.scene = None
        self._acknowledge(ACK_FIRST_NAME, lambda: self._go(Stage.NAME_LAST))
        return True

    def submit_last_name(self, value: str) -> bool:
        if self.session.stage != Stage.NAME_LAST or self.busy:
            return False
        last_name = safe_trim_max(value, LAST_NAME_MAX)
        if not last_name:
            return False

        self.session.last_name = last_name
        self._acknowledge(ACK_LAST_NAME, self._enter_transition)
        return True

    def _enter_transition(self) -> None:
        self._go(Stage.TRANSITION)
        self.scheduler.run_sequence(TRANSITION_SEQUENCE, self._show_scene, self._enter_email)

    def continue_from_transition(self) -> bool:
        """Skip whatever is left of the transition reveal."""
        if self.session.stage != Stage.TRANSITION or self.busy:
            return False
        self.scheduler.cancel_pending()
        self._enter_email()
        return True

    def _enter_email(self) -> None:
        self.session.scene = None
        self.session.email_stage = EmailStage.EMAIL
        self.session.send_status = SendStatus.IDLE
        self.session.send_message = ""
        self._go(Stage.EMAIL)

    async def submit_email(self, value: str) -> bool:
        """
        Submit the lead to the relay.

        Returns True when the relay accepted it. Nothing is sent when the
        email is invalid, an overlay is up, or a submission is in flight.
        """
        session = self.session
        if session.stage != Stage.EMAIL or session.email_stage != EmailStage.EMAIL or self.busy:
            return False
        if session.send_status == SendStatus.SENDING:
            logger.warning("Submission already in flight, ignoring")
            return False

        email = safe_trim_max(value, EMAIL_MAX)
        if not is_valid_email(email):
            return False

        session.email = email
        if not session.access_code:
            session.access_code = generate_access_code()

        payload = build_lead_payload(
            first_name=session.first_name,
            last_name=session.last_name,
            email=email,
            access_code=session.access_code,
            client_context=self.client_context,
        )
        generation = session.generation
        session.send_status = SendStatus.SENDING
        session.send_message = "Sending your map delivery request..."
        self._emit()

        try:
            result = await self.relay.submit(payload)
        except asyncio.CancelledError:
            if self.scheduler.is_current(generation):
                logger.warning(f"Submission {payload['requestId']} cancelled")
                session.send_status = SendStatus.ERROR
                session.send_message = "Submission cancelled. Please try again."
                self._emit()
            raise
        except Exception as e:
            if not self.scheduler.is_current(generation):
                logger.info(f"Discarded failed submission {payload['requestId']} from a reset session")
                return False
            logger.error(f"Submission {payload['requestId']} failed: {e}")
            session.send_status = SendStatus.ERROR
            session.send_message = (str(e) or "Failed to send.")[:SEND_MESSAGE_LIMIT]
            self._emit()
            return False

        if not self.scheduler.is_current(generation):
            logger.info(f"Discarded submission result {payload['requestId']} from a reset session")
            return False

        rid = self._tracking_id(result)
        session.send_status = SendStatus.SENT
        session.send_message = f"Request sent. (requestId: {rid})" if rid else "Request sent."
        logger.info(f"Submission {payload['requestId']} accepted")
        self._acknowledge(ACK_EMAIL, self._enter_code)
        return True

    def _tracking_id(self, result: Dict[str, Any]) -> Optional[str]:
        if result.get("requestId"):
            return result["requestId"]
        upstream = result.get("upstream")
        if isinstance(upstream, dict):
            return upstream.get("requestId") or upstream.get("id")
        return None

    def _enter_code(self) -> None:
        self.session.email_stage = EmailStage.CODE
        self._emit()

    def submit_code(self, value: str) -> bool:
        """Local check of the entered code; no network involved."""
        session = self.session
        if session.stage != Stage.EMAIL or session.email_stage != EmailStage.CODE or self.busy:
            return False
        entered = (value or "").strip().upper()
        if not entered or entered != session.access_code.strip().upper():
            return False

        session.code_input = value
        self._go(Stage.FINAL)
        return True

    def destination_url(self) -> str:
        return FINAL_APP_URL
