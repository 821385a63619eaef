import asyncio
from dotenv import load_dotenv
from loguru import logger

from tools.relay_client import RelayClient
from wizard.machine import LeadWizard
from wizard.state import EmailStage, SendStatus, Stage, WizardSession

RESET_COMMAND = ":reset"

PROMPTS = {
    Stage.LANDING: "Press Enter to start the private decode",
    Stage.NAME_FIRST: "First name",
    Stage.NAME_LAST: "Last name",
    Stage.FINAL: "Press Enter to open the app, or type :reset",
}


def render(session: WizardSession) -> None:
    if session.acknowledgment:
        print(f"\n  [{session.acknowledgment.letter}] {session.acknowledgment.copy}".rstrip())
    elif session.scene:
        print(f"  ... {session.scene}")
    if session.send_status in (SendStatus.SENT, SendStatus.ERROR) and session.send_message:
        print(f"  {session.send_message}")


async def ask(prompt: str) -> str:
    return await asyncio.to_thread(input, f"{prompt}: ")


async def run() -> None:
    """Walk one visitor through the wizard in the terminal."""
    relay = RelayClient()
    wizard = LeadWizard(
        relay,
        client_context={"userAgent": "balance-cipher-console/1.0", "pageUrl": None, "referrer": None},
        on_change=render,
    )
    logger.info(f"Console wizard using relay at {relay.relay_url}")

    while True:
        session = wizard.session

        if wizard.busy or session.stage == Stage.TRANSITION:
            await asyncio.sleep(0.1)
            continue

        if session.stage == Stage.EMAIL:
            if session.email_stage == EmailStage.EMAIL:
                prompt = "Email"
            else:
                prompt = f"Access code (preview: {session.access_code})"
        else:
            prompt = PROMPTS[session.stage]

        answer = await ask(prompt)
        if answer.strip() == RESET_COMMAND:
            wizard.reset()
            continue

        if session.stage == Stage.LANDING:
            wizard.start()
        elif session.stage == Stage.NAME_FIRST:
            wizard.submit_first_name(answer)
        elif session.stage == Stage.NAME_LAST:
            wizard.submit_last_name(answer)
        elif session.stage == Stage.EMAIL and session.email_stage == EmailStage.EMAIL:
            await wizard.submit_email(answer)
        elif session.stage == Stage.EMAIL:
            if not wizard.submit_code(answer):
                print("  That code does not match.")
        elif session.stage == Stage.FINAL:
            print(f"  Continue at {wizard.destination_url()}")
            return


if __name__ == "__main__":
    load_dotenv()
    asyncio.run(run())
