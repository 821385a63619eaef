import asyncio
from typing import Any, Callable, List, Optional, Sequence, Tuple
from loguru import logger

# (cue, seconds the cue stays up)
Step = Tuple[str, float]


class AsyncioTimer:
    """Delayed callbacks on the running asyncio loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Any:
        return asyncio.get_running_loop().call_later(delay, callback)


class StageScheduler:
    """
    Single owner of every delayed action a wizard schedules.

    Each action is tagged with the generation that scheduled it; bumping the
    generation cancels whatever is pending, and an action that still fires
    for an older generation does nothing.
    """

    def __init__(self, timer: Optional[Any] = None):
        self.timer = timer or AsyncioTimer()
        self.generation = 0
        self._handles: List[Any] = []

    def next_generation(self) -> int:
        self.cancel_pending()
        self.generation += 1
        logger.debug(f"Scheduler generation -> {self.generation}")
        return self.generation

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def cancel_pending(self) -> None:
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()

    @property
    def pending(self) -> int:
        return len(self._handles)

    def after(self, delay: float, action: Callable[[], None]) -> None:
        """Run `action` after `delay` seconds unless cancelled or superseded."""
        generation = self.generation
        slot: List[Any] = []

        def fire() -> None:
            if slot and slot[0] in self._handles:
                self._handles.remove(slot[0])
            if not self.is_current(generation):
                logger.debug("Dropped stale scheduled action")
                return
            action()

        handle = self.timer.call_later(delay, fire)
        slot.append(handle)
        self._handles.append(handle)

    def run_sequence(
        self,
        steps: Sequence[Step],
        on_step: Callable[[str], None],
        on_done: Optional[Callable[[], None]] = None,
    ) -> float:
        """
        Play a reveal sequence: each cue is shown for its duration, then
        `on_done` runs. Returns the total duration in seconds.
        """
        offset = 0.0
        for cue, duration in steps:
            self.after(offset, lambda cue=cue: on_step(cue))
            offset += duration
        if on_done is not None:
            self.after(offset, on_done)
        return offset
