"""Operator consent before downloading an update."""

from __future__ import annotations

import asyncio
import sys
import threading
from collections.abc import Callable
from typing import Protocol, TextIO

AFFIRMATIVE_ANSWER = "1"


class ConsentSource(Protocol):
    """Answers a single yes/no question."""

    async def confirm(self, prompt: str) -> bool: ...


class ConsoleConsent:
    """Asks on the console; only an explicit ``1`` counts as yes.

    Anything else, including EOF on stdin, declines.
    """

    def __init__(
        self,
        input_fn: Callable[[], str] = input,
        output: TextIO | None = None,
    ) -> None:
        self._input_fn = input_fn
        self._output = output or sys.stdout

    async def confirm(self, prompt: str) -> bool:
        out = self._output
        out.write(f"\n {prompt}\n")
        out.write("\n Introduce your answer: \n")
        out.write("------------------------------------------\n")
        out.write("\nFor YES => (1)")
        out.write("\nFor NO  => (2)\n")
        out.flush()

        try:
            answer = await self._read_answer()
        except (EOFError, OSError):
            return False
        return answer.strip() == AFFIRMATIVE_ANSWER

    async def _read_answer(self) -> str:
        """Read one line on a daemon thread.

        Cancelling the awaiting task abandons the read, and a process that is
        shutting down does not wait for the operator to press enter.
        """
        loop = asyncio.get_running_loop()
        answer: asyncio.Future[str] = loop.create_future()

        def _deliver(value: str | None, error: BaseException | None) -> None:
            if answer.done():
                return
            if error is not None:
                answer.set_exception(error)
            else:
                answer.set_result(value or "")

        def _worker() -> None:
            try:
                value, error = self._input_fn(), None
            except Exception as exc:
                value, error = None, exc
            try:
                loop.call_soon_threadsafe(_deliver, value, error)
            except RuntimeError:
                # Event loop already closed
                pass

        threading.Thread(target=_worker, name="consent-input", daemon=True).start()
        return await answer


class StaticConsent:
    """Gives the same answer every time (unattended operation)."""

    def __init__(self, answer: bool) -> None:
        self._answer = answer

    async def confirm(self, prompt: str) -> bool:
        return self._answer
