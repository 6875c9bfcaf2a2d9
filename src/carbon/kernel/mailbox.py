"""Single-slot command mailbox.

The CLI (or an editor extension) submits a sync intent; the editor plugin
polls and takes it. Only the latest intent matters, so the slot holds at most
one command and a new submission silently replaces an unconsumed one.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from ..contracts.v1 import SyncCommand

logger = logging.getLogger("carbon.mailbox")


class MailboxPoisonedError(RuntimeError):
    """Raised once an operation failed while holding the mailbox lock."""


class CommandMailbox:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: Optional[SyncCommand] = None
        self._poisoned = False

    @contextmanager
    def _guard(self) -> Iterator[None]:
        with self._lock:
            if self._poisoned:
                raise MailboxPoisonedError("command mailbox is poisoned")
            try:
                yield
            except BaseException:
                self._poisoned = True
                logger.critical("command mailbox poisoned", exc_info=True)
                raise

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    def submit(self, command: "SyncCommand | str") -> None:
        """Set the pending command, overwriting any unconsumed one."""
        cmd = SyncCommand.parse(command)
        with self._guard():
            previous = self._pending
            self._pending = cmd
        if previous is not None:
            logger.info(
                "pending command %s replaced by %s",
                previous.value,
                cmd.value,
                extra={"op": "submit", "command": cmd.value},
            )

    def consume(self) -> Optional[SyncCommand]:
        """Take and clear the pending command (None when empty)."""
        with self._guard():
            cmd, self._pending = self._pending, None
        return cmd

    def peek(self) -> Optional[SyncCommand]:
        with self._guard():
            return self._pending
