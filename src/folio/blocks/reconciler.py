"""Debounced whole-page persistence.

Edits are applied in memory first. The editor then hands the full block list
to a DebouncedSaver, which waits for a quiet period and writes the latest
snapshot through a "replace all blocks for page" callable. Rapid edits
coalesce into one write.

Known race: two writes for the same page may reach storage out of order, and
a stale snapshot can then overwrite a newer one. No version check guards
against this. Every write carries a per-page sequence number. ``sent_log``
appends a record when a write finishes, so it is in completion order: a
stale write that lands last shows up as a lower sequence after a higher one.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable

from ..errors import PersistenceError
from ..settings import settings
from .models import Block

logger = logging.getLogger(__name__)

SaveFn = Callable[[str, list[Block]], None]
ErrorFn = Callable[[str, Exception], None]


@dataclass
class _Pending:
    blocks: list[Block]
    sequence: int
    timer: threading.Timer | None = None


@dataclass
class SaveRecord:
    """One finished write (successful or not)."""

    page_id: str
    sequence: int
    block_count: int
    ok: bool = True
    error: str | None = None


@dataclass
class DebouncedSaver:
    """Trailing-edge debounce in front of a page replace call.

    Args:
        save: ``(page_id, blocks) -> None``; must replace the page atomically.
        delay: Quiet period in seconds before writing.
        on_error: Called with ``(page_id, PersistenceError)`` when a write
            fails. The in-memory state is not rolled back.
    """

    save: SaveFn
    delay: float = field(default_factory=lambda: settings.save_delay_seconds)
    on_error: ErrorFn | None = None
    sent_log: list[SaveRecord] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: dict[str, _Pending] = {}
        self._sequence: dict[str, int] = {}

    def schedule(self, page_id: str, blocks: list[Block]) -> int:
        """Queue a snapshot of ``blocks``, replacing any pending one for the page.

        Returns:
            The sequence number assigned to this snapshot.
        """
        with self._lock:
            previous = self._pending.get(page_id)
            if previous is not None and previous.timer is not None:
                previous.timer.cancel()

            sequence = self._sequence.get(page_id, 0) + 1
            self._sequence[page_id] = sequence

            pending = _Pending(blocks=list(blocks), sequence=sequence)
            if self.delay > 0:
                pending.timer = threading.Timer(self.delay, self._fire, args=(page_id, sequence))
                pending.timer.daemon = True
            self._pending[page_id] = pending

        if pending.timer is not None:
            pending.timer.start()
        else:
            self._fire(page_id, sequence)
        return sequence

    def pending(self, page_id: str) -> bool:
        """Whether a write is waiting for ``page_id``."""
        with self._lock:
            return page_id in self._pending

    def flush(self, page_id: str | None = None) -> None:
        """Write pending snapshots immediately (all pages when ``page_id`` is None)."""
        with self._lock:
            targets = [page_id] if page_id is not None else list(self._pending)
            ready = []
            for pid in targets:
                pending = self._pending.get(pid)
                if pending is None:
                    continue
                if pending.timer is not None:
                    pending.timer.cancel()
                ready.append((pid, pending.sequence))

        for pid, sequence in ready:
            self._fire(pid, sequence)

    def cancel(self, page_id: str | None = None) -> None:
        """Drop pending snapshots without writing them."""
        with self._lock:
            targets = [page_id] if page_id is not None else list(self._pending)
            for pid in targets:
                pending = self._pending.pop(pid, None)
                if pending is not None and pending.timer is not None:
                    pending.timer.cancel()

    def _fire(self, page_id: str, sequence: int) -> None:
        with self._lock:
            pending = self._pending.get(page_id)
            # Superseded or already flushed
            if pending is None or pending.sequence != sequence:
                return
            del self._pending[page_id]

        record = SaveRecord(page_id=page_id, sequence=sequence, block_count=len(pending.blocks))
        try:
            self.save(page_id, pending.blocks)
        except Exception as e:
            logger.error("Saving page %s (seq %d) failed: %s", page_id, sequence, e)
            record.ok = False
            record.error = str(e)
            with self._lock:
                self.sent_log.append(record)
            if self.on_error is not None:
                error = PersistenceError(f"Failed to save page {page_id}: {e}", page_id=page_id)
                error.__cause__ = e
                self.on_error(page_id, error)
            return

        logger.debug("Saved page %s (seq %d, %d blocks)", page_id, sequence, record.block_count)
        with self._lock:
            self.sent_log.append(record)
