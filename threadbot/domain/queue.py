"""
Question Queue State Machine

Pure transitions over one chat's ordered list of QueueEntry objects.
No persistence or I/O: callers load the Chat aggregate, mutate its queue
through this class and save the aggregate back.

States: waiting -> asking -> completed, waiting -> skipped.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from threadbot.domain.models import QueueEntry, QueueStatus, utcnow
from threadbot.infrastructure.exceptions import (
    QueueEmptyError,
    QueueEntryNotFoundError,
)


logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (QueueStatus.WAITING, QueueStatus.ASKING)
FINISHED_STATUSES = (QueueStatus.COMPLETED, QueueStatus.SKIPPED)


class QuestionQueue:
    """
    Ordered question queue for a single chat.

    The entry list is shared with the caller (usually ``Chat.question_queue``),
    so transitions are visible on the aggregate without copying back.

    Args:
        entries: Existing queue entries, in queue order
        chat_id: Owning chat, used for error details and logs
        clock: Time source, overridable in tests
    """

    def __init__(
        self,
        entries: Optional[List[QueueEntry]] = None,
        chat_id: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._entries = entries if entries is not None else []
        self._chat_id = chat_id
        self._clock = clock

    @property
    def entries(self) -> List[QueueEntry]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    # =========================================================================
    # Transitions
    # =========================================================================

    def enqueue(self, user_id: int) -> QueueEntry:
        """
        Add a user at the end of the queue.

        Idempotent: a user who already waits (or is being asked) keeps
        their entry, so a user never holds two active entries.

        Returns:
            The active entry for the user
        """
        existing = self._find(user_id, ACTIVE_STATUSES)
        if existing is not None:
            return existing

        entry = QueueEntry(
            user_id=user_id,
            position=len(self._entries),
            enqueued_at=self._clock(),
            status=QueueStatus.WAITING,
        )
        self._entries.append(entry)
        return entry

    def dequeue(self, user_id: int) -> int:
        """
        Remove every entry of a user and renumber the rest densely.

        Returns:
            Number of removed entries
        """
        before = len(self._entries)
        self._entries[:] = [e for e in self._entries if e.user_id != user_id]
        self._renumber()
        return before - len(self._entries)

    def next_waiting(self) -> QueueEntry:
        """
        First waiting entry in queue order.

        Raises:
            QueueEmptyError: If nobody is waiting
        """
        for entry in self._entries:
            if entry.status == QueueStatus.WAITING:
                return entry
        raise QueueEmptyError(self._chat_id)

    def mark_asked(self, user_id: int, question_id: str) -> QueueEntry:
        """Move the user's entry to ``asking`` and remember the question id."""
        entry = self._require(user_id)
        entry.status = QueueStatus.ASKING
        entry.asked_at = self._clock()
        entry.question_id = question_id
        return entry

    def mark_answered(self, user_id: int) -> QueueEntry:
        """Complete the user's entry; repeated calls overwrite ``answered_at``."""
        entry = self._require(user_id)
        entry.status = QueueStatus.COMPLETED
        entry.answered_at = self._clock()
        return entry

    def skip(self, user_id: int, reason: str = "") -> QueueEntry:
        """Mark the user's entry skipped. The reason is only logged."""
        entry = self._require(user_id)
        entry.status = QueueStatus.SKIPPED
        logger.info(
            f"Skipped user {user_id} in chat {self._chat_id} queue: {reason or 'no reason given'}"
        )
        return entry

    def clear_completed(self) -> int:
        """
        Drop completed and skipped entries, renumbering survivors.

        Returns:
            Number of removed entries
        """
        before = len(self._entries)
        self._entries[:] = [e for e in self._entries if e.status not in FINISHED_STATUSES]
        self._renumber()
        return before - len(self._entries)

    def reset(self, member_ids: Iterable[int]) -> List[QueueEntry]:
        """Discard the queue and enqueue every member in membership order."""
        self._entries.clear()
        now = self._clock()
        seen = set()
        for user_id in member_ids:
            if user_id in seen:
                continue
            seen.add(user_id)
            self._entries.append(
                QueueEntry(
                    user_id=user_id,
                    position=len(self._entries),
                    enqueued_at=now,
                    status=QueueStatus.WAITING,
                )
            )
        return self._entries

    def expire_stale(self, timeout: timedelta, skip_inactive: bool = True) -> List[QueueEntry]:
        """
        Resolve ``asking`` entries that were never answered.

        Entries asked longer than ``timeout`` ago become ``skipped`` when
        ``skip_inactive`` is set, otherwise they go back to ``waiting``.

        Returns:
            The entries that changed state
        """
        deadline = self._clock() - timeout
        expired = []
        for entry in self._entries:
            if entry.status != QueueStatus.ASKING:
                continue
            if entry.asked_at is not None and entry.asked_at > deadline:
                continue
            if skip_inactive:
                entry.status = QueueStatus.SKIPPED
                logger.info(f"Skipped inactive user {entry.user_id} in chat {self._chat_id}")
            else:
                entry.status = QueueStatus.WAITING
                logger.info(f"Returned unanswered user {entry.user_id} to queue in chat {self._chat_id}")
            expired.append(entry)
        return expired

    # =========================================================================
    # Queries
    # =========================================================================

    def position(self, user_id: int) -> int:
        """
        Rank of the user among waiting entries only.

        Raises:
            QueueEntryNotFoundError: If the user is not waiting
        """
        rank = 0
        for entry in self._entries:
            if entry.status != QueueStatus.WAITING:
                continue
            if entry.user_id == user_id:
                return rank
            rank += 1
        raise QueueEntryNotFoundError(user_id, self._chat_id, status=QueueStatus.WAITING.value)

    def get(self, user_id: int) -> Optional[QueueEntry]:
        """The entry transitions would act on, or None."""
        active = self._find(user_id, ACTIVE_STATUSES)
        if active is not None:
            return active
        for entry in reversed(self._entries):
            if entry.user_id == user_id:
                return entry
        return None

    def is_asking(self, user_id: int) -> bool:
        return self._find(user_id, (QueueStatus.ASKING,)) is not None

    def has_pending_ask(self) -> bool:
        return any(e.status == QueueStatus.ASKING for e in self._entries)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _find(self, user_id: int, statuses) -> Optional[QueueEntry]:
        for entry in self._entries:
            if entry.user_id == user_id and entry.status in statuses:
                return entry
        return None

    def _require(self, user_id: int) -> QueueEntry:
        entry = self.get(user_id)
        if entry is None:
            raise QueueEntryNotFoundError(user_id, self._chat_id)
        return entry

    def _renumber(self) -> None:
        for index, entry in enumerate(self._entries):
            entry.position = index
