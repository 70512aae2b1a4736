"""
CertGuard Evaluation History

Append-only record of every submission that has been scored. The history is
owned by the caller and passed to the scorer; there is no module-level
instance.

Secondary indexes (email, wallet, name token) let the duplicate and
name-similarity rules look up candidates without scanning every entry.
Retention is optional: `max_size` evicts the oldest entries, `max_age`
evicts entries recorded longer ago than the window.
"""

import threading
from collections import Counter, defaultdict, deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Deque, Dict, Iterator, List, Optional

from .submission import CertificateSubmission


def name_tokens(name: str) -> List[str]:
    """Distinct lower-case whitespace-delimited tokens, in order of appearance."""
    seen = []
    for token in name.lower().split():
        if token not in seen:
            seen.append(token)
    return seen


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class HistoryEntry:
    """A recorded submission with its insertion sequence number."""
    seq: int
    submission: CertificateSubmission
    recorded_at: datetime


class EvaluationHistory:
    """
    Ordered, indexed history of scored submissions.

    Thread-safe. The scorer holds `lock` across prune, lookups and append so
    that a concurrent evaluation never observes a half-recorded submission.
    """

    def __init__(
        self,
        max_size: Optional[int] = None,
        max_age: Optional[timedelta] = None
    ):
        if max_size is not None and max_size < 1:
            raise ValueError("max_size must be a positive integer or None")
        if max_age is not None and max_age <= timedelta(0):
            raise ValueError("max_age must be a positive timedelta or None")

        self.max_size = max_size
        self.max_age = max_age
        self.lock = threading.RLock()

        self._entries: Deque[HistoryEntry] = deque()
        self._by_email: Dict[str, Deque[HistoryEntry]] = defaultdict(deque)
        self._by_wallet: Dict[str, Deque[HistoryEntry]] = defaultdict(deque)
        self._by_token: Dict[str, Deque[HistoryEntry]] = defaultdict(deque)
        self._next_seq = 0
        # False once an entry was recorded earlier than the one before it
        self._in_time_order = True

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[CertificateSubmission]:
        with self.lock:
            snapshot = [e.submission for e in self._entries]
        return iter(snapshot)

    def __getitem__(self, index: int) -> CertificateSubmission:
        with self.lock:
            return self._entries[index].submission

    def append(
        self,
        submission: CertificateSubmission,
        recorded_at: Optional[datetime] = None
    ) -> HistoryEntry:
        """Record a submission, evicting the oldest entry when over max_size."""
        with self.lock:
            entry = HistoryEntry(
                seq=self._next_seq,
                submission=submission,
                recorded_at=recorded_at or _utcnow()
            )
            self._next_seq += 1

            if self._entries and entry.recorded_at < self._entries[-1].recorded_at:
                self._in_time_order = False
            self._entries.append(entry)
            self._by_email[submission.student_email].append(entry)
            self._by_wallet[submission.student_wallet_address].append(entry)
            for token in name_tokens(submission.student_name):
                self._by_token[token].append(entry)

            if self.max_size is not None:
                while len(self._entries) > self.max_size:
                    self._evict_oldest()

            return entry

    def prune(self, now: Optional[datetime] = None) -> int:
        """
        Evict entries older than max_age relative to `now`.

        Entries recorded out of time order (replayed evaluation times) are
        found by a full scan; otherwise only the head is examined.

        Returns:
            Number of entries removed
        """
        if self.max_age is None:
            return 0

        now = now or _utcnow()
        removed = 0
        with self.lock:
            if self._in_time_order:
                while self._entries and now - self._entries[0].recorded_at > self.max_age:
                    self._unindex(self._entries.popleft())
                    removed += 1
                return removed

            expired = [e for e in self._entries if now - e.recorded_at > self.max_age]
            if expired:
                self._entries = deque(e for e in self._entries if now - e.recorded_at <= self.max_age)
                for entry in expired:
                    self._unindex(entry)
                removed = len(expired)
            times = [e.recorded_at for e in self._entries]
            self._in_time_order = all(a <= b for a, b in zip(times, times[1:]))
        return removed

    def _evict_oldest(self) -> None:
        self._unindex(self._entries.popleft())

    def _unindex(self, entry: HistoryEntry) -> None:
        sub = entry.submission
        self._drop_posting(self._by_email, sub.student_email, entry)
        self._drop_posting(self._by_wallet, sub.student_wallet_address, entry)
        for token in name_tokens(sub.student_name):
            self._drop_posting(self._by_token, token, entry)

    @staticmethod
    def _drop_posting(index: Dict[str, Deque[HistoryEntry]], key: str, entry: HistoryEntry) -> None:
        postings = index.get(key)
        if not postings:
            return
        if postings[0] is entry:
            postings.popleft()
        else:
            postings.remove(entry)
        if not postings:
            del index[key]

    def entries_for_email(self, email: str) -> List[HistoryEntry]:
        with self.lock:
            return list(self._by_email.get(email, ()))

    def entries_for_wallet(self, wallet: str) -> List[HistoryEntry]:
        with self.lock:
            return list(self._by_wallet.get(wallet, ()))

    def entries_sharing_tokens(self, tokens: List[str], minimum: int) -> List[HistoryEntry]:
        """
        Entries whose name contains at least `minimum` of the given tokens.

        A token repeated in `tokens` counts once per occurrence. Returned in
        insertion order.
        """
        counts: Dict[int, int] = defaultdict(int)
        found: Dict[int, HistoryEntry] = {}
        with self.lock:
            for token, occurrences in Counter(tokens).items():
                for entry in self._by_token.get(token, ()):
                    counts[entry.seq] += occurrences
                    found[entry.seq] = entry
        return [found[seq] for seq in sorted(found) if counts[seq] >= minimum]

    def copy(self) -> 'EvaluationHistory':
        """Independent history with the same retention settings and entries."""
        clone = EvaluationHistory(max_size=self.max_size, max_age=self.max_age)
        with self.lock:
            for entry in self._entries:
                clone.append(entry.submission, recorded_at=entry.recorded_at)
        return clone

    def clear(self) -> None:
        with self.lock:
            self._entries.clear()
            self._by_email.clear()
            self._by_wallet.clear()
            self._by_token.clear()
            self._in_time_order = True
