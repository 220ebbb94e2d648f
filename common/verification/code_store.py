# common/verification/code_store.py
import secrets
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, Optional, Union

from common.utils.logging_config import log_operation, log_context
from common.verification.delivery import Purpose

# Import the common verification logger
from . import logger


class VerificationResult(str, Enum):
    """Outcome of checking a submitted code"""
    VALID = "valid"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class VerificationEntry:
    """An issued code. Never mutated: reissue replaces the whole entry."""
    identity: str
    code: str = field(repr=False)
    issued_at: datetime
    expires_at: datetime
    purpose: Purpose = Purpose.REGISTRATION

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class CodeStore:
    """
    In-memory registry of outstanding verification codes, one per identity.

    All reads and writes go through a single lock, so put and
    check_and_consume for the same identity are serialized and an entry is
    always observed whole. Nothing survives a process restart.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the store.

        Args:
            clock: Callable returning the current time (defaults to datetime.now)
        """
        self.clock = clock or datetime.now
        self.logger = logger
        self._entries: Dict[str, VerificationEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, identity: str) -> bool:
        with self._lock:
            return identity in self._entries

    @log_operation("store_code", log_args=False)
    def put(
            self,
            identity: str,
            code: str,
            ttl: Union[timedelta, int, float],
            purpose: Purpose = Purpose.REGISTRATION
    ) -> VerificationEntry:
        """
        Store a code for an identity, replacing any previous one.

        Args:
            identity: Lookup key (normalized email)
            code: The verification code
            ttl: Lifetime as a timedelta or in seconds
            purpose: Verification context

        Returns:
            The stored entry
        """
        if not isinstance(ttl, timedelta):
            ttl = timedelta(seconds=ttl)

        issued_at = self.clock()
        entry = VerificationEntry(
            identity=identity,
            code=code,
            issued_at=issued_at,
            expires_at=issued_at + ttl,
            purpose=purpose
        )

        with self._lock:
            replaced = self._entries.get(identity) is not None
            self._entries[identity] = entry

        logger.debug("Stored verification code", extra={
            'identity': identity,
            'purpose': purpose.value,
            'expires_at': entry.expires_at.isoformat(),
            'replaced_previous': replaced
        })
        return entry

    @log_operation("check_and_consume", log_args=False)
    def check_and_consume(self, identity: str, submitted_code: str) -> VerificationResult:
        """
        Atomically check a submitted code and consume the entry on success.

        A mismatch leaves the entry in place so the holder may retry until
        expiry. An expired entry is evicted as a side effect.

        Args:
            identity: Lookup key
            submitted_code: Code supplied by the caller

        Returns:
            VerificationResult
        """
        with self._lock:
            entry = self._entries.get(identity)

            if entry is None:
                result = VerificationResult.NOT_FOUND
            elif entry.is_expired(self.clock()):
                del self._entries[identity]
                result = VerificationResult.EXPIRED
            elif not secrets.compare_digest(entry.code.encode(), str(submitted_code).encode()):
                result = VerificationResult.MISMATCH
            else:
                del self._entries[identity]
                result = VerificationResult.VALID

        logger.debug("Checked verification code", extra={
            'identity': identity,
            'result': result.value
        })
        return result

    def get(self, identity: str) -> Optional[VerificationEntry]:
        """Return the stored entry for an identity, expired or not"""
        with self._lock:
            return self._entries.get(identity)

    @log_operation("sweep_expired_codes")
    def sweep(self, now: Optional[datetime] = None) -> int:
        """
        Remove every entry whose expiry is at or before `now`.

        Expired candidates are collected from a snapshot, then removed one at
        a time under a short lock hold so verification is never stuck behind
        a long scan. An entry reissued after the snapshot is left alone.

        Args:
            now: Reference time (defaults to the store clock)

        Returns:
            Number of entries removed
        """
        if now is None:
            now = self.clock()

        with self._lock:
            candidates = [
                identity for identity, entry in self._entries.items()
                if entry.expires_at <= now
            ]

        removed = 0
        for identity in candidates:
            with self._lock:
                current = self._entries.get(identity)
                if current is not None and current.expires_at <= now:
                    del self._entries[identity]
                    removed += 1

        with log_context(logger, sweep_time=now.isoformat()):
            logger.info("Swept expired verification codes", extra={
                'candidates': len(candidates),
                'removed': removed
            })
        return removed

    def clear(self) -> None:
        """Drop every entry"""
        with self._lock:
            self._entries.clear()
