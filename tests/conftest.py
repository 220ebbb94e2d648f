# tests/conftest.py

import os
import threading
from datetime import datetime, timedelta

import pytest
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Keep tests away from a real SMTP server
os.environ.setdefault("EMAIL_SERVICE_ENABLED", "false")

from common.verification import CodeStore, CodeDeliverer, DeliveryResult, VerificationService


class FakeClock:
    """Manually advanced clock for expiry tests"""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingDeliverer(CodeDeliverer):
    """Deliverer that remembers every code it was asked to send"""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent = []
        self._lock = threading.Lock()

    def deliver(self, identity, code, purpose):
        with self._lock:
            self.sent.append((identity, code, purpose))
        if self.succeed:
            return DeliveryResult.ok(message_id=f"msg-{len(self.sent)}")
        return DeliveryResult.failed("SMTP unavailable")

    def last_code(self, identity: str) -> str:
        for sent_identity, code, _ in reversed(self.sent):
            if sent_identity == identity:
                return code
        raise AssertionError(f"No code sent to {identity}")


@pytest.fixture
def clock():
    """Return a controllable clock."""
    return FakeClock()


@pytest.fixture
def store(clock):
    """In-memory code store driven by the fake clock."""
    return CodeStore(clock=clock)


@pytest.fixture
def deliverer():
    return RecordingDeliverer()


@pytest.fixture
def service(store, deliverer):
    """Verification service with default code length and a 5 minute TTL."""
    return VerificationService(store, deliverer, code_length=6, ttl_seconds=300)


@pytest.fixture
def test_identity():
    return "a@x.com"
