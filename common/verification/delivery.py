# common/verification/delivery.py
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union


class Purpose(str, Enum):
    """Context a verification code is issued for"""
    REGISTRATION = "registration"
    PRIVILEGED_BOOKING = "privileged-booking"

    @classmethod
    def parse(cls, value: Union[str, "Purpose"]) -> "Purpose":
        """
        Normalize a purpose name to a Purpose member.

        Accepts legacy aliases used by older clients.

        Raises:
            ValueError: if the purpose is unknown
        """
        if isinstance(value, cls):
            return value

        normalized = str(value).strip().lower().replace("_", "-")
        normalized = _PURPOSE_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown verification purpose: {value!r}") from None


_PURPOSE_ALIASES = {
    "general-meeting": Purpose.PRIVILEGED_BOOKING.value,
}


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of handing a code to a delivery channel"""
    success: bool
    error: Optional[str] = None
    message_id: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, message_id: Optional[str] = None) -> "DeliveryResult":
        return cls(success=True, message_id=message_id)

    @classmethod
    def failed(cls, error: str) -> "DeliveryResult":
        return cls(success=False, error=error)


class CodeDeliverer(ABC):
    """
    Abstract base class for out-of-band code delivery (email, SMS, push).
    Implementations must report failure through the returned result and
    never drop a code silently.
    """

    @abstractmethod
    def deliver(self, identity: str, code: str, purpose: Purpose) -> DeliveryResult:
        """
        Deliver a verification code to an identity.

        Args:
            identity: Normalized identity (email address)
            code: The verification code to send
            purpose: Verification context, used for message content

        Returns:
            DeliveryResult describing success or failure
        """
        pass


class CallbackDeliverer(CodeDeliverer):
    """Adapts a plain callable returning a bool-like value to CodeDeliverer"""

    def __init__(self, callback: Callable[[str, str, Purpose], object]):
        self.callback = callback

    def deliver(self, identity: str, code: str, purpose: Purpose) -> DeliveryResult:
        result = self.callback(identity, code, purpose)
        if isinstance(result, DeliveryResult):
            return result
        if result:
            return DeliveryResult.ok()
        return DeliveryResult.failed("Delivery callback reported failure")
