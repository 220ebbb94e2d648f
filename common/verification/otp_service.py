# common/verification/otp_service.py
import secrets
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, Optional, Union

from common.config import OTP_CONFIG
from common.utils.logging_config import log_operation, log_context
from common.verification.code_store import CodeStore, VerificationResult
from common.verification.delivery import CodeDeliverer, DeliveryResult, Purpose

# Import the common verification logger
from . import logger


VERIFICATION_MESSAGES = {
    VerificationResult.VALID: "OTP verified successfully",
    VerificationResult.NOT_FOUND: "OTP not found",
    VerificationResult.EXPIRED: "OTP expired",
    VerificationResult.MISMATCH: "Invalid OTP",
}


class RequestStatus(str, Enum):
    DELIVERED = "delivered"
    DELIVERY_FAILED = "delivery_failed"


@dataclass(frozen=True)
class RequestOutcome:
    """Result of a code request. Never carries the code itself."""
    status: RequestStatus
    error: Optional[str] = None

    @property
    def requested(self) -> bool:
        return self.status is RequestStatus.DELIVERED

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"requested": self.requested}
        if self.error:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class VerificationOutcome:
    result: VerificationResult
    message: str

    @property
    def valid(self) -> bool:
        return self.result is VerificationResult.VALID

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "message": self.message}


def normalize_identity(identity: str) -> str:
    """Normalize an email identity so lookups are case-insensitive"""
    return identity.strip().lower()


class VerificationService:
    """
    Issues one-time codes and validates submitted ones.

    The store is owned by the caller and injected here, so several services
    (or tests) can share or replace it. Delivery always runs after the store
    write has completed and without holding any store lock.
    """

    def __init__(
            self,
            store: CodeStore,
            deliverer: CodeDeliverer,
            code_length: int = OTP_CONFIG["code_length"],
            ttl_seconds: Union[int, float] = OTP_CONFIG["ttl_seconds"]
    ):
        if code_length < 1:
            raise ValueError(f"code_length must be positive, got {code_length}")
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")

        self.store = store
        self.deliverer = deliverer
        self.code_length = code_length
        self.ttl = timedelta(seconds=ttl_seconds)
        self.logger = logger

    def generate_code(self) -> str:
        """Generate a uniformly random numeric code, zero-padded to code_length"""
        return f"{secrets.randbelow(10 ** self.code_length):0{self.code_length}d}"

    @log_operation("request_code")
    def request_code(self, identity: str, purpose: Union[str, Purpose] = Purpose.REGISTRATION) -> RequestOutcome:
        """
        Issue a new code for an identity and hand it to the deliverer.

        A delivery failure does not remove the stored code; requesting again
        simply replaces it.

        Args:
            identity: Email address the code is bound to
            purpose: Verification context

        Returns:
            RequestOutcome with the delivery status

        Raises:
            ValueError: if the purpose is unknown
        """
        identity = normalize_identity(identity)
        purpose = Purpose.parse(purpose)

        with log_context(logger, identity=identity, purpose=purpose.value):
            code = self.generate_code()
            self.store.put(identity, code, self.ttl, purpose)

            try:
                delivery = self.deliverer.deliver(identity, code, purpose)
            except Exception as e:
                logger.error("Verification code delivery raised", exc_info=True, extra={
                    'error_type': type(e).__name__
                })
                return RequestOutcome(RequestStatus.DELIVERY_FAILED, error="Failed to send OTP")

            if not isinstance(delivery, DeliveryResult):
                delivery = DeliveryResult.ok() if delivery else DeliveryResult.failed("Failed to send OTP")

            if not delivery.success:
                logger.warning("Verification code delivery failed", extra={
                    'error': delivery.error
                })
                return RequestOutcome(RequestStatus.DELIVERY_FAILED, error=delivery.error or "Failed to send OTP")

            logger.info("Verification code issued", extra={
                'message_id': delivery.message_id,
                'ttl_seconds': self.ttl.total_seconds()
            })
            return RequestOutcome(RequestStatus.DELIVERED)

    @log_operation("verify_code", log_args=False)
    def verify_code(self, identity: str, submitted_code: str) -> VerificationOutcome:
        """
        Check a submitted code, consuming it when it matches.

        Args:
            identity: Email address the code was issued for
            submitted_code: Code entered by the user

        Returns:
            VerificationOutcome with a user-facing message
        """
        identity = normalize_identity(identity)
        submitted_code = (submitted_code or "").strip()

        with log_context(logger, identity=identity):
            result = self.store.check_and_consume(identity, submitted_code)

            if result is VerificationResult.VALID:
                logger.info("Verification code accepted")
            else:
                logger.warning("Verification code rejected", extra={'result': result.value})

            return VerificationOutcome(result, VERIFICATION_MESSAGES[result])
