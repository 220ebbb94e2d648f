# common/verification/__init__.py
from common.utils.logging_config import setup_logging
from common.utils.log_management import configure_service_logging

# Initialize verification library logger
logger = setup_logging('common_verification', log_level='INFO', log_format='text')

# Add file logging if we're in production
configure_service_logging(logger, log_dir="/app/logs/common_verification")

# Export verification components
from common.verification.code_store import CodeStore, VerificationEntry, VerificationResult
from common.verification.delivery import CallbackDeliverer, CodeDeliverer, DeliveryResult, Purpose
from common.verification.otp_service import (
    RequestOutcome,
    RequestStatus,
    VerificationOutcome,
    VerificationService,
)

__all__ = [
    'logger',
    'CodeStore',
    'VerificationEntry',
    'VerificationResult',
    'CodeDeliverer',
    'CallbackDeliverer',
    'DeliveryResult',
    'Purpose',
    'VerificationService',
    'RequestOutcome',
    'RequestStatus',
    'VerificationOutcome',
]
