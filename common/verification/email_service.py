# common/verification/email_service.py

import os
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import formataddr, make_msgid
from typing import Any, Dict, Optional

from common.config import EMAIL_CONFIG, OTP_CONFIG
from common.utils.logging_config import log_operation, log_context
from common.verification.delivery import CodeDeliverer, DeliveryResult, Purpose

# Import the common verification logger
from . import logger


# Subject and wording per verification purpose
EMAIL_CONTENT = {
    Purpose.REGISTRATION: {
        'subject': "Your OTP for Registration",
        'title': "OTP Verification",
        'subtitle': "Complete your registration with the code below",
        'description': "Enter this {length}-digit code to complete your registration",
        'details': [],
    },
    Purpose.PRIVILEGED_BOOKING: {
        'subject': "OTP for General Meeting Booking Verification",
        'title': "General Meeting Booking Verification",
        'subtitle': "Verify the General Meeting booking request",
        'description': "Enter this {length}-digit code to verify the General Meeting booking request",
        'details': [
            "This OTP is required to book a General Meeting",
            "Only the team lead can verify General Meeting bookings",
            "General Meetings are company-wide events",
        ],
    },
}


def format_expiry(ttl_seconds: int) -> str:
    """Human-readable code lifetime, e.g. "5 minutes" or "90 seconds"."""
    ttl_seconds = int(ttl_seconds)
    if ttl_seconds % 60:
        return f"{ttl_seconds} second" + ("" if ttl_seconds == 1 else "s")
    minutes = ttl_seconds // 60
    return f"{minutes} minute" + ("" if minutes == 1 else "s")


def build_email_body(code: str, purpose: Purpose, ttl_seconds: int) -> str:
    """Render the HTML body of a verification email"""
    content = EMAIL_CONTENT[purpose]
    description = content['description'].format(length=len(code))

    details = ""
    if content['details']:
        items = "".join(f"<li>{item}</li>" for item in content['details'])
        details = f"<p><strong>Details:</strong></p><ul>{items}</ul>"

    return f"""
    <html>
    <body>
        <h2>{content['title']}</h2>
        <p>{content['subtitle']}</p>
        <p>Your verification code is: <strong>{code}</strong></p>
        <p>{description}</p>
        {details}
        <ul>
            <li>This code will expire in {format_expiry(ttl_seconds)}</li>
            <li>Do not share this code with anyone</li>
            <li>If you didn't request this code, please ignore this email</li>
        </ul>
        <p>This is an automated message from the Meeting Booking System.</p>
    </body>
    </html>
    """


class EmailCodeDeliverer(CodeDeliverer):
    """Delivers verification codes by SMTP email"""

    def __init__(
            self,
            config: Optional[Dict[str, Any]] = None,
            ttl_seconds: int = OTP_CONFIG["ttl_seconds"],
            debug_dir: str = "."
    ):
        self.config = {**EMAIL_CONFIG, **(config or {})}
        self.ttl_seconds = int(ttl_seconds)
        self.debug_dir = debug_dir
        self.logger = logger

    def build_message(self, email: str, code: str, purpose: Purpose) -> MIMEMultipart:
        msg = MIMEMultipart()
        msg['From'] = formataddr((self.config['from_name'], self.config['from_email']))
        msg['To'] = email
        msg['Subject'] = EMAIL_CONTENT[purpose]['subject']
        msg['Message-ID'] = make_msgid(domain=self.config['from_email'].split('@')[-1])
        msg.attach(MIMEText(build_email_body(code, purpose, self.ttl_seconds), 'html'))
        return msg

    @log_operation("send_verification_email", log_args=False)
    def deliver(self, identity: str, code: str, purpose: Purpose) -> DeliveryResult:
        """
        Send a verification email with the code.

        Returns:
            DeliveryResult; SMTP errors are reported as a failed result
        """
        with log_context(logger, email=identity, email_service_enabled=self.config['enabled']):
            if not self.config['enabled']:
                logger.info("EMAIL SERVICE DISABLED", extra={
                    'purpose': purpose.value,
                    'action': 'would_send'
                })
                if self.config['debug']:
                    return self._write_debug_file(identity, code)
                logger.error("No delivery channel for verification code", extra={
                    'purpose': purpose.value
                })
                return DeliveryResult.failed("Email service disabled")

            msg = self.build_message(identity, code, purpose)
            try:
                with smtplib.SMTP(
                        self.config['smtp_server'],
                        self.config['smtp_port'],
                        timeout=self.config['smtp_timeout']
                ) as server:
                    server.starttls()
                    if self.config['smtp_username'] and self.config['smtp_password']:
                        server.login(self.config['smtp_username'], self.config['smtp_password'])
                    server.send_message(msg)
            except (smtplib.SMTPException, OSError) as e:
                logger.error("Failed to send verification email", exc_info=True, extra={
                    'smtp_server': self.config['smtp_server'],
                    'smtp_port': self.config['smtp_port'],
                    'error_type': type(e).__name__
                })
                return DeliveryResult.failed(f"Failed to send OTP email: {type(e).__name__}")

            logger.info("Sent verification email", extra={
                'purpose': purpose.value,
                'message_id': msg['Message-ID']
            })
            return DeliveryResult.ok(message_id=msg['Message-ID'])

    def _write_debug_file(self, email: str, code: str) -> DeliveryResult:
        """Development delivery channel: write the code to a local file"""
        filename = os.path.join(self.debug_dir, f"email_code_{email.replace('@', '_at_')}.txt")
        try:
            with open(filename, "w") as f:
                f.write(code)
        except OSError as e:
            logger.error("Failed to write debug email code to file", exc_info=True, extra={
                'file': filename,
                'error_type': type(e).__name__
            })
            return DeliveryResult.failed("Failed to write debug code file")

        logger.debug("Wrote code to debug file", extra={'file': filename})
        return DeliveryResult.ok()
