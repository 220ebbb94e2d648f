# common/config.py
import os
from dotenv import load_dotenv
from typing import Dict, Any

# Load .env file if it exists
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


# Runtime environment ('production' enables file logging)
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

# One-time code configuration
OTP_CONFIG: Dict[str, Any] = {
    "code_length": int(os.getenv("OTP_CODE_LENGTH", "6")),
    "ttl_seconds": int(os.getenv("OTP_TTL_SECONDS", "300")),  # 5 minutes
    "sweep_interval_seconds": int(os.getenv("OTP_SWEEP_INTERVAL_SECONDS", "300")),  # 5 minutes
}

# Email delivery configuration
EMAIL_CONFIG: Dict[str, Any] = {
    "enabled": _env_bool("EMAIL_SERVICE_ENABLED"),
    "debug": _env_bool("EMAIL_SERVICE_DEBUG"),
    "smtp_server": os.getenv("SMTP_SERVER", "smtp.gmail.com"),
    "smtp_port": int(os.getenv("SMTP_PORT", "587")),
    "smtp_username": os.getenv("SMTP_USERNAME"),
    "smtp_password": os.getenv("SMTP_PASSWORD"),
    "smtp_timeout": float(os.getenv("SMTP_TIMEOUT", "20")),
    "from_email": os.getenv("FROM_EMAIL", "noreply@meetingbooking.local"),
    "from_name": os.getenv("FROM_NAME", "Meeting Booking System"),
}
