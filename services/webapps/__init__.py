# services/webapps/__init__.py
from common.utils.logging_config import setup_logging
from common.utils.log_management import configure_service_logging

# Initialize service-wide logger
logger = setup_logging('webapps_service', log_level='INFO', log_format='text')

# Add file logging if we're in production
configure_service_logging(logger, log_dir="/app/logs/webapps_service")

# Export logger for use in other modules
__all__ = ['logger']
