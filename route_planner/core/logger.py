# route_planner/core/logger.py
from loguru import logger

from route_planner.core.config import settings
from route_planner.core.logging_config import setup_logging

# Configure the sink once, on first import
setup_logging(settings.LOG_LEVEL)

__all__ = ["logger"]
