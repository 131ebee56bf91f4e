import logging

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format=LOG_FORMAT
)
logger = logging.getLogger("cyberasio")


def set_log_level(level: str):
    """Apply a level name such as 'DEBUG' to the package logger"""
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        logger.warning(f"Unknown log level '{level}', keeping {logging.getLevelName(logger.level)}")
        return
    logger.setLevel(resolved)
