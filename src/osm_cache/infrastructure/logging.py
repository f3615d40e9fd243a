"""Logging configuration"""
import logging
import sys
from typing import Dict, Any, Optional

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class LoggingManager:
    """Manages application logging configuration"""

    @staticmethod
    def setup_logging(config: Dict[str, Any], level_override: Optional[str] = None) -> None:
        """Setup logging from the 'logging' section of the configuration"""
        level_name = (level_override or config.get('level', 'INFO')).upper()
        level = getattr(logging, level_name, None)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level_name}")

        logging.basicConfig(
            level=level,
            format=config.get('format', DEFAULT_FORMAT),
            stream=sys.stdout,
            force=True
        )

        # Set specific loggers
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('requests').setLevel(logging.WARNING)
