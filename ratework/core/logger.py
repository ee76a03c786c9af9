import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict
from .config import Config
from .exceptions import LoggerError

class Logger:
    """Configures the ``ratework`` logger hierarchy from a Config.

    Every module logs through ``logging.getLogger(__name__)``, so handlers
    attached here receive records from the whole engine.
    """
    _loggers: Dict[str, logging.Logger] = {}

    def __init__(self, config: Config):
        """Initialize logger with configuration"""
        self.config = config

        logger_name = "ratework"
        if logger_name in self._loggers:
            self.logger = self._loggers[logger_name]
            for handler in self.logger.handlers[:]:
                self.logger.removeHandler(handler)
                handler.close()
        else:
            self.logger = logging.getLogger(logger_name)
            self._loggers[logger_name] = self.logger

        level = self._get_log_level()
        self.logger.setLevel(level)

        base_format = self.config.get(
            "logging.format",
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        self.formatter = logging.Formatter(
            base_format + ' - company:%(company)s - review:%(review)s',
            defaults={'company': '-', 'review': '-'}
        )

        log_file = self.config.get("logging.file")
        if log_file:
            try:
                path = Path(log_file)

                if not path.parent.exists() and str(path.parent) != ".":
                    try:
                        path.parent.mkdir(parents=True, exist_ok=True)
                    except OSError:
                        raise LoggerError(f"Cannot create log directory: {path.parent}")

                max_size = self.config.get("logging.max_size", 1024 * 1024)
                backup_count = self.config.get("logging.backup_count", 3)

                handler = RotatingFileHandler(
                    str(path),
                    maxBytes=max_size,
                    backupCount=backup_count
                )
                handler.setFormatter(self.formatter)
                self.logger.addHandler(handler)
            except LoggerError:
                raise
            except Exception as e:
                raise LoggerError(f"Failed to setup log file: {str(e)}")

        if self.config.get("logging.console_output", False):
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(self.formatter)
            self.logger.addHandler(console_handler)

    def _get_log_level(self) -> int:
        """Convert string log level to logging constant"""
        level_name = str(self.config.get("logging.level", "INFO")).upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            raise LoggerError(f"Invalid log level: {level_name}")
        return level

    def _prepare_extra(self, extra: Dict[str, Any] = None) -> Dict[str, Any]:
        extra_context = {
            'company': '-',
            'review': '-'
        }
        if extra:
            extra_context.update(extra)
        return extra_context

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message"""
        extra = self._prepare_extra(kwargs.get('extra'))
        self.logger.debug(message, extra=extra)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message"""
        extra = self._prepare_extra(kwargs.get('extra'))
        self.logger.info(message, extra=extra)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message"""
        extra = self._prepare_extra(kwargs.get('extra'))
        self.logger.warning(message, extra=extra)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message"""
        extra = self._prepare_extra(kwargs.get('extra'))
        self.logger.error(message, extra=extra)

    def critical(self, message: str, **kwargs: Any) -> None:
        """Log critical message"""
        extra = self._prepare_extra(kwargs.get('extra'))
        self.logger.critical(message, extra=extra)
