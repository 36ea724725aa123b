import logging
import sys

_RESERVED = frozenset(vars(logging.makeLogRecord({})))


class ContextFormatter(logging.Formatter):
    """Appends keyword context passed to Log.* as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED and key not in ("message", "asctime")
        }
        if not context:
            return line
        pairs = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        return f"{line} | {pairs}"


class Log:
    """Centralized logging for the docshare core and its workflows."""

    _logger: logging.Logger = logging.getLogger("docshare")

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Set the level and attach a single stdout handler."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                ContextFormatter("%(asctime)s [%(levelname)s] %(message)s")
            )
            cls._logger.addHandler(handler)

    @classmethod
    def info(cls, message: str, **context: object) -> None:
        cls._logger.info(message, extra=context)

    @classmethod
    def warning(cls, message: str, **context: object) -> None:
        cls._logger.warning(message, extra=context)

    @classmethod
    def error(cls, message: str, **context: object) -> None:
        cls._logger.error(message, extra=context)

    @classmethod
    def exception(cls, message: str, **context: object) -> None:
        """Log at ERROR with the active exception's traceback."""
        cls._logger.exception(message, extra=context)

    @classmethod
    def debug(cls, message: str, **context: object) -> None:
        cls._logger.debug(message, extra=context)
