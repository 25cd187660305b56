import json
import logging
import datetime

from cursorgrid.config.settings import settings


class StructuredLogger:

    def __init__(self, logger_name='StructuredLogger', level=None):
        self.logger = logging.getLogger(logger_name)
        self.logger.setLevel((level or settings.LOG_LEVEL).upper())

        # one handler per named logger, even if instantiated twice
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(handler)
        self.logger.propagate = False

    def _log(self, level, message, **kwargs):
        if not self.logger.isEnabledFor(getattr(logging, level.upper())):
            return
        log_entry = {
            'timestamp': datetime.datetime.now().isoformat(),
            'level': level.upper(),
            'message': message,
            **kwargs
        }
        # cursors, models and exceptions are not json native
        json_log = json.dumps(log_entry, default=str)
        getattr(self.logger, level)(json_log)

    def info(self, message, **kwargs):
        self._log('info', message, **kwargs)

    def warning(self, message, **kwargs):
        self._log('warning', message, **kwargs)

    def error(self, message, **kwargs):
        self._log('error', message, **kwargs)

    def debug(self, message, **kwargs):
        self._log('debug', message, **kwargs)


app_logger = StructuredLogger('CursorGridLogger')
