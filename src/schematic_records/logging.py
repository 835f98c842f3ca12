import json
import logging
import sys
from typing import Optional

from .config import get_settings


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def configure(level: Optional[str] = None) -> None:
    level_name = (level or get_settings().log_level).upper()
    handler = logging.StreamHandler(sys.stderr)  # stdout остается за --json выводом CLI
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), handlers=[handler], force=True)
