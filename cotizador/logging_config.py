"""
Logging configuration.
Call setup_logging(app) once from the application factory.
"""
import json
import logging
from datetime import datetime


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""
    def format(self, record):
        entry = {
            "ts": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        for key in ("user_id", "quotation_number", "items", "total", "import_file"):
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    def format(self, record):
        ts = datetime.utcnow().strftime("%H:%M:%S")
        line = f"{ts} [{record.levelname[0]}] {record.name}: {record.getMessage()}"
        if record.exc_info and record.exc_info[0]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(app):
    """Attach a console handler to the package logger tree."""
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    formatter = JSONFormatter() if app.config.get("LOG_JSON") else HumanFormatter()

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    # app.logger shares the package name, so this covers both.
    logger = logging.getLogger(app.name)
    logger.setLevel(level)
    # create_app may run many times (tests); keep a single handler.
    logger.handlers = [h for h in logger.handlers if not getattr(h, "_cotizador", False)]
    handler._cotizador = True
    logger.addHandler(handler)
    logger.propagate = False
