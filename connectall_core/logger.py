import logging, json, sys, time, os


class JsonLineFormatter(logging.Formatter):
    """One JSON object per line: ts, level, name, msg (+ exc when present)."""

    def __init__(self):
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%SZ")
        self.converter = time.gmtime  # Use UTC timestamps

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        # messages may embed JSON (connection records); dumping keeps the line parseable
        return json.dumps(entry, ensure_ascii=False)


def get_logger(name="connectall", level=None, to_file=None):
    """Unified structured logger for all ConnectAll components."""
    logger = logging.getLogger(name)
    logger.setLevel(level or os.getenv("CONNECTALL_LOG_LEVEL", "INFO").upper())

    if not logger.handlers:
        formatter = JsonLineFormatter()
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        to_file = to_file or os.getenv("CONNECTALL_LOG_FILE")
        if to_file:
            os.makedirs(os.path.dirname(to_file) or ".", exist_ok=True)
            file_handler = logging.FileHandler(to_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
