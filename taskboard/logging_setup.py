# logging_setup.py

import logging
import sys
from pathlib import Path


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable:
    - allow all taskboard logs
    - werkzeug request lines at INFO
    - any other third party only at WARNING+
    """

    def filter(self, record):
        name = record.name
        if name.startswith("taskboard"):
            return True
        if name.startswith("werkzeug"):
            return record.levelno >= logging.INFO
        return record.levelno >= logging.WARNING


def setup_logging(log_dir=".local/taskboard", console_level=logging.INFO, file_level=logging.DEBUG):
    """
    Configure a filtered console handler plus a full log file.

    Call this once from the entrypoint, before the app starts serving.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "taskboard.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    logging.captureWarnings(True)
