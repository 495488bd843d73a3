import logging

from taskboard import create_app
from taskboard.config import Settings
from taskboard.logging_setup import setup_logging

settings = Settings.from_env()
setup_logging(
    log_dir=settings.log_dir,
    console_level=getattr(logging, settings.log_level, logging.INFO),
)

app = create_app(settings=settings)

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000)
