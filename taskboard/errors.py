# errors.py
import logging

from pymongo.errors import PyMongoError

from .utils.utils import format_error

logger = logging.getLogger(__name__)


class TaskboardError(Exception):
    """Base error carrying the HTTP status it renders as."""

    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(TaskboardError):
    status_code = 400


class PermissionDenied(TaskboardError):
    status_code = 403


class NotFound(TaskboardError):
    status_code = 404


class InvalidTransition(TaskboardError):
    status_code = 409


class Conflict(TaskboardError):
    status_code = 409


def register_error_handlers(app):
    @app.errorhandler(TaskboardError)
    def handle_taskboard_error(err):
        if isinstance(err, PermissionDenied):
            logger.info("Permission denied: %s", err.message)
        return format_error(err.message, err.status_code)

    @app.errorhandler(PyMongoError)
    def handle_backend_error(err):
        logger.exception("Backend call failed: %s", err)
        return format_error("The request could not be completed, please try again", 500)
