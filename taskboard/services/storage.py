# storage.py
import logging
from pathlib import Path

from flask import current_app
from werkzeug.utils import secure_filename

from ..errors import NotFound, ValidationError

logger = logging.getLogger(__name__)


class AttachmentStorage:
    """Task attachments kept under one root folder, one sub-folder per task."""

    def __init__(self, root):
        self.root = Path(root)

    def save(self, task_id, file):
        filename = secure_filename(getattr(file, "filename", "") or "")
        if not filename:
            raise ValidationError("No file selected")
        folder = self.root / str(task_id)
        folder.mkdir(parents=True, exist_ok=True)
        file.save(str(folder / filename))
        logger.info("Stored attachment %s for task %s", filename, task_id)
        return f"{task_id}/{filename}"

    def resolve(self, path):
        root = self.root.resolve()
        full = (root / path).resolve()
        if root not in full.parents or not full.is_file():
            raise NotFound("File not found")
        return full

    def delete(self, path):
        try:
            self.resolve(path).unlink()
        except NotFound:
            logger.warning("Attachment %s already gone", path)


def get_storage():
    return AttachmentStorage(current_app.config["UPLOAD_FOLDER"])
