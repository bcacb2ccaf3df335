# Module for file system operations (export directories, safe saving, cleanup)

import logging
import os
import shutil
import tempfile
from datetime import datetime

import constants
from errors import SetupError, UnsafePathError

logger = logging.getLogger(__name__)


# --- Export Directories ---
def prepare_export_directory(work_dir=None):
    """
    Creates a fresh, uniquely named directory for one export run.
    Raises SetupError when it cannot be created.
    """
    base_dir = os.path.join(work_dir or tempfile.gettempdir(), constants.TEMP_DIR_NAME)
    try:
        os.makedirs(base_dir, exist_ok=True)
        export_dir = tempfile.mkdtemp(prefix=constants.EXPORT_ID_PREFIX, dir=base_dir)
    except OSError as e:
        raise SetupError(f"Could not prepare temporary directories under {base_dir}: {e}") from e
    logger.info(f"Temporary export directory created: {export_dir}")
    return export_dir


def choose_archive_path(archive_dir, now=None):
    """Returns an unused 'static-export-YYYYmmdd-HHMMSS.zip' path inside archive_dir."""
    try:
        os.makedirs(archive_dir, exist_ok=True)
    except OSError as e:
        raise SetupError(f"Could not create archive directory {archive_dir}: {e}") from e

    stamp = (now or datetime.now()).strftime(constants.ARCHIVE_TIMESTAMP_FORMAT)
    base_filename = f"{constants.ARCHIVE_FILENAME_PREFIX}{stamp}"
    full_path = os.path.join(archive_dir, f"{base_filename}.zip")

    # Handle filename collisions
    counter = 1
    while os.path.exists(full_path):
        full_path = os.path.join(archive_dir, f"{base_filename}-{counter}.zip")
        counter += 1
        if counter > constants.FILENAME_COLLISION_LIMIT:
            raise SetupError(f"Could not find unique archive filename in {archive_dir} after {constants.FILENAME_COLLISION_LIMIT} attempts.")
    return os.path.abspath(full_path)


def remove_directory(path):
    """Removes a directory tree if it exists. Returns True when something was removed."""
    if not path or not os.path.isdir(path):
        return False
    shutil.rmtree(path)
    logger.info(f"Removed temporary directory: {path}")
    return True


# --- Saving ---
def resolve_output_path(output_dir, save_path):
    """
    Maps an export-tree path ('assets/theme/style.css') to a file system path.
    Raises UnsafePathError if the result would leave output_dir.
    """
    root = os.path.realpath(output_dir)
    full_path = os.path.realpath(os.path.join(root, *save_path.split('/')))
    if os.path.commonpath([root, full_path]) != root or full_path == root:
        raise UnsafePathError(f"Refusing to write {save_path!r} outside of {output_dir}")
    return full_path


def save_file(output_dir, save_path, content):
    """
    Writes text or bytes to save_path inside output_dir, creating parent directories.
    Returns the absolute path written, or None on error (already logged).
    """
    try:
        full_path = resolve_output_path(output_dir, save_path)
    except UnsafePathError as e:
        logger.error(f"Error: {e}")
        return None

    try:
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
    except OSError as e:
        logger.error(f"Error: Could not create directory {os.path.dirname(full_path)}: {e}")
        return None

    try:
        if isinstance(content, bytes):
            with open(full_path, 'wb') as f:
                f.write(content)
        else:
            with open(full_path, 'w', encoding='utf-8') as f:
                f.write(content)
        logger.info(f"Saved {save_path}")
        return full_path
    except OSError as e:
        logger.error(f"Error writing file {full_path}: {e}")
        return None
