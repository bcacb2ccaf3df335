# Module for packaging the export tree into a ZIP archive
import logging
import os
import zipfile

import constants
from errors import PackagingError
from file_handler import save_file
from mailer_stub import SENDMAIL_PHP, render_mailer_config

logger = logging.getLogger(__name__)

# Fixed entry timestamp so the same tree always produces the same archive contents
ZIP_ENTRY_DATE = (1980, 1, 1, 0, 0, 0)


def write_mailer_files(output_dir, recipient_email):
    """Writes php-mailer/sendmail.php and php-mailer/mailer-config.php. Returns True on success."""
    config_written = save_file(output_dir, constants.MAILER_CONFIG_PATH, render_mailer_config(recipient_email))
    script_written = save_file(output_dir, constants.MAILER_SCRIPT_PATH, SENDMAIL_PHP)
    if config_written:
        logger.info(f"Generated mailer config file for recipient {recipient_email}")
    return bool(config_written and script_written)


def iter_tree(source_dir):
    """Yields (archive_name, full_path, is_dir) for everything under source_dir, sorted by path."""
    for current_dir, dir_names, file_names in os.walk(source_dir):
        dir_names.sort()
        relative_dir = os.path.relpath(current_dir, source_dir)
        for name in dir_names:
            archive_name = name if relative_dir == '.' else f"{relative_dir}/{name}"
            yield archive_name.replace(os.sep, '/') + '/', os.path.join(current_dir, name), True
        for name in sorted(file_names):
            archive_name = name if relative_dir == '.' else f"{relative_dir}/{name}"
            yield archive_name.replace(os.sep, '/'), os.path.join(current_dir, name), False


def create_archive(source_dir, archive_path):
    """
    Adds every directory and file under source_dir to a new ZIP at archive_path.
    Raises PackagingError when the tree is missing or the archive cannot be written.
    """
    if not source_dir or not os.path.isdir(source_dir):
        raise PackagingError(f"Temporary export directory {source_dir} not found.")

    logger.info("Creating ZIP archive...")
    entries = sorted(iter_tree(source_dir))
    try:
        with zipfile.ZipFile(archive_path, 'w', zipfile.ZIP_DEFLATED) as archive:
            for archive_name, full_path, is_dir in entries:
                info = zipfile.ZipInfo(archive_name, date_time=ZIP_ENTRY_DATE)
                if is_dir:
                    info.external_attr = (0o40755 << 16) | 0x10
                    archive.writestr(info, b'')
                else:
                    info.external_attr = 0o644 << 16
                    info.compress_type = zipfile.ZIP_DEFLATED
                    with open(full_path, 'rb') as f:
                        archive.writestr(info, f.read())
    except (OSError, zipfile.BadZipFile) as e:
        raise PackagingError(f"Could not write archive {archive_path}: {e}") from e

    file_count = sum(1 for entry in entries if not entry[2])
    logger.info(f"ZIP archive created successfully: {archive_path} ({file_count} files)")
    return archive_path
