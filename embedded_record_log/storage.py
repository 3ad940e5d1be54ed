from __future__ import annotations
import logging
import os

logger = logging.getLogger("embedded_record_log.storage")


class FileStorage:
    """
    File-access capability used by Database: whole-file read, append, overwrite.
    Any OSError (missing file, permission) propagates to the caller unchanged.
    """
    encoding = "utf-8"

    def __init__(self, path: str) -> None:
        self.path = path

    def read_text(self) -> str:
        with open(self.path, "r", encoding=self.encoding) as fh:
            data = fh.read()
        logger.debug("read %d chars from %s", len(data), self.path)
        return data

    def append_text(self, text: str) -> None:
        with open(self.path, "a", encoding=self.encoding) as fh:
            fh.write(text)
            fh.flush()
        logger.debug("appended %d chars to %s", len(text), self.path)

    def write_text(self, text: str) -> None:
        """
        Overwrite the whole file. Goes through a sibling temp file and
        os.replace so readers see either the old or the new content.
        """
        tmp_path = self.path + ".tmp"
        try:
            with open(tmp_path, "w", encoding=self.encoding) as fh:
                fh.write(text)
                fh.flush()
                os.fsync(fh.fileno())
            self.replace_file(tmp_path)
        finally:
            # Only left over when the write or the replace failed
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        logger.debug("rewrote %s (%d chars)", self.path, len(text))

    def replace_file(self, tmp_path: str) -> None:
        os.replace(tmp_path, self.path)
