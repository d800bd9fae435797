"""Assemble a repaired worksheet archive in memory."""
import io
import logging
import zipfile
from typing import Optional

from worksheet_fixer.errors import EncodeFailure

logger = logging.getLogger(__name__)

STORE_LEVEL = 0
MAX_LEVEL = 9


class ArchiveWriter:
    """
    In-memory zip writer with a compression level per entry.

    Level 0 stores the entry as-is, 1-9 deflate it. Any failure while
    encoding raises EncodeFailure and the buffer is dropped: a half-written
    archive is never returned.

    Usage:
        with ArchiveWriter() as writer:
            writer.add_entry("pages.json", b"[]")
            data = writer.finish()
    """

    def __init__(self):
        self._buffer: Optional[io.BytesIO] = None
        self._zip: Optional[zipfile.ZipFile] = None
        self._names: set[str] = set()

    def open(self) -> "ArchiveWriter":
        if self._zip is not None:
            raise RuntimeError("writer is already open")
        self._buffer = io.BytesIO()
        self._zip = zipfile.ZipFile(self._buffer, "w", compression=zipfile.ZIP_DEFLATED)
        self._names = set()
        return self

    def __enter__(self) -> "ArchiveWriter":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None or self._zip is not None:
            # Either an error happened or finish() was never reached
            self.abort()

    @property
    def entry_names(self) -> set[str]:
        return set(self._names)

    def add_entry(self, name: str, data: bytes, compression_level: int = MAX_LEVEL) -> None:
        """Store one entry. Paths are written exactly as given."""
        if self._zip is None:
            raise RuntimeError("writer is not open")
        if not 0 <= compression_level <= MAX_LEVEL:
            raise ValueError(f"compression level must be 0-9, got {compression_level}")
        if name in self._names:
            raise ValueError(f"duplicate entry: {name}")

        if compression_level == STORE_LEVEL:
            compress_type, level = zipfile.ZIP_STORED, None
        else:
            compress_type, level = zipfile.ZIP_DEFLATED, compression_level

        try:
            self._zip.writestr(name, data, compress_type=compress_type, compresslevel=level)
        except Exception as e:
            self.abort()
            raise EncodeFailure(f"Failed to write {name}: {e}") from e
        self._names.add(name)
        logger.debug(f"Added {name} ({len(data)} bytes, level {compression_level})")

    def finish(self) -> bytes:
        """Write the central directory and return the archive bytes."""
        if self._zip is None or self._buffer is None:
            raise RuntimeError("writer is not open")
        try:
            self._zip.close()
            data = self._buffer.getvalue()
        except Exception as e:
            self.abort()
            raise EncodeFailure(f"Failed to finalize archive: {e}") from e
        self._zip = None
        self._buffer = None
        return data

    def abort(self) -> None:
        """Discard everything written so far."""
        if self._zip is not None:
            try:
                self._zip.close()
            except Exception as e:
                logger.debug(f"Ignoring error while discarding archive: {e}")
        self._zip = None
        self._buffer = None
        self._names = set()
