"""Read the zip container of a worksheet without unpacking it to disk."""
import io
import logging
import zipfile
import zlib
from typing import Callable, Optional

from worksheet_fixer.errors import MalformedContainer
from worksheet_fixer.models.archive import ArchiveEntry, Directory

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

# Raised by zipfile/zlib when a single member cannot be decoded
ENTRY_DECODE_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    NotImplementedError,  # unsupported compression method
    RuntimeError,  # encrypted member
    EOFError,
    OSError,
    ValueError,
)


class ArchiveReader:
    """
    Lazy reader over in-memory archive bytes.

    The central directory is parsed on first use. Entry contents are only
    decompressed when asked for, chunk by chunk, so memory use follows the
    size of the entry being read rather than the whole archive.
    """

    def __init__(self, data: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._data = data
        self._chunk_size = chunk_size
        self._zip: Optional[zipfile.ZipFile] = None

    def _open(self) -> zipfile.ZipFile:
        if self._zip is None:
            try:
                self._zip = zipfile.ZipFile(io.BytesIO(self._data))
            except (zipfile.BadZipFile, EOFError, OSError, ValueError) as e:
                raise MalformedContainer(f"Not a readable zip archive: {e}") from e
        return self._zip

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    def __enter__(self) -> "ArchiveReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def list_directory(self) -> Directory:
        """Return path -> ArchiveEntry for every member. Raises MalformedContainer."""
        directory: Directory = {}
        for info in self._open().infolist():
            directory[info.filename] = ArchiveEntry(name=info.filename, size=info.file_size)
        return directory

    def extract(self, name: str) -> Optional[bytes]:
        """
        Decompress one member.

        Returns None when the member is missing or cannot be decoded; absence
        is an ordinary answer for the callers.
        """
        zf = self._open()
        try:
            info = zf.getinfo(name)
        except KeyError:
            return None

        try:
            return self._read_member(zf, info)
        except ENTRY_DECODE_ERRORS as e:
            logger.warning(f"Could not decode {name}: {e}")
            return None

    def extract_matching(self, predicate: Callable[[str], bool]) -> dict[str, bytes]:
        """
        Decompress every member whose path satisfies predicate.

        Members are decoded independently: one that fails is logged and left
        out of the result, the rest are still returned. Order follows the
        archive directory.
        """
        zf = self._open()
        results: dict[str, bytes] = {}
        for info in zf.infolist():
            if not predicate(info.filename):
                continue
            try:
                results[info.filename] = self._read_member(zf, info)
            except ENTRY_DECODE_ERRORS as e:
                logger.warning(f"Skipping undecodable member {info.filename}: {e}")
        return results

    def _read_member(self, zf: zipfile.ZipFile, info: zipfile.ZipInfo) -> bytes:
        chunks = []
        with zf.open(info) as src:
            # Read in chunks; zipfile inflates incrementally underneath
            for chunk in iter(lambda: src.read(self._chunk_size), b""):
                chunks.append(chunk)
        return b"".join(chunks)
