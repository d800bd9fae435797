"""Cross-check a worksheet archive's index and metadata against its pages.

Checks run in a fixed order. Each one either passes, records a warning and
raises a rebuild flag, or raises FatalStructure when there is nothing left to
rebuild from.

    1. images/ present                  warning only
    2. pages/ present                   fatal when missing
    3. worksheet.json present           meta rebuild
    4. pages.json present               index rebuild
    5. pages.json parses                index rebuild
    6. any page files at all            fatal when none
    7. index ids have page files        index rebuild per miss
    8. page files are in the index      index rebuild per miss
    9. worksheet.json parses            meta rebuild
   10. currentPageId points at a page   meta + index rebuild
"""
import logging

from pydantic import ValidationError

from worksheet_fixer.errors import FatalStructure
from worksheet_fixer.models.archive import Directory
from worksheet_fixer.models.outcome import ValidationState
from worksheet_fixer.models.worksheet import (
    IMAGES_PREFIX,
    META_PATH,
    PAGE_INDEX_PATH,
    PAGES_PREFIX,
    is_page_path,
    page_id_from_path,
    page_path,
    parse_page_index,
    parse_worksheet_meta,
)
from worksheet_fixer.tools.archive_reader import ArchiveReader
from worksheet_fixer.tools.progress import ProgressReporter

logger = logging.getLogger(__name__)


def describe_parse_error(err: Exception) -> str:
    """One-line reason for a JSON/shape failure."""
    if isinstance(err, ValidationError):
        first = err.errors()[0] if err.errors() else {}
        return first.get("msg", str(err))
    return str(err)


class ConsistencyChecker:
    """Runs the ordered checks for one archive, filling in a ValidationState."""

    def __init__(
        self,
        reader: ArchiveReader,
        directory: Directory,
        report: ProgressReporter,
        state: ValidationState,
    ):
        self.reader = reader
        self.directory = directory
        self.report = report
        self.state = state
        self.page_files = [path for path in directory if is_page_path(path)]
        self._page_file_set = set(self.page_files)

    def run(self) -> ValidationState:
        self.check_images_folder()
        self.check_pages_folder()
        self.check_meta_present()
        self.check_index_present()
        self.load_page_index()
        self.check_has_pages()
        self.check_index_against_files()
        self.check_files_against_index()
        self.load_meta()
        self.check_current_page()
        return self.state

    def _has_prefix(self, prefix: str) -> bool:
        return any(path.startswith(prefix) for path in self.directory)

    def check_images_folder(self) -> None:
        if self._has_prefix(IMAGES_PREFIX):
            self.report("Worksheet has images/ folder", "success")
        else:
            self.report.warn(self.state, "Worksheet does not have images/ folder")

    def check_pages_folder(self) -> None:
        if self._has_prefix(PAGES_PREFIX):
            self.report("Worksheet has pages/ folder", "success")
            return
        raise FatalStructure("Worksheet file does not have a pages/ folder")

    def check_meta_present(self) -> None:
        if META_PATH in self.directory:
            self.report("Worksheet has a metadata file", "success")
        else:
            self.state.flags.flag_meta()
            self.report.warn(self.state, "Worksheet does not have a metadata file - needs rebuilding")

    def check_index_present(self) -> None:
        if PAGE_INDEX_PATH in self.directory:
            self.report("Worksheet has a page index file", "success")
        else:
            self.state.flags.flag_index()
            self.report.warn(self.state, "Worksheet does not have a page index file - needs rebuilding")

    def load_page_index(self) -> None:
        if PAGE_INDEX_PATH not in self.directory:
            return  # already flagged by check_index_present

        raw = self.reader.extract(PAGE_INDEX_PATH)
        if raw is None:
            self.state.flags.flag_index()
            self.report.warn(self.state, "Page index could not be read, needs rebuilding")
            return

        try:
            self.state.page_index = parse_page_index(raw)
        except ValueError as e:
            self.state.flags.flag_index()
            self.report.warn(self.state, f"Page index is invalid, needs rebuilding: {describe_parse_error(e)}")
            return
        self.report("Page index is valid JSON. Cross-checking...", "success")

    def check_has_pages(self) -> None:
        # The observed ids are kept whatever the index says; they are the
        # fallback when the index gets rebuilt.
        self.state.observed_page_ids = [page_id_from_path(p) for p in self.page_files]

        # An index naming only missing pages has nothing to rebuild from either
        if self.page_files:
            return
        raise FatalStructure("Worksheet does not contain any pages, there is nothing to fix.")

    def check_index_against_files(self) -> None:
        if self.state.page_index is None:
            return

        seen = set()
        for page_id in self.state.page_index:
            if page_id in seen:
                self.state.flags.flag_index()
                self.report.warn(self.state, f"Page listed more than once in index: {page_id}")
                continue
            seen.add(page_id)
            if page_path(page_id) not in self._page_file_set:
                self.state.flags.flag_index()
                self.report.warn(self.state, f"Missing page: {page_id}")
        self.report("Done checking index against file list", "info")

    def check_files_against_index(self) -> None:
        if self.state.page_index is None:
            return

        listed = set(self.state.page_index)
        for page_id in self.state.observed_page_ids:
            if page_id not in listed:
                self.state.flags.flag_index()
                self.report.warn(self.state, f"Found hidden or deleted page: {page_id}")
        self.report("Done checking file list against index", "info")

    def load_meta(self) -> None:
        if META_PATH not in self.directory:
            return  # already flagged by check_meta_present

        raw = self.reader.extract(META_PATH)
        if raw is None:
            self.state.flags.flag_meta()
            self.report.warn(self.state, "Metadata could not be read, needs rebuilding")
            return

        try:
            self.state.meta = parse_worksheet_meta(raw)
        except ValueError as e:
            self.state.flags.flag_meta()
            self.report.warn(self.state, f"Metadata is invalid, needs rebuilding: {describe_parse_error(e)}")
            return
        self.report("Metadata is valid JSON", "success")

    def check_current_page(self) -> None:
        # Only the metadata as read is checked, not the regenerated one
        current = self.state.meta.get("currentPageId") if self.state.meta else None
        if not current:
            return

        if current in self.state.observed_page_ids:
            self.report("Current page index is valid", "success")
            return

        self.state.flags.flag_meta()
        self.state.flags.flag_index()
        self.report.warn(self.state, f"Current page index ({current}) points to a missing page")


def validate_archive(
    reader: ArchiveReader,
    directory: Directory,
    report: ProgressReporter,
    state: ValidationState | None = None,
) -> ValidationState:
    """Run every check in order. Raises FatalStructure for unrepairable archives."""
    state = state if state is not None else ValidationState()
    return ConsistencyChecker(reader, directory, report, state).run()
