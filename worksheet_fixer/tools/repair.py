"""Validate a worksheet archive and write a repaired copy.

Entry point: repair(archive_bytes, on_progress) -> RepairOutcome

Pipeline (strictly sequential):
    read directory -> validate -> fix pages -> copy images
    -> metadata (copy or regenerate) -> page index (copy or rebuild)
"""
import logging
from typing import Optional

from worksheet_fixer.config import RepairConfig
from worksheet_fixer.errors import EncodeFailure, FatalStructure, MalformedContainer
from worksheet_fixer.models.archive import Directory
from worksheet_fixer.models.outcome import RepairOutcome, ValidationState
from worksheet_fixer.models.worksheet import (
    IMAGES_PREFIX,
    META_PATH,
    PAGE_INDEX_PATH,
    PageRecord,
    default_worksheet_meta,
    dump_json_bytes,
    is_image_path,
    is_page_path,
    page_id_from_path,
)
from worksheet_fixer.tools.archive_reader import ArchiveReader
from worksheet_fixer.tools.archive_writer import ArchiveWriter
from worksheet_fixer.tools.consistency_check import describe_parse_error, validate_archive
from worksheet_fixer.tools.content_sanitizer import sanitize
from worksheet_fixer.tools.progress import ProgressCallback, ProgressReporter

logger = logging.getLogger(__name__)


def repair(
    archive_bytes: bytes,
    on_progress: Optional[ProgressCallback] = None,
    config: Optional[RepairConfig] = None,
) -> RepairOutcome:
    """
    Check a worksheet archive and build a repaired one.

    Content problems never raise: they end up in the outcome as warnings
    (classification "warning") or as a single fatal message with no artifact
    (classification "error").

    Args:
        archive_bytes: Raw zip bytes of the worksheet
        on_progress: Optional callback(message, level) with level one of
            "info", "success", "warning", "error"
        config: Settings; read from the environment when omitted

    Returns:
        RepairOutcome

    Raises:
        TypeError: archive_bytes is not bytes-like. Exceptions raised by
            on_progress also propagate; nothing partial is returned then.
    """
    if not isinstance(archive_bytes, (bytes, bytearray, memoryview)):
        raise TypeError(f"archive_bytes must be bytes, got {type(archive_bytes).__name__}")

    config = config or RepairConfig.from_env()
    report = ProgressReporter(on_progress)
    state = ValidationState()
    directory: Directory = {}

    reader = ArchiveReader(bytes(archive_bytes), chunk_size=config.chunk_size)
    try:
        report(f"Reading archive ({len(archive_bytes)} bytes)", "info")
        directory = reader.list_directory()
        report(f"Archive contains {len(directory)} entries", "info")

        validate_archive(reader, directory, report, state)
        artifact = rebuild_archive(reader, directory, state, config, report)

    except (FatalStructure, MalformedContainer, EncodeFailure) as e:
        report(str(e), "error")
        return RepairOutcome(
            classification="error",
            warnings=list(state.warnings),
            error=str(e),
            directory=directory,
            page_index=state.page_index,
            meta=state.meta,
        )
    finally:
        reader.close()

    classification = "warning" if state.warnings else "success"
    report(f"Repair finished with {len(state.warnings)} warning(s)", "success")
    return RepairOutcome(
        classification=classification,
        warnings=list(state.warnings),
        artifact=artifact,
        directory=directory,
        page_index=state.page_index,
        meta=state.meta,
    )


def rebuild_archive(
    reader: ArchiveReader,
    directory: Directory,
    state: ValidationState,
    config: RepairConfig,
    report: ProgressReporter,
) -> bytes:
    """
    Write the corrected archive. Must run after validation has finished.

    Pages are processed before the index is written because the rebuilt
    index is the list of page ids actually emitted, in directory order.
    """
    for path, entry in directory.items():
        if entry.is_dir or is_page_path(path) or is_image_path(path):
            continue
        if path not in (META_PATH, PAGE_INDEX_PATH):
            report(f"Skipping unrecognized entry {path}", "info")

    with ArchiveWriter() as writer:
        rebuilt_ids = _write_pages(reader, directory, state, config, report, writer)
        _write_images(reader, directory, state, config, report, writer)

        if state.flags.needs_meta_rebuild:
            report("Rebuilding metadata...", "info")
            meta_bytes = dump_json_bytes(default_worksheet_meta(config))
        else:
            report("Copying metadata...", "info")
            meta_bytes = reader.extract(META_PATH) or dump_json_bytes(state.meta)
        writer.add_entry(META_PATH, meta_bytes, config.text_compression_level)

        if state.flags.needs_index_rebuild:
            report("Rebuilding page index...", "info")
            index_bytes = dump_json_bytes(rebuilt_ids)
        else:
            report("Copying page index...", "info")
            index_bytes = reader.extract(PAGE_INDEX_PATH) or dump_json_bytes(state.page_index)
        writer.add_entry(PAGE_INDEX_PATH, index_bytes, config.text_compression_level)

        return writer.finish()


def _write_pages(
    reader: ArchiveReader,
    directory: Directory,
    state: ValidationState,
    config: RepairConfig,
    report: ProgressReporter,
    writer: ArchiveWriter,
) -> list[str]:
    report("Copying pages over...", "info")
    pages = reader.extract_matching(is_page_path)

    for path in directory:
        if is_page_path(path) and path not in pages:
            state.flags.flag_index()
            report.warn(state, f"Page {path} could not be decompressed, dropping it")

    rebuilt_ids = []
    for path, raw in pages.items():
        page_id = page_id_from_path(path)
        data = repair_page(path, raw, state, config, report)
        writer.add_entry(path, data, config.text_compression_level)
        rebuilt_ids.append(page_id)

    if not rebuilt_ids:
        raise FatalStructure("None of the worksheet pages could be read, there is nothing to fix.")
    report(f"Added {len(rebuilt_ids)} pages", "info")
    return rebuilt_ids


def _write_images(
    reader: ArchiveReader,
    directory: Directory,
    state: ValidationState,
    config: RepairConfig,
    report: ProgressReporter,
    writer: ArchiveWriter,
) -> None:
    report("Copying images over...", "info")
    images = reader.extract_matching(is_image_path)

    for path in directory:
        if is_image_path(path) and path not in images:
            report.warn(state, f"Image {path} could not be decompressed, dropping it")

    for path, raw in images.items():
        writer.add_entry(path, raw, config.image_compression_level)

    if not images:
        # Keep the folder so the repaired file passes the images/ check
        writer.add_entry(IMAGES_PREFIX, b"", 0)
    report(f"Added {len(images)} images", "info")


def repair_page(
    path: str,
    raw: bytes,
    state: ValidationState,
    config: RepairConfig,
    report: ProgressReporter,
) -> bytes:
    """
    Return the bytes to store for one page file.

    Unreadable records become a placeholder page. A wrong id is corrected
    and disallowed widgets are stripped from the content. Pages that need
    no change are passed through byte for byte.
    """
    page_id = page_id_from_path(path)

    try:
        record = PageRecord.model_validate_json(raw)
    except ValueError as e:
        state.flags.flag_index()
        report.warn(state, f"Page {path} is corrupted: {describe_parse_error(e)}")
        return PageRecord.placeholder(page_id).to_json_bytes()

    changed = False

    if record.id != page_id:
        state.flags.flag_index()
        report.warn(state, f"Page {path} id mismatch ({record.id}), fixing")
        record.id = page_id
        changed = True

    if isinstance(record.content, str) and record.content:
        result = sanitize(record.content, config.disallowed_selector)
        if result.changed:
            report.warn(state, f"Page {page_id} contains non-allowed or non-saveable elements")
            for description in result.removed:
                report(f"Removing {description}", "warning")
            report("Rebuilding page content...", "info")
            record.content = result.html
            changed = True

    if not changed:
        return raw
    return record.to_json_bytes()
