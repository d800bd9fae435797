"""Shared fixtures: in-memory worksheet archives."""
import io
import json
import zipfile

import pytest

from worksheet_fixer.config import RepairConfig


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(64))


def build_archive(entries: dict, compression: int = zipfile.ZIP_DEFLATED) -> bytes:
    """Zip up entries; dict/list values are written as JSON."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=compression) as zf:
        for name, value in entries.items():
            if isinstance(value, (dict, list)):
                value = json.dumps(value)
            zf.writestr(name, value)
    return buf.getvalue()


def read_archive(data: bytes) -> dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return {name: zf.read(name) for name in zf.namelist()}


def corrupt_payload(data: bytes, marker: bytes) -> bytes:
    """Flip one byte of a stored member so its CRC check fails on read."""
    assert data.count(marker) == 1
    return data.replace(marker, b"X" + marker[1:])


@pytest.fixture
def make_archive():
    return build_archive


@pytest.fixture
def unzip():
    return read_archive


@pytest.fixture
def config() -> RepairConfig:
    return RepairConfig()


@pytest.fixture
def healthy_entries() -> dict:
    """A consistent two-page worksheet with one image."""
    return {
        "worksheet.json": {"title": "Algebra 1", "author": "Teacher", "currentPageId": "p1"},
        "pages.json": ["p1", "p2"],
        "pages/p1.json": {"id": "p1", "title": "Intro", "content": "<p>Solve x + 1 = 2</p>", "length": 20},
        "pages/p2.json": {"id": "p2", "title": "Practice", "content": "<p>Answer: <b>1</b></p>", "length": 15},
        "images/graph.png": PNG_BYTES,
    }


@pytest.fixture
def corrupt():
    return corrupt_payload
