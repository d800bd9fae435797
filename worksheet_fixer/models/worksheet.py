"""Records persisted inside a worksheet archive.

Layout of a worksheet:
    pages.json          ordered list of visible page ids
    pages/<id>.json     one PageRecord per page
    worksheet.json      open metadata mapping (currentPageId is checked)
    images/...          binary assets, copied untouched
"""
import json
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, PrivateAttr, TypeAdapter, field_validator, model_validator

from worksheet_fixer.config import RepairConfig


PAGE_INDEX_PATH = "pages.json"
META_PATH = "worksheet.json"
PAGES_PREFIX = "pages/"
IMAGES_PREFIX = "images/"
PAGE_SUFFIX = ".json"

CORRUPTED_PAGE_TITLE = "Corrupted page file"


class PageRecord(BaseModel):
    """
    One page of the worksheet, stored at pages/<id>.json.

    Only a missing content key or a record that is not a JSON object makes a
    page unreadable. Other fields are taken as the editor wrote them.
    """
    model_config = ConfigDict(extra="allow")  # keep fields we don't interpret

    id: Optional[str] = None  # must match the filename stem
    title: Any = None
    content: Any  # editor HTML fragment; may be null
    length: Any = None

    _key_order: list[str] = PrivateAttr(default_factory=list)

    @model_validator(mode="wrap")
    @classmethod
    def remember_key_order(cls, data: Any, handler: Any) -> "PageRecord":
        record = handler(data)
        if isinstance(data, dict):
            record._key_order = list(data)
        return record

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Older editors wrote numeric page ids; other shapes get corrected later."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        if v is not None and not isinstance(v, str):
            return None
        return v

    @classmethod
    def placeholder(cls, page_id: str) -> "PageRecord":
        """Minimal stand-in for a page file that could not be parsed."""
        return cls(id=page_id, title=CORRUPTED_PAGE_TITLE, content=" ", length=1)

    def to_json_bytes(self) -> bytes:
        """Serialize only the keys the record actually had, in their original order."""
        dumped = self.model_dump()
        present = set(self.model_fields_set) | set(self.model_extra or {})
        order = [k for k in self._key_order if k in present]
        order += [k for k in dumped if k in present and k not in order]
        return dump_json_bytes({k: dumped[k] for k in order})


PageIndex = list[str]

_page_index_adapter = TypeAdapter(PageIndex)
_meta_adapter = TypeAdapter(dict[str, Any])


def is_page_path(path: str) -> bool:
    """True for pages/<id>.json; files in nested folders are not pages."""
    if not (path.startswith(PAGES_PREFIX) and path.endswith(PAGE_SUFFIX)):
        return False
    return "/" not in path[len(PAGES_PREFIX):]


def is_image_path(path: str) -> bool:
    return path.startswith(IMAGES_PREFIX)


def page_id_from_path(path: str) -> str:
    """pages/abc.json -> abc"""
    return path.split("/")[-1].removesuffix(PAGE_SUFFIX)


def page_path(page_id: str) -> str:
    return f"{PAGES_PREFIX}{page_id}{PAGE_SUFFIX}"


def parse_page_index(raw: bytes) -> PageIndex:
    """Decode pages.json. Raises ValueError unless it is a list of strings."""
    return _page_index_adapter.validate_json(raw)


def parse_worksheet_meta(raw: bytes) -> dict[str, Any]:
    """Decode worksheet.json. Raises ValueError unless it is a non-empty object."""
    meta = _meta_adapter.validate_json(raw)
    if not meta:
        raise ValueError("metadata is empty")
    return meta


def default_worksheet_meta(config: RepairConfig) -> dict[str, Any]:
    """Fresh metadata used when worksheet.json cannot be trusted."""
    return {
        "title": config.meta_title,
        "description": config.meta_description,
        "author": config.meta_author,
        "latestVersion": config.meta_version,
        "created": datetime.now(timezone.utc).isoformat(),
        "theme": config.meta_theme,
        "bookmarks": [],
    }


def dump_json_bytes(data: Any) -> bytes:
    """Compact UTF-8 JSON, the same shape the editor writes."""
    return json.dumps(data, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
