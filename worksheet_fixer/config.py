"""Runtime configuration for the worksheet fixer.

Values come from environment variables (a local .env is loaded by the CLI)
with in-code defaults.
"""
import os

from pydantic import BaseModel, Field, field_validator


ENV_PREFIX = "WORKSHEET_FIXER_"


class RepairConfig(BaseModel):
    """Settings shared by the repair engine and the CLI."""
    disallowed_selector: str = '[data-js="mathEditor"]'
    text_compression_level: int = 9
    image_compression_level: int = 0  # images are already compressed
    chunk_size: int = 64 * 1024
    meta_title: str = "Repaired worksheet"
    meta_description: str = ""
    meta_author: str = "worksheet-fixer"
    meta_version: str = "r1.10.0"
    meta_theme: str = "light"
    output_dir: str = Field(default_factory=lambda: os.path.join(os.getcwd(), "output"))

    @field_validator('text_compression_level', 'image_compression_level')
    @classmethod
    def validate_level(cls, v: int) -> int:
        """Deflate levels run from 0 (store) to 9 (max)."""
        if not 0 <= v <= 9:
            raise ValueError('compression level must be between 0 and 9')
        return v

    @field_validator('chunk_size')
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError('chunk_size must be positive')
        return v

    @classmethod
    def from_env(cls, environ: dict | None = None) -> "RepairConfig":
        """Build a config from WORKSHEET_FIXER_* environment variables."""
        env = os.environ if environ is None else environ
        mapping = {
            "disallowed_selector": "DISALLOWED_SELECTOR",
            "text_compression_level": "TEXT_LEVEL",
            "image_compression_level": "IMAGE_LEVEL",
            "chunk_size": "CHUNK_SIZE",
            "meta_title": "META_TITLE",
            "meta_author": "META_AUTHOR",
            "meta_version": "META_VERSION",
            "meta_theme": "META_THEME",
            "output_dir": "OUTPUT_DIR",
        }
        values = {}
        for field, suffix in mapping.items():
            raw = env.get(ENV_PREFIX + suffix)
            if raw is not None and raw != "":
                values[field] = raw
        return cls(**values)
