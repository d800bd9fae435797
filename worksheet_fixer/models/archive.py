"""Zip directory entries of a worksheet archive."""
from pydantic import BaseModel, ConfigDict, field_validator


class ArchiveEntry(BaseModel):
    """Single stored object inside the archive."""
    model_config = ConfigDict(frozen=True)

    name: str  # '/'-separated path, trailing '/' marks a directory
    size: int = 0  # uncompressed size in bytes

    @field_validator('size')
    @classmethod
    def validate_size(cls, v: int) -> int:
        """Ensure size is non-negative."""
        if v < 0:
            raise ValueError('size must be non-negative')
        return v

    @property
    def basename(self) -> str:
        return self.name.rstrip("/").split("/")[-1]

    @property
    def is_dir(self) -> bool:
        return self.name.endswith("/")


# path -> entry
Directory = dict[str, ArchiveEntry]
