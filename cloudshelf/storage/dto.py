# cloudshelf/storage/dto.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class StoreEntry(BaseModel):
    """A raw object entry as reported by the store listing."""

    key: str
    size: int = 0
    last_modified: Optional[datetime] = None


class ListPage(BaseModel):
    """
    One page of a prefix listing, independent of the provider's response format.
    """

    entries: List[StoreEntry] = Field(default_factory=list)
    common_prefixes: List[str] = Field(default_factory=list)
    next_continuation_token: Optional[str] = None
    is_truncated: bool = False


class ObjectRecord(BaseModel):
    """A file as seen by callers of the hierarchy manager."""

    key: str
    name: str
    last_modified: Optional[datetime] = None
    size: int = 0
    url: str
    type: str

    @field_validator("key")
    @classmethod
    def key_is_not_a_folder(cls, value: str) -> str:
        if not value or value.endswith("/"):
            raise ValueError(f"Object key '{value}' must be non-empty and not end with '/'")
        return value


class FolderRecord(BaseModel):
    """A folder: an empty path is the root, anything else ends with '/'."""

    path: str
    name: str

    @field_validator("path")
    @classmethod
    def path_has_trailing_slash(cls, value: str) -> str:
        if value and not value.endswith("/"):
            raise ValueError(f"Folder path '{value}' must end with '/'")
        return value


class Listing(BaseModel):
    """Immediate children of a folder."""

    files: List[ObjectRecord] = Field(default_factory=list)
    folders: List[FolderRecord] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.files and not self.folders


class UploadBlob(BaseModel):
    """In-memory file waiting to be uploaded."""

    name: str
    content_type: str = "application/octet-stream"
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class UploadResult(BaseModel):
    """Outcome of a single upload within a batch."""

    name: str
    key: Optional[str] = None
    success: bool
    location: Optional[str] = None
    error: Optional[str] = None
    progress: List[int] = Field(default_factory=list)


class BatchUploadResult(BaseModel):
    """
    Per-file outcomes of a batch upload, in submission order. Successful uploads are kept
    even when others failed, so callers decide what a partial result means to them.
    `listing` is the destination folder as re-read after the batch, when the manager could fetch it.
    """

    results: List[UploadResult] = Field(default_factory=list)
    listing: Optional[Listing] = None

    @property
    def succeeded(self) -> List[UploadResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> List[UploadResult]:
        return [r for r in self.results if not r.success]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    @property
    def all_failed(self) -> bool:
        return bool(self.results) and not self.succeeded

    @property
    def is_partial(self) -> bool:
        return bool(self.succeeded) and bool(self.failed)


class KeyFailure(BaseModel):
    key: str
    error: str


class OperationReport(BaseModel):
    """Keys processed by a recursive rename or delete, split by outcome."""

    succeeded: List[str] = Field(default_factory=list)
    failed: List[KeyFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed
