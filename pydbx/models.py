"""Data models for requests to and responses from the files API."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import IO, Any, Iterable, Optional, Union

from .utils import format_timestamp, normalize_path, parse_iso_timestamp

# =============================================================================
# Enumerations
# =============================================================================


class WriteMode(str, Enum):
    """What to do if the file already exists."""

    ADD = "add"
    OVERWRITE = "overwrite"
    UPDATE = "update"


class FileStatus(str, Enum):
    ACTIVE = "active"
    DELETED = "deleted"


class FileCategory(str, Enum):
    IMAGE = "image"  # jpg, png, gif, and more
    DOCUMENT = "document"  # doc, docx, txt, and more
    PDF = "pdf"
    SPREADSHEET = "spreadsheet"  # xlsx, xls, csv, and more
    PRESENTATION = "presentation"  # ppt, pptx, key, and more
    AUDIO = "audio"  # mp3, wav, mid, and more
    VIDEO = "video"  # mov, wmv, mp4, and more
    FOLDER = "folder"
    PAPER = "paper"
    OTHERS = "others"


class ThumbnailFormat(str, Enum):
    JPEG = "jpeg"
    PNG = "png"


class ThumbnailSize(str, Enum):
    W32H32 = "w32h32"
    W64H64 = "w64h64"
    W128H128 = "w128h128"
    W256H256 = "w256h256"
    W480H320 = "w480h320"
    W640H480 = "w640h480"
    W960H640 = "w960h640"
    W1024H768 = "w1024h768"
    W2048H1536 = "w2048h1536"


class ThumbnailMode(str, Enum):
    """How a thumbnail is scaled."""

    STRICT = "strict"  # fit within the given size
    BESTFIT = "bestfit"  # fit within the given size or its transpose
    FITONE_BESTFIT = "fitone_bestfit"  # cover the given size or its transpose


class ListRevisionsMode(str, Enum):
    PATH = "path"
    ID = "id"


METADATA_TYPE_FILE = "file"
METADATA_TYPE_FOLDER = "folder"
METADATA_TYPE_DELETED = "deleted"


def _value(v: Any) -> Any:
    return v.value if isinstance(v, Enum) else v


def _compact(data: dict[str, Any], *keep: str) -> dict[str, Any]:
    """Drop falsy optional fields, keeping the keys listed in ``keep``."""
    return {k: v for k, v in data.items() if k in keep or v not in (None, "", [], False, 0)}


# =============================================================================
# Response models
# =============================================================================


@dataclass
class Dimensions:
    """Dimensions of a photo or video."""

    width: int = 0
    height: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Dimensions:
        return cls(width=data.get("width", 0), height=data.get("height", 0))


@dataclass
class GPSCoordinates:
    latitude: float = 0.0
    longitude: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GPSCoordinates:
        return cls(
            latitude=data.get("latitude", 0.0), longitude=data.get("longitude", 0.0)
        )


@dataclass
class PhotoMetadata:
    dimensions: Optional[Dimensions] = None
    location: Optional[GPSCoordinates] = None
    time_taken: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PhotoMetadata:
        return cls(
            dimensions=(
                Dimensions.from_dict(data["dimensions"])
                if data.get("dimensions")
                else None
            ),
            location=(
                GPSCoordinates.from_dict(data["location"])
                if data.get("location")
                else None
            ),
            time_taken=parse_iso_timestamp(data.get("time_taken")),
        )


@dataclass
class VideoMetadata(PhotoMetadata):
    duration: int = 0
    """Duration in milliseconds"""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VideoMetadata:
        photo = PhotoMetadata.from_dict(data)
        return cls(
            dimensions=photo.dimensions,
            location=photo.location,
            time_taken=photo.time_taken,
            duration=data.get("duration", 0),
        )


@dataclass
class MediaMetadata:
    """Metadata for a photo or video; exactly one is usually set."""

    photo: Optional[PhotoMetadata] = None
    video: Optional[VideoMetadata] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MediaMetadata:
        tag = data.get(".tag")
        if tag == "photo":
            return cls(photo=PhotoMetadata.from_dict(data))
        if tag == "video":
            return cls(video=VideoMetadata.from_dict(data))
        return cls(
            photo=PhotoMetadata.from_dict(data["photo"]) if data.get("photo") else None,
            video=VideoMetadata.from_dict(data["video"]) if data.get("video") else None,
        )


@dataclass
class MediaInfo:
    pending: bool = False
    metadata: Optional[MediaMetadata] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MediaInfo:
        if data.get(".tag") == "pending":
            return cls(pending=True)
        metadata = data.get("metadata")
        return cls(
            pending=data.get("pending", False),
            metadata=MediaMetadata.from_dict(metadata) if metadata else None,
        )


@dataclass
class FileSharingInfo:
    """Sharing info for a file inside a shared folder."""

    read_only: bool = False
    parent_shared_folder_id: str = ""
    modified_by: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileSharingInfo:
        return cls(
            read_only=data.get("read_only", False),
            parent_shared_folder_id=data.get("parent_shared_folder_id", ""),
            modified_by=data.get("modified_by", ""),
        )


@dataclass
class PropertyField:
    name: str  # max 256 bytes
    value: str  # max 1024 bytes

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PropertyField:
        return cls(name=data.get("name", ""), value=data.get("value", ""))

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "value": self.value}


@dataclass
class PropertyGroup:
    template_id: str
    fields: list[PropertyField] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PropertyGroup:
        return cls(
            template_id=data.get("template_id", ""),
            fields=[PropertyField.from_dict(f) for f in data.get("fields") or []],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "template_id": self.template_id,
            "fields": [f.to_dict() for f in self.fields],
        }


@dataclass
class FileExportInfo:
    export_as: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileExportInfo:
        return cls(export_as=data.get("export_as", ""))


@dataclass
class FileSymlinkInfo:
    target: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileSymlinkInfo:
        return cls(target=data.get("target", ""))


@dataclass
class Metadata:
    """Metadata for a file, folder or deleted entry."""

    tag: str = ""
    name: str = ""
    path_lower: str = ""
    path_display: str = ""
    client_modified: Optional[datetime] = None
    server_modified: Optional[datetime] = None
    rev: str = ""
    size: int = 0
    id: str = ""
    media_info: Optional[MediaInfo] = None
    symlink_info: Optional[FileSymlinkInfo] = None
    sharing_info: Optional[FileSharingInfo] = None
    is_downloadable: bool = True
    export_info: Optional[FileExportInfo] = None
    property_groups: list[PropertyGroup] = field(default_factory=list)
    has_explicit_shared_members: bool = False
    content_hash: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Metadata:
        """Create Metadata from an API response dictionary.

        Args:
            data: Dictionary from API response

        Returns:
            Metadata instance
        """

        def _sub(key: str, model: Any) -> Any:
            value = data.get(key)
            return model.from_dict(value) if value else None

        return cls(
            tag=data.get(".tag", ""),
            name=data.get("name", ""),
            path_lower=data.get("path_lower", ""),
            path_display=data.get("path_display", ""),
            client_modified=parse_iso_timestamp(data.get("client_modified")),
            server_modified=parse_iso_timestamp(data.get("server_modified")),
            rev=data.get("rev", ""),
            size=data.get("size", 0),
            id=data.get("id", ""),
            media_info=_sub("media_info", MediaInfo),
            symlink_info=_sub("symlink_info", FileSymlinkInfo),
            sharing_info=_sub("sharing_info", FileSharingInfo),
            is_downloadable=data.get("is_downloadable", True),
            export_info=_sub("export_info", FileExportInfo),
            property_groups=[
                PropertyGroup.from_dict(g) for g in data.get("property_groups") or []
            ],
            has_explicit_shared_members=data.get("has_explicit_shared_members", False),
            content_hash=data.get("content_hash", ""),
        )

    @classmethod
    def from_metadata_v2(cls, data: dict[str, Any]) -> Metadata:
        """Unwrap the ``{"metadata": {...}}`` envelope of v2 endpoints."""
        return cls.from_dict(data.get("metadata") or {})

    def is_file(self) -> bool:
        return self.tag.lower() == METADATA_TYPE_FILE

    def is_folder(self) -> bool:
        return self.tag.lower() == METADATA_TYPE_FOLDER

    def is_deleted(self) -> bool:
        return self.tag.lower() == METADATA_TYPE_DELETED

    def to_dict(self) -> dict[str, Any]:
        """Summary dictionary for JSON output."""
        return _compact(
            {
                ".tag": self.tag,
                "name": self.name,
                "path_lower": self.path_lower,
                "path_display": self.path_display,
                "id": self.id,
                "client_modified": format_timestamp(self.client_modified),
                "server_modified": format_timestamp(self.server_modified),
                "rev": self.rev,
                "size": self.size,
                "content_hash": self.content_hash,
                "is_downloadable": self.is_downloadable,
            },
            ".tag",
            "name",
            "is_downloadable",
        )


@dataclass
class HighlightSpan:
    highlight_str: str = ""
    is_highlighted: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HighlightSpan:
        return cls(
            highlight_str=data.get("highlight_str", ""),
            is_highlighted=data.get("is_highlighted", False),
        )


@dataclass
class SearchMatch:
    """A matched file, folder or deleted entry."""

    metadata: Metadata
    highlight_spans: list[HighlightSpan] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchMatch:
        # search_v2 wraps the entry as {"metadata": {".tag": "metadata",
        # "metadata": {...}}}
        metadata = data.get("metadata") or {}
        if metadata.get(".tag") == "metadata" and "metadata" in metadata:
            metadata = metadata["metadata"]
        return cls(
            metadata=Metadata.from_dict(metadata),
            highlight_spans=[
                HighlightSpan.from_dict(s) for s in data.get("highlight_spans") or []
            ],
        )


@dataclass
class ListFolderResult:
    entries: list[Metadata] = field(default_factory=list)
    cursor: str = ""
    has_more: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ListFolderResult:
        return cls(
            entries=[Metadata.from_dict(e) for e in data.get("entries") or []],
            cursor=data.get("cursor", ""),
            has_more=data.get("has_more", False),
        )


@dataclass
class SearchResult:
    matches: list[SearchMatch] = field(default_factory=list)
    has_more: bool = False
    cursor: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchResult:
        return cls(
            matches=[SearchMatch.from_dict(m) for m in data.get("matches") or []],
            has_more=data.get("has_more", False),
            cursor=data.get("cursor", "") or "",
        )


@dataclass
class ListRevisionsResult:
    is_deleted: bool = False
    entries: list[Metadata] = field(default_factory=list)
    server_deleted: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ListRevisionsResult:
        return cls(
            is_deleted=data.get("is_deleted", False),
            entries=[Metadata.from_dict(e) for e in data.get("entries") or []],
            server_deleted=parse_iso_timestamp(data.get("server_deleted")),
        )


# =============================================================================
# Request models
# =============================================================================


@dataclass
class TemplateFilterBase:
    filter_some: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"filter_some": list(self.filter_some)}


@dataclass
class GetMetadataInput:
    path: str
    include_media_info: bool = False
    include_deleted: bool = False
    include_has_explicit_shared_members: bool = False
    include_property_groups: Optional[TemplateFilterBase] = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "path": self.path,
                "include_media_info": self.include_media_info,
                "include_deleted": self.include_deleted,
                "include_has_explicit_shared_members": (
                    self.include_has_explicit_shared_members
                ),
                "include_property_groups": (
                    self.include_property_groups.to_dict()
                    if self.include_property_groups
                    else None
                ),
            },
            "path",
        )


@dataclass
class CreateFolderInput:
    path: str
    autorename: bool = False

    def to_dict(self) -> dict[str, Any]:
        return _compact({"path": self.path, "autorename": self.autorename}, "path")


@dataclass
class DeleteInput:
    path: str
    parent_rev: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _compact({"path": self.path, "parent_rev": self.parent_rev}, "path")


# Same wire shape as DeleteInput
PermanentlyDeleteInput = DeleteInput


@dataclass
class RelocationInput:
    """Input for copy and move."""

    from_path: str
    to_path: str
    allow_shared_folder: bool = False
    autorename: bool = False
    allow_ownership_transfer: bool = False

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "from_path": self.from_path,
                "to_path": self.to_path,
                "allow_shared_folder": self.allow_shared_folder,
                "autorename": self.autorename,
                "allow_ownership_transfer": self.allow_ownership_transfer,
            },
            "from_path",
            "to_path",
        )


CopyInput = RelocationInput
MoveInput = RelocationInput


@dataclass
class RestoreInput:
    path: str
    rev: str

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "rev": self.rev}


@dataclass
class ListFolderInput:
    path: str = ""
    recursive: bool = False
    include_media_info: bool = False
    include_deleted: bool = False
    include_has_explicit_shared_members: bool = False
    include_mounted_folders: bool = True
    include_non_downloadable_files: bool = True

    def to_dict(self) -> dict[str, Any]:
        # Every flag is sent, defaults included
        return {
            "path": normalize_path(self.path),
            "recursive": self.recursive,
            "include_media_info": self.include_media_info,
            "include_deleted": self.include_deleted,
            "include_has_explicit_shared_members": (
                self.include_has_explicit_shared_members
            ),
            "include_mounted_folders": self.include_mounted_folders,
            "include_non_downloadable_files": self.include_non_downloadable_files,
        }


@dataclass
class CursorInput:
    """Input for the ``/continue`` endpoints."""

    cursor: str

    def to_dict(self) -> dict[str, Any]:
        return {"cursor": self.cursor}


@dataclass
class SearchOptions:
    path: str = ""
    max_results: int = 100
    file_status: FileStatus = FileStatus.ACTIVE
    filename_only: bool = False
    file_extensions: list[str] = field(default_factory=list)
    file_categories: list[FileCategory] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not 1 <= self.max_results <= 1000:
            raise ValueError(
                f"max_results must be between 1 and 1000, got {self.max_results}"
            )

    def to_dict(self) -> dict[str, Any]:
        self.validate()
        return _compact(
            {
                "path": normalize_path(self.path),
                "max_results": self.max_results,
                "file_status": _value(self.file_status),
                "filename_only": self.filename_only,
                "file_extensions": list(self.file_extensions),
                "file_categories": [_value(c) for c in self.file_categories],
            },
            "max_results",
            "file_status",
        )


@dataclass
class SearchInput:
    query: str
    options: Optional[SearchOptions] = None
    include_highlights: bool = False

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "query": self.query,
                "options": self.options.to_dict() if self.options else None,
                "include_highlights": self.include_highlights,
            },
            "query",
        )


@dataclass
class UploadInput:
    """Input for a single-request upload (files smaller than 150 MB)."""

    path: str
    content: Union[bytes, IO[bytes], Iterable[bytes], None] = None
    mode: Union[WriteMode, dict[str, str], None] = WriteMode.ADD
    autorename: bool = False
    client_modified: Optional[datetime] = None
    mute: bool = False
    property_groups: list[PropertyGroup] = field(default_factory=list)
    strict_conflict: bool = False

    def __post_init__(self) -> None:
        if self.mode is not None and not isinstance(self.mode, dict):
            self.set_mode(self.mode)

    def set_mode(self, mode: Union[WriteMode, str], rev: str = "") -> None:
        """Set the write mode; ``update`` needs the revision to replace."""
        mode = WriteMode(mode)
        if mode is WriteMode.UPDATE:
            self.mode = {".tag": "update", "update": rev}
        else:
            self.mode = mode

    def get_mode(self) -> tuple[Optional[WriteMode], str]:
        if isinstance(self.mode, dict):
            return WriteMode.UPDATE, self.mode.get("update", "")
        if self.mode is None:
            return None, ""
        return WriteMode(self.mode), ""

    def check_mode(self) -> None:
        if self.mode is None:
            self.set_mode(WriteMode.ADD)

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "path": self.path,
                "mode": _value(self.mode),
                "autorename": self.autorename,
                "client_modified": format_timestamp(self.client_modified),
                "mute": self.mute,
                "property_groups": [g.to_dict() for g in self.property_groups],
                "strict_conflict": self.strict_conflict,
            },
            "path",
        )


@dataclass
class DownloadInput:
    path: str

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path}


GetPreviewInput = DownloadInput


@dataclass
class GetThumbnailInput:
    path: str
    format: ThumbnailFormat = ThumbnailFormat.JPEG
    size: ThumbnailSize = ThumbnailSize.W64H64
    mode: ThumbnailMode = ThumbnailMode.STRICT

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "format": _value(self.format),
            "size": _value(self.size),
            "mode": _value(self.mode),
        }


@dataclass
class ListRevisionsInput:
    path: str
    mode: ListRevisionsMode = ListRevisionsMode.PATH
    limit: int = 10

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {"path": self.path, "mode": _value(self.mode), "limit": self.limit},
            "path",
        )
