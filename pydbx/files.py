"""Operations on files and folders."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional, Union

from .exceptions import (
    DropboxDownloadError,
    DropboxFileAccessError,
    DropboxUploadError,
)
from .models import (
    CreateFolderInput,
    CursorInput,
    DeleteInput,
    DownloadInput,
    GetMetadataInput,
    GetThumbnailInput,
    ListFolderInput,
    ListFolderResult,
    ListRevisionsInput,
    ListRevisionsMode,
    ListRevisionsResult,
    Metadata,
    RelocationInput,
    RestoreInput,
    SearchInput,
    SearchOptions,
    SearchResult,
    ThumbnailFormat,
    ThumbnailMode,
    ThumbnailSize,
    UploadInput,
    WriteMode,
)
from .utils import (
    DEFAULT_DOWNLOAD_CHUNK_SIZE,
    MAX_SIMPLE_UPLOAD_SIZE,
    ContentHasher,
    file_content_hash,
)

if TYPE_CHECKING:
    from .api import DownloadResult, DropboxClient, UploadContent

logger = logging.getLogger(__name__)


class Files:
    """Client for the ``/files`` endpoints.

    Every method accepts either the typed input model or the plain
    arguments used to build one, e.g. ``files.get_metadata("/a.txt")``
    or ``files.get_metadata(GetMetadataInput(path="/a.txt"))``.
    """

    def __init__(self, client: DropboxClient):
        """Initialize the files client.

        Args:
            client: Transport client used for all requests
        """
        self.client = client

    # =========================
    # Metadata
    # =========================

    def get_metadata(
        self, path: Union[str, GetMetadataInput], **options: Any
    ) -> Metadata:
        """Return the metadata for a file or folder.

        Args:
            path: Remote path, id ("id:...") or a GetMetadataInput
            **options: GetMetadataInput fields (include_media_info, ...)

        Returns:
            Metadata of the entry
        """
        request = path if isinstance(path, GetMetadataInput) else GetMetadataInput(path, **options)
        data = self.client.call("/files/get_metadata", request.to_dict())
        return Metadata.from_dict(data or {})

    def create_folder(
        self, path: Union[str, CreateFolderInput], autorename: bool = False
    ) -> Metadata:
        request = (
            path
            if isinstance(path, CreateFolderInput)
            else CreateFolderInput(path, autorename=autorename)
        )
        data = self.client.call("/files/create_folder_v2", request.to_dict())
        metadata = Metadata.from_metadata_v2(data or {})
        # Folder metadata in this response carries no tag
        if not metadata.tag:
            metadata.tag = "folder"
        return metadata

    def delete(self, path: Union[str, DeleteInput], parent_rev: str = "") -> Metadata:
        """Delete a file or folder and its contents.

        Returns:
            Metadata of the deleted entry
        """
        request = path if isinstance(path, DeleteInput) else DeleteInput(path, parent_rev)
        data = self.client.call("/files/delete_v2", request.to_dict())
        return Metadata.from_metadata_v2(data or {})

    def permanently_delete(
        self, path: Union[str, DeleteInput], parent_rev: str = ""
    ) -> None:
        """Permanently delete a file or folder; it cannot be restored."""
        request = path if isinstance(path, DeleteInput) else DeleteInput(path, parent_rev)
        self.client.call("/files/permanently_delete", request.to_dict())

    def copy(
        self,
        from_path: Union[str, RelocationInput],
        to_path: str = "",
        **options: Any,
    ) -> Metadata:
        """Copy a file or folder to a different location.

        Args:
            from_path: Source path or a RelocationInput
            to_path: Destination path
            **options: allow_shared_folder, autorename, allow_ownership_transfer

        Returns:
            Metadata of the copy
        """
        request = self._relocation(from_path, to_path, options)
        data = self.client.call("/files/copy_v2", request.to_dict())
        return Metadata.from_metadata_v2(data or {})

    def move(
        self,
        from_path: Union[str, RelocationInput],
        to_path: str = "",
        **options: Any,
    ) -> Metadata:
        """Move a file or folder to a different location.

        Returns:
            Metadata of the entry at its new location
        """
        request = self._relocation(from_path, to_path, options)
        data = self.client.call("/files/move_v2", request.to_dict())
        return Metadata.from_metadata_v2(data or {})

    @staticmethod
    def _relocation(
        from_path: Union[str, RelocationInput], to_path: str, options: dict[str, Any]
    ) -> RelocationInput:
        if isinstance(from_path, RelocationInput):
            return from_path
        if not to_path:
            raise ValueError("to_path is required")
        return RelocationInput(from_path, to_path, **options)

    def restore(self, path: Union[str, RestoreInput], rev: str = "") -> Metadata:
        """Restore a file to a specific revision."""
        request = path if isinstance(path, RestoreInput) else RestoreInput(path, rev)
        data = self.client.call("/files/restore", request.to_dict())
        return Metadata.from_dict(data or {})

    # =========================
    # Listing and search
    # =========================

    def list_folder(
        self, path: Union[str, ListFolderInput] = "", **options: Any
    ) -> ListFolderResult:
        """List the contents of a folder.

        "/" may be used for the root folder.

        Args:
            path: Folder path or a ListFolderInput
            **options: ListFolderInput fields (recursive, include_deleted, ...)

        Returns:
            First page of entries with the cursor for the next page
        """
        request = path if isinstance(path, ListFolderInput) else ListFolderInput(path, **options)
        data = self.client.call("/files/list_folder", request.to_dict())
        return ListFolderResult.from_dict(data or {})

    def list_folder_continue(self, cursor: Union[str, CursorInput]) -> ListFolderResult:
        request = cursor if isinstance(cursor, CursorInput) else CursorInput(cursor)
        data = self.client.call("/files/list_folder/continue", request.to_dict())
        return ListFolderResult.from_dict(data or {})

    def list_folder_all(
        self, path: Union[str, ListFolderInput] = "", **options: Any
    ) -> Iterator[Metadata]:
        """Iterate over all entries of a folder, following the cursor.

        Args:
            path: Folder path or a ListFolderInput
            **options: ListFolderInput fields

        Yields:
            Metadata of each entry
        """
        result = self.list_folder(path, **options)
        yield from result.entries
        while result.has_more:
            logger.debug("Fetching next list_folder page")
            result = self.list_folder_continue(result.cursor)
            yield from result.entries

    def search(
        self,
        query: Union[str, SearchInput],
        options: Optional[SearchOptions] = None,
        include_highlights: bool = False,
    ) -> SearchResult:
        """Search for files and folders.

        Args:
            query: Search string or a SearchInput
            options: Optional search options (path, max_results, ...)
            include_highlights: Whether to return highlight spans

        Returns:
            First page of matches
        """
        request = (
            query
            if isinstance(query, SearchInput)
            else SearchInput(query, options=options, include_highlights=include_highlights)
        )
        data = self.client.call("/files/search_v2", request.to_dict())
        return SearchResult.from_dict(data or {})

    def search_continue(self, cursor: Union[str, CursorInput]) -> SearchResult:
        request = cursor if isinstance(cursor, CursorInput) else CursorInput(cursor)
        data = self.client.call("/files/search/continue_v2", request.to_dict())
        return SearchResult.from_dict(data or {})

    def list_revisions(
        self,
        path: Union[str, ListRevisionsInput],
        mode: ListRevisionsMode = ListRevisionsMode.PATH,
        limit: int = 10,
    ) -> ListRevisionsResult:
        """Return the revisions of a file.

        Args:
            path: File path (or id when mode is "id") or a ListRevisionsInput
            mode: Whether to follow the path or the file id
            limit: Maximum number of revisions to return

        Returns:
            Revisions, newest first
        """
        request = (
            path
            if isinstance(path, ListRevisionsInput)
            else ListRevisionsInput(path, mode=ListRevisionsMode(mode), limit=limit)
        )
        data = self.client.call("/files/list_revisions", request.to_dict())
        return ListRevisionsResult.from_dict(data or {})

    # =========================
    # Upload Operations
    # =========================

    def upload(
        self,
        path: Union[str, UploadInput],
        content: Optional[UploadContent] = None,
        mode: Union[WriteMode, str] = WriteMode.ADD,
        rev: str = "",
        **options: Any,
    ) -> Metadata:
        """Upload a file smaller than 150 MB.

        Args:
            path: Remote destination path or an UploadInput
            content: File content (bytes, binary file object or iterable of
                bytes); overrides UploadInput.content when given
            mode: Write mode; "update" requires ``rev``
            rev: Revision to replace for update mode
            **options: UploadInput fields (autorename, mute, client_modified, ...)

        Returns:
            Metadata of the uploaded file

        Raises:
            DropboxUploadError: If in-memory content exceeds the upload limit
        """
        if isinstance(path, UploadInput):
            request = path
        else:
            request = UploadInput(path, **options)
            request.set_mode(mode, rev)
        request.check_mode()

        body = content if content is not None else request.content
        if body is None:
            body = b""
        if isinstance(body, (bytes, bytearray, memoryview)):
            size = memoryview(body).nbytes
            if size > MAX_SIMPLE_UPLOAD_SIZE:
                raise DropboxUploadError(
                    f"Content of {size} bytes exceeds the single upload limit"
                )

        logger.debug("Uploading to %s", request.path)
        result = self.client.download("/files/upload", request.to_dict(), content=body)
        return Metadata.from_dict(result.json() or {})

    def upload_file(
        self,
        local_path: Union[str, "os.PathLike[str]"],
        remote_path: str,
        mode: Union[WriteMode, str] = WriteMode.ADD,
        rev: str = "",
        autorename: bool = False,
        verify: bool = True,
    ) -> Metadata:
        """Upload a local file.

        The local modification time is sent as ``client_modified``. With
        ``verify`` the content hash reported by the server is compared
        with the hash computed locally.

        Args:
            local_path: Path of the local file
            remote_path: Remote destination path
            mode: Write mode; "update" requires ``rev``
            rev: Revision to replace for update mode
            autorename: Let the server rename the file on conflict
            verify: Compare remote and local content hashes

        Returns:
            Metadata of the uploaded file

        Raises:
            DropboxFileAccessError: If the local file cannot be opened
            DropboxUploadError: If the file is too large or the hashes differ
        """
        local_path = Path(local_path)
        try:
            stat = local_path.stat()
        except OSError as e:
            raise DropboxFileAccessError(str(local_path), f"Cannot access {local_path}: {e}") from e

        if stat.st_size > MAX_SIMPLE_UPLOAD_SIZE:
            raise DropboxUploadError(
                f"{local_path} is {stat.st_size} bytes, larger than the single upload limit"
            )

        expected_hash = file_content_hash(local_path) if verify else ""

        request = UploadInput(
            remote_path,
            autorename=autorename,
            client_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )
        request.set_mode(mode, rev)

        try:
            f = open(local_path, "rb")
        except OSError as e:
            raise DropboxFileAccessError(str(local_path), f"Cannot open {local_path}: {e}") from e

        with f:
            metadata = self.upload(request, content=f)

        if verify and metadata.content_hash and metadata.content_hash != expected_hash:
            raise DropboxUploadError(
                f"Content hash mismatch for {local_path}: "
                f"local {expected_hash}, remote {metadata.content_hash}"
            )
        return metadata

    # =========================
    # Download Operations
    # =========================

    def download(self, path: Union[str, DownloadInput]) -> DownloadResult:
        """Download a file.

        The caller owns the returned body and must close it.

        Returns:
            DownloadResult with the body stream and the file metadata
        """
        request = path if isinstance(path, DownloadInput) else DownloadInput(path)
        return self.client.download("/files/download", request.to_dict())

    def download_to_path(
        self,
        path: Union[str, DownloadInput],
        local_path: Union[str, "os.PathLike[str]", None] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
        verify: bool = True,
        chunk_size: int = DEFAULT_DOWNLOAD_CHUNK_SIZE,
    ) -> Metadata:
        """Download a file and write it to disk.

        Args:
            path: Remote path or a DownloadInput
            local_path: Destination (defaults to the remote file name in
                the current directory)
            progress_callback: Optional callback function(bytes_downloaded,
                total_bytes); total is 0 when unknown
            verify: Compare the content hash of the written data with the
                hash reported by the server; on a mismatch the written file
                is removed
            chunk_size: Size of chunks written to disk

        Returns:
            Metadata of the downloaded file

        Raises:
            DropboxDownloadError: If the file cannot be written or the
                content hash does not match
        """
        result = self.download(path)
        metadata = result.metadata or Metadata()

        if local_path is None:
            remote = path.path if isinstance(path, DownloadInput) else path
            local_path = metadata.name or os.path.basename(remote.rstrip("/")) or "download"
        save_path = Path(local_path)

        total = result.length or metadata.size or 0
        hasher = ContentHasher()
        downloaded = 0

        with result.body as body:
            try:
                with open(save_path, "wb") as f:
                    for chunk in body.iter_bytes(chunk_size):
                        f.write(chunk)
                        hasher.update(chunk)
                        downloaded += len(chunk)
                        if progress_callback:
                            progress_callback(downloaded, total)
            except OSError as e:
                raise DropboxDownloadError(f"Failed to write file: {e}") from e

        logger.debug("Downloaded %d bytes to %s", downloaded, save_path)

        if verify and metadata.content_hash:
            actual = hasher.hexdigest()
            if actual != metadata.content_hash:
                save_path.unlink(missing_ok=True)
                raise DropboxDownloadError(
                    f"Content hash mismatch for {save_path}: "
                    f"expected {metadata.content_hash}, got {actual}"
                )
        return metadata

    def get_thumbnail(
        self,
        path: Union[str, GetThumbnailInput],
        format: Union[ThumbnailFormat, str] = ThumbnailFormat.JPEG,
        size: Union[ThumbnailSize, str] = ThumbnailSize.W64H64,
        mode: Union[ThumbnailMode, str] = ThumbnailMode.STRICT,
    ) -> DownloadResult:
        """Get a thumbnail for an image file.

        Thumbnails are only generated for jpg, jpeg, png, tiff, tif, gif
        and bmp files.
        """
        request = (
            path
            if isinstance(path, GetThumbnailInput)
            else GetThumbnailInput(
                path,
                format=ThumbnailFormat(format),
                size=ThumbnailSize(size),
                mode=ThumbnailMode(mode),
            )
        )
        return self.client.download("/files/get_thumbnail", request.to_dict())

    def get_preview(self, path: Union[str, DownloadInput]) -> DownloadResult:
        """Get a preview for an office document.

        Previews are generated for .doc, .docx, .docm, .ppt, .pps, .ppsx,
        .ppsm, .pptx, .pptm, .xls, .xlsx, .xlsm and .rtf files.
        """
        request = path if isinstance(path, DownloadInput) else DownloadInput(path)
        return self.client.download("/files/get_preview", request.to_dict())
