"""Filesystem storage of uploaded documents."""

import asyncio
import hashlib
import os
import re
from pathlib import Path

from shared.errors import DocumentNotFound, InvalidDocument
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import StoredDocument

_UNSAFE_CHARS = re.compile(r"[^\w.\-]")


def sanitize_filename(name: str) -> str:
    """Reduce a client supplied file name to a safe, flat file name.

    Directory components are dropped and every character outside
    letters, digits, "_", "-" and "." is replaced by "_".

    Raises:
        InvalidDocument: If nothing usable is left.
    """
    base = _UNSAFE_CHARS.sub("_", Path(name.replace("\\", "/")).name).strip()
    if not base or base in (".", "..") or set(base) == {"."}:
        raise InvalidDocument(f"Invalid file name '{name}'.")
    return base


def content_hash(document_id: str, data: bytes) -> str:
    """SHA-256 over the stored name and the raw bytes of a document version."""
    digest = hashlib.sha256()
    digest.update(document_id.encode("utf-8"))
    digest.update(b"\0")
    digest.update(data)
    return digest.hexdigest()


class DocumentStorage:
    """Stores one file per document under UPLOAD_DIR, named by its document_id."""

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        upload_dir = Path(helper_config.get_string_val("UPLOAD_DIR", default="uploads"))
        if not upload_dir.is_absolute():
            upload_dir = Path(helper_config.get_string_val("ROOT_DIR", default=os.getcwd())) / upload_dir
        self.base_dir = upload_dir.resolve()

    def _path_for(self, filename: str) -> Path:
        path = (self.base_dir / sanitize_filename(filename)).resolve()
        if path.parent != self.base_dir:
            raise InvalidDocument(f"Invalid file name '{filename}'.")
        return path

    def resolve_document_id(self, filename: str) -> str:
        """Map a client supplied name to the key of the document it addresses.

        Raises:
            DocumentNotFound: If the name cannot address any stored document.
        """
        try:
            return self._path_for(filename).name
        except InvalidDocument as exc:
            raise DocumentNotFound(f"Document '{filename}' not found.") from exc

    async def save(self, original_name: str, data: bytes) -> StoredDocument:
        """Write a document, replacing any previous version with the same name.

        Returns:
            StoredDocument: The stored document with its key and content hash.
        """
        path = self._path_for(original_name)

        def _write() -> None:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_name(path.name + ".tmp")
            tmp_path.write_bytes(data)
            tmp_path.replace(path)

        await asyncio.to_thread(_write)
        document = StoredDocument(
            document_id=path.name,
            original_name=original_name,
            content_hash=content_hash(path.name, data),
            size=len(data),
        )
        self.logging.info("Stored document '%s' (%d bytes).", document.document_id, document.size)
        return document

    async def load(self, filename: str) -> bytes:
        """Read the raw bytes of a document.

        Raises:
            DocumentNotFound: If no document with that name exists.
        """
        try:
            path = self._path_for(filename)
        except InvalidDocument as exc:
            raise DocumentNotFound(f"Document '{filename}' not found.") from exc
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as exc:
            raise DocumentNotFound(f"Document '{filename}' not found.") from exc

    async def exists(self, filename: str) -> bool:
        try:
            path = self._path_for(filename)
        except InvalidDocument:
            return False
        return await asyncio.to_thread(path.is_file)

    async def delete(self, filename: str) -> None:
        """Remove a document.

        Raises:
            DocumentNotFound: If no document with that name exists.
        """
        try:
            path = self._path_for(filename)
            await asyncio.to_thread(path.unlink)
        except (InvalidDocument, FileNotFoundError) as exc:
            raise DocumentNotFound(f"Document '{filename}' not found.") from exc
        self.logging.info("Deleted document '%s'.", path.name)
