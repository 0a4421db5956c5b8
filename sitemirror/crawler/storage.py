"""Filesystem-backed storage for mirrored resources.

Storage owns the on-disk layout. Other modules should use this API instead of
building paths manually.
"""

from __future__ import annotations

import os
import tempfile
import uuid
from pathlib import Path
from typing import BinaryIO
from urllib.parse import quote, unquote, urlsplit, urlunsplit

from .constants import DEFAULT_INDEX_FILENAME, RENAME_TOKEN_LENGTH


class Storage:
    """Persist mirrored files under a single `output_dir` root.

    The root mirrors the remote URL path hierarchy: `https://a.test/x/y.css`
    lands at `<root>/x/y.css` and the site root at `<root>/index.html`.
    """

    def __init__(self, output_dir: str | Path, *, index_filename: str = DEFAULT_INDEX_FILENAME) -> None:
        self.output_dir = Path(output_dir)
        self.index_filename = index_filename

    def prepare(self) -> Path:
        """Create the output root and verify it is writable.

        Raises `OSError` (usually `PermissionError`) when the root cannot be
        used, so the run fails before any network traffic.
        """

        if self.output_dir.exists() and not self.output_dir.is_dir():
            raise NotADirectoryError(f"Output path is not a directory: {self.output_dir}")

        self.output_dir.mkdir(parents=True, exist_ok=True)
        if not os.access(self.output_dir, os.W_OK | os.X_OK):
            raise PermissionError(f"Output directory is not writable: {self.output_dir}")
        return self.output_dir

    def map_url_to_local_path(self, url: str) -> Path:
        """Map an absolute URL onto its destination path under the root."""

        parsed = urlsplit(url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"Expected an absolute URL, got {url!r}")

        local = unquote(parsed.path).strip("/\\").replace("\\", "/")
        segments = [segment for segment in local.split("/") if segment not in {"", ".", ".."}]

        path = self.combine_paths(self.output_dir, *segments)
        if path == self.output_dir:
            path = self.output_dir / self.index_filename
        return path

    @staticmethod
    def combine_paths(first: str | Path, *rest: str | Path) -> Path:
        """Join path fragments with the host separator."""

        return Path(first).joinpath(*rest)

    @staticmethod
    def new_rename_token() -> str:
        """Return a random token for collision-safe filenames."""

        return uuid.uuid4().hex[:RENAME_TOKEN_LENGTH]

    def modify_paths(
        self,
        original_url: str,
        original_path: str | Path,
        *,
        token: str | None = None,
    ) -> tuple[str, Path]:
        """Derive a collision-safe `(url, path)` pair for a query-string resource.

        The token is spliced in before the file extension
        (`img.png` -> `img_<token>.png`). The returned URL is `original_url`
        with its query dropped and its last path segment replaced by the
        percent-encoded new filename; scheme, host, directory prefix and
        fragment are kept, so it can be written back into the referencing
        stylesheet. A reference to the site root (`/?v=1`) keeps its directory
        and gains the renamed index filename (`/index_<token>.html`).
        """

        path = Path(original_path)
        token = token or self.new_rename_token()
        new_name = f"{path.stem}_{token}{path.suffix}"
        modified_path = path.with_name(new_name)

        parts = urlsplit(original_url)
        encoded_name = quote(new_name)
        head, separator, last = parts.path.rpartition("/")
        if not last and path.name != self.index_filename:
            # `dir/` was mapped onto the file `dir`; rename that segment.
            head, separator, last = parts.path.rstrip("/").rpartition("/")
        if last:
            new_path = f"{head}{separator}{encoded_name}"
        else:
            new_path = f"{parts.path}{encoded_name}"

        modified_url = urlunsplit((parts.scheme, parts.netloc, new_path, "", parts.fragment))
        return modified_url, modified_path

    def save_file(self, data: bytes | BinaryIO, destination: str | Path) -> Path:
        """Write bytes (or a binary stream) to `destination`, replacing any file.

        Intermediate directories are created as needed.
        """

        path = Path(destination)
        payload = data if isinstance(data, (bytes, bytearray)) else data.read()
        if not isinstance(payload, (bytes, bytearray)):
            raise TypeError("save_file expects bytes or a binary stream")

        self._ensure_parent(path)
        self._atomic_write_bytes(path, bytes(payload))
        return path

    def replace_text(self, destination: str | Path, text: str, *, encoding: str = "utf-8") -> Path:
        """Overwrite an already-written file with rewritten text content."""

        path = Path(destination)
        self._ensure_parent(path)
        self._atomic_write_bytes(path, text.encode(encoding))
        return path

    @staticmethod
    def _ensure_parent(path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _atomic_write_bytes(path: Path, data: bytes) -> None:
        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=path.name + ".",
            suffix=".tmp",
        )
        try:
            with os.fdopen(tmp_fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise


__all__ = ["Storage"]
