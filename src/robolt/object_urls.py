"""Local URLs for downloaded file content.

A minted URL points at a temporary copy of the bytes and stays valid until
it is revoked, or until the minter is closed.
"""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol

from .models import LocalFile

logger = logging.getLogger(__name__)


class LocalURLMinter(Protocol):
    """Turns in-memory file content into a transient local URL."""

    def create(self, local_file: LocalFile) -> str: ...

    def revoke(self, url: str) -> None: ...


class TempFileURLMinter:
    """Mints ``file://`` URLs backed by files in a private temp directory."""

    def __init__(self, directory: Optional[Path] = None):
        self._directory = directory
        self._created_directory = directory is None
        self._minted: Dict[str, Path] = {}

    @property
    def directory(self) -> Path:
        if self._directory is None:
            self._directory = Path(tempfile.mkdtemp(prefix="robolt_"))
        return self._directory

    def create(self, local_file: LocalFile) -> str:
        suffix = Path(local_file.name).suffix
        with tempfile.NamedTemporaryFile(
            dir=self.directory, suffix=suffix, delete=False
        ) as f:
            f.write(local_file.content)
            path = Path(f.name)

        url = path.as_uri()
        self._minted[url] = path
        logger.debug(f"Minted {url} for {local_file.name} ({local_file.size} bytes)")
        return url

    def revoke(self, url: str) -> None:
        """Release a URL minted by this instance.

        Raises:
            KeyError: If the URL was not minted here or was already revoked
        """
        path = self._minted.pop(url)
        path.unlink(missing_ok=True)
        logger.debug(f"Revoked {url}")

    def revoke_all(self) -> None:
        for url in list(self._minted):
            self.revoke(url)

    def close(self) -> None:
        """Revoke every URL and remove the temp directory if it was created
        here. A directory passed in by the caller is left in place."""
        self.revoke_all()
        if self._created_directory and self._directory is not None:
            shutil.rmtree(self._directory, ignore_errors=True)
            logger.debug(f"Removed {self._directory}")
            self._directory = None

    def __contains__(self, url: object) -> bool:
        return url in self._minted
