"""
Installer downloads over HTTP(S).
"""

import asyncio
import http.client
import logging
import urllib.error
import urllib.request
from pathlib import Path
from typing import Callable, Optional, Union

from .errors import DownloadError

ProgressCallback = Callable[[int, Optional[int]], None]

CHUNK_SIZE = 64 * 1024


class Downloader:
    """Streams a URL to a file on disk. Never retries on its own."""

    def __init__(self, timeout: float = 60.0, user_agent: str = "pyprovision"):
        self.logger = logging.getLogger(__name__)
        self.timeout = timeout
        self.user_agent = user_agent

    async def fetch(self, url: str, dest_path: Union[str, Path],
                    on_progress: Optional[ProgressCallback] = None) -> Path:
        """
        Download ``url`` to ``dest_path``.

        Args:
            url: Source URL
            dest_path: Destination file
            on_progress: Called with (bytes_written, total_bytes or None)

        Returns:
            The destination path

        Raises:
            DownloadError: transport failure or non-success status
        """
        dest = Path(dest_path)
        self.logger.info(f"Downloading {url} to {dest}")
        try:
            written = await asyncio.to_thread(self._fetch_blocking, url, dest, on_progress)
        except DownloadError:
            dest.unlink(missing_ok=True)
            raise
        self.logger.info(f"Downloaded {written} bytes to {dest}")
        return dest

    def _fetch_blocking(self, url: str, dest: Path,
                        on_progress: Optional[ProgressCallback]) -> int:
        try:
            request = urllib.request.Request(url)
            request.add_header("User-Agent", self.user_agent)

            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                # Non-HTTP handlers report no status.
                status = getattr(response, "status", None) or 200
                if not 200 <= status < 300:
                    raise DownloadError(f"Download of {url} failed with status {status}", status=status)

                length = response.headers.get("Content-Length")
                total = int(length) if length and length.isdigit() else None

                dest.parent.mkdir(parents=True, exist_ok=True)
                written = 0
                with open(dest, "wb") as f:
                    while True:
                        chunk = response.read(CHUNK_SIZE)
                        if not chunk:
                            break
                        f.write(chunk)
                        written += len(chunk)
                        if on_progress:
                            on_progress(written, total)
                if total is not None and written != total:
                    raise DownloadError(f"Download of {url} incomplete: {written} of {total} bytes")
                return written
        except urllib.error.HTTPError as e:
            raise DownloadError(f"Download of {url} failed with status {e.code}", status=e.code) from e
        except urllib.error.URLError as e:
            raise DownloadError(f"Download of {url} failed: {e.reason}") from e
        except http.client.HTTPException as e:
            raise DownloadError(f"Download of {url} failed: {e!r}") from e
        except (OSError, ValueError) as e:
            raise DownloadError(f"Download of {url} failed: {e}") from e
