"""HTTPS downloads with certificate verification.

Uses certifi's CA bundle so downloads work the same on minimal containers
and on macOS Pythons that cannot see the system keychain.
"""

from __future__ import annotations

import hashlib
import http.client
import logging
import shutil
import socket
import ssl
from pathlib import Path
from typing import Optional
from urllib.error import URLError
from urllib.request import Request, urlopen

import certifi

from ..errors import ChecksumOrExtractFailed, NetworkUnavailable

logger = logging.getLogger(__name__)

USER_AGENT = "dotfiles-bootstrap"


def get_ssl_context() -> ssl.SSLContext:
    return ssl.create_default_context(cafile=certifi.where())


def secure_urlopen(url: str, timeout: Optional[float] = 30.0):
    """Open an https:// URL with certifi verification.

    Raises:
        ValueError: If the URL is not HTTPS.
        URLError: If the URL cannot be opened.
    """
    if not url.startswith("https://"):
        raise ValueError(f"Only HTTPS URLs are supported: {url}")

    req = Request(url, headers={"User-Agent": USER_AGENT})
    return urlopen(req, timeout=timeout, context=get_ssl_context())  # nosec B310


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def download_file(
    url: str,
    dest_path: Path,
    *,
    sha256: Optional[str] = None,
    timeout: Optional[float] = 60.0,
) -> Path:
    """Download `url` to `dest_path`, optionally verifying its SHA-256.

    Raises:
        NetworkUnavailable: connection, DNS, TLS or HTTP errors.
        ChecksumOrExtractFailed: digest mismatch (the partial file is removed).
    """
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Downloading %s", url)
    try:
        with secure_urlopen(url, timeout=timeout) as response, dest_path.open("wb") as out:
            shutil.copyfileobj(response, out)
    except (URLError, http.client.HTTPException, socket.timeout, ConnectionError, ssl.SSLError) as e:
        dest_path.unlink(missing_ok=True)
        raise NetworkUnavailable(f"Download failed for {url}: {e}") from e

    if sha256:
        actual = sha256_file(dest_path)
        if actual.lower() != sha256.lower():
            dest_path.unlink(missing_ok=True)
            raise ChecksumOrExtractFailed(
                f"Checksum mismatch for {url}: expected {sha256.lower()}, got {actual}"
            )
    return dest_path
