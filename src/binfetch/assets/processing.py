"""
Asset processing: download the selected asset and unpack it into a byte stream.
"""

import bz2
import gzip
import lzma
import os
import shutil
import tarfile
import tempfile
import zipfile
import zlib
from typing import IO, TYPE_CHECKING, List, NamedTuple, Optional, Tuple

import requests

from binfetch.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_REQUEST_TIMEOUT,
    SPOOL_MAX_MEMORY,
)
from binfetch.exceptions import AssetProcessingError
from binfetch.log_utils import logger
from binfetch.utils import create_download_session, get_user_agent

if TYPE_CHECKING:
    from binfetch.providers.interfaces import AssetCandidate

TAR_SUFFIXES = (
    ".tar.gz",
    ".tgz",
    ".tar.xz",
    ".txz",
    ".tar.bz2",
    ".tbz",
    ".tbz2",
    ".tar",
)
ZIP_SUFFIXES = (".zip",)
COMPRESSED_SUFFIXES = {".gz": gzip.open, ".xz": lzma.open, ".bz2": bz2.open}

# Archive members that ship next to binaries but are never the binary
_DOC_PREFIXES = ("readme", "license", "licence", "changelog", "copying", "notice")
_DOC_SUFFIXES = (".md", ".txt", ".rst", ".html", ".1", ".json", ".yaml", ".yml")


class _Member(NamedTuple):
    path: str
    executable: bool


def _new_spool() -> IO[bytes]:
    return tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_MEMORY)


def _is_safe_archive_member(member_name: str) -> bool:
    """
    Determine whether an archive member name is safe to read.

    Returns:
        `True` if the member name contains no absolute paths, parent-directory references, or null bytes, `False` otherwise.
    """
    if not member_name or member_name.startswith(("/", "\\")):
        return False
    normalized = os.path.normpath(member_name)
    if os.path.isabs(normalized):
        return False
    if normalized == ".." or normalized.startswith(f"..{os.sep}"):
        return False
    if os.altsep and normalized.startswith(f"..{os.altsep}"):
        return False
    if "\x00" in normalized:
        return False
    return True


def _is_doc_file(path: str) -> bool:
    base = os.path.basename(path).lower()
    return base.startswith(_DOC_PREFIXES) or base.endswith(_DOC_SUFFIXES)


def _stem(path: str) -> str:
    base = os.path.basename(path).lower()
    return base[:-4] if base.endswith(".exe") else base


def choose_archive_member(
    members: List[_Member], repo_name: Optional[str], archive_name: str
) -> _Member:
    """
    Pick the binary out of an archive's regular files.

    Documentation files are set aside first. Then a lone file wins; otherwise
    a lone executable; otherwise the file whose name is the repository name.

    Raises:
        AssetProcessingError: When the archive is empty or the choice stays ambiguous.
    """
    if not members:
        raise AssetProcessingError(f"Archive {archive_name} contains no files")

    pool = [m for m in members if not _is_doc_file(m.path)] or members
    if len(pool) == 1:
        return pool[0]

    executables = [m for m in pool if m.executable]
    if len(executables) == 1:
        return executables[0]

    if repo_name:
        wanted = repo_name.lower()
        named = [m for m in (executables or pool) if _stem(m.path) == wanted]
        if len(named) == 1:
            return named[0]

    names = [m.path for m in (executables or pool)]
    raise AssetProcessingError(
        f"Archive {archive_name} contains several candidate binaries",
        details=", ".join(names),
    )


def _extract_from_tar(
    name: str, stream: IO[bytes], repo_name: Optional[str]
) -> Tuple[str, IO[bytes]]:
    with tarfile.open(fileobj=stream, mode="r:*") as archive:
        members = {}
        for info in archive.getmembers():
            if not info.isfile():
                continue
            if not _is_safe_archive_member(info.name):
                logger.warning(
                    "Skipping unsafe archive member %s (possible traversal)", info.name
                )
                continue
            members[info.name] = info
        chosen = choose_archive_member(
            [
                _Member(path, bool(info.mode & 0o111) or path.lower().endswith(".exe"))
                for path, info in members.items()
            ],
            repo_name,
            name,
        )
        source = archive.extractfile(members[chosen.path])
        if source is None:
            raise AssetProcessingError(f"Cannot read {chosen.path} from {name}")
        output = _new_spool()
        with source:
            shutil.copyfileobj(source, output)
    output.seek(0)
    logger.debug(f"Extracted {chosen.path} from {name}")
    return os.path.basename(chosen.path), output


def _extract_from_zip(
    name: str, stream: IO[bytes], repo_name: Optional[str]
) -> Tuple[str, IO[bytes]]:
    with zipfile.ZipFile(stream, "r") as archive:
        infos = {}
        for info in archive.infolist():
            if info.is_dir():
                continue
            if not _is_safe_archive_member(info.filename):
                logger.warning(
                    "Skipping unsafe archive member %s (possible traversal)",
                    info.filename,
                )
                continue
            infos[info.filename] = info
        chosen = choose_archive_member(
            [
                _Member(
                    path,
                    bool((info.external_attr >> 16) & 0o111)
                    or path.lower().endswith(".exe"),
                )
                for path, info in infos.items()
            ],
            repo_name,
            name,
        )
        output = _new_spool()
        with archive.open(infos[chosen.path]) as source:
            shutil.copyfileobj(source, output)
    output.seek(0)
    logger.debug(f"Extracted {chosen.path} from {name}")
    return os.path.basename(chosen.path), output


def _decompress(name: str, stream: IO[bytes], suffix: str) -> Tuple[str, IO[bytes]]:
    opener = COMPRESSED_SUFFIXES[suffix]
    output = _new_spool()
    with opener(stream) as source:
        shutil.copyfileobj(source, output)
    output.seek(0)
    return name[: -len(suffix)], output


def unpack_asset(
    name: str, stream: IO[bytes], repo_name: Optional[str] = None
) -> Tuple[str, IO[bytes]]:
    """
    Turn a downloaded asset into the stream of the binary it carries.

    Tar and zip archives yield their single binary member, single-file
    compressions are decompressed, anything else is returned untouched.

    Parameters:
        name (str): Asset file name; its suffix decides the format.
        stream (IO[bytes]): Downloaded bytes, positioned at the start.
        repo_name (Optional[str]): Repository name, used to pick among several archive members.

    Returns:
        Tuple[str, IO[bytes]]: Raw name of the binary and a stream positioned at its start.

    Raises:
        AssetProcessingError: When the archive is corrupt or the binary cannot be identified.
    """
    lower = name.lower()
    suffix = os.path.splitext(lower)[1]
    is_archive = lower.endswith(TAR_SUFFIXES + ZIP_SUFFIXES)
    if not is_archive and suffix not in COMPRESSED_SUFFIXES:
        return name, stream

    try:
        if lower.endswith(TAR_SUFFIXES):
            return _extract_from_tar(name, stream, repo_name)
        if lower.endswith(ZIP_SUFFIXES):
            return _extract_from_zip(name, stream, repo_name)
        return _decompress(name, stream, suffix)
    except (
        tarfile.TarError,
        zipfile.BadZipFile,
        zlib.error,
        lzma.LZMAError,
        EOFError,
        OSError,
    ) as e:
        raise AssetProcessingError(f"Could not unpack {name}", details=str(e)) from e
    finally:
        stream.close()


def download_asset(
    candidate: "AssetCandidate",
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
) -> IO[bytes]:
    """
    Stream an asset into a spooled temporary file.

    Small assets stay in memory; larger ones spill to disk.

    Raises:
        AssetProcessingError: For network and HTTP failures after retries.
    """
    own_session = session is None
    if session is None:
        session = create_download_session()
    output = _new_spool()
    response = None
    downloaded_bytes = 0
    try:
        logger.debug(f"Downloading {candidate.url}")
        response = session.get(
            candidate.url,
            stream=True,
            timeout=timeout or DEFAULT_REQUEST_TIMEOUT,
            headers={"User-Agent": get_user_agent()},
        )
        response.raise_for_status()
        for chunk in response.iter_content(chunk_size=DEFAULT_CHUNK_SIZE):
            if chunk:
                output.write(chunk)
                downloaded_bytes += len(chunk)
    except requests.RequestException as e:
        output.close()
        raise AssetProcessingError(
            f"Failed to download {candidate.name}", url=candidate.url, details=str(e)
        ) from e
    finally:
        if response is not None:
            response.close()
        if own_session:
            session.close()

    logger.debug(f"Downloaded {candidate.name} ({downloaded_bytes} bytes)")
    output.seek(0)
    return output


def process_url(
    candidate: "AssetCandidate",
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
    repo_name: Optional[str] = None,
) -> Tuple[str, IO[bytes]]:
    """
    Download the selected asset and unpack it.

    Parameters:
        candidate (AssetCandidate): The selected asset.
        session (Optional[requests.Session]): Session to download with; a retrying session is created when omitted.
        timeout (Optional[float]): Request timeout in seconds.
        repo_name (Optional[str]): Repository name, used to pick the binary inside archives.

    Returns:
        Tuple[str, IO[bytes]]: Raw binary name and its byte stream, positioned at the start.

    Raises:
        AssetProcessingError: When the download or unpacking fails.
    """
    stream = download_asset(candidate, session=session, timeout=timeout)
    try:
        return unpack_asset(candidate.name, stream, repo_name)
    except AssetProcessingError as e:
        if e.url is None:
            e.url = candidate.url
        raise
