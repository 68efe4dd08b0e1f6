"""
Asset selection: pick the one release asset that fits the running platform.

Selection rules, applied in order:

1. Assets that are never installable binaries are dropped: checksums,
   signatures, SBOMs, text/metadata files, OS packages, source archives and
   archive formats the processor cannot unpack.
2. Assets naming another OS, or naming only other architectures, are dropped.
3. The rest are scored: +2 when the name mentions this OS, +1 when it mentions
   this architecture (a macOS "universal" build counts as an arch match).
   Only the highest score survives.
4. Ties are broken, in order, by libc flavour on Linux (musl builds only on
   musl systems), by format precedence (see FORMAT_PRECEDENCE) and by whether
   the name contains the repository name.
5. One survivor is returned. Zero survivors or a tie that outlives every
   tie-break raises AssetSelectionError; nothing is picked arbitrarily.
"""

import re
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence, Tuple

from binfetch.exceptions import AssetSelectionError
from binfetch.log_utils import logger

from .platforms import (
    PlatformInfo,
    current_platform,
    detect_arch,
    detect_os,
    is_musl,
    is_universal,
)

if TYPE_CHECKING:
    from binfetch.providers.interfaces import AssetCandidate

IGNORED_SUFFIXES = (
    ".sha256",
    ".sha256sum",
    ".sha512",
    ".sha512sum",
    ".sha1",
    ".md5",
    ".asc",
    ".sig",
    ".pem",
    ".crt",
    ".cert",
    ".pub",
    ".sbom",
    ".spdx",
    ".intoto.jsonl",
    ".txt",
    ".json",
    ".yaml",
    ".yml",
    ".md",
    ".sh",
    ".deb",
    ".rpm",
    ".apk",
    ".msi",
    ".pkg",
    ".dmg",
    ".7z",
    ".rar",
    ".zst",
    ".tar.zst",
)

IGNORED_NAME_RX = re.compile(
    r"(?<![a-z0-9])(?:checksums?|sha256sums?|sha512sums?)(?![a-z0-9])",
    re.IGNORECASE,
)

# Only an archive with no platform tokens counts as a source tarball
SOURCE_NAME_RX = re.compile(
    r"(?<![a-z0-9])(?:src|source|sources)(?![a-z0-9])",
    re.IGNORECASE,
)

# Lower index wins; names with none of these suffixes rank as bare binaries (0)
FORMAT_PRECEDENCE: Tuple[Tuple[str, ...], ...] = (
    (".tar.gz", ".tgz"),
    (".tar.xz", ".txz"),
    (".tar.bz2", ".tbz", ".tbz2"),
    (".tar",),
    (".zip",),
    (".gz",),
    (".xz",),
    (".bz2",),
)


def is_ignored_asset(name: str) -> bool:
    """Whether the asset can never be the installable binary."""
    lower = name.lower()
    if lower.endswith(IGNORED_SUFFIXES):
        return True
    if IGNORED_NAME_RX.search(lower):
        return True
    return is_source_archive(lower)


def is_source_archive(name: str) -> bool:
    """
    Whether the asset is a source archive such as `tool-1.0-src.tar.gz`.

    Bare binaries and archives naming an OS or architecture are never source
    archives, even when a `src` token is part of the program name.
    """
    if not SOURCE_NAME_RX.search(name) or format_rank(name) == 0:
        return False
    return not detect_os(name) and not detect_arch(name)


def format_rank(name: str) -> int:
    """
    Rank an asset by archive format; lower is preferred.

    Bare binaries, including Windows `.exe` files, rank 0.
    """
    lower = name.lower()
    for index, suffixes in enumerate(FORMAT_PRECEDENCE, start=1):
        if lower.endswith(suffixes):
            return index
    return 0


def score_asset(name: str, target: PlatformInfo) -> Optional[int]:
    """
    Score an asset name against the target platform.

    Returns:
        Optional[int]: None when the asset is built for another OS or
            architecture, otherwise 0-3 (OS match worth 2, arch match worth 1).
    """
    oses = detect_os(name)
    arches = detect_arch(name)
    universal = target.os == "darwin" and is_universal(name)

    if oses and target.os not in oses:
        return None
    if arches and target.arch not in arches and not universal:
        return None

    score = 0
    if target.os in oses:
        score += 2
    if target.arch in arches or universal:
        score += 1
    return score


def _keep_best(
    finalists: List["AssetCandidate"], key: Callable[["AssetCandidate"], int]
) -> List["AssetCandidate"]:
    best = min(key(c) for c in finalists)
    return [c for c in finalists if key(c) == best]


def filter_assets(
    repo_name: str,
    candidates: Sequence["AssetCandidate"],
    target: Optional[PlatformInfo] = None,
) -> "AssetCandidate":
    """
    Choose the single asset that fits the target platform.

    Parameters:
        repo_name (str): Repository name, used as the last tie-break.
        candidates (Sequence[AssetCandidate]): Assets in provider order.
        target (Optional[PlatformInfo]): Platform to select for; defaults to the running one.

    Returns:
        AssetCandidate: The selected asset.

    Raises:
        AssetSelectionError: When nothing matches or the match is ambiguous.
    """
    target = target or current_platform()
    all_names = [c.name for c in candidates]
    if not candidates:
        raise AssetSelectionError("Release has no assets", candidates=[])

    usable = [c for c in candidates if not is_ignored_asset(c.name)]
    skipped = len(candidates) - len(usable)
    if skipped:
        logger.debug(f"Ignoring {skipped} checksum, metadata or package assets")

    scored = []
    for candidate in usable:
        score = score_asset(candidate.name, target)
        if score is None:
            logger.debug(f"Skipping {candidate.name}: built for another platform")
            continue
        scored.append((score, candidate))

    if not scored:
        raise AssetSelectionError(
            f"No asset matches platform {target}",
            candidates=all_names,
            details=", ".join(all_names),
        )

    top_score = max(score for score, _ in scored)
    finalists = [c for score, c in scored if score == top_score]

    tie_breaks: List[Callable[["AssetCandidate"], int]] = [
        lambda c: format_rank(c.name),
        lambda c: 0 if repo_name and repo_name.lower() in c.name.lower() else 1,
    ]
    if target.os == "linux":
        want_musl = target.libc == "musl"
        tie_breaks.insert(0, lambda c: 0 if is_musl(c.name) == want_musl else 1)

    for tie_break in tie_breaks:
        if len(finalists) == 1:
            break
        finalists = _keep_best(finalists, tie_break)

    if len(finalists) > 1:
        names = [c.name for c in finalists]
        raise AssetSelectionError(
            f"Multiple assets match platform {target}",
            candidates=names,
            details=", ".join(names),
        )

    selected = finalists[0]
    logger.info(f"Selected asset {selected.name} for {target}")
    return selected
