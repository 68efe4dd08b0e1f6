"""
Local file naming for downloaded binaries.
"""

import os
import re
from typing import List

from .platforms import ARCH_ALIASES, LIBC_TOKENS, OS_ALIASES, UNIVERSAL_ARCH, VENDOR_TOKENS

ARCHIVE_SUFFIXES = (
    ".tar.gz",
    ".tgz",
    ".tar.xz",
    ".txz",
    ".tar.bz2",
    ".tbz2",
    ".tbz",
    ".tar",
    ".zip",
    ".gz",
    ".xz",
    ".bz2",
)

# Generic version tokens such as -1.2.3, _v0.4.0-rc1, .2.7.4.c1f4f79
VERSION_RX = re.compile(
    r"[-_.]v?\d+\.\d+(?:\.\d+)?(?:\.[\da-f]+)?(?:[-_.]?(?:rc|dev|beta|alpha)\.?\d*)?(?=[-_.]|$)",
    re.IGNORECASE,
)

_PLATFORM_TOKENS = "|".join(
    list(OS_ALIASES.values())
    + list(ARCH_ALIASES.values())
    + [UNIVERSAL_ARCH, LIBC_TOKENS, VENDOR_TOKENS]
)
PLATFORM_TOKEN_RX = re.compile(
    rf"[-_.]?(?<![a-z0-9])(?:{_PLATFORM_TOKENS})(?![a-z0-9])", re.IGNORECASE
)

# The platform triple starts at the first OS or architecture token
_TRIPLE_START_TOKENS = "|".join(
    list(OS_ALIASES.values()) + list(ARCH_ALIASES.values()) + [UNIVERSAL_ARCH]
)
TRIPLE_START_RX = re.compile(
    rf"(?<![a-z0-9])(?:{_TRIPLE_START_TOKENS})(?![a-z0-9])", re.IGNORECASE
)

UNSAFE_CHARS_RX = re.compile(r"[^A-Za-z0-9._+-]")
SEPARATOR_RUN_RX = re.compile(r"[-_.]{2,}")


def strip_archive_suffix(name: str) -> str:
    lower = name.lower()
    for suffix in ARCHIVE_SUFFIXES:
        if lower.endswith(suffix):
            return name[: -len(suffix)]
    return name


def strip_platform_tokens(name: str) -> str:
    """
    Remove the platform triple from a name.

    Vendor and libc words that come before the first OS or architecture token
    belong to the program name and are kept.
    """
    match = TRIPLE_START_RX.search(name)
    if not match:
        return name
    start = match.start()
    return name[:start] + PLATFORM_TOKEN_RX.sub("", name[start:])


def _version_variants(version: str) -> List[str]:
    bare = version.strip()
    if bare[:1] in ("v", "V"):
        bare = bare[1:]
    variants = {version.strip(), bare}
    return sorted((v for v in variants if v), key=len, reverse=True)


def _tidy(value: str) -> str:
    value = UNSAFE_CHARS_RX.sub("_", value)
    value = SEPARATOR_RUN_RX.sub(lambda m: m.group(0)[0], value)
    return value.strip("-_. ")


def sanitize_name(name: str, version: str) -> str:
    """
    Turn a raw asset or archive member name into a stable local file name.

    Archive suffixes, the release version (with or without a leading "v"),
    any other version-looking token, and the platform triple (OS,
    architecture, vendor and libc tokens from the first OS or architecture
    token on) are removed; characters unsafe in file names become "_". A Windows ".exe"
    suffix is kept. If nothing is left the tidied original name is used.

    Examples:
      ('bin_0.1.0_linux_amd64', 'v0.1.0') -> 'bin'
      ('ripgrep-14.1.0-x86_64-unknown-linux-musl.tar.gz', '14.1.0') -> 'ripgrep'
      ('tool-v2.0-windows-amd64.exe', 'v2.0') -> 'tool.exe'
    """
    base = os.path.basename(name.replace("\\", "/"))
    is_exe = base.lower().endswith(".exe")
    if is_exe:
        base = base[:-4]
    base = strip_archive_suffix(base)

    cleaned = base
    for variant in _version_variants(version):
        cleaned = re.sub(
            rf"(?:^|[-_.])v?{re.escape(variant)}(?=[-_.]|$)",
            "",
            cleaned,
            flags=re.IGNORECASE,
        )
    cleaned = VERSION_RX.sub("", cleaned)
    cleaned = strip_platform_tokens(cleaned)
    cleaned = _tidy(cleaned)

    if not cleaned:
        cleaned = _tidy(base) or "binary"

    return f"{cleaned}.exe" if is_exe else cleaned
