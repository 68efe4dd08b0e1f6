"""
Platform detection and the OS / architecture vocabulary found in asset names.
"""

import glob
import platform
import re
from dataclasses import dataclass
from typing import Dict, Optional, Pattern, Set


@dataclass(frozen=True)
class PlatformInfo:
    """The running platform in the vocabulary used for asset names."""

    os: str
    """Normalized OS name: linux, darwin, windows, freebsd, ..."""

    arch: str
    """Normalized architecture: amd64, arm64, 386, arm, ..."""

    libc: str = ""
    """C library flavour on Linux: "gnu" or "musl"; empty elsewhere"""

    def __str__(self) -> str:
        if self.libc:
            return f"{self.os}/{self.arch} ({self.libc})"
        return f"{self.os}/{self.arch}"


def _token_rx(alternatives: str) -> Pattern[str]:
    # Whole-token match: neighbours must not be letters or digits
    return re.compile(rf"(?<![a-z0-9])(?:{alternatives})(?![a-z0-9])", re.IGNORECASE)


OS_ALIASES: Dict[str, str] = {
    "linux": r"linux",
    "darwin": r"darwin|macos|osx|mac|apple",
    "windows": r"windows|win64|win32|win",
    "freebsd": r"freebsd",
    "openbsd": r"openbsd",
    "netbsd": r"netbsd",
    "android": r"android",
}

ARCH_ALIASES: Dict[str, str] = {
    "amd64": r"amd64|x86[-_]64|x64|64[-_]?bit",
    "arm64": r"arm64|aarch64|armv8l?",
    "386": r"i?[3-6]86|x86(?![-_]64)|32[-_]?bit",
    "arm": r"armv[5-7]l?|armhf|armel|arm(?!64)",
    "ppc64le": r"ppc64le|powerpc64le",
    "s390x": r"s390x",
    "riscv64": r"riscv64",
}

UNIVERSAL_ARCH = r"universal2?"
LIBC_TOKENS = r"musl|gnu|glibc|gnueabihf|gnueabi|musleabihf|msvc"
VENDOR_TOKENS = r"unknown|pc|static"

OS_PATTERNS: Dict[str, Pattern[str]] = {k: _token_rx(v) for k, v in OS_ALIASES.items()}
ARCH_PATTERNS: Dict[str, Pattern[str]] = {
    k: _token_rx(v) for k, v in ARCH_ALIASES.items()
}
UNIVERSAL_RX = _token_rx(UNIVERSAL_ARCH)
MUSL_RX = _token_rx(r"musl|musleabihf")

_MACHINE_MAP = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv8l": "arm64",
    "i386": "386",
    "i486": "386",
    "i586": "386",
    "i686": "386",
    "x86": "386",
    "armv5l": "arm",
    "armv6l": "arm",
    "armv7l": "arm",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "riscv64": "riscv64",
}


def detect_os(name: str) -> Set[str]:
    """Return the normalized OS names mentioned in an asset name."""
    found = {os_name for os_name, rx in OS_PATTERNS.items() if rx.search(name)}
    if name.lower().endswith(".exe"):
        found.add("windows")
    return found


def detect_arch(name: str) -> Set[str]:
    """Return the normalized architectures mentioned in an asset name."""
    return {arch for arch, rx in ARCH_PATTERNS.items() if rx.search(name)}


def is_universal(name: str) -> bool:
    """Whether the name marks a macOS universal (multi-arch) binary."""
    return bool(UNIVERSAL_RX.search(name))


def is_musl(name: str) -> bool:
    return bool(MUSL_RX.search(name))


def _detect_libc(os_name: str) -> str:
    if os_name != "linux":
        return ""
    libc_name, _ = platform.libc_ver()
    if libc_name == "glibc":
        return "gnu"
    if glob.glob("/lib/ld-musl-*"):
        return "musl"
    return "gnu"


def current_platform(
    system: Optional[str] = None, machine: Optional[str] = None
) -> PlatformInfo:
    """
    Describe the running platform.

    Parameters:
        system (Optional[str]): Override for platform.system(), mainly for tests.
        machine (Optional[str]): Override for platform.machine(), mainly for tests.

    Returns:
        PlatformInfo: Normalized OS, architecture and libc flavour.
    """
    os_name = (system or platform.system()).lower()
    raw_machine = (machine or platform.machine()).lower()
    arch = _MACHINE_MAP.get(raw_machine, raw_machine)
    return PlatformInfo(os=os_name, arch=arch, libc=_detect_libc(os_name))
