"""
binfetch asset handling

Components:
- platforms: running-platform detection and OS/arch vocabulary
- selection: picking the asset that fits the platform
- processing: downloading and unpacking the selected asset
- naming: stable local names for binaries
"""

from .naming import sanitize_name
from .platforms import PlatformInfo, current_platform
from .processing import process_url, unpack_asset
from .selection import filter_assets

__all__ = [
    "PlatformInfo",
    "current_platform",
    "filter_assets",
    "process_url",
    "sanitize_name",
    "unpack_asset",
]
