"""
Core Interfaces for binfetch Providers

This module defines the data structures that flow through a release
resolution and the abstract capabilities every hosting provider implements.
"""

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import IO, List, Optional, Tuple


@dataclass
class ReleaseAsset:
    """Represents a raw attachment on a provider release."""

    name: str
    """The filename of the asset"""

    browser_download_url: str
    """Direct URL to download the asset"""

    size: Optional[int] = None
    """File size in bytes, when the provider reports it"""

    content_type: Optional[str] = None
    """MIME type of the asset"""


@dataclass
class Release:
    """Represents a published release of a repository."""

    tag_name: str
    """The release tag/version identifier (e.g., 'v1.2.3')"""

    html_url: str = ""
    """Human-facing page for the release"""

    assets: List[ReleaseAsset] = field(default_factory=list)
    """Downloadable attachments, in the order the provider lists them"""

    name: Optional[str] = None
    """Release title"""

    prerelease: bool = False
    """Whether this is a prerelease version"""

    published_at: Optional[str] = None
    """ISO 8601 timestamp when the release was published"""


@dataclass
class AssetCandidate:
    """A provider-agnostic asset handed to the asset selector."""

    name: str
    url: str


@dataclass
class File:
    """
    The artifact produced by a resolution.

    `hash` starts empty. The caller feeds every chunk it reads from `data`
    through it.
    """

    data: IO[bytes]
    """Binary stream positioned at the start of the processed asset"""

    name: str
    """Sanitized local file name"""

    hash: "hashlib._Hash"
    """Empty digest accumulator for the caller to fill"""

    version: str
    """Release tag the artifact came from"""


class ReleaseClient(ABC):
    """
    Abstract provider API client.

    Implementations raise ReleaseNotFoundError for not-found responses and
    ProviderTransportError (or a subclass) for everything else that fails.
    """

    @abstractmethod
    def get_release_by_tag(self, owner: str, repo: str, tag: str) -> Release:
        """
        Fetch the release whose tag exactly matches `tag`.
        """

    @abstractmethod
    def get_latest_release(self, owner: str, repo: str) -> Release:
        """
        Fetch the release the provider designates as latest.
        """

    @abstractmethod
    def list_releases(
        self, owner: str, repo: str, per_page: int = 30, page: int = 1
    ) -> List[Release]:
        """
        List one page of releases, newest first.
        """


class Provider(ABC):
    """
    Abstract hosting provider bound to a single owner/repo/tag reference.
    """

    @abstractmethod
    def fetch(self) -> File:
        """
        Resolve the release, select the platform asset and return the artifact.
        """

    @abstractmethod
    def get_latest_version(self) -> Tuple[str, str]:
        """
        Return the latest release tag and its browsable URL.
        """

    @abstractmethod
    def get_id(self) -> str:
        """
        Return the stable short identifier of this provider.
        """
