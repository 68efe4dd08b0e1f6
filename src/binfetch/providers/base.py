"""
Base provider implementation.

Holds the resolution pipeline shared by every provider whose API exposes
"release by tag", "latest release" and "list releases" endpoints:

    resolve release -> build candidates -> select asset -> process -> assemble
"""

import hashlib
from typing import IO, List, Optional, Tuple

import requests

from binfetch.assets import filter_assets, process_url, sanitize_name
from binfetch.constants import ARTIFACT_HASH_ALGORITHM, DEFAULT_REQUEST_TIMEOUT
from binfetch.exceptions import ProviderError, ReleaseNotFoundError
from binfetch.log_utils import logger

from .interfaces import AssetCandidate, File, Provider, Release, ReleaseClient


def build_candidates(release: Release) -> List[AssetCandidate]:
    """
    Project a release's attachments into selector candidates.

    Order is preserved; it is the tie-break order seen by the selector.
    """
    return [
        AssetCandidate(name=asset.name, url=asset.browser_download_url)
        for asset in release.assets
    ]


def assemble_artifact(selected_name: str, data: IO[bytes], release_tag: str) -> File:
    """
    Combine a processed asset stream and its release tag into the final artifact.

    The returned hash accumulator is empty; the caller streams the bytes of
    `data` through it while consuming them. Nothing here reads `data`.

    Parameters:
        selected_name (str): Raw name reported by the asset processor.
        data (IO[bytes]): Stream positioned at the start of the processed asset.
        release_tag (str): Tag of the release the asset belongs to.

    Returns:
        File: Artifact with a sanitized name, the release tag as version and an empty SHA-256 accumulator.
    """
    return File(
        data=data,
        name=sanitize_name(selected_name, release_tag),
        hash=hashlib.new(ARTIFACT_HASH_ALGORITHM),
        version=release_tag,
    )


class ReleaseProvider(Provider):
    """
    Provider bound to one owner/repo/tag reference and one release client.

    Subclasses set `provider_id` and build their client; the resolution
    logic itself lives here.
    """

    provider_id = ""

    def __init__(
        self,
        url: str,
        client: ReleaseClient,
        owner: str,
        repo: str,
        tag: str = "",
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        owned_session: Optional[requests.Session] = None,
    ):
        """
        Parameters:
            url (str): The reference this provider was built from.
            client (ReleaseClient): Provider API client.
            owner (str): Repository owner or namespace.
            repo (str): Repository name.
            tag (str): Pinned release tag; empty means "latest".
            session (Optional[requests.Session]): Session used for the asset download.
            timeout (Optional[float]): Per-request timeout in seconds.
            owned_session (Optional[requests.Session]): API session created by the
                provider itself; closed when fetch() or get_latest_version() returns.
        """
        self.url = url
        self.client = client
        self.owner = owner
        self.repo = repo
        self.tag = tag or ""
        self.session = session
        self.timeout = timeout or DEFAULT_REQUEST_TIMEOUT
        self._owned_session = owned_session

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(owner={self.owner!r}, repo={self.repo!r}, "
            f"tag={self.tag!r})"
        )

    def get_id(self) -> str:
        return self.provider_id

    def close(self) -> None:
        """Close the API session if this provider created it."""
        if self._owned_session is not None:
            self._owned_session.close()

    def resolve_release(self) -> Release:
        """
        Obtain exactly one release for the bound reference.

        A pinned tag is fetched as-is and any failure is raised unchanged.
        Without a tag the latest release is used, falling back to the newest
        listed release when the repository has no latest pointer.

        Raises:
            ReleaseNotFoundError: If the tag does not exist or the repository has no releases.
            ProviderTransportError: For network, authentication or rate-limit failures.
        """
        try:
            if self.tag:
                logger.info(f"Getting {self.tag} release for {self.owner}/{self.repo}")
                return self.client.get_release_by_tag(self.owner, self.repo, self.tag)

            logger.info(f"Getting latest release for {self.owner}/{self.repo}")
            return self._get_any_latest_release()
        except ProviderError as e:
            e.add_context(self.owner, self.repo, self.tag)
            raise

    def _get_any_latest_release(self) -> Release:
        try:
            return self.client.get_latest_release(self.owner, self.repo)
        except ReleaseNotFoundError:
            # Repositories with only pre-releases have no latest pointer
            logger.debug(
                f"No latest release for {self.owner}/{self.repo}, checking listed releases"
            )
            releases = self.client.list_releases(self.owner, self.repo, per_page=1)
            if releases:
                return releases[0]
            # Surface the original not-found error
            raise

    def fetch(self) -> File:
        """
        Resolve the release, select the asset for this platform and assemble the artifact.

        Raises:
            ReleaseNotFoundError, ProviderTransportError: From release resolution.
            AssetSelectionError: When no asset, or more than one, fits the platform.
            AssetProcessingError: When the selected asset cannot be downloaded or unpacked.
        """
        try:
            release = self.resolve_release()
        finally:
            self.close()

        candidates = build_candidates(release)
        logger.debug(
            f"Release {release.tag_name} of {self.owner}/{self.repo} has {len(candidates)} assets"
        )
        selected = filter_assets(self.repo, candidates)

        name, data = process_url(
            selected, session=self.session, timeout=self.timeout, repo_name=self.repo
        )

        return assemble_artifact(name, data, release.tag_name)

    def get_latest_version(self) -> Tuple[str, str]:
        """
        Return the latest release tag and its browsable URL.

        Never honours a pinned tag; used for update checks.
        """
        logger.debug(f"Getting latest release for {self.owner}/{self.repo}")
        try:
            release = self._get_any_latest_release()
        except ProviderError as e:
            e.add_context(self.owner, self.repo, None)
            raise
        finally:
            self.close()
        return release.tag_name, release.html_url
