"""
GitHub Release Provider

Resolves github.com (and GitHub Enterprise) repository URLs through the
GitHub REST API.
"""

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import ParseResult, quote, unquote

import requests

from binfetch.config import get_effective_token
from binfetch.constants import (
    GITHUB_API_BASE,
    GITHUB_API_VERSION,
    GITHUB_PROVIDER_ID,
    GITHUB_TOKEN_ENV_VARS,
)
from binfetch.exceptions import MalformedReferenceError, ProviderTransportError
from binfetch.log_utils import logger
from binfetch.utils import make_api_request

from .base import ReleaseProvider
from .interfaces import Release, ReleaseAsset, ReleaseClient


def parse_github_path(path: str) -> Tuple[str, str, str]:
    """
    Split a GitHub URL path into owner, repository and pinned tag.

    The first two non-empty segments are owner and repository. Below a
    `releases` segment, `tag/<tag...>` pins every remaining segment joined with
    "/", and `download/<tag...>/<asset>` pins the segments before the asset
    file name. A lone segment after `download` is the tag itself; any other
    qualifier (e.g. `latest`) pins nothing.

    Examples:
      '/owner/repo' -> ('owner', 'repo', '')
      '/owner/repo/releases/tag/v1.2.3' -> ('owner', 'repo', 'v1.2.3')
      '/owner/repo/releases/download/v1.2.3/tool.tar.gz' -> ('owner', 'repo', 'v1.2.3')

    Raises:
        MalformedReferenceError: If fewer than two segments are present.
    """
    segments = [s for s in path.split("/") if s]
    if len(segments) < 2:
        raise MalformedReferenceError(
            f"Error parsing GitHub URL path {path!r}, can't find owner and repo"
        )

    owner, repo = segments[0], segments[1]

    tag = ""
    if "releases" in segments[2:]:
        index = segments.index("releases", 2)
        qualifier = segments[index + 1] if index + 1 < len(segments) else ""
        rest = segments[index + 2 :]
        if qualifier == "download":
            if len(rest) > 1:
                rest = rest[:-1]
        elif qualifier != "tag":
            rest = []
        tag = unquote("/".join(rest))

    return owner, repo, tag


def create_release_from_github_data(release_data: Dict[str, Any]) -> Release:
    """
    Create a Release object from GitHub API release data.

    Assets keep the order GitHub returns them in.

    Raises:
        ProviderTransportError: When the payload lacks a usable tag name.
    """
    tag_name = release_data.get("tag_name")
    if not isinstance(tag_name, str) or not tag_name.strip():
        raise ProviderTransportError(
            "GitHub returned a release without a tag name",
            details=str(release_data.get("url", "")),
        )

    release = Release(
        tag_name=tag_name,
        html_url=release_data.get("html_url") or "",
        name=release_data.get("name"),
        prerelease=bool(release_data.get("prerelease", False)),
        published_at=release_data.get("published_at"),
    )

    assets_data = release_data.get("assets")
    if not isinstance(assets_data, list):
        return release

    for asset_data in assets_data:
        if not isinstance(asset_data, dict):
            logger.warning("Skipping malformed asset for release %s", tag_name)
            continue
        asset_name = asset_data.get("name")
        if not isinstance(asset_name, str) or not asset_name.strip():
            logger.warning("Skipping asset with invalid name for release %s", tag_name)
            continue
        release.assets.append(
            ReleaseAsset(
                name=asset_name,
                browser_download_url=asset_data.get("browser_download_url") or "",
                size=asset_data.get("size"),
                content_type=asset_data.get("content_type"),
            )
        )

    return release


class GitHubReleaseClient(ReleaseClient):
    """
    Minimal GitHub releases API client.
    """

    def __init__(
        self,
        session: requests.Session,
        token: Optional[str] = None,
        api_base: str = GITHUB_API_BASE,
        timeout: Optional[float] = None,
    ):
        self.session = session
        self.token = token
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _repo_url(self, owner: str, repo: str) -> str:
        return f"{self.api_base}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = make_api_request(
            self.session,
            url,
            headers=self._headers(),
            params=params,
            timeout=self.timeout,
        )
        try:
            return response.json()
        except ValueError as e:
            raise ProviderTransportError(
                "GitHub returned invalid JSON", endpoint=url, details=str(e)
            ) from e

    def get_release_by_tag(self, owner: str, repo: str, tag: str) -> Release:
        url = f"{self._repo_url(owner, repo)}/releases/tags/{quote(tag, safe='')}"
        return create_release_from_github_data(self._get_json(url))

    def get_latest_release(self, owner: str, repo: str) -> Release:
        url = f"{self._repo_url(owner, repo)}/releases/latest"
        return create_release_from_github_data(self._get_json(url))

    def list_releases(
        self, owner: str, repo: str, per_page: int = 30, page: int = 1
    ) -> List[Release]:
        url = f"{self._repo_url(owner, repo)}/releases"
        data = self._get_json(url, params={"per_page": per_page, "page": page})
        if not isinstance(data, list):
            raise ProviderTransportError(
                "GitHub returned an unexpected releases payload",
                endpoint=url,
                details=f"expected list, got {type(data).__name__}",
            )
        return [
            create_release_from_github_data(item)
            for item in data
            if isinstance(item, dict)
        ]


class GitHubProvider(ReleaseProvider):
    """
    Release provider for GitHub repositories.
    """

    provider_id = GITHUB_PROVIDER_ID

    def __init__(
        self,
        url: str,
        owner: str,
        repo: str,
        tag: str = "",
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        api_base: str = GITHUB_API_BASE,
        client: Optional[ReleaseClient] = None,
    ):
        owned_session = None
        if client is None:
            if session is None:
                owned_session = requests.Session()
            client = GitHubReleaseClient(
                session or owned_session,
                token=token,
                api_base=api_base,
                timeout=timeout,
            )
        super().__init__(
            url,
            client,
            owner,
            repo,
            tag=tag,
            session=session,
            timeout=timeout,
            owned_session=owned_session,
        )

    @classmethod
    def from_url(
        cls,
        parsed_url: ParseResult,
        config: Dict[str, Any],
        session: Optional[requests.Session] = None,
    ) -> "GitHubProvider":
        """
        Build a provider from a parsed github.com or GitHub Enterprise URL.

        The token comes from GITHUB_TOKEN in config, then GITHUB_AUTH_TOKEN /
        GITHUB_TOKEN in the environment. Without one, requests are unauthenticated.
        """
        owner, repo, tag = parse_github_path(parsed_url.path)

        token = get_effective_token(
            config.get("GITHUB_TOKEN"),
            GITHUB_TOKEN_ENV_VARS,
            allow_env_token=config.get("ALLOW_ENV_TOKEN", True),
        )
        if token:
            logger.debug("Using GitHub token for API authentication")
        else:
            logger.debug("No GitHub token found - using unauthenticated API requests")

        host = (parsed_url.hostname or "").lower()
        if host in ("github.com", "www.github.com"):
            api_base = GITHUB_API_BASE
        else:
            api_base = f"{parsed_url.scheme or 'https'}://{parsed_url.netloc}/api/v3"

        return cls(
            parsed_url.geturl(),
            owner,
            repo,
            tag=tag,
            token=token,
            session=session,
            timeout=config.get("REQUEST_TIMEOUT"),
            api_base=api_base,
        )
