"""
GitLab Release Provider

Resolves gitlab.com (and self-hosted GitLab) project URLs through the
GitLab REST API v4. Release links take the place of GitHub's assets.
"""

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import ParseResult, quote, unquote

import requests

from binfetch.config import get_effective_token
from binfetch.constants import (
    GITLAB_API_PATH,
    GITLAB_PROVIDER_ID,
    GITLAB_TOKEN_ENV_VARS,
)
from binfetch.exceptions import MalformedReferenceError, ProviderTransportError
from binfetch.log_utils import logger
from binfetch.utils import make_api_request

from .base import ReleaseProvider
from .interfaces import Release, ReleaseAsset, ReleaseClient


def parse_gitlab_path(path: str) -> Tuple[str, str, str]:
    """
    Split a GitLab URL path into namespace, project and pinned tag.

    The project path is everything before the "-" separator segment; nested
    groups are allowed. Below `-/releases/` the next segment is the tag,
    except for the `permalink` pseudo-segment.

    Examples:
      '/group/project' -> ('group', 'project', '')
      '/group/sub/project/-/releases/v1.0' -> ('group/sub', 'project', 'v1.0')
      '/group/project/-/releases/v1.0/downloads/tool' -> ('group', 'project', 'v1.0')

    Raises:
        MalformedReferenceError: If the project path has fewer than two segments.
    """
    segments = [s for s in path.split("/") if s]
    if "-" in segments:
        separator = segments.index("-")
        project, extra = segments[:separator], segments[separator + 1 :]
    else:
        project, extra = segments, []

    if len(project) < 2:
        raise MalformedReferenceError(
            f"Error parsing GitLab URL path {path!r}, can't find namespace and project"
        )

    tag = ""
    if len(extra) >= 2 and extra[0] == "releases" and extra[1] != "permalink":
        tag = unquote(extra[1])

    return "/".join(project[:-1]), project[-1], tag


def create_release_from_gitlab_data(release_data: Dict[str, Any]) -> Release:
    """
    Create a Release object from GitLab API release data.

    Only release links become assets; the generated source archives GitLab
    lists under `assets.sources` are never binaries.

    Raises:
        ProviderTransportError: When the payload lacks a usable tag name.
    """
    tag_name = release_data.get("tag_name")
    if not isinstance(tag_name, str) or not tag_name.strip():
        raise ProviderTransportError("GitLab returned a release without a tag name")

    links = release_data.get("_links") or {}
    release = Release(
        tag_name=tag_name,
        html_url=links.get("self") or "",
        name=release_data.get("name"),
        prerelease=bool(release_data.get("upcoming_release", False)),
        published_at=release_data.get("released_at"),
    )

    assets = release_data.get("assets") or {}
    for link in assets.get("links") or []:
        if not isinstance(link, dict):
            logger.warning("Skipping malformed asset link for release %s", tag_name)
            continue
        name = link.get("name")
        url = link.get("direct_asset_url") or link.get("url")
        if not isinstance(name, str) or not name.strip() or not url:
            logger.warning("Skipping asset link with invalid name for release %s", tag_name)
            continue
        release.assets.append(ReleaseAsset(name=name, browser_download_url=url))

    return release


class GitLabReleaseClient(ReleaseClient):
    """
    Minimal GitLab releases API client.
    """

    def __init__(
        self,
        session: requests.Session,
        base_url: str,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.session = session
        self.api_base = f"{base_url.rstrip('/')}{GITLAB_API_PATH}"
        self.token = token
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        if self.token:
            return {"PRIVATE-TOKEN": self.token}
        return {}

    def _project_url(self, owner: str, repo: str) -> str:
        return f"{self.api_base}/projects/{quote(f'{owner}/{repo}', safe='')}"

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
                "GitLab returned invalid JSON", endpoint=url, details=str(e)
            ) from e

    def get_release_by_tag(self, owner: str, repo: str, tag: str) -> Release:
        url = f"{self._project_url(owner, repo)}/releases/{quote(tag, safe='')}"
        return create_release_from_gitlab_data(self._get_json(url))

    def get_latest_release(self, owner: str, repo: str) -> Release:
        url = f"{self._project_url(owner, repo)}/releases/permalink/latest"
        return create_release_from_gitlab_data(self._get_json(url))

    def list_releases(
        self, owner: str, repo: str, per_page: int = 30, page: int = 1
    ) -> List[Release]:
        url = f"{self._project_url(owner, repo)}/releases"
        params = {
            "per_page": per_page,
            "page": page,
            "order_by": "released_at",
            "sort": "desc",
        }
        data = self._get_json(url, params=params)
        if not isinstance(data, list):
            raise ProviderTransportError(
                "GitLab returned an unexpected releases payload",
                endpoint=url,
                details=f"expected list, got {type(data).__name__}",
            )
        return [
            create_release_from_gitlab_data(item)
            for item in data
            if isinstance(item, dict)
        ]


class GitLabProvider(ReleaseProvider):
    """
    Release provider for GitLab projects.
    """

    provider_id = GITLAB_PROVIDER_ID

    def __init__(
        self,
        url: str,
        owner: str,
        repo: str,
        tag: str = "",
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        base_url: str = "https://gitlab.com",
        client: Optional[ReleaseClient] = None,
    ):
        owned_session = None
        if client is None:
            if session is None:
                owned_session = requests.Session()
            client = GitLabReleaseClient(
                session or owned_session, base_url, token=token, timeout=timeout
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
    ) -> "GitLabProvider":
        """
        Build a provider from a parsed GitLab URL.

        The token comes from GITLAB_TOKEN in config, then in the environment.
        """
        owner, repo, tag = parse_gitlab_path(parsed_url.path)

        token = get_effective_token(
            config.get("GITLAB_TOKEN"),
            GITLAB_TOKEN_ENV_VARS,
            allow_env_token=config.get("ALLOW_ENV_TOKEN", True),
        )
        if token:
            logger.debug("Using GitLab token for API authentication")
        else:
            logger.debug("No GitLab token found - using unauthenticated API requests")

        return cls(
            parsed_url.geturl(),
            owner,
            repo,
            tag=tag,
            token=token,
            session=session,
            timeout=config.get("REQUEST_TIMEOUT"),
            base_url=f"{parsed_url.scheme or 'https'}://{parsed_url.netloc}",
        )
