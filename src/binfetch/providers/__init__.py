"""
binfetch providers

Maps repository URLs to the hosting provider that can resolve them.

Core Components:
- interfaces: release data model and the Provider / ReleaseClient contracts
- base: resolution pipeline shared by all providers
- github: GitHub releases
- gitlab: GitLab releases
"""

from typing import Any, Callable, Dict, Optional
from urllib.parse import ParseResult, urlparse

import requests

from binfetch.config import DEFAULT_CONFIG
from binfetch.constants import (
    DEFAULT_PROVIDER_HOSTS,
    GITHUB_PROVIDER_ID,
    GITLAB_PROVIDER_ID,
)
from binfetch.exceptions import MalformedReferenceError
from binfetch.log_utils import logger

from .base import ReleaseProvider, assemble_artifact, build_candidates
from .github import GitHubProvider
from .gitlab import GitLabProvider
from .interfaces import (
    AssetCandidate,
    File,
    Provider,
    Release,
    ReleaseAsset,
    ReleaseClient,
)

ProviderFactory = Callable[
    [ParseResult, Dict[str, Any], Optional[requests.Session]], Provider
]

_FACTORIES: Dict[str, ProviderFactory] = {}


def register_provider(provider_id: str, factory: ProviderFactory) -> None:
    """
    Register a factory that builds providers for `provider_id`.

    Hosts are bound to provider ids through DEFAULT_PROVIDER_HOSTS and the
    PROVIDER_HOSTS config key.
    """
    _FACTORIES[provider_id] = factory


register_provider(GITHUB_PROVIDER_ID, GitHubProvider.from_url)
register_provider(GITLAB_PROVIDER_ID, GitLabProvider.from_url)


def parse_reference(reference: str) -> ParseResult:
    """
    Parse a repository reference, assuming https:// when no scheme is given.

    Raises:
        MalformedReferenceError: If the reference is empty or has no host.
    """
    text = (reference or "").strip()
    if not text:
        raise MalformedReferenceError("Empty repository reference", url=reference)
    if "://" not in text:
        text = f"https://{text}"
    try:
        parsed = urlparse(text)
    except ValueError as e:
        raise MalformedReferenceError(
            f"Cannot parse URL {reference}", url=reference, details=str(e)
        ) from e
    if not parsed.hostname:
        raise MalformedReferenceError(f"URL {reference} has no host", url=reference)
    return parsed


def new_provider(
    reference: str,
    config: Optional[Dict[str, Any]] = None,
    session: Optional[requests.Session] = None,
) -> Provider:
    """
    Build the provider that handles `reference`, bound to its owner/repo/tag.

    Parameters:
        reference (str): Repository or release URL.
        config (Optional[Dict[str, Any]]): Loaded configuration; defaults apply when omitted.
        session (Optional[requests.Session]): Session for API calls; each provider creates its own when omitted.

    Returns:
        Provider: A provider ready to fetch() or get_latest_version().

    Raises:
        MalformedReferenceError: For unparsable URLs, unknown hosts or paths without owner and repo.
    """
    config = config if config is not None else dict(DEFAULT_CONFIG)
    parsed = parse_reference(reference)
    host = (parsed.hostname or "").lower()

    hosts = dict(DEFAULT_PROVIDER_HOSTS)
    hosts.update(
        {k.lower(): v for k, v in (config.get("PROVIDER_HOSTS") or {}).items()}
    )

    provider_id = hosts.get(host)
    if provider_id is None:
        raise MalformedReferenceError(
            f"No provider registered for host {host}",
            url=reference,
            details="add it to PROVIDER_HOSTS in the configuration",
        )
    factory = _FACTORIES.get(provider_id)
    if factory is None:
        raise MalformedReferenceError(
            f"Unknown provider {provider_id!r} configured for host {host}",
            url=reference,
        )

    try:
        provider = factory(parsed, config, session)
    except MalformedReferenceError as e:
        if e.url is None:
            e.url = reference
        raise
    logger.debug(f"Using {provider.get_id()} provider for {reference}")
    return provider


__all__ = [
    "AssetCandidate",
    "File",
    "GitHubProvider",
    "GitLabProvider",
    "Provider",
    "Release",
    "ReleaseAsset",
    "ReleaseClient",
    "ReleaseProvider",
    "assemble_artifact",
    "build_candidates",
    "new_provider",
    "parse_reference",
    "register_provider",
]
