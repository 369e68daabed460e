"""Discovers every repository the authenticated GitHub user owns or collaborates on."""

from typing import Any, AsyncIterator

import structlog
from githubkit import Response
from githubkit.exception import GitHubException, RequestFailed

from github_mirror_sync.git.commands import GitCommandError, GitRunner
from github_mirror_sync.github.client import GitHubClient
from github_mirror_sync.synchronize.exceptions import AuthError, DiscoveryError
from github_mirror_sync.synchronize.models import RepositoryDescriptor
from github_mirror_sync.utils.constants import DISCOVERY_AFFILIATION, DISCOVERY_PAGE_SIZE, DISCOVERY_VISIBILITY
from github_mirror_sync.utils.helpers import derive_repository_name, redact_url, with_credentials
from github_mirror_sync.utils.retry import retry_on_rate_limit

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def _error_message(exc: RequestFailed) -> str:
    try:
        error_data = exc.response.json()
    except Exception:
        error_data = {}
    if isinstance(error_data, dict) and error_data.get("message"):
        return str(error_data["message"])
    return f"HTTP {exc.response.status_code}"


class RepositoryDiscovery:
    """Paginates the repository listing of the authenticated user into descriptors."""

    def __init__(self, client: GitHubClient, page_size: int = DISCOVERY_PAGE_SIZE) -> None:
        """Initialize discovery with an authenticated GitHub client."""
        self.client = client
        self.page_size = page_size

    @retry_on_rate_limit()
    async def list_page(self, page: int) -> list[Any]:
        """Fetch one page of repositories."""
        response: Response[list[Any]] = await self.client.rest.repos.async_list_for_authenticated_user(
            visibility=DISCOVERY_VISIBILITY,
            affiliation=DISCOVERY_AFFILIATION,
            per_page=self.page_size,
            page=page,
        )
        return response.parsed_data or []

    async def iter_repository_pages(self) -> AsyncIterator[list[RepositoryDescriptor]]:
        """Yield the descriptors of each page until a short or empty page is returned.

        Raises:
            AuthError: If GitHub rejects the credentials.
            DiscoveryError: If any page returns an error or cannot be fetched.
        """
        page = 1
        while True:
            try:
                repositories = await self.list_page(page)
            except RequestFailed as exc:
                status_code = exc.response.status_code
                message = _error_message(exc)
                logger.error("GitHub API error while listing repositories", page=page, status_code=status_code, message=message)
                error_class = AuthError if status_code in (401, 403) else DiscoveryError
                raise error_class(message, status_code=status_code, page=page) from exc
            except GitHubException as exc:
                logger.error("Failed to reach GitHub while listing repositories", page=page, error=str(exc))
                raise DiscoveryError(str(exc), page=page) from exc

            if not repositories:
                logger.debug("Empty repository page, discovery complete", page=page)
                return

            descriptors: list[RepositoryDescriptor] = []
            for repository in repositories:
                clone_url = getattr(repository, "clone_url", None)
                if not clone_url:
                    logger.warning("Repository listing entry without a clone URL", page=page, entry=getattr(repository, "full_name", None))
                    continue
                descriptors.append(RepositoryDescriptor(name=derive_repository_name(clone_url), clone_url=clone_url))
            logger.debug("Fetched repository page", page=page, count=len(repositories))
            yield descriptors

            if len(repositories) < self.page_size:
                return
            page += 1

    async def discover_repositories(self) -> list[RepositoryDescriptor]:
        """Collect every page before returning, so a failing page discards the whole set."""
        descriptors: list[RepositoryDescriptor] = []
        async for page_descriptors in self.iter_repository_pages():
            descriptors.extend(page_descriptors)
        logger.info("Discovered GitHub repositories", count=len(descriptors))
        return descriptors


def authenticated_clone_url(descriptor: RepositoryDescriptor, github_username: str | None, github_token: str | None) -> str:
    """Return the clone URL with the source credentials embedded, so private repositories can be read."""
    if not (github_username and github_token):
        return descriptor.clone_url
    return with_credentials(descriptor.clone_url, github_username, github_token)


async def resolve_emptiness(descriptor: RepositoryDescriptor, source_url: str, git: GitRunner) -> bool:
    """List the repository's branches and tags and mark the descriptor empty if there are none.

    A repository whose refs cannot be listed is treated as empty and skipped.
    """
    try:
        ref_count = await git.count_remote_refs(source_url)
    except GitCommandError as exc:
        logger.warning("Could not list repository refs, treating as empty", repository=descriptor.name, error=str(exc))
        ref_count = 0
    descriptor.is_empty = ref_count == 0
    logger.debug("Resolved repository refs", repository=descriptor.name, ref_count=ref_count, url=redact_url(source_url))
    return descriptor.is_empty
