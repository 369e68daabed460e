"""Minimal GitLab REST client for provisioning mirror projects."""

from types import TracebackType
from typing import Any, Self

import httpx
import structlog

from github_mirror_sync.synchronize.exceptions import ProvisionFailure
from github_mirror_sync.synchronize.models import ProvisionOutcome
from github_mirror_sync.utils.constants import GITLAB_EXISTS_STATUS_CODES, GITLAB_PROJECT_VISIBILITY

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class GitLabClient:
    """GitLab API client authenticated with a private token."""

    def __init__(self, api_url: str, token: str, transport: httpx.AsyncBaseTransport | None = None, timeout: float = 30.0) -> None:
        """Initialize the client; transport can be swapped for testing."""
        self.api_url = api_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            headers={"PRIVATE-TOKEN": token},
            transport=transport,
            timeout=timeout,
        )

    async def __aenter__(self) -> Self:
        """Enter the async context."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the underlying HTTP client."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def ensure_project(self, name: str, visibility: str = GITLAB_PROJECT_VISIBILITY) -> ProvisionOutcome:
        """Create a project, treating "already exists" as success.

        Returns:
            ProvisionOutcome.CREATED on a 2xx response, ProvisionOutcome.REUSED when the name is taken.

        Raises:
            ProvisionFailure: For any other response or a transport error.
        """
        try:
            response = await self._client.post("/projects", data={"name": name, "visibility": visibility})
        except httpx.HTTPError as exc:
            logger.error("GitLab project creation request failed", project=name, error=str(exc))
            raise ProvisionFailure(name, f"request failed: {exc}") from exc

        if response.is_success:
            logger.info("GitLab project created", project=name, status_code=response.status_code)
            return ProvisionOutcome.CREATED
        if response.status_code in GITLAB_EXISTS_STATUS_CODES:
            logger.info("GitLab project already exists", project=name, status_code=response.status_code)
            return ProvisionOutcome.REUSED

        message = _response_message(response)
        logger.error("GitLab project creation failed", project=name, status_code=response.status_code, message=message)
        raise ProvisionFailure(name, f"HTTP {response.status_code}: {message}", status_code=response.status_code)

    async def get_current_user(self) -> dict[str, Any] | None:
        """Return the authenticated user, or None if the token is rejected or GitLab is unreachable."""
        try:
            response = await self._client.get("/user")
        except httpx.HTTPError as exc:
            logger.warning("GitLab connectivity check failed", error=str(exc))
            return None
        if not response.is_success:
            logger.warning("GitLab rejected the configured token", status_code=response.status_code)
            return None
        return response.json()


def _response_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error")
        if message is not None:
            return str(message)
    return str(payload)[:200]
