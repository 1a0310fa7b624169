"""lakeFS REST client for listing and looking up objects on a branch."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import requests

from lakecleaner.errors import RemoteListError, RemoteNotFound
from lakecleaner.models import ObjectItem, ObjectListing

if TYPE_CHECKING:
    from lakecleaner.config import LakeFsConfig

logger = logging.getLogger(__name__)


class LakeFsClient:
    """Thin client over the lakeFS objects API.

    Only the two calls the compaction loop needs are exposed: paginated
    listing and stat by exact path. Nothing is retried.
    """

    def __init__(self, config: LakeFsConfig, session: requests.Session | None = None) -> None:
        """Initialize the client.

        Args:
            config: lakeFS connection settings.
            session: Optional pre-built requests session (mainly for tests).
        """
        self._config = config
        self._session = session or requests.Session()
        self._session.auth = (config.access_key, config.secret_key)
        self._session.headers.setdefault("Accept", "application/json")

    def _objects_url(self, repo: str, branch: str, action: str) -> str:
        return (
            f"{self._config.api_url}/repositories/{quote(repo, safe='')}"
            f"/refs/{quote(branch, safe='')}/objects/{action}"
        )

    def _get(self, url: str, params: dict[str, Any]) -> requests.Response:
        return self._session.get(url, params=params, timeout=self._config.timeout_seconds)

    def list_objects(
        self,
        repo: str,
        branch: str,
        amount: int,
        after: str = "",
        prefix: str = "",
    ) -> ObjectListing:
        """List up to ``amount`` objects on a branch.

        Args:
            repo: Repository name.
            branch: Branch (or any ref) name.
            amount: Maximum number of objects to return.
            after: Return only objects whose path sorts after this value.
            prefix: Return only objects under this path prefix.

        Returns:
            ObjectListing holding the page of results.

        Raises:
            RemoteListError: On network, auth or API failure.
        """
        params: dict[str, Any] = {"amount": amount}
        if after:
            params["after"] = after
        if prefix:
            params["prefix"] = prefix

        url = self._objects_url(repo, branch, "ls")
        try:
            response = self._get(url, params)
            response.raise_for_status()
            payload = response.json()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            msg = f"Listing {repo}/{branch} failed: {e}"
            raise RemoteListError(msg, status_code=status) from e
        except (requests.RequestException, ValueError) as e:
            msg = f"Listing {repo}/{branch} failed: {e}"
            raise RemoteListError(msg) from e

        pagination = payload.get("pagination") or {}
        listing = ObjectListing(
            results=[ObjectItem.from_api(item) for item in payload.get("results", [])],
            has_more=bool(pagination.get("has_more", False)),
            next_offset=pagination.get("next_offset", ""),
        )
        logger.info("Listed %d object(s) on %s/%s", len(listing.results), repo, branch)
        logger.debug("Listed paths: %s", listing.paths)
        return listing

    def list(self, repo: str, branch: str, amount: int) -> list[ObjectItem]:
        """Return up to ``amount`` objects on a branch, starting from the first."""
        return self.list_objects(repo, branch, amount).results

    def get_by_name(self, repo: str, branch: str, name: str) -> ObjectItem:
        """Look up a single object by its exact path.

        Raises:
            RemoteNotFound: If the object does not exist.
            RemoteListError: On any other failure.
        """
        url = self._objects_url(repo, branch, "stat")
        try:
            response = self._get(url, {"path": name})
        except requests.RequestException as e:
            msg = f"Stat of {repo}/{branch}/{name} failed: {e}"
            raise RemoteListError(msg) from e

        if response.status_code == 404:  # noqa: PLR2004
            msg = f"Object not found: {repo}/{branch}/{name}"
            raise RemoteNotFound(msg, status_code=404)

        try:
            response.raise_for_status()
            return ObjectItem.from_api(response.json())
        except requests.HTTPError as e:
            msg = f"Stat of {repo}/{branch}/{name} failed: {e}"
            raise RemoteListError(msg, status_code=response.status_code) from e
        except ValueError as e:
            msg = f"Stat of {repo}/{branch}/{name} returned invalid JSON: {e}"
            raise RemoteListError(msg) from e
