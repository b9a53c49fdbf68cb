# fetchers/discogs.py
import os
from typing import Any, Dict, List, Optional

import requests

from core.errors import DiscogsAPIError, FolderNotFoundError, PaginationError
from core.logger import get_logger
from core.models import Folder, Release
from core.ratelimit import RateLimiter
from core.storage import has_thumbnail, thumbnail_path

logger = get_logger(__name__)


def find_folder(folders: List[Folder], name: str) -> Folder:
    """Exact, case-sensitive match on the folder name."""
    for folder in folders:
        if folder.name == name:
            return folder
    raise FolderNotFoundError(name, [f.name for f in folders])


class DiscogsClient:
    """
    Authenticated Discogs API access. Every request goes through the shared
    RateLimiter; failures are raised as DiscogsAPIError without retrying.
    """

    def __init__(
        self,
        base_uri: str,
        auth_token: str,
        limiter: RateLimiter,
        images_dir: str,
        user_agent: str = "DiscogsCatalogReport/1.0",
        page_size: int = 100,
        max_pages: int = 200,
        currency: str = "EUR",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_uri = base_uri.rstrip("/")
        self.limiter = limiter
        self.images_dir = images_dir
        self.page_size = page_size
        self.max_pages = max_pages
        self.currency = currency
        self.timeout = timeout
        self.session = session or requests.Session()
        self.default_headers = {
            "User-Agent": user_agent,
            "Authorization": f"Discogs token={auth_token}",
        }

    def _request(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        merged = {**self.default_headers, **(headers or {})}
        logger.info(">> GET %s", url)
        try:
            resp = self.limiter.schedule(
                self.session.get, url, params=params, headers=merged, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise DiscogsAPIError(f"Request to {url} failed: {e}", url=url) from e

        if not 200 <= resp.status_code < 300:
            logger.warning("Discogs returned status %s at %s.", resp.status_code, url)
            raise DiscogsAPIError(
                f"Discogs API error {resp.status_code} at {url}: {resp.text[:200]}",
                url=url,
                status_code=resp.status_code,
            )
        return resp

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        resp = self._request(url, params=params)
        try:
            data = resp.json()
        except ValueError as e:
            raise DiscogsAPIError(f"Malformed JSON from {url}: {e}", url=url) from e
        if not isinstance(data, dict):
            raise DiscogsAPIError(f"Unexpected JSON payload from {url}", url=url)
        return data

    def get_identity(self) -> Dict[str, Any]:
        logger.info("Fetching user identity")
        identity = self._get_json(f"{self.base_uri}/oauth/identity")
        if not identity.get("username"):
            raise DiscogsAPIError("Identity response has no username")
        logger.info("User identified as '%s'", identity["username"])
        return identity

    def get_collection_folders(self, username: str) -> List[Folder]:
        logger.info("Fetching folders for user %s", username)
        data = self._get_json(f"{self.base_uri}/users/{username}/collection/folders")
        folders = [Folder.from_api(f) for f in data.get("folders", [])]
        logger.info("Found %d folders", len(folders))
        return folders

    def get_folder_releases(self, username: str, folder_id: int) -> List[Release]:
        """
        All releases of a folder, following `pagination.urls.next` until
        the current page equals the page count. Stops with PaginationError
        after `max_pages` requests or when the listing cannot advance.
        """
        logger.info("Fetching releases in folder %s", folder_id)
        url: str = f"{self.base_uri}/users/{username}/collection/folders/{folder_id}/releases"
        params: Optional[Dict[str, Any]] = {"per_page": self.page_size}

        releases: List[Release] = []
        requests_made = 0
        last_page = 0

        while True:
            if requests_made >= self.max_pages:
                raise PaginationError(
                    f"Folder {folder_id} listing exceeded {self.max_pages} pages"
                )
            logger.info("--> Fetching page %d", last_page + 1)
            data = self._get_json(url, params=params)
            requests_made += 1

            releases.extend(Release.from_api(r) for r in data.get("releases", []))

            pagination = data.get("pagination") or {}
            page = int(pagination.get("page", 1))
            pages = int(pagination.get("pages", 1))
            if page >= pages:
                break
            if page <= last_page:
                raise PaginationError(
                    f"Folder {folder_id} listing did not advance past page {page}"
                )
            next_url = (pagination.get("urls") or {}).get("next")
            if not next_url:
                raise PaginationError(
                    f"Folder {folder_id} listing page {page}/{pages} has no next URL"
                )
            last_page = page
            # next URL already carries per_page
            url, params = next_url, None

        logger.info("Found a total of %d releases", len(releases))
        return releases

    def get_release_details(self, release: Release) -> Dict[str, Any]:
        logger.info("Fetching details for release '%s' (id %s)", release.title, release.id)
        return self._get_json(
            f"{self.base_uri}/releases/{release.id}",
            params={"curr_abbr": self.currency},
        )

    def get_price_suggestion_for(self, release: Release) -> Dict[str, Any]:
        logger.info("Fetching price suggestions for '%s' (id %s)", release.title, release.id)
        return self._get_json(f"{self.base_uri}/marketplace/price_suggestions/{release.id}")

    def retrieve_thumbnail_for(self, release: Release) -> Optional[str]:
        """
        Download the release thumbnail into the image cache unless it is
        already there. Returns the cached path, or None without a thumb URL.
        """
        path = thumbnail_path(self.images_dir, release.id)
        if has_thumbnail(self.images_dir, release.id):
            logger.debug("Release thumbnail found in image cache: %s", path)
            return path
        if not release.thumb:
            logger.warning("Release '%s' (id %s) has no thumbnail URL.", release.title, release.id)
            return None

        logger.info("Fetching thumbnail for release '%s' (id %s)", release.title, release.id)
        resp = self._request(release.thumb)
        os.makedirs(self.images_dir, exist_ok=True)
        logger.info("Writing thumbnail to image cache: %s", path)
        partial = path + ".part"
        with open(partial, "wb") as f:
            f.write(resp.content)
        os.replace(partial, path)
        return path
