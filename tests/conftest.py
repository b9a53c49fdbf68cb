import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pytest

from core.config import Settings
from core.ratelimit import RateLimiter
from core.storage import ReleaseCache
from fetchers.discogs import DiscogsClient

BASE = "https://api.discogs.test"
USERNAME = "crate_digger"
FOLDER_ID = 7
FOLDER_NAME = "Vinyl"
INCLUDE = ["Mint (M)", "Very Good (VG)"]


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, content: bytes = b""):
        self._payload = payload
        self.status_code = status_code
        self.content = content

    @property
    def text(self) -> str:
        return repr(self._payload) if self._payload is not None else ""

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


@dataclass
class Call:
    url: str
    params: Optional[Dict[str, Any]]
    headers: Dict[str, str]


class FakeSession:
    """Stands in for requests.Session; unknown URLs answer 404."""

    def __init__(self, routes: Dict[str, Any] | None = None):
        self.routes: Dict[str, Any] = dict(routes or {})
        self.calls: List[Call] = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append(Call(url, params, dict(headers or {})))
        route = self.routes.get(url)
        if route is None:
            return FakeResponse({"message": "The requested resource was not found."}, 404)
        if isinstance(route, Exception):
            raise route
        return route

    @property
    def urls(self) -> List[str]:
        return [c.url for c in self.calls]

    def count(self, fragment: str) -> int:
        return sum(1 for u in self.urls if fragment in u)


def release_payload(release_id: int) -> Dict[str, Any]:
    return {
        "id": release_id,
        "basic_information": {
            "title": f"Title {release_id}",
            "thumb": f"{BASE}/thumbs/{release_id}.jpg",
        },
    }


def details_payload(release_id: int) -> Dict[str, Any]:
    return {
        "id": release_id,
        "title": f"Title {release_id}",
        "artists_sort": f"Artist {release_id}",
        "labels": [{"name": "Blue Note", "catno": f"BN-{release_id}"}],
        "released": "1964-08-01",
        "genres": ["Jazz", "Soul"],
        "rating": 4.5,
        "uri": f"https://www.discogs.com/release/{release_id}",
        "lowest_price": 5.0 + release_id,
    }


def suggestions_payload() -> Dict[str, Any]:
    # (30 + 10) / 3 -> 13.33 with INCLUDE
    return {
        "Mint (M)": {"currency": "EUR", "value": 30.0},
        "Very Good (VG)": {"currency": "EUR", "value": 10.0},
        "Poor (P)": {"currency": "EUR", "value": 2.0},
    }


def listing_url(folder_id: int = FOLDER_ID) -> str:
    return f"{BASE}/users/{USERNAME}/collection/folders/{folder_id}/releases"


def listing_routes(release_ids: List[int], per_page: int, folder_id: int = FOLDER_ID) -> Dict[str, Any]:
    first = listing_url(folder_id)
    pages = max(1, math.ceil(len(release_ids) / per_page))
    routes: Dict[str, Any] = {}
    for page in range(1, pages + 1):
        chunk = release_ids[(page - 1) * per_page : page * per_page]
        urls = {}
        if page < pages:
            urls["next"] = f"{first}?page={page + 1}&per_page={per_page}"
        payload = {
            "pagination": {"page": page, "pages": pages, "per_page": per_page, "urls": urls},
            "releases": [release_payload(i) for i in chunk],
        }
        url = first if page == 1 else f"{first}?page={page}&per_page={per_page}"
        routes[url] = FakeResponse(payload)
    return routes


def discogs_routes(release_ids: List[int], per_page: int = 10) -> Dict[str, Any]:
    routes: Dict[str, Any] = {
        f"{BASE}/oauth/identity": FakeResponse({"id": 1, "username": USERNAME}),
        f"{BASE}/users/{USERNAME}/collection/folders": FakeResponse(
            {
                "folders": [
                    {"id": 0, "name": "All", "count": len(release_ids)},
                    {"id": FOLDER_ID, "name": FOLDER_NAME, "count": len(release_ids)},
                ]
            }
        ),
    }
    routes.update(listing_routes(release_ids, per_page))
    for i in release_ids:
        routes[f"{BASE}/releases/{i}"] = FakeResponse(details_payload(i))
        routes[f"{BASE}/marketplace/price_suggestions/{i}"] = FakeResponse(suggestions_payload())
        routes[f"{BASE}/thumbs/{i}.jpg"] = FakeResponse(content=b"\xff\xd8jpeg-" + str(i).encode())
    return routes


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        auth_token="s3cret",
        folder_name=FOLDER_NAME,
        base_uri=BASE,
        page_size=10,
        include_conditions=list(INCLUDE),
        cache_dir=str(tmp_path / "cache"),
        output_dir=str(tmp_path / "dist"),
    )


@pytest.fixture
def make_client(settings):
    def _make(session: FakeSession, **overrides) -> DiscogsClient:
        kwargs = dict(
            base_uri=settings.base_uri,
            auth_token=settings.auth_token,
            limiter=RateLimiter(0),
            images_dir=settings.images_dir,
            page_size=settings.page_size,
            max_pages=settings.max_pages,
            currency=settings.currency,
            session=session,
        )
        kwargs.update(overrides)
        return DiscogsClient(**kwargs)

    return _make


@pytest.fixture
def cache(settings) -> ReleaseCache:
    return ReleaseCache(settings.cache_db_path).load()
