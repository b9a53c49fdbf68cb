# core/models.py
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional


@dataclass
class Folder:
    id: int
    name: str

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Folder":
        return cls(
            id=int(data["id"]),
            name=str(data.get("name", "")),
        )


@dataclass
class Release:
    """
    One entry of a collection folder listing, reduced to the fields
    enrichment needs.
    """
    id: int
    title: str = ""
    thumb: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Release":
        basic = data.get("basic_information") or {}
        return cls(
            id=int(data["id"]),
            title=str(basic.get("title") or ""),
            thumb=str(basic.get("thumb") or ""),
        )


@dataclass
class ReportRow:
    """
    Flattened release details plus the computed average price. This is the
    value stored in the release cache, keyed by release id.
    """
    id: int
    artist: str
    title: str
    label: str = ""
    catno: str = ""
    released: str = ""
    genres: str = ""
    rating: Optional[float] = None
    uri: str = ""
    average_price_suggestion: Optional[float] = None
    lowest_price: Optional[float] = None

    @classmethod
    def from_details(
        cls, details: Dict[str, Any], average_price: Optional[float]
    ) -> "ReportRow":
        labels: List[Dict[str, Any]] = details.get("labels") or []
        first_label = labels[0] if labels else {}
        rating = details.get("rating")
        if rating is None:
            community = details.get("community") or {}
            rating = (community.get("rating") or {}).get("average")
        lowest = details.get("lowest_price")
        return cls(
            id=int(details["id"]),
            artist=str(details.get("artists_sort") or ""),
            title=str(details.get("title") or ""),
            label=str(first_label.get("name") or ""),
            catno=str(first_label.get("catno") or ""),
            released=str(details.get("released") or ""),
            genres="/".join(details.get("genres") or []),
            rating=rating,
            uri=str(details.get("uri") or ""),
            average_price_suggestion=average_price,
            lowest_price=float(lowest) if lowest is not None else None,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReportRow":
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def year(self) -> str:
        return self.released[:4] if self.released else ""


@dataclass
class CatalogTotals:
    average_price: float = 0.0
    lowest_price: float = 0.0
    processed: int = 0
    from_cache: int = 0
    fetched: int = 0


@dataclass
class CatalogResult:
    username: str
    folder: Folder
    rows: List[ReportRow]
    totals: CatalogTotals
    total_releases: int = 0
