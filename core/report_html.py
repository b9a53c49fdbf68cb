import os
import shutil
from pathlib import Path
from typing import List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from core.logger import get_logger
from core.models import CatalogTotals, ReportRow
from core.storage import now_utc_iso

logger = get_logger(__name__)

# Resolve template directory relative to this file
TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)

REPORT_FILENAME = "catalog.html"

REPORT_THEME = os.getenv("REPORT_THEME", "light").strip().lower()
if REPORT_THEME not in ("light", "dark"):
    REPORT_THEME = "light"

THEMES = {
    "light": {
        "page_bg": "#f5f5f5",
        "card_bg": "#ffffff",
        "card_border": "#e0e0e0",
        "text_primary": "#202124",
        "text_secondary": "#555",
        "text_muted": "#999",
        "link_color": "#1a73e8",
    },
    "dark": {
        "page_bg": "#121212",
        "card_bg": "#1E1E1E",
        "card_border": "#333333",
        "text_primary": "#F1F1F1",
        "text_secondary": "#BBBBBB",
        "text_muted": "#777777",
        "link_color": "#8AB4F8",
    },
}

CURRENCY_SYMBOLS = {"EUR": "€", "USD": "$", "GBP": "£", "JPY": "¥"}


def _price_to_str(value: Optional[float], currency: str = "EUR") -> str:
    if value is None:
        return "–"
    sym = CURRENCY_SYMBOLS.get(currency)
    if sym:
        return f"{value:.2f} {sym}"
    return f"{value:.2f} {currency}"


def build_html_report(
    rows: List[ReportRow],
    totals: CatalogTotals,
    folder_name: str = "",
    username: str = "",
    currency: str = "EUR",
    total_releases: int | None = None,
    theme: str | None = None,
) -> str:
    theme = theme if theme in THEMES else REPORT_THEME
    template = env.get_template(REPORT_FILENAME)
    colors = THEMES[theme]

    row_data = [
        {
            "id": row.id,
            "image_src": f"images/{row.id}.jpg",
            "artist": row.artist,
            "title": row.title,
            "label": row.label,
            "catno": row.catno,
            "year": row.year,
            "genres": row.genres,
            "rating": row.rating,
            "uri": row.uri,
            "average_price_str": _price_to_str(row.average_price_suggestion, currency),
            "lowest_price_str": _price_to_str(row.lowest_price, currency),
        }
        for row in rows
    ]

    ctx = {
        "title": f"{folder_name} – Discogs catalog" if folder_name else "Discogs catalog",
        "folder_name": folder_name,
        "username": username,
        "rows": row_data,
        "total_average_str": _price_to_str(totals.average_price, currency),
        "total_lowest_str": _price_to_str(totals.lowest_price, currency),
        "processed": totals.processed,
        "total_releases": total_releases if total_releases is not None else totals.processed,
        "generated_at": now_utc_iso(),
        "colors": colors,
    }

    return template.render(**ctx)


def write_report(html: str, output_dir: str) -> str:
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, REPORT_FILENAME)
    with open(path, "w", encoding="utf-8") as f:
        f.write(html)
    logger.info("Wrote catalog report to %s", path)
    return path


def copy_thumbnails(images_dir: str, output_dir: str) -> str:
    """Copy the image cache to <output_dir>/images, keeping symlinks as links."""
    target = os.path.join(output_dir, "images")
    if not os.path.isdir(images_dir):
        logger.warning("Image cache %s does not exist; no thumbnails copied.", images_dir)
        os.makedirs(target, exist_ok=True)
        return target
    logger.info("Copying cached thumbnail images to %s", target)
    # os.symlink cannot overwrite, so links from a previous run go first
    if os.path.isdir(target):
        for name in os.listdir(images_dir):
            dst = os.path.join(target, name)
            if os.path.islink(dst):
                os.unlink(dst)
    shutil.copytree(
        images_dir,
        target,
        symlinks=True,
        dirs_exist_ok=True,
        ignore=shutil.ignore_patterns("*.part"),
    )
    return target
