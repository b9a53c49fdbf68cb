import json
from typing import Optional

from core.config import Settings, load_config
from core.errors import CatalogError
from core.logger import enable_debug, get_logger
from core.models import CatalogResult, CatalogTotals, Release, ReportRow
from core.pricing import add_to_totals, average_price
from core.ratelimit import RateLimiter
from core.report_html import build_html_report, copy_thumbnails, write_report
from core.storage import ReleaseCache
from fetchers.discogs import DiscogsClient, find_folder

logger = get_logger(__name__)


def enrich_release(client: DiscogsClient, release: Release, settings: Settings) -> ReportRow:
    details = client.get_release_details(release)
    suggestions = client.get_price_suggestion_for(release)
    avg = average_price(suggestions, settings.include_conditions)
    if avg is None:
        logger.warning(
            "No price suggestions for '%s' (id %s); average price left empty.",
            release.title, release.id,
        )

    client.retrieve_thumbnail_for(release)
    return ReportRow.from_details(details, avg)


def build_catalog(
    client: DiscogsClient, cache: ReleaseCache, settings: Settings
) -> CatalogResult:
    """
    identity -> folder -> releases -> per-release enrichment.
    Cached rows are reused as-is; fresh rows are written to the cache.
    Only the first `max_releases` releases of the folder are processed.
    """
    identity = client.get_identity()
    username = identity["username"]

    folders = client.get_collection_folders(username)
    folder = find_folder(folders, settings.folder_name)
    logger.info("Using folder '%s' (id %s)", folder.name, folder.id)

    releases = client.get_folder_releases(username, folder.id)
    to_process = releases[: settings.max_releases]
    if len(releases) > len(to_process):
        logger.info(
            "Processing the first %d of %d releases.", len(to_process), len(releases)
        )

    rows = []
    totals = CatalogTotals()

    for release in to_process:
        row = cache.get(release.id)
        from_cache = row is not None
        if from_cache:
            logger.info("Release '%s' (id %s) found in cache.", release.title, release.id)
        else:
            row = enrich_release(client, release, settings)
            logger.info("Saving result item with cache key %s", release.id)
            cache.set(release.id, row)
            if settings.flush_each_item:
                cache.save()

        add_to_totals(totals, row, from_cache)
        rows.append(row)

    return CatalogResult(
        username=username,
        folder=folder,
        rows=rows,
        totals=totals,
        total_releases=len(releases),
    )


def render_catalog(result: CatalogResult, settings: Settings) -> str:
    html = build_html_report(
        result.rows,
        result.totals,
        folder_name=result.folder.name,
        username=result.username,
        currency=settings.currency,
        total_releases=result.total_releases,
    )
    copy_thumbnails(settings.images_dir, settings.output_dir)
    return write_report(html, settings.output_dir)


def run(
    settings: Optional[Settings] = None,
    client: Optional[DiscogsClient] = None,
    cache: Optional[ReleaseCache] = None,
) -> int:
    try:
        settings = settings or load_config()
    except CatalogError as e:
        logger.error("Configuration error: %s", e)
        return 1

    if settings.debug:
        enable_debug()
    logger.debug("Configuration: %s", json.dumps(settings.redacted(), indent=2))

    if client is None:
        client = DiscogsClient(
            base_uri=settings.base_uri,
            auth_token=settings.auth_token,
            limiter=RateLimiter(settings.limiter_time),
            images_dir=settings.images_dir,
            user_agent=settings.user_agent,
            page_size=settings.page_size,
            max_pages=settings.max_pages,
            currency=settings.currency,
            timeout=settings.request_timeout,
        )
    if cache is None:
        cache = ReleaseCache(settings.cache_db_path).load()

    try:
        result = build_catalog(client, cache, settings)
    except CatalogError as e:
        logger.error("Catalog run failed: %s", e)
        return 1
    finally:
        # rows finished before a failure are kept
        cache.save()

    logger.debug("Results: %s", json.dumps([r.to_dict() for r in result.rows], indent=2))

    render_catalog(result, settings)

    logger.info(
        "Processed %d releases (%d from cache, %d fetched).",
        result.totals.processed, result.totals.from_cache, result.totals.fetched,
    )
    logger.info("Total avg price for folder: %.2f %s", result.totals.average_price, settings.currency)
    logger.info("Total lowest for folder: %.2f %s", result.totals.lowest_price, settings.currency)
    return 0


def main() -> None:
    try:
        raise SystemExit(run())
    except Exception as e:
        logger.exception("Fatal catalog error: %s", e)
        raise SystemExit(2)


if __name__ == "__main__":
    main()
