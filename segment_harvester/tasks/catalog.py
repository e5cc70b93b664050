"""Prefect tasks for reading and publishing the episode catalog."""
from pathlib import Path

from prefect import task
from prefect.cache_policies import NO_CACHE

from segment_harvester.catalog import CatalogDocument, load_catalog, merge, save_catalog
from segment_harvester.config import HarvestConfig
from segment_harvester.models.episode import CatalogEntry


@task(
    name="load-catalog",
    cache_policy=NO_CACHE,
    log_prints=True
)
def load_catalog_document(config: HarvestConfig) -> CatalogDocument:
    return load_catalog(config)


@task(
    name="publish-catalog",
    retries=2,
    retry_delay_seconds=5,
    cache_policy=NO_CACHE,
    log_prints=True
)
def publish_catalog(doc: CatalogDocument, new_entries: list[CatalogEntry], config: HarvestConfig) -> list[Path]:
    """
    Merge this run's entries into the catalog and write it out.

    Args:
        doc: Catalog as loaded at the start of the run
        new_entries: Entries for episodes acquired this run
        config: Output locations and format

    Returns:
        Paths written
    """
    merged = merge(doc, new_entries)
    return save_catalog(merged, config)
