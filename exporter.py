# Orchestrates one export run: pages -> assets -> archive
import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum

import constants
from archive_packager import create_archive, write_mailer_files
from asset_registry import AssetKind, AssetRegistry, AssetStatus, FOUND_IN_PAGE, font_icon_suppressor
from content_source import discover_pages
from css_processor import combine_stylesheets, rewrite_css
from errors import ExportError
from fetchers.site_client import fetch_asset, fetch_page
from file_handler import choose_archive_path, prepare_export_directory, remove_directory, save_file
from html_processor import process_page
from logger_setup import attach_progress_log, detach_progress_log
from path_utils import LinkRenderer, is_internal, page_save_path, strip_fragment

logger = logging.getLogger(__name__)


class JobState(Enum):
    PREPARING = "preparing"
    DISCOVERING = "discovering"
    PROCESSING_PAGES = "processing_pages"
    DOWNLOADING_STYLESHEETS = "downloading_stylesheets"
    DOWNLOADING_ASSETS = "downloading_assets"
    GENERATING_EXTRAS = "generating_extras"
    PACKAGING = "packaging"
    DONE = "done"
    FAILED = "failed"


@dataclass
class Page:
    url: str
    save_path: str
    processed: bool = False


@dataclass
class ExportResult:
    success: bool
    archive_path: str
    state: JobState
    progress: list = field(default_factory=list)
    pages_exported: int = 0
    assets_downloaded: int = 0


def _page_key(url):
    """Pages are matched ignoring the fragment and a trailing slash."""
    return strip_fragment(url).rstrip('/')


class ExportJob:
    """Everything one export run knows, passed explicitly to every stage."""

    def __init__(self, config):
        self.config = config
        self.site_url = config['site_url']
        self.options = config['options']
        self.renderer = LinkRenderer(self.options)
        suppress = font_icon_suppressor if self.options.use_font_icon_cdn else None
        self.registry = AssetRegistry(self.site_url, suppress=suppress)
        self.pages = []
        self.processed_urls = set()
        self.css_chunks = []
        self.output_dir = None
        self.archive_path = None
        self.state = JobState.PREPARING
        self.progress = []
        self._page_index = {}

    def add_page(self, url):
        """Adds a page unless an equivalent URL is already listed. Returns the Page or None."""
        key = _page_key(url)
        if key in self._page_index:
            return None
        page = Page(url=url, save_path=page_save_path(url, self.site_url))
        self.pages.append(page)
        self._page_index[key] = page
        return page

    def page_save_path_for(self, url):
        page = self._page_index.get(_page_key(url))
        return page.save_path if page else None

    def transition(self, state):
        self.state = state
        logger.info(f"Export state: {state.value}")


# --- Stages ---
def discover(job):
    logger.info("Discovering URLs...")
    job.add_page(job.site_url)
    for url in discover_pages(job.config):
        url = strip_fragment(url)
        if not is_internal(url, job.site_url):
            logger.warning(f"Ignoring page outside the site: {url}")
            continue
        job.add_page(url)
    logger.info(f"Found {len(job.pages)} URLs to process.")


def process_pages(job):
    for page in job.pages:
        if page.url in job.processed_urls:
            continue
        job.processed_urls.add(page.url)
        logger.info(f"Processing URL: {page.url}")

        html_content = fetch_page(page.url, config=job.config)
        if html_content is None:
            logger.warning(f"Skipping {page.url}: page could not be fetched.")
            continue

        rewritten = process_page(html_content, page.url, page.save_path, job)
        if save_file(job.output_dir, page.save_path, rewritten):
            page.processed = True

    logger.info(f"Found {job.registry.count(AssetKind.OTHER)} unique non-CSS assets to download initially.")
    logger.info(f"Found {job.registry.count(AssetKind.STYLESHEET)} unique CSS assets to process.")


def download_stylesheets(job):
    """Fetches and rewrites stylesheets, including ones @import-ed by other stylesheets."""
    combine = job.options.optimize_output
    for asset in job.registry.drain(AssetKind.STYLESHEET):
        logger.info(f"Fetching CSS: {asset.url}")
        content = fetch_asset(asset.url, config=job.config)
        if content is None:
            logger.error(f"Error fetching CSS {asset.url}. Skipping.")
            continue

        css_text = content.decode('utf-8-sig', errors='replace')
        if combine and asset.discovered_in == FOUND_IN_PAGE:
            # References are rewritten relative to the combined file, where the text ends up
            processed = rewrite_css(css_text, asset.url, constants.COMBINED_CSS_PATH, job)
            job.css_chunks.append((asset.url, processed))
            asset.status = AssetStatus.DOWNLOADED
            if not asset.imported:
                continue
            # An @import elsewhere still points at the stylesheet's own file

        processed = rewrite_css(css_text, asset.url, asset.save_path, job)
        if save_file(job.output_dir, asset.save_path, processed):
            asset.status = AssetStatus.DOWNLOADED

    if job.css_chunks:
        logger.info(f"Saving combined CSS to: {constants.COMBINED_CSS_PATH}")
        save_file(job.output_dir, constants.COMBINED_CSS_PATH, combine_stylesheets(job.css_chunks))
    logger.info(f"Finished processing CSS. Processed {job.registry.count(AssetKind.STYLESHEET, AssetStatus.DOWNLOADED)} files.")


def _download_asset(job, asset):
    logger.info(f"Downloading asset: {asset.url}")
    content = fetch_asset(asset.url, config=job.config)
    if content is None:
        logger.error(f"Error downloading {asset.url}. Skipping.")
        return False
    if save_file(job.output_dir, asset.save_path, content):
        asset.status = AssetStatus.DOWNLOADED
        return True
    return False


def download_assets(job):
    """Drains the non-stylesheet worklist with a bounded pool of download workers."""
    logger.info(f"Attempting to download {job.registry.pending_count(AssetKind.OTHER)} discovered assets...")
    max_workers = job.config.get('max_workers', constants.DEFAULT_MAX_WORKERS)
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        while True:
            batch = job.registry.claim_all(AssetKind.OTHER)
            if not batch:
                break
            futures = {pool.submit(_download_asset, job, asset): asset for asset in batch}
            for future in as_completed(futures):
                try:
                    future.result()
                finally:
                    job.registry.complete(futures[future])
    logger.info(f"Finished downloading discovered assets. Downloaded {job.registry.count(AssetKind.OTHER, AssetStatus.DOWNLOADED)} assets.")


def generate_extras(job):
    if job.options.generate_404:
        logger.info("Generating default 404.html page...")
        save_file(job.output_dir, constants.NOT_FOUND_PAGE_PATH, constants.NOT_FOUND_HTML)


def package(job):
    if job.options.convert_forms:
        if not write_mailer_files(job.output_dir, job.options.recipient_email):
            logger.error("Error: Could not write the PHP mailer files into the export.")
    create_archive(job.output_dir, job.archive_path)


def _cleanup_failed(job):
    remove_directory(job.output_dir)
    if job.archive_path and os.path.exists(job.archive_path):
        os.remove(job.archive_path)
        logger.info(f"Removed ZIP file: {job.archive_path}")


def _fail(job):
    _cleanup_failed(job)
    job.transition(JobState.FAILED)
    return ExportResult(success=False, archive_path=None, state=job.state, progress=job.progress)


def _log_options(options):
    def enabled(flag):
        return 'Enabled' if flag else 'Disabled'
    logger.info(f"Optimize Output mode: {enabled(options.optimize_output)}")
    logger.info(f"Use Font Awesome CDN: {enabled(options.use_font_icon_cdn)}")
    logger.info(f"Convert Forms to PHP Mailer: {enabled(options.convert_forms)}")
    if options.convert_forms:
        logger.info(f"Form Recipient Email: {options.recipient_email}")
    logger.info(f"URL Rewriting Mode: {options.url_rewrite_mode}")


def run_export(config):
    """
    Runs a complete export for a loaded configuration.

    Returns:
        ExportResult: always carries the full progress log, on success and on failure.
    """
    job = ExportJob(config)
    handler = attach_progress_log(job.progress)
    try:
        logger.info("Starting export process...")
        _log_options(job.options)
        try:
            job.transition(JobState.PREPARING)
            job.output_dir = prepare_export_directory(config.get('work_dir'))
            job.archive_path = choose_archive_path(config.get('archive_dir', constants.DEFAULT_ARCHIVE_DIR))

            job.transition(JobState.DISCOVERING)
            discover(job)

            job.transition(JobState.PROCESSING_PAGES)
            process_pages(job)

            job.transition(JobState.DOWNLOADING_STYLESHEETS)
            download_stylesheets(job)

            job.transition(JobState.DOWNLOADING_ASSETS)
            download_assets(job)

            job.transition(JobState.GENERATING_EXTRAS)
            generate_extras(job)

            job.transition(JobState.PACKAGING)
            package(job)
        except ExportError as e:
            logger.error(f"Error: {e}")
            return _fail(job)
        except Exception as e:
            logger.error(f"Unexpected error during export in state {job.state.value}: {e}", exc_info=True)
            return _fail(job)

        logger.info("Export complete. Cleaning up temporary files...")
        remove_directory(job.output_dir)
        job.transition(JobState.DONE)
        logger.info(f"Success! Export available at: {job.archive_path}")
        return ExportResult(
            success=True,
            archive_path=job.archive_path,
            state=job.state,
            progress=job.progress,
            pages_exported=sum(1 for page in job.pages if page.processed),
            assets_downloaded=job.registry.count(status=AssetStatus.DOWNLOADED),
        )
    finally:
        detach_progress_log(handler)
