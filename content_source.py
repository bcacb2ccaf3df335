# Module enumerating the pages to export
import logging
from collections import deque

from bs4 import BeautifulSoup

import constants
from fetchers.site_client import fetch_page
from path_utils import resolve_absolute

logger = logging.getLogger(__name__)


def _sitemap_locations(xml_text):
    """Returns (is_index, [loc, ...]) for a sitemap or sitemap index document."""
    soup = BeautifulSoup(xml_text, 'html.parser')
    is_index = soup.find('sitemapindex') is not None
    locations = [loc.get_text(strip=True) for loc in soup.find_all('loc')]
    return is_index, [loc for loc in locations if loc]


def read_sitemap(sitemap_url, config):
    """
    Collects page URLs from a sitemap, following sitemap indexes.
    Sitemaps that cannot be fetched are logged and contribute nothing.
    """
    page_urls = []
    queue = deque([sitemap_url])
    visited = set()
    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)

        xml_text = fetch_page(current, config=config)
        if xml_text is None:
            logger.warning(f"Could not read sitemap {current}. Skipping.")
            continue

        is_index, locations = _sitemap_locations(xml_text)
        if is_index:
            logger.info(f"Sitemap index {current} lists {len(locations)} sitemaps.")
            queue.extend(locations)
        else:
            logger.info(f"Sitemap {current} lists {len(locations)} URLs.")
            page_urls.extend(locations)
    return page_urls


def discover_pages(config):
    """Returns the page URLs supplied by configuration and sitemaps, in order."""
    site_url = config['site_url']
    page_urls = []
    for entry in config.get('pages', []):
        absolute = resolve_absolute(entry, site_url, site_url)
        if absolute:
            page_urls.append(absolute)
        else:
            logger.warning(f"Ignoring unusable page entry: {entry!r}")

    sitemap_url = config.get('sitemap_url')
    if not sitemap_url and config.get('use_sitemap'):
        sitemap_url = site_url + constants.DEFAULT_SITEMAP_NAME
    if sitemap_url:
        page_urls.extend(read_sitemap(resolve_absolute(sitemap_url, site_url, site_url), config))

    return page_urls
