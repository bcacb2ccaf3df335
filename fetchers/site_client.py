# Module for fetching pages and assets from the live site
import logging
import time

import requests

import constants
from .decorators import retry_request

logger = logging.getLogger(__name__)


def _request(url, config, stream=False):
    """Issues one GET with the configured headers, delay and timeout."""
    delay = config.get('request_delay_seconds', constants.DEFAULT_REQUEST_DELAY)
    if delay:
        time.sleep(delay)
    headers = {'User-Agent': config.get('user_agent', constants.DEFAULT_USER_AGENT)}
    timeout = config.get('request_timeout_seconds', constants.DEFAULT_TIMEOUT)
    return requests.get(url, headers=headers, timeout=timeout, stream=stream)


# --- Page Fetching ---
@retry_request(non_retryable_status=[404])
def fetch_page(url, config):
    """
    Fetches the rendered HTML of a page.
    Returns the HTML as a string, or None on any failure (already logged).
    """
    logger.debug(f"Attempting to fetch page: {url}")
    response = _request(url, config)

    content = None
    try:
        if response.status_code == 200:
            # Without a declared charset requests falls back to ISO-8859-1
            content_type = response.headers.get('Content-Type', '')
            if 'charset=' not in content_type.lower():
                response.encoding = 'utf-8'
            content_text = response.text
            if content_text and content_text.strip():
                logger.debug(f"Successfully fetched page: {url}")
                content = content_text
            else:
                logger.warning(f"Warning: Empty content received for {url}")
        elif response.status_code == 404:
            logger.warning(f"Error fetching {url}: page not found (404). Skipping.")
        elif response.status_code == 429 or response.status_code >= 500:
            logger.warning(f"Error fetching {url}: status {response.status_code}.")
            response.raise_for_status() # Let the decorator decide about retries
        else:
            logger.error(f"Error fetching {url}: unexpected status {response.status_code}. Skipping.")
    finally:
        response.close()

    return content


# --- Asset Fetching ---
@retry_request(non_retryable_status=[404])
def fetch_asset(url, config):
    """
    Fetches the raw bytes of an asset (stylesheet, script, image, font...).
    Returns the bytes (possibly empty), or None on failure (already logged).
    """
    logger.debug(f"Attempting to fetch asset: {url}")
    response = _request(url, config, stream=True)

    content = None
    try:
        if response.status_code == 200:
            content = response.content
            logger.debug(f"Successfully fetched asset: {url} ({len(content)} bytes)")
        elif response.status_code == 404:
            logger.warning(f"Error downloading {url}: asset not found (404). Skipping.")
        elif response.status_code == 429 or response.status_code >= 500:
            logger.warning(f"Error downloading {url}: status {response.status_code}.")
            response.raise_for_status()
        else:
            logger.error(f"Error downloading {url}: unexpected status {response.status_code}. Skipping.")
    finally:
        response.close()

    return content
