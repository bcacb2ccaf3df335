# Module tracking discovered and downloaded assets for one export run
import logging
import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlparse

import constants
from path_utils import asset_save_path, is_internal, strip_fragment

logger = logging.getLogger(__name__)


class AssetKind(Enum):
    STYLESHEET = "stylesheet"
    OTHER = "other"


class AssetStatus(Enum):
    PENDING = "pending"
    DOWNLOADED = "downloaded"
    FAILED = "failed"


# Where an asset reference was found. Only page-linked stylesheets are
# merged in combine mode; ones only pulled in by @import keep their own file.
FOUND_IN_PAGE = "page"
FOUND_IN_STYLESHEET = "stylesheet"


@dataclass
class Asset:
    url: str
    kind: AssetKind
    save_path: str
    discovered_in: str = FOUND_IN_PAGE
    imported: bool = False
    status: AssetStatus = AssetStatus.PENDING


def font_icon_suppressor(url):
    """True for font files of a locally hosted icon font (replaced by the CDN)."""
    path = urlparse(url).path
    if not any(marker in path for marker in constants.FONT_ICON_FONT_DIRS):
        return False
    extension = path.rsplit('.', 1)[-1].lower() if '.' in path else ''
    return extension in constants.FONT_EXTENSIONS


class AssetRegistry:
    """
    Dedup sets plus a FIFO worklist per asset kind.

    An asset is in `to_fetch` from registration until its fetch attempt
    completes, then in `done`. Registering a URL already in either never
    queues it again, which is what bounds the worklist.
    """

    def __init__(self, site_url, suppress=None):
        self.site_url = site_url
        self.suppress = suppress
        self.to_fetch = {}
        self.done = {}
        self._queues = {kind: deque() for kind in AssetKind}
        self._save_paths = {}
        self._lock = threading.Lock()

    def register(self, url, kind, discovered_in=FOUND_IN_PAGE):
        """Returns the new Asset, or None when the URL is ignored or already known."""
        if not url:
            return None
        url = strip_fragment(url)
        if not is_internal(url, self.site_url):
            return None
        if self.suppress is not None and self.suppress(url):
            logger.info(f"Skipping suppressed asset: {url}")
            return None
        with self._lock:
            known = self.to_fetch.get(url)
            if known is not None:
                self._merge(known, kind, discovered_in)
                return None
            if url in self.done:
                return None
            save_path = asset_save_path(url, self.site_url)
            other_url = self._save_paths.setdefault(save_path, url)
            asset = Asset(url=url, kind=kind, save_path=save_path, discovered_in=discovered_in,
                          imported=discovered_in == FOUND_IN_STYLESHEET)
            self.to_fetch[url] = asset
            self._queues[kind].append(asset)
        if other_url != url:
            logger.warning(f"Assets {other_url} and {url} share the save path {save_path}; the later download wins.")
        logger.debug(f"Queued {kind.value} asset: {url}")
        return asset

    def _merge(self, asset, kind, discovered_in):
        """
        Folds a repeat sighting of a pending asset into it: a page <link> makes
        it page-linked, an @import marks it imported, and a stylesheet first
        seen as a plain file moves to the stylesheet queue. Caller holds the lock.
        """
        if discovered_in == FOUND_IN_PAGE:
            asset.discovered_in = FOUND_IN_PAGE
        else:
            asset.imported = True
        if kind is AssetKind.STYLESHEET and asset.kind is AssetKind.OTHER:
            queue = self._queues[AssetKind.OTHER]
            if asset in queue:
                queue.remove(asset)
                asset.kind = AssetKind.STYLESHEET
                self._queues[AssetKind.STYLESHEET].append(asset)

    def is_known(self, url):
        url = strip_fragment(url)
        with self._lock:
            return url in self.to_fetch or url in self.done

    def claim(self, kind):
        """Takes the next pending asset of a kind off the queue, or None."""
        with self._lock:
            queue = self._queues[kind]
            return queue.popleft() if queue else None

    def claim_all(self, kind):
        with self._lock:
            queue = self._queues[kind]
            batch = list(queue)
            queue.clear()
            return batch

    def complete(self, asset):
        """Moves an asset into `done`. A fetch that never reported success counts as failed."""
        with self._lock:
            if asset.status is AssetStatus.PENDING:
                asset.status = AssetStatus.FAILED
            self.to_fetch.pop(asset.url, None)
            self.done[asset.url] = asset

    def drain(self, kind):
        """
        Yields pending assets of a kind until none are left, including ones
        registered while the drain is running.
        """
        while True:
            asset = self.claim(kind)
            if asset is None:
                return
            try:
                yield asset
            finally:
                self.complete(asset)

    def pending_count(self, kind=None):
        with self._lock:
            if kind is None:
                return sum(len(queue) for queue in self._queues.values())
            return len(self._queues[kind])

    def count(self, kind=None, status=None):
        with self._lock:
            assets = list(self.to_fetch.values()) + list(self.done.values())
        return sum(
            1 for asset in assets
            if (kind is None or asset.kind is kind) and (status is None or asset.status is status)
        )
