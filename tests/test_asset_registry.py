import pytest
import os
import sys
import logging
import threading

# Add project root to sys.path to allow importing project modules
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from asset_registry import (
    AssetKind, AssetRegistry, AssetStatus, FOUND_IN_PAGE, FOUND_IN_STYLESHEET, font_icon_suppressor,
)

SITE = "https://example.com/"


@pytest.fixture
def registry():
    return AssetRegistry(SITE)


def test_register_new_asset(registry):
    asset = registry.register("https://example.com/img/a.png#x", AssetKind.OTHER)
    assert asset is not None
    assert asset.url == "https://example.com/img/a.png"
    assert asset.save_path == "assets/img/a.png"
    assert asset.status is AssetStatus.PENDING
    assert asset.discovered_in == FOUND_IN_PAGE
    assert registry.is_known("https://example.com/img/a.png")


def test_register_is_idempotent(registry):
    assert registry.register("https://example.com/a.css", AssetKind.STYLESHEET) is not None
    assert registry.register("https://example.com/a.css", AssetKind.STYLESHEET) is None
    assert registry.register("https://example.com/a.css#again", AssetKind.STYLESHEET) is None
    assert registry.pending_count(AssetKind.STYLESHEET) == 1


def test_register_ignores_external_urls(registry):
    assert registry.register("https://cdn.example.net/lib.js", AssetKind.OTHER) is None
    assert registry.register("", AssetKind.OTHER) is None
    assert registry.pending_count() == 0


def test_page_link_upgrades_imported_stylesheet(registry):
    imported = registry.register("https://example.com/css/a.css", AssetKind.STYLESHEET, FOUND_IN_STYLESHEET)
    assert imported.discovered_in == FOUND_IN_STYLESHEET
    assert imported.imported is True

    assert registry.register("https://example.com/css/a.css", AssetKind.STYLESHEET, FOUND_IN_PAGE) is None

    assert imported.discovered_in == FOUND_IN_PAGE
    assert imported.imported is True
    assert registry.pending_count(AssetKind.STYLESHEET) == 1


def test_import_marks_page_linked_stylesheet(registry):
    linked = registry.register("https://example.com/css/a.css", AssetKind.STYLESHEET, FOUND_IN_PAGE)
    assert linked.imported is False

    registry.register("https://example.com/css/a.css", AssetKind.STYLESHEET, FOUND_IN_STYLESHEET)

    assert linked.discovered_in == FOUND_IN_PAGE
    assert linked.imported is True


def test_stylesheet_registered_as_plain_file_moves_queue(registry):
    asset = registry.register("https://example.com/css/a.css", AssetKind.OTHER)

    registry.register("https://example.com/css/a.css", AssetKind.STYLESHEET)

    assert asset.kind is AssetKind.STYLESHEET
    assert registry.pending_count(AssetKind.OTHER) == 0
    assert registry.claim(AssetKind.STYLESHEET) is asset


def test_shared_save_path_is_logged(registry, caplog):
    with caplog.at_level(logging.WARNING):
        first = registry.register("https://example.com/css/style.css?ver=1", AssetKind.STYLESHEET)
        second = registry.register("https://example.com/css/style.css?ver=2", AssetKind.STYLESHEET)
        registry.register("https://example.com/css/style.css?ver=2", AssetKind.STYLESHEET)

    assert first.save_path == second.save_path == "assets/css/style.css"
    assert registry.pending_count(AssetKind.STYLESHEET) == 2
    messages = [record.getMessage() for record in caplog.records if "share the save path" in record.getMessage()]
    assert messages == [
        "Assets https://example.com/css/style.css?ver=1 and https://example.com/css/style.css?ver=2 "
        "share the save path assets/css/style.css; the later download wins."
    ]


def test_completed_assets_are_not_requeued(registry):
    asset = registry.register("https://example.com/a.png", AssetKind.OTHER)
    assert registry.claim(AssetKind.OTHER) is asset
    asset.status = AssetStatus.DOWNLOADED
    registry.complete(asset)
    assert registry.register("https://example.com/a.png", AssetKind.OTHER) is None
    assert registry.done["https://example.com/a.png"].status is AssetStatus.DOWNLOADED
    assert "https://example.com/a.png" not in registry.to_fetch


def test_complete_marks_unfinished_asset_failed(registry):
    asset = registry.register("https://example.com/a.png", AssetKind.OTHER)
    registry.claim(AssetKind.OTHER)
    registry.complete(asset)
    assert asset.status is AssetStatus.FAILED
    assert registry.count(status=AssetStatus.FAILED) == 1


def test_queues_are_fifo_per_kind(registry):
    registry.register("https://example.com/1.png", AssetKind.OTHER)
    registry.register("https://example.com/a.css", AssetKind.STYLESHEET)
    registry.register("https://example.com/2.png", AssetKind.OTHER)
    assert [a.url for a in registry.claim_all(AssetKind.OTHER)] == [
        "https://example.com/1.png", "https://example.com/2.png",
    ]
    assert registry.pending_count(AssetKind.OTHER) == 0
    assert registry.pending_count(AssetKind.STYLESHEET) == 1


def test_drain_picks_up_assets_registered_while_draining(registry):
    registry.register("https://example.com/main.css", AssetKind.STYLESHEET)
    seen = []
    for asset in registry.drain(AssetKind.STYLESHEET):
        seen.append(asset.url)
        if asset.url.endswith("main.css"):
            registry.register("https://example.com/imported.css", AssetKind.STYLESHEET, FOUND_IN_STYLESHEET)
            registry.register("https://example.com/main.css", AssetKind.STYLESHEET)
        asset.status = AssetStatus.DOWNLOADED
    assert seen == ["https://example.com/main.css", "https://example.com/imported.css"]
    assert registry.done["https://example.com/imported.css"].discovered_in == FOUND_IN_STYLESHEET
    assert registry.count(AssetKind.STYLESHEET, AssetStatus.DOWNLOADED) == 2


def test_concurrent_registration_keeps_one_entry(registry):
    def worker():
        for i in range(50):
            registry.register(f"https://example.com/img/{i}.png", AssetKind.OTHER)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert registry.pending_count(AssetKind.OTHER) == 50
    assert registry.count(AssetKind.OTHER) == 50


@pytest.mark.parametrize("url, expected", [
    ("https://example.com/wp-content/plugins/x/webfonts/fa-solid-900.woff2", True),
    ("https://example.com/assets/fontawesome/fa.TTF", True),
    ("https://example.com/wp-content/plugins/x/webfonts/readme.txt", False),
    ("https://example.com/fonts/roboto.woff2", False),
])
def test_font_icon_suppressor(url, expected):
    assert font_icon_suppressor(url) is expected


def test_suppressed_assets_are_logged_and_skipped(caplog):
    registry = AssetRegistry(SITE, suppress=font_icon_suppressor)
    url = "https://example.com/webfonts/fa-brands-400.woff"
    with caplog.at_level(logging.INFO):
        assert registry.register(url, AssetKind.OTHER, FOUND_IN_STYLESHEET) is None
    assert f"Skipping suppressed asset: {url}" in caplog.text
    assert not registry.is_known(url)
