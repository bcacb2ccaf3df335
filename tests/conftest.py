import pytest
import sys
import os
import logging; logging.basicConfig(level=logging.DEBUG)

# Ensure the project root is in the Python path for imports in tests
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from config_loader import ExportOptions
from exporter import ExportJob

SITE_URL = "https://example.com/"


@pytest.fixture(autouse=True)
def configure_logging(caplog):
    """Ensure logging is configured to capture DEBUG level messages for all tests."""
    caplog.set_level(logging.DEBUG, logger="root") # Set root logger level


@pytest.fixture
def make_job():
    """Builds an ExportJob for SITE_URL without touching the network or disk."""
    def _make_job(pages=(), **option_overrides):
        option_overrides.setdefault('use_font_icon_cdn', False)
        job = ExportJob({'site_url': SITE_URL, 'options': ExportOptions(**option_overrides)})
        job.add_page(SITE_URL)
        for page in pages:
            job.add_page(page)
        return job
    return _make_job
