# tests/test_site_client.py

import pytest
import requests
import logging
from unittest.mock import MagicMock, patch

# Modules to test
from fetchers import site_client

# --- Fixtures ---

@pytest.fixture
def mock_config():
    """Provides a basic mock config dictionary."""
    return {
        'user_agent': 'Test User Agent',
        'request_timeout_seconds': 5,
        'request_delay_seconds': 0,
        'max_retries': 2,
    }

@pytest.fixture
def mock_response():
    """Creates a reusable MagicMock for requests.Response."""
    response = MagicMock(spec=requests.Response)
    response.status_code = 200
    response.headers = {'Content-Type': 'text/html'}
    response.content = b"Sample asset content"
    response.text = "<html><body>Sample HTML</body></html>"
    response.encoding = 'ISO-8859-1'
    response.close = MagicMock()
    response.raise_for_status = MagicMock()
    return response

@pytest.fixture(autouse=True)
def no_sleep():
    """Retries back off with time.sleep; tests should not wait."""
    with patch('fetchers.decorators.time.sleep') as mock_sleep:
        yield mock_sleep


def _failing_response(status_code):
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.headers = {}
    response.close = MagicMock()
    response.raise_for_status.side_effect = requests.exceptions.HTTPError(
        f"{status_code} Server Error", response=response
    )
    return response

# --- Tests for fetch_page ---

@patch('fetchers.site_client.requests.get')
def test_fetch_page_success(mock_get, mock_config, mock_response, caplog):
    """A 200 response without a charset is decoded as UTF-8."""
    mock_get.return_value = mock_response
    url = "https://example.com/about/"

    with caplog.at_level(logging.DEBUG):
        content = site_client.fetch_page(url, config=mock_config)

    assert content == "<html><body>Sample HTML</body></html>"
    assert mock_response.encoding == 'utf-8'
    mock_get.assert_called_once_with(
        url,
        headers={'User-Agent': mock_config['user_agent']},
        timeout=mock_config['request_timeout_seconds'],
        stream=False
    )
    assert f"Successfully fetched page: {url}" in caplog.text
    mock_response.close.assert_called_once()

@patch('fetchers.site_client.requests.get')
def test_fetch_page_keeps_declared_charset(mock_get, mock_config, mock_response):
    mock_response.headers = {'Content-Type': 'text/html; charset=windows-1252'}
    mock_get.return_value = mock_response

    site_client.fetch_page("https://example.com/", config=mock_config)

    assert mock_response.encoding == 'ISO-8859-1'

@patch('fetchers.site_client.requests.get')
def test_fetch_page_empty_body(mock_get, mock_config, mock_response, caplog):
    mock_response.text = "   \n"
    mock_get.return_value = mock_response

    with caplog.at_level(logging.WARNING):
        content = site_client.fetch_page("https://example.com/empty/", config=mock_config)

    assert content is None
    assert "Empty content received for https://example.com/empty/" in caplog.text

@patch('fetchers.site_client.requests.get')
def test_fetch_page_not_found(mock_get, mock_config, mock_response, caplog):
    """A 404 is logged and skipped without retrying."""
    mock_response.status_code = 404
    mock_get.return_value = mock_response
    url = "https://example.com/missing/"

    with caplog.at_level(logging.WARNING):
        content = site_client.fetch_page(url, config=mock_config)

    assert content is None
    assert f"Error fetching {url}: page not found (404). Skipping." in caplog.text
    mock_get.assert_called_once()
    mock_response.close.assert_called_once()

@patch('fetchers.site_client.requests.get')
def test_fetch_page_unexpected_status(mock_get, mock_config, mock_response, caplog):
    mock_response.status_code = 403
    mock_get.return_value = mock_response

    with caplog.at_level(logging.ERROR):
        content = site_client.fetch_page("https://example.com/private/", config=mock_config)

    assert content is None
    assert "unexpected status 403" in caplog.text
    mock_get.assert_called_once()

@patch('fetchers.site_client.requests.get')
def test_fetch_page_retry_success(mock_get, mock_config, mock_response, caplog):
    """A 503 is retried and the next successful response is used."""
    fail_response = _failing_response(503)
    mock_get.side_effect = [fail_response, mock_response]

    with caplog.at_level(logging.DEBUG):
        content = site_client.fetch_page("https://example.com/", config=mock_config)

    assert content == "<html><body>Sample HTML</body></html>"
    assert mock_get.call_count == 2
    assert "Retryable HTTP error 503" in caplog.text
    fail_response.close.assert_called_once()
    mock_response.close.assert_called_once()

@patch('fetchers.site_client.requests.get')
def test_fetch_page_no_retries_by_default(mock_get, mock_response):
    """Without max_retries in the config every request gets exactly one attempt."""
    mock_get.return_value = _failing_response(500)

    content = site_client.fetch_page("https://example.com/", config={})

    assert content is None
    mock_get.assert_called_once()

# --- Tests for fetch_asset ---

@patch('fetchers.site_client.requests.get')
def test_fetch_asset_success(mock_get, mock_config, mock_response, caplog):
    """Test successful fetching of asset content."""
    mock_response.content = b"Test asset bytes"
    mock_get.return_value = mock_response
    asset_url = "https://example.com/style.css"

    with caplog.at_level(logging.DEBUG):
        content = site_client.fetch_asset(asset_url, config=mock_config)

    assert content == b"Test asset bytes"
    mock_get.assert_called_once_with(
        asset_url,
        headers={'User-Agent': mock_config['user_agent']},
        timeout=mock_config['request_timeout_seconds'],
        stream=True
    )
    assert f"Successfully fetched asset: {asset_url}" in caplog.text
    mock_response.close.assert_called_once()

@patch('fetchers.site_client.requests.get')
def test_fetch_asset_empty_body_is_kept(mock_get, mock_config, mock_response):
    mock_response.content = b""
    mock_get.return_value = mock_response

    assert site_client.fetch_asset("https://example.com/empty.js", config=mock_config) == b""

@patch('fetchers.site_client.requests.get')
def test_fetch_asset_not_found_404(mock_get, mock_config, mock_response, caplog):
    """Test fetch_asset when the asset returns a 404 status."""
    mock_response.status_code = 404
    mock_get.return_value = mock_response
    asset_url = "https://example.com/not_found.jpg"

    with caplog.at_level(logging.WARNING):
        content = site_client.fetch_asset(asset_url, config=mock_config)

    assert content is None
    assert f"Error downloading {asset_url}: asset not found (404). Skipping." in caplog.text
    mock_get.assert_called_once()
    mock_response.close.assert_called_once()

@patch('fetchers.site_client.requests.get')
def test_fetch_asset_retry_fails(mock_get, mock_config, caplog):
    """Test fetch_asset fails after exhausting retries."""
    fail_response = _failing_response(500)
    max_attempts = mock_config['max_retries'] + 1
    mock_get.side_effect = [fail_response] * max_attempts
    asset_url = "https://example.com/fail_always.css"

    with caplog.at_level(logging.ERROR):
        content = site_client.fetch_asset(asset_url, config=mock_config)

    assert content is None
    assert mock_get.call_count == max_attempts
    assert f"Request failed for {asset_url} after {mock_config['max_retries']} retries. Last exception: 500 Server Error" in caplog.text
    assert fail_response.close.call_count == max_attempts

@patch('fetchers.site_client.requests.get')
def test_fetch_asset_request_exception(mock_get, mock_config, caplog):
    """Test fetch_asset handles requests.exceptions.RequestException."""
    mock_get.side_effect = requests.exceptions.Timeout("Connection timed out")
    asset_url = "https://example.com/timeout.png"
    max_attempts = mock_config['max_retries'] + 1

    with caplog.at_level(logging.ERROR):
        content = site_client.fetch_asset(asset_url, config=mock_config)

    assert content is None
    assert mock_get.call_count == max_attempts
    assert f"Request failed for {asset_url} after {mock_config['max_retries']} retries. Last exception: Connection timed out" in caplog.text

@patch('fetchers.site_client.requests.get')
def test_fetch_asset_invalid_url(mock_get, mock_config, caplog):
    """Non-retryable request errors are logged once and give up."""
    mock_get.side_effect = requests.exceptions.InvalidURL("bad url")

    with caplog.at_level(logging.ERROR):
        content = site_client.fetch_asset("https://example.com/bad", config=mock_config)

    assert content is None
    mock_get.assert_called_once()
    assert "Unhandled RequestException" in caplog.text

@patch('fetchers.site_client.time.sleep')
@patch('fetchers.site_client.requests.get')
def test_request_delay_is_applied(mock_get, mock_sleep, mock_config, mock_response):
    mock_config['request_delay_seconds'] = 0.5
    mock_get.return_value = mock_response

    site_client.fetch_asset("https://example.com/a.png", config=mock_config)

    mock_sleep.assert_called_once_with(0.5)

@patch('fetchers.site_client.requests.get')
def test_fetch_asset_unexpected_error(mock_get, mock_config, caplog):
    """Errors outside requests are logged with a traceback and give up."""
    mock_get.side_effect = ValueError("bad header value")

    with caplog.at_level(logging.ERROR):
        content = site_client.fetch_asset("https://example.com/a.png", config=mock_config)

    assert content is None
    mock_get.assert_called_once()
    assert "Unexpected error during fetch_asset execution for https://example.com/a.png: bad header value" in caplog.text
    assert any(record.exc_info for record in caplog.records)
