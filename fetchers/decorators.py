# Decorators for HTTP fetch functions
import functools
import logging
import time

import requests

logger = logging.getLogger(__name__)


def _url_snippet(func, args, kwargs):
    """Finds the URL a wrapped call is about, for log messages."""
    url_to_log = kwargs.get('url')
    if not url_to_log:
        for arg in args:
            if isinstance(arg, str) and arg.startswith('http'):
                url_to_log = arg
                break
    if url_to_log:
        return f"for {url_to_log[:120]}"
    return f"in {func.__name__}"


def retry_request(max_retries_key="max_retries", delay_key="request_delay_seconds", non_retryable_status=(404,), return_on_failure=None):
    """
    Decorator adding retry logic with exponential backoff to functions making HTTP requests.
    Assumes the wrapped function:
    - Accepts a 'config' dictionary keyword argument (`config=...`) containing keys
      specified by `max_retries_key` and `delay_key`.
    - Returns its result on success, returns None itself for conditions it
      handles (and logs), and raises `requests.exceptions.HTTPError` for
      statuses that may be retried.

    With max_retries at 0 (the default) every request gets exactly one attempt;
    the decorator then only turns request exceptions into logged failures.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            config = kwargs.get('config')
            log_url_snippet = _url_snippet(func, args, kwargs)
            if not isinstance(config, dict):
                logger.error(
                    f"Decorator @retry_request requires 'config' dictionary as a keyword argument "
                    f"for function {func.__name__}. Retries disabled."
                )
                config = {}

            max_retries = config.get(max_retries_key, 0)
            delay = config.get(delay_key, 0) or 1

            retries = 0
            last_exception = None
            while True:
                try:
                    if retries > 0:
                        wait_time = (2 ** (retries - 1)) * delay
                        logger.warning(f"Retrying request {log_url_snippet} ({retries}/{max_retries}) after delay of {wait_time:.2f} seconds...")
                        time.sleep(wait_time)
                    return func(*args, **kwargs)

                except requests.exceptions.HTTPError as e:
                    last_exception = e
                    status_code = e.response.status_code if e.response is not None else None

                    if status_code in non_retryable_status:
                        logger.warning(f"HTTP error {status_code} {log_url_snippet} is non-retryable. Failing.")
                        return return_on_failure

                    if status_code and (status_code == 429 or status_code >= 500):
                        if retries < max_retries:
                            logger.warning(f"Retryable HTTP error {status_code} {log_url_snippet}. Retrying ({retries + 1}/{max_retries})...")
                            retries += 1
                            continue
                        break

                    logger.error(f"Unhandled HTTP error ({status_code or 'no status code'}) encountered {log_url_snippet}: {e}")
                    return return_on_failure

                except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                    last_exception = e
                    exc_type = type(e).__name__
                    if retries < max_retries:
                        logger.warning(f"{exc_type} occurred {log_url_snippet}. Retrying ({retries + 1}/{max_retries})...")
                        retries += 1
                        continue
                    break

                except requests.exceptions.RequestException as e:
                    logger.error(f"Unhandled RequestException {log_url_snippet}: {e}")
                    return return_on_failure

                except Exception as e:
                    logger.error(f"Unexpected error during {func.__name__} execution {log_url_snippet}: {e}", exc_info=True)
                    return return_on_failure

            logger.error(f"Request failed {log_url_snippet} after {retries} retries. Last exception: {last_exception}")
            return return_on_failure

        return wrapper
    return decorator
