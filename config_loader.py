# Module for loading and validating configuration
import json
import re
from dataclasses import dataclass
from urllib.parse import urlparse

import constants # Import constants

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def is_valid_email(value):
    """Loose address check, enough to reject blanks and obvious typos."""
    return bool(value) and isinstance(value, str) and EMAIL_RE.match(value) is not None


@dataclass(frozen=True)
class ExportOptions:
    """Per-run switches. Validated once here instead of at every use."""

    optimize_output: bool = False
    use_font_icon_cdn: bool = True
    convert_forms: bool = False
    recipient_email: str = None
    generate_404: bool = False
    url_rewrite_mode: str = constants.REWRITE_MODE_RELATIVE
    absolute_url: str = ""

    def __post_init__(self):
        if self.url_rewrite_mode not in constants.REWRITE_MODES:
            raise ValueError(
                f"Invalid url_rewrite_mode '{self.url_rewrite_mode}'. "
                f"Expected one of: {', '.join(constants.REWRITE_MODES)}"
            )
        if self.url_rewrite_mode == constants.REWRITE_MODE_ABSOLUTE:
            parsed = urlparse(self.absolute_url or "")
            if not parsed.scheme or not parsed.netloc:
                raise ValueError("Config 'absolute_url' must be a full URL (scheme and host) when using absolute mode.")
        if self.convert_forms and not is_valid_email(self.recipient_email):
            raise ValueError("A valid recipient email is required when 'convert_forms' is enabled.")

    @property
    def absolute_mode(self):
        return self.url_rewrite_mode == constants.REWRITE_MODE_ABSOLUTE

    @classmethod
    def from_config(cls, config):
        convert_forms = bool(config.get('convert_forms', False))
        recipient = None
        if convert_forms:
            # Explicit recipient wins, the site admin address is the fallback
            for candidate in (config.get('recipient_email'), config.get('admin_email')):
                if is_valid_email(candidate):
                    recipient = candidate
                    break
        return cls(
            optimize_output=bool(config.get('optimize_output', False)),
            use_font_icon_cdn=bool(config.get('use_font_icon_cdn', True)),
            convert_forms=convert_forms,
            recipient_email=recipient,
            generate_404=bool(config.get('generate_404', False)),
            url_rewrite_mode=config.get('url_rewrite_mode', constants.REWRITE_MODE_RELATIVE),
            absolute_url=config.get('absolute_url', ''),
        )


def load_config(config_path="config.json"): # Keep default path simple
    """Loads configuration from a JSON file, validates, and sets defaults."""
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)

        if not isinstance(config, dict):
            raise ValueError(f"Config file '{config_path}' must contain a JSON object.")

        # --- Validation ---
        required_keys = ["site_url"]
        if not all(key in config for key in required_keys):
            missing_keys = [key for key in required_keys if key not in config]
            raise ValueError(f"Config file '{config_path}' is missing required keys: {', '.join(missing_keys)}")

        parsed_site = urlparse(config['site_url'])
        if parsed_site.scheme not in ('http', 'https') or not parsed_site.netloc:
            raise ValueError(f"Config 'site_url' must be an http(s) URL, got '{config['site_url']}'.")
        # The site URL is compared by prefix everywhere, so it always ends with '/'
        if not config['site_url'].endswith('/'):
            config['site_url'] = config['site_url'] + '/'

        # --- Set Defaults for Optional Keys ---
        config['archive_dir'] = config.get('archive_dir', constants.DEFAULT_ARCHIVE_DIR)
        config['work_dir'] = config.get('work_dir') # None means the system temp directory
        config['log_file'] = config.get('log_file', constants.DEFAULT_LOG_FILE)
        config['user_agent'] = config.get('user_agent', constants.DEFAULT_USER_AGENT)
        config['request_timeout_seconds'] = config.get('request_timeout_seconds', constants.DEFAULT_TIMEOUT)
        config['request_delay_seconds'] = config.get('request_delay_seconds', constants.DEFAULT_REQUEST_DELAY)
        config['max_retries'] = config.get('max_retries', constants.DEFAULT_MAX_RETRIES)
        config['max_workers'] = config.get('max_workers', constants.DEFAULT_MAX_WORKERS)
        config['pages'] = config.get('pages', [])
        config['sitemap_url'] = config.get('sitemap_url')
        config['use_sitemap'] = config.get('use_sitemap', False)

        # --- Further Validation ---
        if not isinstance(config['request_timeout_seconds'], (int, float)) or config['request_timeout_seconds'] <= 0:
            raise ValueError("Config 'request_timeout_seconds' must be a positive number.")
        if not isinstance(config['request_delay_seconds'], (int, float)) or config['request_delay_seconds'] < 0:
            raise ValueError("Config 'request_delay_seconds' must be a non-negative number.")
        if not isinstance(config['max_retries'], int) or config['max_retries'] < 0:
            raise ValueError("Config 'max_retries' must be a non-negative integer.")
        if not isinstance(config['max_workers'], int) or config['max_workers'] < 1:
            raise ValueError("Config 'max_workers' must be a positive integer.")
        if not isinstance(config['pages'], list):
            raise ValueError("Config 'pages' must be a list of URLs.")

        # Raises ValueError on inconsistent options
        config['options'] = ExportOptions.from_config(config)

        return config

    except FileNotFoundError:
        raise # Re-raise the FileNotFoundError
    except json.JSONDecodeError as e:
        raise ValueError(f"Error decoding JSON from config file '{config_path}': {e}") from e
    except ValueError:
        raise
    except Exception as e: # Catch any other unexpected errors during loading/validation
        raise RuntimeError(f"An unexpected error occurred loading configuration from '{config_path}': {e}") from e
