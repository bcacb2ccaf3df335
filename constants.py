# constants.py - Define constants used throughout the application

# --- File/Directory Names ---
DEFAULT_ARCHIVE_DIR = "exports"
DEFAULT_LOG_FILE = "static_export.log"
TEMP_DIR_NAME = "static-exports-temp" # Parent of per-run export directories
EXPORT_ID_PREFIX = "export_"
ARCHIVE_FILENAME_PREFIX = "static-export-"
ARCHIVE_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"

INDEX_FILENAME = "index.html"
ASSETS_DIR_NAME = "assets"
ASSET_FALLBACK_FILENAME = "index" # For asset URLs ending in '/'
COMBINED_CSS_PATH = "assets/combined-styles.css"
COMBINED_CSS_LINK_ID = "static-exporter-combined-styles"
NOT_FOUND_PAGE_PATH = "404.html"
MAILER_SCRIPT_PATH = "php-mailer/sendmail.php"
MAILER_CONFIG_PATH = "php-mailer/mailer-config.php"
DEFAULT_SITEMAP_NAME = "sitemap.xml"

FILENAME_COLLISION_LIMIT = 100 # Max attempts for finding unique archive name with counter

# --- Request Defaults ---
DEFAULT_USER_AGENT = "StaticSiteExporter/1.0"
DEFAULT_REQUEST_DELAY = 0.0
DEFAULT_MAX_RETRIES = 0 # A single attempt per request unless configured
DEFAULT_TIMEOUT = 30
DEFAULT_MAX_WORKERS = 1

# --- URL Rewriting ---
REWRITE_MODE_RELATIVE = "relative"
REWRITE_MODE_ABSOLUTE = "absolute"
REWRITE_MODE_OFFLINE = "offline" # Same output as relative
REWRITE_MODES = (REWRITE_MODE_RELATIVE, REWRITE_MODE_ABSOLUTE, REWRITE_MODE_OFFLINE)

# --- Progress Log ---
PROGRESS_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# --- Font Icon CDN ---
FONT_AWESOME_CDN_URL = "https://cdnjs.cloudflare.com/ajax/libs/font-awesome/5.15.4/css/all.min.css"
FONT_ICON_LINK_SELECTORS = [
    'link[href*="fontawesome"]',
    'link[href*="font-awesome"]',
    'link[href*="all.css"]',
    'link[href*="all.min.css"]',
]
FONT_ICON_CDN_SELECTOR = 'link[href*="fontawesome.com"], link[href*="cloudflare.com/ajax/libs/font-awesome"]'
FONT_ICON_URL_MARKERS = ("fontawesome", "font-awesome")
FONT_ICON_FONT_DIRS = ("/webfonts/", "/fontawesome/")
FONT_EXTENSIONS = ("woff", "woff2", "ttf", "eot", "svg")

# --- Form Conversion ---
FORM_PLUGIN_URL_MARKER = "fluentform"
FORM_LOCATION_FIELD = "_form_location"
CMS_HIDDEN_FIELD_PREFIXES = ("_wpcf7", "_wpnonce", "_fluentform_")

# --- Markup Cleaning ---
# Dynamic chrome that never works on a static copy
BASE_REMOVAL_SELECTORS = [
    "#comments",
    '[class*="comments-area"]',
    '[class*="comment-respond"]',
    '[class*="search-form"]',
    '[role="search"]',
    "#wpadminbar",
    'script:-soup-contains("wp-emoji-release.min.js")',
    'link[rel="https://api.w.org/"]',
    'link[rel="EditURI"]',
    'link[rel="wlwmanifest"]',
    'link[rel="shortlink"]',
    'meta[name="generator"]',
    "base",
]
FORM_REMOVAL_SELECTORS = [
    "form",
    'input[type="submit"]',
]
OPTIMIZE_REMOVAL_SELECTORS = [
    'script[type="application/ld+json"]',
    'div[class*="wpcf7"]',
    'form[class*="wpcf7-form"]',
    'div[class*="sharedaddy"]',
    'div[class="sd-content"]',
    'div[class^="jetpack-"]',
    "div#jp-relatedposts",
    'div[class="addtoany_share_save_container"]',
    'div[class="a2a_kit"]',
    'div[class="heateor_sss_sharing_container"]',
    'div[class="heateor_sss_horizontal_sharing"]',
    'div[class="yarpp-related"]',
    'div[class="wpulike"]',
    'div[class="wp-block-jetpack-related-posts"]',
    'script[src*="disqus.com"]',
    "div#disqus_thread",
    "div#google_translate_element",
]
OPTIMIZE_FORM_PLUGIN_SELECTORS = [
    'script[src*="fluentform"]',
    'script:-soup-contains("fluent_form_")',
    'style:-soup-contains("fluentform")',
]
SEO_COMMENT_MARKERS = ("Yoast", "Rank Math")

# --- Generated Pages ---
NOT_FOUND_HTML = (
    '<!DOCTYPE html><html><head><meta charset="utf-8"><title>404 Not Found</title></head>'
    '<body><h1>404 Not Found</h1><p>The requested page could not be found.</p></body></html>'
)
