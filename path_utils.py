# Module for URL resolution and output-tree path computations.
# Everything here is a pure function of its arguments: a save path computed
# while rewriting a page must match the one used when the file is downloaded.

import posixpath
import re
from urllib.parse import urlparse, urldefrag, unquote, quote

import constants

# Characters left as-is when a file path is placed into an href/src attribute
# or a CSS url(). Quotes and parentheses are escaped so url(...) stays intact.
HREF_SAFE_CHARS = "/@!$&*+,;=~"

# Anything else in a page's query string becomes '_' in its directory name
QUERY_UNSAFE_RE = re.compile(r"[^\w.=-]+")


def _split_suffix(reference):
    """Splits 'a/b.css?v=1#x' into ('a/b.css', '?v=1#x')."""
    cut = len(reference)
    for marker in ('?', '#'):
        pos = reference.find(marker)
        if pos != -1 and pos < cut:
            cut = pos
    return reference[:cut], reference[cut:]


def _collapse_path(path):
    """Collapses '.' and '..' segments left to right. '..' above the root is dropped."""
    trailing = path.endswith('/') or path.endswith('/.') or path.endswith('/..')
    segments = []
    for part in path.split('/'):
        if part in ('', '.'):
            continue
        if part == '..':
            if segments:
                segments.pop()
            continue
        segments.append(part)
    resolved = '/' + '/'.join(segments)
    if trailing and segments:
        resolved += '/'
    return resolved


def resolve_absolute(reference, base_url, site_url=None):
    """
    Resolves a reference found in a document against the document's URL.

    Returns the absolute URL, or None when the reference cannot be resolved
    (the base has no scheme/host and the reference is not root-relative, or
    there is no usable site URL to fall back on).
    """
    reference = (reference or '').strip()
    base_url = (base_url or '').strip()
    if not reference:
        return base_url or None

    try:
        if urlparse(reference).scheme:
            return reference
        base = urlparse(base_url)
    except ValueError:
        return None

    if reference.startswith('//'):
        return f"{base.scheme or 'http'}:{reference}"

    if not base.scheme or not base.netloc:
        if reference.startswith('/') and site_url:
            site = urlparse(site_url)
            if site.scheme and site.netloc:
                return f"{site.scheme}://{site.netloc}{reference}"
        return None

    origin = f"{base.scheme}://{base.netloc}"
    if reference.startswith('/'):
        return origin + reference

    base_path = base.path or '/'
    if not base_path.endswith('/'):
        base_path = posixpath.dirname(base_path)
    base_path = base_path.rstrip('/') + '/'

    ref_path, suffix = _split_suffix(reference)
    return origin + _collapse_path(base_path + ref_path) + suffix


def relative_path(from_file, to_file):
    """
    Path from the directory of one output file to another output file.
    Both are paths inside the same export tree; the result never depends on
    where that tree is finally deployed.
    """
    from_file = from_file.replace('\\', '/')
    to_file = to_file.replace('\\', '/')
    from_dir = posixpath.dirname(from_file)
    to_dir = posixpath.dirname(to_file)
    to_name = posixpath.basename(to_file)
    if from_dir == to_dir:
        return to_name

    from_parts = [part for part in from_dir.split('/') if part]
    to_parts = [part for part in to_dir.split('/') if part]
    common = 0
    for from_part, to_part in zip(from_parts, to_parts):
        if from_part != to_part:
            break
        common += 1

    parts = ['..'] * (len(from_parts) - common) + to_parts[common:] + [to_name]
    return '/'.join(parts)


def strip_fragment(url):
    return urldefrag(url)[0]


def is_internal(url, site_url):
    """True when the absolute URL lives under the site URL (scheme, host and path prefix)."""
    if not url:
        return False
    try:
        parsed = urlparse(url)
        site = urlparse(site_url)
    except ValueError:
        return False
    if parsed.scheme.lower() != site.scheme.lower() or parsed.netloc.lower() != site.netloc.lower():
        return False
    prefix = site.path or '/'
    path = parsed.path or '/'
    return path.startswith(prefix) or path + '/' == prefix


def _site_relative_path(url, site_url):
    path = urlparse(url).path or '/'
    prefix = urlparse(site_url).path or '/'
    if path.startswith(prefix):
        return unquote(path[len(prefix):])
    return ''


def _safe_segments(relative):
    return [part for part in relative.split('/') if part not in ('', '.', '..')]


def _query_segment(url):
    """'?page_id=5&lang=en' -> 'page_id=5_lang=en'; '' when there is no query."""
    query = unquote(urlparse(url).query)
    return QUERY_UNSAFE_RE.sub('_', query).strip('_')


def page_save_path(url, site_url):
    """
    'https://site/about/' -> 'about/index.html'; the site root -> 'index.html'.
    A query string gets its own directory so '/?page_id=5' does not
    overwrite the root page: 'page_id=5/index.html'.
    """
    segments = _safe_segments(_site_relative_path(url, site_url))
    segments += _safe_segments(_query_segment(url))
    return '/'.join(segments + [constants.INDEX_FILENAME])


def asset_save_path(url, site_url):
    """'https://site/theme/style.css?ver=2' -> 'assets/theme/style.css'."""
    relative = _site_relative_path(url, site_url)
    segments = _safe_segments(relative)
    if not segments or relative.endswith('/'):
        segments.append(constants.ASSET_FALLBACK_FILENAME)
    return '/'.join([constants.ASSETS_DIR_NAME] + segments)


def to_href(path):
    """Percent-encodes a file-system path for use inside an attribute value."""
    return quote(path, safe=HREF_SAFE_CHARS)


class LinkRenderer:
    """
    Renders the reference from one output file to another.

    Relative mode produces paths that work wherever the tree is unpacked.
    Absolute mode prefixes the target's output path with the configured
    deployment URL; pages are rendered as their directory URL.
    """

    def __init__(self, options):
        self.absolute_base = None
        if options.absolute_mode:
            self.absolute_base = options.absolute_url.rstrip('/') + '/'

    def link(self, from_path, to_path):
        if self.absolute_base:
            return self.absolute_base + to_href(to_path)
        return to_href(relative_path(from_path, to_path))

    def page_link(self, from_path, to_page_path):
        if self.absolute_base:
            directory = posixpath.dirname(to_page_path)
            return self.absolute_base + (to_href(directory) + '/' if directory else '')
        return to_href(relative_path(from_path, to_page_path))
