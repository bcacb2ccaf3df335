# Module for rewriting stylesheet references
import logging
import re
from urllib.parse import urldefrag, urlparse

from asset_registry import AssetKind, FOUND_IN_STYLESHEET
from path_utils import asset_save_path, is_internal, resolve_absolute

logger = logging.getLogger(__name__)

CSS_URL_RE = re.compile(r"url\(\s*([\"']?)([^)\"']+)\1\s*\)", re.IGNORECASE)
CSS_IMPORT_RE = re.compile(r"@import\s+([\"'])([^\"']+)\1", re.IGNORECASE)
CSS_CHARSET_RE = re.compile(r"@charset\s+([\"'])[^\"']*\1\s*;[ \t]*\n?", re.IGNORECASE)
CSS_IMPORT_RULE_RE = re.compile(
    r"@import\s+(?:url\(\s*[^)]*\)|\"[^\"]*\"|'[^']*')[^;{}]*;[ \t]*\n?", re.IGNORECASE
)


def find_css_references(css_text):
    """Returns the distinct url(...) and @import "..." references, in order of appearance."""
    references = []
    for regex in (CSS_URL_RE, CSS_IMPORT_RE):
        for match in regex.finditer(css_text):
            reference = match.group(2).strip()
            if reference and reference not in references:
                references.append(reference)
    return references


def is_external_reference(reference):
    """data: URIs, anything with a scheme, protocol-relative URLs and #fragments are left alone."""
    if reference.startswith('data:') or reference.startswith('//') or reference.startswith('#'):
        return True
    try:
        return bool(urlparse(reference).scheme)
    except ValueError:
        return True


def _rewrite_reference(reference, css_url, css_save_path, job):
    """Registers the asset behind one reference and returns its new text, or None to leave it."""
    absolute = resolve_absolute(reference, css_url, job.site_url)
    if not absolute or not is_internal(absolute, job.site_url):
        return None

    asset_url, fragment = urldefrag(absolute)
    if urlparse(asset_url).path.lower().endswith('.css'):
        kind = AssetKind.STYLESHEET
    else:
        kind = AssetKind.OTHER
    if job.registry.register(asset_url, kind, FOUND_IN_STYLESHEET):
        logger.info(f"Queueing asset found in CSS: {asset_url}")

    new_value = job.renderer.link(css_save_path, asset_save_path(asset_url, job.site_url))
    if fragment:
        new_value += '#' + fragment
    return new_value


def rewrite_css(css_text, css_url, css_save_path, job):
    """
    Rewrites the internal references of a stylesheet so they point into the
    export tree, registering every referenced asset with the job's registry.

    css_url is where the text was found (used to resolve relative references);
    css_save_path is the output file the text will live in.
    """
    if not css_text:
        return css_text

    replacements = {}
    references = find_css_references(css_text)
    if references:
        logger.debug(f"Found {len(references)} potential url() paths in CSS from {css_url}.")
    for reference in references:
        if is_external_reference(reference):
            continue
        new_value = _rewrite_reference(reference, css_url, css_save_path, job)
        if new_value is not None:
            replacements[reference] = new_value

    if not replacements:
        return css_text

    def _replace_url(match):
        reference = match.group(2).strip()
        if reference not in replacements:
            return match.group(0)
        quote = match.group(1)
        return f"url({quote}{replacements[reference]}{quote})"

    def _replace_import(match):
        reference = match.group(2).strip()
        if reference not in replacements:
            return match.group(0)
        quote = match.group(1)
        return f"@import {quote}{replacements[reference]}{quote}"

    css_text = CSS_URL_RE.sub(_replace_url, css_text)
    return CSS_IMPORT_RE.sub(_replace_import, css_text)


def combine_stylesheets(chunks):
    """
    Joins (source_url, css_text) pairs into one stylesheet.

    @import rules are only valid at the top of a file, so every chunk's
    imports are hoisted (deduplicated, in order) above the merged bodies.
    @charset rules are dropped from the bodies; one UTF-8 charset leads the
    file when any chunk declared one.
    """
    imports = []
    bodies = []
    has_charset = False
    for source_url, css_text in chunks:
        css_text, charset_count = CSS_CHARSET_RE.subn('', css_text)
        has_charset = has_charset or charset_count > 0
        for match in CSS_IMPORT_RULE_RE.finditer(css_text):
            rule = match.group(0).strip()
            if rule not in imports:
                imports.append(rule)
        body = CSS_IMPORT_RULE_RE.sub('', css_text).strip()
        bodies.append(f"/* Source: {source_url} */\n{body}\n")

    head = []
    if has_charset:
        head.append('@charset "UTF-8";')
    head.extend(imports)
    if head:
        return "\n".join(head) + "\n\n" + "\n".join(bodies)
    return "\n".join(bodies)
