# Module for cleaning a rendered page and rewriting its links for the static copy

import logging
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urldefrag

from bs4 import BeautifulSoup
from bs4.element import Comment, Stylesheet

import constants
from asset_registry import AssetKind, FOUND_IN_PAGE
from css_processor import rewrite_css
from path_utils import asset_save_path, is_internal, resolve_absolute

# Set up a specific logger for this module
logger = logging.getLogger(__name__)


class AttributePolicy(Enum):
    STYLESHEET = "stylesheet" # Registered as a stylesheet, link node kept for combine mode
    ASSET = "asset"           # Single URL registered as a plain asset
    SRCSET = "srcset"         # Comma separated candidates, each registered as a plain asset


@dataclass(frozen=True)
class AssetAttribute:
    tag: str
    attribute: str
    policy: AttributePolicy
    rel: tuple = () # For <link>: at least one of these rel tokens must be present


ASSET_ATTRIBUTES = (
    AssetAttribute('link', 'href', AttributePolicy.STYLESHEET, rel=('stylesheet',)),
    AssetAttribute('link', 'href', AttributePolicy.ASSET, rel=('icon', 'apple-touch-icon')),
    AssetAttribute('script', 'src', AttributePolicy.ASSET),
    AssetAttribute('img', 'src', AttributePolicy.ASSET),
    AssetAttribute('img', 'srcset', AttributePolicy.SRCSET),
    AssetAttribute('source', 'src', AttributePolicy.ASSET),
    AssetAttribute('source', 'srcset', AttributePolicy.SRCSET),
    AssetAttribute('video', 'src', AttributePolicy.ASSET),
    AssetAttribute('video', 'poster', AttributePolicy.ASSET),
    AssetAttribute('audio', 'src', AttributePolicy.ASSET),
)


# --- Internal Helper Functions ---
def trim_leading_garbage(html_content, page_url):
    """Drops anything printed before the doctype or <html> tag (PHP notices and the like)."""
    lowered = html_content.lower()
    position = lowered.find('<!doctype')
    if position == -1:
        position = lowered.find('<html')
    if position > 0:
        prefix = html_content[:position]
        if prefix.strip():
            logger.warning(f"Warning: Found and removed potential prefix text before DOCTYPE/HTML tag on {page_url}. Prefix: {prefix[:100]}...")
        html_content = html_content[position:]
    return html_content


def removal_selectors(options):
    """CSS selectors of the nodes to strip for the given options."""
    selectors = list(constants.BASE_REMOVAL_SELECTORS)
    if not options.convert_forms:
        selectors += constants.FORM_REMOVAL_SELECTORS
    if options.optimize_output:
        selectors += constants.OPTIMIZE_REMOVAL_SELECTORS
        if options.convert_forms:
            selectors += constants.OPTIMIZE_FORM_PLUGIN_SELECTORS
    if options.use_font_icon_cdn:
        selectors += constants.FONT_ICON_LINK_SELECTORS
    return selectors


def remove_unwanted_elements(soup, options):
    """Removes dynamic and unwanted markup. Returns the number of removed nodes."""
    removed = 0
    for selector in removal_selectors(options):
        for node in soup.select(selector):
            if node.decomposed: # Already gone with an ancestor
                continue
            node.decompose()
            removed += 1

    if options.optimize_output:
        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            if any(marker in comment for marker in constants.SEO_COMMENT_MARKERS):
                comment.extract()
                removed += 1
    return removed


def inject_font_icon_cdn(soup):
    """Appends the CDN stylesheet to <head> unless one is already linked."""
    head = soup.head
    if head is None or soup.select_one(constants.FONT_ICON_CDN_SELECTOR):
        return False
    head.append(soup.new_tag('link', attrs={'rel': 'stylesheet', 'href': constants.FONT_AWESOME_CDN_URL}))
    logger.info("Injecting Font Awesome CDN link.")
    return True


def _rel_tokens(node):
    rel = node.get('rel') or []
    if isinstance(rel, str):
        rel = rel.split()
    return {token.lower() for token in rel}


def _with_fragment(value, fragment):
    return f"{value}#{fragment}" if fragment else value


class PageRewriter:
    """Rewrites one parsed page in place. Holds no state beyond that page."""

    def __init__(self, soup, page_url, save_path, job):
        self.soup = soup
        self.page_url = page_url
        self.save_path = save_path
        self.job = job
        self.site_url = job.site_url
        self.options = job.options
        self.renderer = job.renderer
        self.stylesheet_links = []

    # --- Assets ---
    def _is_excluded(self, node, absolute_url):
        """Stylesheets and scripts replaced by the CDN or by form conversion are left untouched."""
        if node.name not in ('link', 'script'):
            return False
        if self.options.use_font_icon_cdn and any(marker in absolute_url for marker in constants.FONT_ICON_URL_MARKERS):
            logger.info(f"Skipping local Font Awesome asset due to CDN option: {absolute_url}")
            return True
        if self.options.convert_forms and constants.FORM_PLUGIN_URL_MARKER in absolute_url:
            logger.info(f"Skipping form plugin asset due to form conversion: {absolute_url}")
            return True
        return False

    def _rewrite_asset_value(self, node, value, kind):
        """Registers the asset a value points at and returns the replacement, or None."""
        absolute = resolve_absolute(value, self.page_url, self.site_url)
        if not absolute or not is_internal(absolute, self.site_url):
            return None
        if self._is_excluded(node, absolute):
            return None
        asset_url, fragment = urldefrag(absolute)
        self.job.registry.register(asset_url, kind, FOUND_IN_PAGE)
        target = asset_save_path(asset_url, self.site_url)
        return _with_fragment(self.renderer.link(self.save_path, target), fragment)

    def _handle_stylesheet(self, node, attribute, value):
        new_value = self._rewrite_asset_value(node, value, AssetKind.STYLESHEET)
        if new_value is not None:
            node[attribute] = new_value
            self.stylesheet_links.append(node)

    def _handle_asset(self, node, attribute, value):
        new_value = self._rewrite_asset_value(node, value, AssetKind.OTHER)
        if new_value is not None:
            node[attribute] = new_value

    def _handle_srcset(self, node, attribute, value):
        if value.strip().startswith('data:'):
            return
        candidates = []
        for candidate in value.split(','):
            parts = candidate.split()
            if not parts:
                continue
            new_url = self._rewrite_asset_value(node, parts[0], AssetKind.OTHER)
            candidates.append(' '.join([new_url or parts[0]] + parts[1:]))
        node[attribute] = ', '.join(candidates)

    def rewrite_assets(self):
        for rule in ASSET_ATTRIBUTES:
            handler = _POLICY_HANDLERS[rule.policy]
            for node in self.soup.find_all(rule.tag):
                if node.decomposed or not node.has_attr(rule.attribute):
                    continue
                if rule.rel and not (_rel_tokens(node) & set(rule.rel)):
                    continue
                value = node[rule.attribute]
                if value and value.strip():
                    handler(self, node, rule.attribute, value.strip())

    def rewrite_inline_css(self):
        for style in self.soup.find_all('style'):
            if style.string:
                new_text = rewrite_css(str(style.string), self.page_url, self.save_path, self.job)
                if new_text != style.string:
                    style.string = Stylesheet(new_text)
        for node in self.soup.find_all(style=True):
            new_text = rewrite_css(node['style'], self.page_url, self.save_path, self.job)
            if new_text != node['style']:
                node['style'] = new_text

    # --- Combine Mode ---
    def combine_stylesheets(self):
        if not self.options.optimize_output or not self.stylesheet_links:
            return
        logger.info("Combining CSS: Removing original links and adding combined link.")
        for node in self.stylesheet_links:
            if not node.decomposed:
                node.decompose()
        head = self.soup.head
        if head is not None and self.soup.find('link', id=constants.COMBINED_CSS_LINK_ID) is None:
            head.append(self.soup.new_tag('link', attrs={
                'rel': 'stylesheet',
                'id': constants.COMBINED_CSS_LINK_ID,
                'href': self.renderer.link(self.save_path, constants.COMBINED_CSS_PATH),
            }))
            logger.info("Added combined CSS link tag.")

    # --- Forms ---
    def convert_forms(self):
        forms = self.soup.find_all('form')
        if not forms:
            return
        logger.info(f"Converting {len(forms)} forms on {self.page_url} to use PHP mailer.")
        action = self.renderer.link(self.save_path, constants.MAILER_SCRIPT_PATH)
        for form in forms:
            form['action'] = action
            form['method'] = 'POST'
            for hidden in form.find_all('input', attrs={'type': 'hidden'}):
                name = hidden.get('name') or ''
                if name.startswith(constants.CMS_HIDDEN_FIELD_PREFIXES):
                    hidden.decompose()
                    logger.debug(f"Removed hidden input: {name}")
            form.append(self.soup.new_tag('input', attrs={
                'type': 'hidden',
                'name': constants.FORM_LOCATION_FIELD,
                'value': self.page_url,
            }))

    # --- Internal Links ---
    def rewrite_links(self):
        for link in self.soup.find_all('a', href=True):
            href = link['href'].strip()
            if not href or href.startswith('#'):
                continue
            absolute = resolve_absolute(href, self.page_url, self.site_url)
            if not absolute:
                continue
            target_url, fragment = urldefrag(absolute)

            target_path = self.job.page_save_path_for(target_url)
            if target_path is not None:
                link['href'] = _with_fragment(self.renderer.page_link(self.save_path, target_path), fragment)
            elif is_internal(target_url, self.site_url):
                link['href'] = '#'
                logger.warning(f"Warning: Rewriting internal link {href} to # as target is not exported.")


_POLICY_HANDLERS = {
    AttributePolicy.STYLESHEET: PageRewriter._handle_stylesheet,
    AttributePolicy.ASSET: PageRewriter._handle_asset,
    AttributePolicy.SRCSET: PageRewriter._handle_srcset,
}
_missing_policies = set(AttributePolicy) - set(_POLICY_HANDLERS)
if _missing_policies:
    raise RuntimeError(f"No handler for attribute policies: {_missing_policies}")


# --- Main Page Processing ---
def process_page(html_content, page_url, save_path, job):
    """
    Cleans a fetched page and rewrites every internal reference for the export tree.

    Returns:
        str: The HTML to save. When the markup cannot be parsed the page is
             returned unmodified (after trimming leading garbage).
    """
    html_content = trim_leading_garbage(html_content, page_url)
    options = job.options

    try:
        soup = BeautifulSoup(html_content, 'html.parser')
    except Exception as e:
        logger.warning(f"Warning: Could not parse HTML for {page_url}. Skipping modification. ({e})", exc_info=True)
        return html_content

    removed = remove_unwanted_elements(soup, options)
    logger.info(f"Removed {removed} dynamic/unwanted elements from {page_url}")

    if options.use_font_icon_cdn:
        inject_font_icon_cdn(soup)

    rewriter = PageRewriter(soup, page_url, save_path, job)
    logger.info(f"Discovering assets & rewriting links for {page_url} (Mode: {options.url_rewrite_mode})")
    rewriter.rewrite_assets()
    rewriter.rewrite_inline_css()
    rewriter.combine_stylesheets()
    if options.convert_forms:
        rewriter.convert_forms()
    rewriter.rewrite_links()

    return str(soup)
