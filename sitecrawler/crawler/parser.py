"""
HTML link extraction for in-scope anchors.
"""

import logging
from typing import List

from bs4 import BeautifulSoup

from .link_filter import LinkFilter


class ParseError(Exception):
    """Raised when a page body cannot be parsed as HTML."""


class LinkExtractor:
    """
    Walks a parsed document and collects the href of every anchor the
    link filter accepts, in document order.
    """

    def __init__(self, link_filter: LinkFilter, features: str = 'lxml'):
        self.link_filter = link_filter
        self.features = features
        self.logger = logging.getLogger(__name__)

    def parse(self, html_content: str) -> BeautifulSoup:
        """
        Parse HTML into a traversable element tree.

        Raises:
            ParseError: If the parser rejects the markup
        """
        try:
            return BeautifulSoup(html_content, self.features)
        except Exception as e:
            raise ParseError(f"could not parse HTML: {e}") from e

    def find_links(self, soup: BeautifulSoup) -> List[str]:
        """Collect accepted anchor hrefs from an element tree. Duplicates are kept."""
        links = []
        for anchor in soup.find_all('a'):
            href = anchor.get('href')
            if href is None:
                continue
            accepted, link = self.link_filter.accept(href)
            if accepted:
                links.append(link)
        return links

    def extract_links(self, html_content: str) -> List[str]:
        """
        Parse HTML and return the accepted anchor hrefs.

        Args:
            html_content: Raw HTML content

        Returns:
            Accepted hrefs, unresolved, in document order

        Raises:
            ParseError: If the parser rejects the markup
        """
        links = self.find_links(self.parse(html_content))
        self.logger.debug(f"Extracted {len(links)} in-scope links")
        return links
