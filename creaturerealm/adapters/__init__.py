"""Adapters package initialization."""
from creaturerealm.adapters.fetcher import HtmlFetcher

__all__ = ["HtmlFetcher"]
