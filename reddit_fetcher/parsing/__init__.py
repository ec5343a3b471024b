"""Envelope parsing: kind dispatch, listing decoding and typed field access."""

from reddit_fetcher.parsing.listing import ListingDecoder
from reddit_fetcher.parsing.parser import MAX_COMMENT_DEPTH, ThingParser

__all__ = ["MAX_COMMENT_DEPTH", "ListingDecoder", "ThingParser"]
