"""Decoding of paginated ``Listing`` envelopes."""

import logging
from typing import TYPE_CHECKING, AbstractSet, Optional

from reddit_fetcher.errors import KindMismatchError, ListingChildError, ParseError
from reddit_fetcher.models.things import Envelope, Kind, Listing
from reddit_fetcher.parsing.decoders import check_fullname
from reddit_fetcher.parsing.fields import FieldReader, json_type_name

if TYPE_CHECKING:
    from reddit_fetcher.parsing.parser import ThingParser

logger = logging.getLogger(__name__)


class ListingDecoder:
    """
    Decoder for ``Listing`` envelopes.

    Children are dispatched back through the owning parser in a single linear
    pass. A listing is atomic: the first child that fails aborts the whole
    listing with a ``ListingChildError`` carrying the child's index.

    Args:
        parser: Parser used to dispatch each child envelope
    """

    def __init__(self, parser: "ThingParser"):
        self.parser = parser

    def decode(
        self,
        envelope: Envelope,
        depth: int = 0,
        allowed_kinds: Optional[AbstractSet[str]] = None,
    ) -> Listing:
        """
        Decode a listing envelope.

        Args:
            envelope: Envelope of kind ``Listing``
            depth: Tree depth of the listing's children
            allowed_kinds: If given, every child must have one of these kinds

        Returns:
            Listing with children in wire order

        Raises:
            KindMismatchError: If the envelope is not a listing
            DecodeError: If the listing payload is malformed
            ListingChildError: If any child fails to parse
        """
        if envelope.kind != Kind.LISTING.value:
            raise KindMismatchError(Kind.LISTING.value, envelope.kind)

        r = FieldReader(Kind.LISTING.value, envelope.data)
        raw_children = r.data.get("children")
        if raw_children is None:
            raw_children = []
        elif not isinstance(raw_children, list):
            raise r.error("children", f"expected array, got {json_type_name(raw_children)}")

        before = r.optional_string("before")
        after = r.optional_string("after")
        check_fullname(r, "before", before)
        check_fullname(r, "after", after)

        children = []
        for index, raw_child in enumerate(raw_children):
            try:
                child = Envelope.from_dict(raw_child)
                if allowed_kinds is not None and child.kind not in allowed_kinds:
                    raise KindMismatchError(" or ".join(sorted(allowed_kinds)), child.kind)
                if child.kind == Kind.LISTING.value:
                    children.append(self._decode_nested(child, depth + 1))
                else:
                    children.append(self.parser.dispatch(child, depth))
            except ParseError as e:
                raise ListingChildError(index, e) from e

        return Listing(
            children=children,
            before=before,
            after=after,
            modhash=r.optional_string("modhash"),
            dist=r.optional_integer("dist"),
        )

    def _decode_nested(self, envelope: Envelope, depth: int) -> Listing:
        if depth > self.parser.max_depth:
            logger.warning(f"Nested listing at depth {depth} exceeds max depth {self.parser.max_depth}; truncating")
            self.parser.record_truncation()
            return Listing()
        return self.decode(envelope, depth)
