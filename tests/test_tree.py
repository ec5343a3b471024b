"""Tests for comment tree navigation."""

import pytest

from tests.builders import comment, listing, more
from reddit_fetcher.models import Comment, CommentTree, TraversalOptions, TraversalOrder


@pytest.fixture
def tree(parser):
    roots = [
        parser.parse_comment(
            comment(
                "a1",
                author="alice",
                replies=listing([comment("b1", replies=listing([comment("c1", author="alice")])), more("m1", ["x1"])]),
            )
        ),
        parser.parse_comment(comment("a2", replies=listing([comment("b2", replies=listing([more("m2", ["y1", "y2"])]))]))),
    ]
    return CommentTree(roots)


def test_walk_is_preorder(tree):
    assert [(level, c.id) for level, c in tree.walk()] == [(0, "a1"), (1, "b1"), (2, "c1"), (0, "a2"), (1, "b2")]


def test_counts(tree):
    assert len(tree) == 5
    assert tree.count() == 5
    assert tree.depth() == 3
    assert [c.id for c in tree.top_level()] == ["a1", "a2"]


def test_lookup(tree):
    assert tree.get_by_id("c1").id == "c1"
    assert tree.get_by_id("t1_b2").id == "b2"
    assert tree.get_by_id("zz") is None
    assert [c.id for c in tree.get_by_author("alice")] == ["a1", "c1"]
    assert tree.find(lambda c: c.depth == 1).id == "b1"


def test_flatten_and_filter(tree):
    assert [c.id for c in tree.flatten()] == ["a1", "b1", "c1", "a2", "b2"]
    assert [c.id for c in tree.filter(lambda c: c.depth == 0)] == ["a1", "a2"]


def test_more_ids(tree):
    assert tree.more_ids() == ["x1", "y1", "y2"]


def test_empty_tree():
    tree = CommentTree([])

    assert len(tree) == 0
    assert tree.depth() == 0
    assert tree.flatten() == []


def test_deep_tree_does_not_recurse():
    root = Comment(id="c0")
    node = root
    for level in range(1, 5000):
        child = Comment(id=f"c{level}", depth=level)
        node.replies.append(child)
        node = child

    tree = CommentTree([root])

    assert tree.depth() == 5000
    assert tree.get_by_id("c4999").depth == 4999


def scored_tree():
    low = Comment(id="x", score=-2, depth=1, replies=[Comment(id="y", score=50, depth=2)])
    root = Comment(id="r1", score=10, replies=[low, Comment(id="z", score=3, depth=1)])
    return CommentTree([root, Comment(id="r2", score=1)])


def test_traverse_defaults_match_walk(tree):
    assert list(tree.traverse()) == list(tree.walk())


def test_traverse_breadth_first(tree):
    options = TraversalOptions(order=TraversalOrder.BREADTH_FIRST)

    assert [(level, c.id) for level, c in tree.traverse(options)] == [
        (0, "a1"),
        (0, "a2"),
        (1, "b1"),
        (1, "b2"),
        (2, "c1"),
    ]


def test_traverse_order_accepts_strings():
    assert TraversalOptions(order="breadth_first").order is TraversalOrder.BREADTH_FIRST


@pytest.mark.parametrize(
    "max_depth, expected",
    [(0, ["a1", "a2"]), (1, ["a1", "b1", "a2", "b2"]), (5, ["a1", "b1", "c1", "a2", "b2"])],
)
def test_traverse_max_depth(tree, max_depth, expected):
    assert [c.id for _, c in tree.traverse(TraversalOptions(max_depth=max_depth))] == expected


def test_traverse_negative_max_depth():
    with pytest.raises(ValueError):
        TraversalOptions(max_depth=-1)


def test_traverse_min_score_skips_whole_subtree():
    ids = [c.id for _, c in scored_tree().traverse(TraversalOptions(min_score=2))]

    assert ids == ["r1", "z"]


def test_traverse_filter_func(tree):
    options = TraversalOptions(filter_func=lambda c: c.author != "alice")

    assert [c.id for _, c in tree.traverse(options)] == ["a2", "b2"]


def test_traverse_combined_options():
    options = TraversalOptions(
        order=TraversalOrder.BREADTH_FIRST,
        max_depth=1,
        min_score=0,
        filter_func=lambda c: c.id != "r2",
    )

    assert [(level, c.id) for level, c in scored_tree().traverse(options)] == [(0, "r1"), (1, "z")]


def test_breadth_first_deep_tree_does_not_recurse():
    root = Comment(id="c0")
    node = root
    for level in range(1, 5000):
        child = Comment(id=f"c{level}", depth=level)
        node.replies.append(child)
        node = child

    pairs = list(CommentTree([root]).traverse(TraversalOptions(order=TraversalOrder.BREADTH_FIRST)))

    assert len(pairs) == 5000
    assert pairs[-1] == (4999, node)
