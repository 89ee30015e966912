"""Tests for the following-scoped feeds."""
from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from bookloop.services import social_graph

NOW = datetime(2026, 3, 15, 12, 0, 0)


def test_feeds_are_empty_without_follows(db, make_user, make_book, make_review, make_favorite):
    viewer = make_user()
    other = make_user()
    book = make_book()
    make_review(other, book, created_at=NOW - timedelta(days=1))
    make_favorite(other, book, created_at=NOW - timedelta(days=1))

    assert social_graph.get_following_trending(db, viewer.id, now=NOW) == []
    assert social_graph.get_following_books(db, viewer.id) == []
    assert social_graph.get_following_activity(db, viewer.id) == []


def test_feeds_are_empty_for_anonymous_viewer(db):
    assert social_graph.get_following_ids(db, None) == []
    assert social_graph.get_following_activity(db, None) == []


def test_activity_merges_reviews_and_favorites_newest_first(
    db, make_user, make_book, make_review, make_favorite, make_follow
):
    viewer, reviewer, favoriter = make_user(), make_user(), make_user()
    make_follow(viewer, reviewer)
    make_follow(viewer, favoriter)
    reviewed = make_book(title="X")
    favorited = make_book(title="Y")

    review = make_review(reviewer, reviewed, rating=5, created_at=NOW - timedelta(days=1))
    favorite = make_favorite(favoriter, favorited, created_at=NOW - timedelta(hours=1))

    activity = social_graph.get_following_activity(db, viewer.id)

    assert [event["id"] for event in activity] == [f"favorite-{favorite.id}", f"review-{review.id}"]
    assert [event["type"] for event in activity] == ["favorite", "review"]
    assert activity[0]["rating"] is None
    assert activity[0]["content"] is None
    assert activity[0]["book"]["title"] == "Y"
    assert activity[0]["user"]["id"] == str(favoriter.id)
    assert activity[1]["rating"] == 5
    assert activity[1]["book"]["title"] == "X"
    assert activity[1]["user"]["id"] == str(reviewer.id)


def test_activity_ignores_unfollowed_and_private(db, make_user, make_book, make_review, make_follow):
    viewer, friend, stranger = make_user(), make_user(), make_user()
    make_follow(viewer, friend)
    make_review(friend, make_book(), is_public=False, created_at=NOW)
    make_review(stranger, make_book(), created_at=NOW)

    assert social_graph.get_following_activity(db, viewer.id) == []


def test_activity_limit(db, make_user, make_book, make_favorite, make_follow):
    viewer, friend = make_user(), make_user()
    make_follow(viewer, friend)
    for hours in range(5):
        make_favorite(friend, make_book(), created_at=NOW - timedelta(hours=hours))

    assert len(social_graph.get_following_activity(db, viewer.id, limit=3)) == 3


def test_following_books_keeps_most_recent_review_per_book(db, make_user, make_book, make_review, make_follow):
    viewer, first, second = make_user(), make_user(), make_user()
    make_follow(viewer, first)
    make_follow(viewer, second)
    shared = make_book()
    solo = make_book()

    make_review(first, shared, rating=3, created_at=NOW - timedelta(days=3))
    make_review(second, shared, rating=5, created_at=NOW - timedelta(days=1))
    make_review(first, solo, rating=4, created_at=NOW - timedelta(days=2))

    books = social_graph.get_following_books(db, viewer.id)

    assert [book["id"] for book in books] == [str(shared.id), str(solo.id)]
    assert books[0]["reviewed_by"]["id"] == str(second.id)
    assert books[0]["rating"] == 5
    assert books[1]["reviewed_by"]["id"] == str(first.id)


def test_following_books_limit_counts_distinct_books(db, make_user, make_book, make_review, make_follow):
    viewer, first, second = make_user(), make_user(), make_user()
    make_follow(viewer, first)
    make_follow(viewer, second)
    books = [make_book() for _ in range(3)]
    for offset, book in enumerate(books):
        make_review(first, book, created_at=NOW - timedelta(days=offset))
        make_review(second, book, created_at=NOW - timedelta(days=offset, hours=1))

    result = social_graph.get_following_books(db, viewer.id, limit=2)

    assert [book["id"] for book in result] == [str(books[0].id), str(books[1].id)]


def test_following_trending_counts_only_followed_public_activity(
    db, make_user, make_book, make_review, make_favorite, make_follow
):
    viewer, friend, stranger = make_user(), make_user(), make_user()
    make_follow(viewer, friend)
    liked = make_book()
    secret = make_book()
    other = make_book()

    make_review(friend, liked, created_at=NOW - timedelta(days=1))
    make_favorite(friend, liked, created_at=NOW - timedelta(days=1))
    make_review(friend, secret, is_public=False, created_at=NOW - timedelta(days=1))
    make_review(stranger, other, created_at=NOW - timedelta(days=1))

    results = social_graph.get_following_trending(db, viewer.id, days_range=7, now=NOW)

    assert [item["id"] for item in results] == [str(liked.id)]
    assert results[0]["activity_count"] == 2


def test_following_books_pages_never_repeat_a_book(db, make_user, make_book, make_review, make_follow):
    viewer, first, second = make_user(), make_user(), make_user()
    make_follow(viewer, first)
    make_follow(viewer, second)
    newest, middle, oldest = make_book(), make_book(), make_book()

    make_review(first, newest, created_at=NOW - timedelta(hours=1))
    make_review(first, middle, created_at=NOW - timedelta(hours=2))
    make_review(second, newest, created_at=NOW - timedelta(hours=3))
    make_review(second, oldest, created_at=NOW - timedelta(hours=4))

    page_one = social_graph.get_following_books_page(db, viewer.id, limit=2)
    page_two = social_graph.get_following_books_page(db, viewer.id, limit=2, cursor=page_one["next_cursor"])

    assert [book["id"] for book in page_one["books"]] == [str(newest.id), str(middle.id)]
    assert [book["id"] for book in page_two["books"]] == [str(oldest.id)]
    assert page_two["next_cursor"] is None


def test_following_books_unknown_cursor(db, make_user, make_book, make_review, make_follow):
    viewer, friend = make_user(), make_user()
    make_follow(viewer, friend)
    make_review(friend, make_book(), created_at=NOW)

    with pytest.raises(ValueError):
        social_graph.get_following_books_page(db, viewer.id, cursor=uuid4())
