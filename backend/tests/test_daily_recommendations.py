"""
Tests for the daily recommendation selector and its date-seeded shuffle.

Book ids are chosen so their leading hex digits are known:
00000001 -> 1, 000002bc -> 700, 00000300 -> 768.
"""
from datetime import date
from uuid import UUID

from bookloop.models import ReadingStatusValue
from bookloop.services import daily_recommendations as daily

LOW_ID = UUID("00000001-0000-4000-8000-000000000000")
MID_ID = UUID("000002bc-0000-4000-8000-000000000000")
HIGH_ID = UUID("00000300-0000-4000-8000-000000000000")

MARCH_15 = date(2026, 3, 15)
NEW_YEAR = date(2026, 1, 1)


def _ids(books):
    return [book.id for book in books]


# ----------------------------
# Shuffle helpers
# ----------------------------
def test_daily_seed_uses_last_three_digits_of_date():
    assert daily.daily_seed(MARCH_15) == 315
    assert daily.daily_seed(NEW_YEAR) == 101


def test_id_prefix_value():
    assert daily.id_prefix_value(LOW_ID) == 1
    assert daily.id_prefix_value(MID_ID) == 700
    assert daily.id_prefix_value("00000300-anything") == 768
    assert daily.id_prefix_value("zzzz") == 0
    assert daily.id_prefix_value("12xyz") == 0x12


def test_shuffle_key_wraps_at_bucket_count():
    assert daily.shuffle_key(MARCH_15, LOW_ID) == 316
    assert daily.shuffle_key(MARCH_15, MID_ID) == 15
    assert daily.shuffle_key(MARCH_15, HIGH_ID) == 83


def test_shuffle_order_changes_with_the_day(make_book):
    books = [make_book(id=book_id) for book_id in (LOW_ID, MID_ID, HIGH_ID)]

    assert _ids(daily.daily_shuffle(books, MARCH_15)) == [MID_ID, HIGH_ID, LOW_ID]
    assert _ids(daily.daily_shuffle(books, NEW_YEAR)) == [LOW_ID, MID_ID, HIGH_ID]


def test_shuffle_is_independent_of_input_order(make_book):
    books = [make_book(id=book_id) for book_id in (LOW_ID, MID_ID, HIGH_ID)]

    assert daily.daily_shuffle(books, MARCH_15) == daily.daily_shuffle(list(reversed(books)), MARCH_15)


# ----------------------------
# Selection
# ----------------------------
def _reviewed_book(make_book, make_review, reviewer, rating=4, **kwargs):
    book = make_book(**kwargs)
    make_review(reviewer, book, rating=rating)
    return book


def test_genre_and_following_picks_are_shuffled(db, make_user, make_book, make_review, make_follow):
    viewer = make_user(preferred_genres=["Fantasy"])
    friend = make_user()
    make_follow(viewer, friend)

    genre_pick = _reviewed_book(make_book, make_review, friend, id=MID_ID, categories=["Fantasy"])
    social_pick = _reviewed_book(make_book, make_review, friend, rating=5, id=LOW_ID, categories=["Horror"])
    _reviewed_book(make_book, make_review, friend, rating=2, id=HIGH_ID, categories=["Horror"])

    books = daily.select_daily_books(db, viewer, limit=2, today=MARCH_15)

    # one slot per source: social_pick outrates genre_pick among the friend's 4+ reviews
    assert _ids(books) == [genre_pick.id, social_pick.id]


def test_same_day_is_stable(db, make_user, make_book, make_review):
    viewer = make_user(preferred_genres=["Fantasy"])
    reviewer = make_user()
    for book_id in (LOW_ID, MID_ID, HIGH_ID):
        _reviewed_book(make_book, make_review, reviewer, id=book_id, categories=["Fantasy"])

    first = daily.select_daily_books(db, viewer, limit=3, today=MARCH_15)
    second = daily.select_daily_books(db, viewer, limit=3, today=MARCH_15)

    assert _ids(first) == _ids(second)


def test_completed_books_are_never_recommended(db, make_user, make_book, make_review, make_follow, set_status):
    viewer = make_user(preferred_genres=["Fantasy"])
    friend = make_user()
    make_follow(viewer, friend)

    finished = _reviewed_book(make_book, make_review, friend, rating=5, categories=["Fantasy"])
    unread = _reviewed_book(make_book, make_review, friend, rating=5, categories=["Fantasy"])
    popular = _reviewed_book(make_book, make_review, friend, rating=3, categories=["Poetry"])
    set_status(viewer, finished, ReadingStatusValue.COMPLETED)

    books = daily.select_daily_books(db, viewer, limit=5, today=MARCH_15)

    assert finished.id not in _ids(books)
    assert set(_ids(books)) == {unread.id, popular.id}


def test_backfills_with_popular_books(db, make_user, make_book, make_review):
    viewer = make_user()
    readers = [make_user() for _ in range(3)]
    most = make_book()
    some = make_book()
    make_book()  # never reviewed, not recommendable
    for reader in readers:
        make_review(reader, most)
    make_review(readers[0], some)

    books = daily.select_daily_books(db, viewer, limit=5, today=MARCH_15)

    assert _ids(books) == [most.id, some.id]


def test_backfill_does_not_repeat_picks(db, make_user, make_book, make_review):
    viewer = make_user(preferred_genres=["Fantasy"])
    readers = [make_user() for _ in range(2)]
    pick = make_book(categories=["Fantasy"])
    other = make_book(categories=["Poetry"])
    for reader in readers:
        make_review(reader, pick)
    make_review(readers[0], other)

    books = daily.select_daily_books(db, viewer, limit=5, today=MARCH_15)

    assert _ids(books) == [pick.id, other.id]


def test_anonymous_viewer_gets_popular_books(db, make_user, make_book, make_review):
    readers = [make_user() for _ in range(2)]
    most = make_book()
    less = make_book()
    for reader in readers:
        make_review(reader, most, rating=3)
    make_review(readers[0], less, rating=5)

    books = daily.select_daily_books(db, None, limit=5, today=MARCH_15)

    assert _ids(books) == [most.id, less.id]


def test_payload_wraps_books(db, make_user, make_book, make_review):
    book = _reviewed_book(make_book, make_review, make_user())

    payload = daily.get_daily_recommendations(db, None, limit=5)

    assert list(payload) == ["books"]
    assert [item["id"] for item in payload["books"]] == [str(book.id)]


def test_other_day_reorders_the_same_picks(db, make_user, make_book, make_review):
    viewer = make_user(preferred_genres=["Fantasy"])
    reviewer = make_user()
    for book_id in (LOW_ID, MID_ID, HIGH_ID):
        _reviewed_book(make_book, make_review, reviewer, id=book_id, categories=["Fantasy"])

    march = daily.select_daily_books(db, viewer, limit=6, today=MARCH_15)
    new_year = daily.select_daily_books(db, viewer, limit=6, today=NEW_YEAR)

    assert set(_ids(march)) == set(_ids(new_year))
    assert _ids(march) == [MID_ID, HIGH_ID, LOW_ID]
    assert _ids(new_year) == [LOW_ID, MID_ID, HIGH_ID]


def test_popular_books_skip_excluded_and_unreviewed(db, make_user, make_book, make_review):
    readers = [make_user() for _ in range(2)]
    top = make_book()
    runner_up = make_book()
    make_book()
    for reader in readers:
        make_review(reader, top)
    make_review(readers[0], runner_up)

    assert _ids(daily.get_popular_books(db, 5)) == [top.id, runner_up.id]
    assert _ids(daily.get_popular_books(db, 5, excluded_ids={top.id})) == [runner_up.id]
    assert daily.get_popular_books(db, 0) == []
