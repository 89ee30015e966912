from sqlalchemy import event

from bookloop.services import rankings


def test_top_reviewers_excludes_users_without_reviews(db, make_user, make_book, make_review):
    prolific, casual, silent = make_user(), make_user(), make_user()
    books = [make_book() for _ in range(3)]
    for book in books:
        make_review(prolific, book)
    make_review(casual, books[0])

    leaderboard = rankings.get_top_reviewers(db)

    assert [entry["id"] for entry in leaderboard] == [str(prolific.id), str(casual.id)]
    assert [entry["review_count"] for entry in leaderboard] == [3, 1]
    assert str(silent.id) not in {entry["id"] for entry in leaderboard}


def test_top_followed_excludes_users_without_followers(db, make_user, make_follow):
    star, rising, fan_a, fan_b = make_user(), make_user(), make_user(), make_user()
    make_follow(fan_a, star)
    make_follow(fan_b, star)
    make_follow(fan_a, rising)

    leaderboard = rankings.get_top_followed(db)

    assert [entry["id"] for entry in leaderboard] == [str(star.id), str(rising.id)]
    assert leaderboard[0]["follower_count"] == 2
    assert leaderboard[0]["following_count"] == 0


def test_entries_carry_all_counts(db, make_user, make_book, make_review, make_follow):
    user, other = make_user(bio="Reads a lot"), make_user()
    make_review(user, make_book())
    make_follow(other, user)
    make_follow(user, other)

    entry = rankings.get_top_reviewers(db)[0]

    assert entry == {
        "id": str(user.id),
        "name": user.name,
        "image": None,
        "bio": "Reads a lot",
        "review_count": 1,
        "follower_count": 1,
        "following_count": 1,
    }


def test_ties_break_by_user_id_and_limit_applies(db, make_user, make_book, make_review):
    users = [make_user() for _ in range(3)]
    book = make_book()
    for user in users:
        make_review(user, book)

    leaderboard = rankings.get_top_reviewers(db, limit=2)

    assert [entry["id"] for entry in leaderboard] == sorted(str(user.id) for user in users)[:2]


def test_empty_store_has_empty_leaderboards(db, make_user):
    make_user()
    assert rankings.get_top_reviewers(db) == []
    assert rankings.get_top_followed(db) == []


def test_each_count_is_grouped_once_per_leaderboard(db, make_user, make_book, make_review, make_follow):
    author, fan = make_user(), make_user()
    make_review(author, make_book())
    make_follow(fan, author)

    statements = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        if "GROUP BY" in statement.upper():
            statements.append(statement)

    engine = db.get_bind()
    event.listen(engine, "before_cursor_execute", _record)
    try:
        rankings.get_top_reviewers(db)
    finally:
        event.remove(engine, "before_cursor_execute", _record)

    assert len(statements) == 3
