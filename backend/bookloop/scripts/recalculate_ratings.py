"""
Recompute Book.average_rating / Book.review_count from the reviews table.

Use after bulk imports or manual edits that bypassed the review endpoints.
Run with: python -m bookloop.scripts.recalculate_ratings [--book-id UUID]
"""
import argparse
import sys
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from bookloop.database import SessionLocal
from bookloop.services.ratings import recalculate_all_book_ratings, recalculate_book_rating


def main(argv: Optional[Sequence[str]] = None, db: Optional[Session] = None) -> int:
    parser = argparse.ArgumentParser(description="Recompute book rating aggregates")
    parser.add_argument("--book-id", type=UUID, default=None, help="Only recompute this book")
    args = parser.parse_args(argv)

    owns_session = db is None
    db = db or SessionLocal()
    try:
        if args.book_id:
            book = recalculate_book_rating(db, args.book_id)
            if book is None:
                print(f"Book {args.book_id} not found")
                return 1
            db.commit()
            print(f"{book.title}: average_rating={book.average_rating:.2f} review_count={book.review_count}")
        else:
            count = recalculate_all_book_ratings(db)
            print(f"Recalculated {count} books")
        return 0
    except Exception:
        db.rollback()
        raise
    finally:
        if owns_session:
            db.close()


if __name__ == "__main__":
    sys.exit(main())
