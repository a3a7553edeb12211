import logging
from typing import Any, Dict, List, Optional

from database import BOOKS, REVIEWS, DocumentStore, ReviewNotFoundError
from models import Book, Review, utcnow

logger = logging.getLogger(__name__)


def _contains(haystack: str, needle: str) -> bool:
    return needle.lower() in haystack.lower()


def _newest_first(reviews: List[Review]) -> List[Review]:
    return sorted(reviews, key=lambda r: (r.created_at, r.id), reverse=True)


class Library:
    """Queries and mutations over the book catalog and its reviews."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    # ------------------------- Books ------------------------- #
    def list_books(self, search: Optional[str] = None, author: Optional[str] = None,
                   category: Optional[str] = None) -> List[Book]:
        """Books matching every non-blank filter, sorted by title.

        ``search`` matches title or author; ``author`` and ``category`` match
        their own field. All comparisons are case-insensitive substrings.
        """
        books = self.store.load_books()

        if search and search.strip():
            books = [b for b in books if _contains(b.title, search) or _contains(b.author, search)]
        if author and author.strip():
            books = [b for b in books if _contains(b.author, author)]
        if category and category.strip():
            books = [b for b in books if _contains(b.category, category)]

        return sorted(books, key=lambda b: (b.title.lower(), b.title))

    def get_book(self, book_id: int) -> Optional[Book]:
        for book in self.store.load_books():
            if book.id == book_id:
                return book
        return None

    def add_book(self, book: Book) -> Book:
        with self.store.transaction(BOOKS) as books:
            book.id = self.store.next_id(books)
            books.append(book)
        logger.info(f"Added book #{book.id}: {book.title!r}")
        return book

    def list_categories(self) -> List[str]:
        categories = {b.category for b in self.store.load_books() if b.category.strip()}
        return sorted(categories, key=lambda c: (c.lower(), c))

    # ------------------------- Reviews ------------------------- #
    def list_reviews_for_book(self, book_id: int) -> List[Review]:
        return _newest_first([r for r in self.store.load_reviews() if r.book_id == book_id])

    def list_reviews_by_user(self, user_name: str) -> List[Review]:
        wanted = user_name.lower()
        return _newest_first([r for r in self.store.load_reviews() if r.user_name.lower() == wanted])

    def get_review(self, review_id: int) -> Optional[Review]:
        for review in self.store.load_reviews():
            if review.id == review_id:
                return review
        return None

    def add_review(self, review: Review) -> Review:
        """Save a new review; id and timestamp are always assigned here."""
        with self.store.transaction(REVIEWS) as reviews:
            review.id = self.store.next_id(reviews)
            review.created_at = utcnow()
            reviews.append(review)
        logger.info(f"Added review #{review.id} on book #{review.book_id} by {review.user_name!r}")
        return review

    def update_review(self, review: Review) -> Review:
        """Replace rating and comment of an existing review; other fields are kept."""
        with self.store.transaction(REVIEWS) as reviews:
            existing = next((r for r in reviews if r.id == review.id), None)
            if existing is None:
                raise ReviewNotFoundError(f"Review {review.id} not found.")
            existing.rating = review.rating
            existing.comment = review.comment
        logger.info(f"Updated review #{existing.id}")
        return existing

    def delete_review(self, review_id: int) -> None:
        with self.store.transaction(REVIEWS) as reviews:
            index = next((i for i, r in enumerate(reviews) if r.id == review_id), None)
            if index is None:
                raise ReviewNotFoundError(f"Review {review_id} not found.")
            del reviews[index]
        logger.info(f"Deleted review #{review_id}")

    # ------------------------- Statistics ------------------------- #
    def get_book_rating(self, book_id: int) -> Dict[str, Any]:
        ratings = [r.rating for r in self.store.load_reviews() if r.book_id == book_id]
        return {
            "book_id": book_id,
            "average_rating": sum(ratings) / len(ratings) if ratings else 0,
            "review_count": len(ratings),
        }

    def get_statistics(self) -> Dict[str, Any]:
        books = self.store.load_books()
        return {
            "total_books": len(books),
            "unique_authors": len({b.author for b in books}),
            "total_categories": len({b.category for b in books if b.category.strip()}),
            "total_reviews": len(self.store.load_reviews()),
        }
