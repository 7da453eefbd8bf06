"""Product review storage for storedesk.

Reviews are kept in one JSON file per product under <data dir>/reviews/,
keyed by the product's ID.
"""

import re
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .errors import (
    InvalidReviewError,
    ProductNotFoundError,
    ReviewNotFoundError,
    ReviewPermissionError,
)
from .models import Review, _generate_id, _utc_now
from .storage import JsonFileStore, data_dir

REVIEWS_DIR = "reviews"
VOTE_TYPES = ("helpful", "notHelpful")

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]+$")


def _display_date(moment: datetime) -> str:
    """e.g. 'October 19, 2026'"""
    return f"{moment:%B} {moment.day}, {moment.year}"


def validate_review(rating: int, comment: str, name: str) -> None:
    """
    Check a submitted review.

    Raises:
        InvalidReviewError: If the rating is not 1-5 or comment/name is blank.
    """
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise InvalidReviewError("rating must be a whole number from 1 to 5")
    if not comment or not comment.strip():
        raise InvalidReviewError("please write a review comment")
    if not name or not name.strip():
        raise InvalidReviewError("please enter your name")


def _find(records: list[dict[str, Any]], review_id: str) -> int:
    for i, record in enumerate(records):
        if record.get("_id") == review_id:
            return i
    raise ReviewNotFoundError(review_id)


def _check_author(review: Review, author: str | None) -> None:
    # author=None means the caller is an administrator
    if author is not None and not secrets.compare_digest(author, review.user_id):
        raise ReviewPermissionError(review.id)


class ReviewStore:
    """Manages reviews, one file per product."""

    def __init__(self, config_dir: Path | None = None):
        """
        Initialize ReviewStore.

        Args:
            config_dir: Override data directory (for testing).
        """
        self.config_dir = config_dir or data_dir()
        self.reviews_dir = self.config_dir / REVIEWS_DIR

    def _file(self, product_id: str) -> JsonFileStore:
        if not _SAFE_ID.match(product_id):
            raise ProductNotFoundError(product_id)
        return JsonFileStore(
            self.reviews_dir, filename=f"{product_id}.json", collection="reviews"
        )

    def list_reviews(self, product_id: str) -> list[Review]:
        """List a product's reviews, oldest first."""
        return [Review.from_dict(r) for r in self._file(product_id).records()]

    def get_review(self, product_id: str, review_id: str) -> Review:
        records = self._file(product_id).records()
        return Review.from_dict(records[_find(records, review_id)])

    def add_review(
        self,
        product_id: str,
        user_name: str,
        rating: int,
        comment: str,
        user_id: str | None = None,
        verified: bool = False,
    ) -> Review:
        """
        Add a review for a product.

        Without a user_id the author gets a random guest ID, which is the
        key for editing or deleting the review later.

        Raises:
            InvalidReviewError: If the review content is invalid.
        """
        validate_review(rating, comment, user_name)
        review = Review(
            id=_generate_id(),
            product_id=product_id,
            user_id=user_id or f"guest_{secrets.token_hex(8)}",
            user_name=user_name.strip(),
            rating=rating,
            comment=comment.strip(),
            date=_display_date(datetime.now(timezone.utc)),
            verified=verified,
        )
        with self._file(product_id).update() as records:
            records.append(review.to_dict())
        return review

    def update_review(
        self,
        product_id: str,
        review_id: str,
        rating: int | None = None,
        comment: str | None = None,
        user_name: str | None = None,
        author: str | None = None,
    ) -> Review:
        """
        Edit a review. Unset arguments keep their current value.

        `author` is the caller's user ID; None skips the ownership check
        (administrators). The creation time is kept and `edited_at` is set.

        Raises:
            ReviewNotFoundError: If the review doesn't exist.
            ReviewPermissionError: If author is not the review's user ID.
            InvalidReviewError: If the edited review is invalid.
        """
        with self._file(product_id).update() as records:
            i = _find(records, review_id)
            review = Review.from_dict(records[i])
            _check_author(review, author)
            if rating is not None:
                review.rating = rating
            if comment is not None:
                review.comment = comment.strip()
            if user_name is not None:
                review.user_name = user_name.strip()
            validate_review(review.rating, review.comment, review.user_name)
            review.edited_at = _utc_now()
            records[i] = review.to_dict()
        return review

    def delete_review(self, product_id: str, review_id: str, author: str | None = None) -> Review:
        """
        Delete a review.

        Raises:
            ReviewNotFoundError: If the review doesn't exist.
            ReviewPermissionError: If author is not the review's user ID.
        """
        with self._file(product_id).update() as records:
            i = _find(records, review_id)
            removed = Review.from_dict(records[i])
            _check_author(removed, author)
            del records[i]
        return removed

    def vote(self, product_id: str, review_id: str, vote_type: str) -> Review:
        """
        Count a helpful / not helpful vote.

        Raises:
            InvalidReviewError: If vote_type is unknown.
            ReviewNotFoundError: If the review doesn't exist.
        """
        if vote_type not in VOTE_TYPES:
            raise InvalidReviewError(f"vote must be one of {', '.join(VOTE_TYPES)}")
        with self._file(product_id).update() as records:
            record = records[_find(records, review_id)]
            record[vote_type] = record.get(vote_type, 0) + 1
        return Review.from_dict(record)
