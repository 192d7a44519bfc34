"""Review ratings.

The 5-point scale is canonical: 1=Forgot, 2=Hard, 3=Good, 4=Easy, 5=Perfect.
Ratings below 3 are failed recalls. Four-button UIs (Again/Hard/Good/Easy)
are converted with :func:`from_four_point` before reaching the scheduler.
"""

from enum import IntEnum

from backend.srs.errors import InvalidRating

PASS_THRESHOLD = 3


class ReviewRating(IntEnum):
    FORGOT = 1
    HARD = 2
    GOOD = 3
    EASY = 4
    PERFECT = 5

    @property
    def is_pass(self) -> bool:
        """Return True if this rating counts as a successful recall."""
        return self >= PASS_THRESHOLD


class FourPointRating(IntEnum):
    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


_FOUR_POINT_MAP = {
    FourPointRating.AGAIN: ReviewRating.FORGOT,
    FourPointRating.HARD: ReviewRating.HARD,
    FourPointRating.GOOD: ReviewRating.GOOD,
    FourPointRating.EASY: ReviewRating.EASY,
}


def _as_int(value: object, scale: str) -> int:
    # bool is an int subclass; True must not sneak in as a rating of 1
    if isinstance(value, bool):
        raise InvalidRating(value, scale)
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise InvalidRating(value, scale)


def parse_rating(value: object) -> ReviewRating:
    """Validate a raw 5-point rating.

    Raises:
        InvalidRating: If the value is not an integer in [1, 5]. Out-of-range
            values are never clamped.
    """
    rating = _as_int(value, "1-5")
    try:
        return ReviewRating(rating)
    except ValueError:
        raise InvalidRating(value, "1-5") from None


def from_four_point(value: object) -> ReviewRating:
    """Convert an Again/Hard/Good/Easy button value to the canonical scale."""
    rating = _as_int(value, "1-4")
    try:
        return _FOUR_POINT_MAP[FourPointRating(rating)]
    except ValueError:
        raise InvalidRating(value, "1-4") from None
