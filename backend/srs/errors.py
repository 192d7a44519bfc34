"""Errors raised by the scheduling core and its storage collaborator."""


class SchedulerError(Exception):
    """Base class for all scheduling errors."""


class InvalidRating(SchedulerError, ValueError):
    """A rating outside the 1-5 scale (or the 1-4 button scale) was supplied."""

    def __init__(self, rating: object, scale: str = "1-5") -> None:
        self.rating = rating
        self.scale = scale
        super().__init__(f"Rating must be an integer in {scale}, got {rating!r}")


class InvalidCapacity(SchedulerError, ValueError):
    """Load leveling was configured with an unusable capacity or window."""


class MalformedItem(SchedulerError):
    """An item handed to the due selector is missing required state fields."""

    def __init__(self, item: object, reason: str) -> None:
        self.item = item
        self.reason = reason
        super().__init__(reason)


class CardNotFound(SchedulerError, LookupError):
    def __init__(self, card_id: int) -> None:
        self.card_id = card_id
        super().__init__(f"Card {card_id} not found")


class StaleWriteError(SchedulerError):
    """The stored card changed since it was read; re-fetch and re-apply the rating."""

    def __init__(self, card_id: int) -> None:
        self.card_id = card_id
        super().__init__(f"Stale write rejected for card {card_id}")
