class MatchingError(Exception):
    """Base class for errors raised by the matching core."""


class NotFoundError(MatchingError):
    def __init__(self, user_id: str):
        self.user_id = str(user_id)
        super().__init__(f"User not found: {self.user_id}")


class InvalidPairError(MatchingError):
    """Raised when a like or pass names the same user on both sides."""

    def __init__(self, user_id: str):
        self.user_id = str(user_id)
        super().__init__(f"User {self.user_id} cannot be matched with themselves")


class ConcurrentModificationError(MatchingError):
    """A match record changed between read and write.

    Raised by stores doing optimistic writes; the coordinator retries on it.
    """


class MalformedPreferenceData(MatchingError):
    """Preference payload could not be parsed. Recovered inside profiles."""
