from enum import Enum


class MatchStatus(str, Enum):
    PENDING = "pending"
    LIKED = "liked"
    MATCHED = "matched"
    REJECTED = "rejected"


TERMINAL_FOR_LIKE = {MatchStatus.MATCHED, MatchStatus.REJECTED}


def transition_status(current: MatchStatus | None, action: str, *, counterpart_liked: bool = False) -> MatchStatus:
    if action == "pass":
        return MatchStatus.REJECTED

    if action != "like":
        raise ValueError(f"Unknown match action: {action}")

    if current == MatchStatus.REJECTED:
        return MatchStatus.REJECTED

    if current == MatchStatus.MATCHED:
        return MatchStatus.MATCHED

    if counterpart_liked:
        return MatchStatus.MATCHED
    return MatchStatus.LIKED
