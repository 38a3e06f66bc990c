"""Deterministic composite keys for swipes and matches."""


def swipe_key(user_id: str, target_user_id: str) -> str:
    """Key of the swipe record for an ordered (swiper, target) pair."""
    return f"{user_id}_{target_user_id}"


def match_key(user_id_1: str, user_id_2: str) -> str:
    """Key of the match for an unordered pair: the two ids sorted and joined."""
    u_lo, u_hi = sorted([user_id_1, user_id_2])
    return f"{u_lo}_{u_hi}"
