# app/services/pair_key.py

from typing import Tuple


def canonical_pair(first_user_id: str, second_user_id: str) -> Tuple[str, str]:
    """
    Order two user ids so that an unordered pair maps to a single row.

    Ids are compared as strings, by code point. The pair columns use the "C"
    collation on Postgres, so the `user_a_id < user_b_id` check agrees.
    """
    if first_user_id <= second_user_id:
        return first_user_id, second_user_id
    return second_user_id, first_user_id
