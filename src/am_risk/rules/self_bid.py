"""Sellers may not bid on their own auctions.

Profile ids are UUIDs; comparison is case-insensitive so that a
hex-uppercased id from a client never slips past the check.
"""


def is_self_bid(bidder_id: str, seller_id: str) -> bool:
    return str(bidder_id).lower() == str(seller_id).lower()
