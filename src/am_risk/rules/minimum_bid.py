from src.am_auction.domain.models import Auction


def minimum_bid_for(auction: Auction) -> int:
    """starting_price for the first bid, highest_bid + bid_increment afterwards."""
    return auction.minimum_bid


def meets_minimum(auction: Auction, amount: int) -> bool:
    return amount >= minimum_bid_for(auction)
