"""Derives notifications from domain events. Pure functions, no I/O.

Fan-out for a new bid is seller-only: the seller always gets NEW_BID and
the displaced leader (if any, and if it is someone else) gets OUTBID.
Earlier bidders who were no longer leading are not notified.

Every draft carries ``{event_id}:{recipient}:{kind}`` as its dedup key, so
redelivering the same event cannot create a second row.
"""

from src.am_auction.domain.events import AuctionStatusChanged, BidPlaced
from src.am_common.cents import cents_to_display
from src.am_common.enums import AuctionStatus, NotificationType
from src.am_notification.domain.models import NotificationDraft


def dedup_key(event_id: str, recipient_id: str, kind: NotificationType) -> str:
    return f"{event_id}:{recipient_id}:{kind.value}"


def _draft(
    event_id: str,
    recipient_id: str,
    auction_id: str,
    kind: NotificationType,
    message: str,
) -> NotificationDraft:
    return NotificationDraft(
        user_id=recipient_id,
        auction_id=auction_id,
        type=kind.value,
        message=message,
        dedup_key=dedup_key(event_id, recipient_id, kind),
    )


def notifications_for_bid(event: BidPlaced) -> list[NotificationDraft]:
    amount = cents_to_display(event.amount)
    drafts = [
        _draft(
            event.event_id,
            event.seller_id,
            event.auction_id,
            NotificationType.NEW_BID,
            f'New bid of {amount} placed on your auction "{event.auction_title}"',
        )
    ]
    previous = event.previous_leader_id
    if previous is not None and previous != event.new_leader_id:
        drafts.append(
            _draft(
                event.event_id,
                previous,
                event.auction_id,
                NotificationType.OUTBID,
                f'You have been outbid on "{event.auction_title}". '
                f"New highest bid: {amount}",
            )
        )
    return drafts


def notifications_for_status_change(event: AuctionStatusChanged) -> list[NotificationDraft]:
    """Only the transition into ENDED notifies anyone."""
    if event.to_status != AuctionStatus.ENDED:
        return []

    title = event.auction_title
    winner = event.highest_bidder_id
    if winner is None:
        return [
            _draft(
                event.event_id,
                event.seller_id,
                event.auction_id,
                NotificationType.AUCTION_ENDED,
                f'Your auction "{title}" has ended with no bids',
            )
        ]

    amount = cents_to_display(event.highest_bid)
    return [
        _draft(
            event.event_id,
            event.seller_id,
            event.auction_id,
            NotificationType.AUCTION_ENDED,
            f'Your auction "{title}" has ended. Winning bid: {amount}',
        ),
        _draft(
            event.event_id,
            winner,
            event.auction_id,
            NotificationType.AUCTION_ENDED,
            f'You won "{title}" with a bid of {amount}',
        ),
    ]
