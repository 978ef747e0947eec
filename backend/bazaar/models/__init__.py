from .offers import Offer, OfferStatus, TERMINAL_STATUSES
from .auctions import Auction, Bid, CURRENT_SLOT, anonymize_bidder
from .likes import ListingLike

__all__ = [
    'Offer', 'OfferStatus', 'TERMINAL_STATUSES',
    'Auction', 'Bid', 'CURRENT_SLOT', 'anonymize_bidder',
    'ListingLike',
]
