from .offer_store import OfferStore
from .auction_store import AuctionStore
from .like_store import LikeStore

__all__ = ['OfferStore', 'AuctionStore', 'LikeStore']
