"""Market — the deal graph and the barter offer register."""

from dealflow.market.deal_linker import CompatibilityCheck, DealLinker, LinkResult
from dealflow.market.offer_register import BidirectionalMatch, OfferRegister, RegisteredOffer

__all__ = [
    "BidirectionalMatch",
    "CompatibilityCheck",
    "DealLinker",
    "LinkResult",
    "OfferRegister",
    "RegisteredOffer",
]
