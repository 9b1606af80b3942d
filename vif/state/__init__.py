"""
Packed on-chain state: offers, book aggregates and offer lists.
"""

from .book import Book, BookElement, RawBookElement, pack_book_element, unpack_book_element
from .offer import Offer, OfferData, RawOfferData, pack_offer, unpack_offer
from .offer_list import OfferList

__all__ = [
    "Book",
    "BookElement",
    "RawBookElement",
    "pack_book_element",
    "unpack_book_element",
    "Offer",
    "OfferData",
    "RawOfferData",
    "pack_offer",
    "unpack_offer",
    "OfferList",
]
