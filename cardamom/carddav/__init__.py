"""CardDAV client support for cardamom."""

from .discovery import addressbook_path
from .fetch import FetchResult, card_name, fetch_and_write_cards, fetch_ctag
from .queries import (
    AddressDataEntry,
    HomeSetEntry,
    PrincipalEntry,
    ResourceTypeEntry,
    decode_address_data,
    decode_addressbook_home_set,
    decode_ctag,
    decode_current_user_principal,
    decode_resourcetype,
)

__all__ = [
    "AddressDataEntry",
    "FetchResult",
    "HomeSetEntry",
    "PrincipalEntry",
    "ResourceTypeEntry",
    "addressbook_path",
    "card_name",
    "decode_address_data",
    "decode_addressbook_home_set",
    "decode_ctag",
    "decode_current_user_principal",
    "decode_resourcetype",
    "fetch_and_write_cards",
    "fetch_ctag",
]
