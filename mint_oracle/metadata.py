"""
ERC-721 metadata for minted vouchers.

The JSON shape follows the OpenSea metadata standard so marketplaces can
render the card without any extra integration.
"""
from decimal import Decimal
from typing import Any, Dict

from .models import NftMetadataRecord

CACHE_CONTROL = "public, max-age=3600, s-maxage=3600, stale-while-revalidate=86400"

_ORDINAL_WORDS = (
    "first", "second", "third", "fourth", "fifth",
    "sixth", "seventh", "eighth", "ninth", "tenth",
)


def ordinal_text(num: int) -> str:
    """
    Spell out an ordinal: "first" through "tenth", then "11th", "22nd", ...
    """
    if 1 <= num <= len(_ORDINAL_WORDS):
        return _ORDINAL_WORDS[num - 1]

    suffix = "th"
    if num % 10 == 1 and num % 100 != 11:
        suffix = "st"
    elif num % 10 == 2 and num % 100 != 12:
        suffix = "nd"
    elif num % 10 == 3 and num % 100 != 13:
        suffix = "rd"
    return f"{num}{suffix}"


def card_position(token_id: int, supply: int) -> int:
    return min(token_id, supply)


def image_path(token_id: int, supply: int) -> str:
    """Relative image path; ids beyond the supply reuse the last card."""
    return f"/images/gift-card-{card_position(token_id, supply)}.png"


def _display_amount(amount: Decimal) -> str:
    if amount == amount.to_integral_value():
        return str(int(amount))
    return str(amount.normalize())


def build_token_metadata(
    record: NftMetadataRecord,
    base_url: str,
    collection_name: str,
    supply: int,
    token_symbol: str = "HIGHER"
) -> Dict[str, Any]:
    """
    Build the public metadata document for a token.

    Args:
        record: Stored metadata for the token
        base_url: Public site URL prefixed to image and card links
        collection_name: Human-readable collection name
        supply: Number of cards in the series
        token_symbol: Payment token symbol shown next to the purchase price

    Returns:
        ERC-721 metadata dictionary
    """
    token_id = record.token_id
    base_url = base_url.rstrip("/")
    face_value = _display_amount(record.face_value_usd)
    return {
        "name": f"{collection_name} #{token_id}",
        "description": (
            f"The {ordinal_text(token_id)} {collection_name} ever purchased with cryptocurrency. "
            f"Value: ${face_value}. Limited edition collection of {supply} cards."
        ),
        "image": f"{base_url}{record.image_url}",
        "external_url": f"{base_url}/card/{token_id}",
        "attributes": [
            {"trait_type": "Face Value", "value": f"${face_value}"},
            {
                "trait_type": "Purchase Price",
                "value": f"{_display_amount(record.purchase_price)} {token_symbol}",
            },
            {
                "trait_type": "Position",
                "value": card_position(token_id, supply),
                "max_value": supply,
            },
        ],
    }
