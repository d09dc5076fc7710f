"""
Tests for ERC-721 metadata rendering.
"""
from decimal import Decimal

import pytest

from mint_oracle.metadata import build_token_metadata, image_path, ordinal_text
from mint_oracle.models import NftMetadataRecord
from test_helpers.oracle_creator import TEST_BUYER


@pytest.mark.parametrize("num,expected", [
    (1, "first"),
    (3, "third"),
    (10, "tenth"),
    (11, "11th"),
    (12, "12th"),
    (13, "13th"),
    (21, "21st"),
    (22, "22nd"),
    (23, "23rd"),
    (101, "101st"),
    (111, "111th"),
])
def test_ordinal_text(num, expected):
    assert ordinal_text(num) == expected


def test_image_path_capped_at_supply():
    assert image_path(2, 5) == "/images/gift-card-2.png"
    assert image_path(9, 5) == "/images/gift-card-5.png"


def test_build_token_metadata():
    record = NftMetadataRecord(
        token_id=2,
        purchase_price=Decimal("8900"),
        face_value_usd=Decimal("25"),
        image_url="/images/gift-card-2.png",
        owner_address=TEST_BUYER,
    )

    body = build_token_metadata(record, "https://shop.example.com/", "Erewhon Gift Card", supply=5)

    assert body["name"] == "Erewhon Gift Card #2"
    assert body["description"].startswith("The second Erewhon Gift Card ever purchased")
    assert "Value: $25." in body["description"]
    assert "collection of 5 cards" in body["description"]
    assert body["image"] == "https://shop.example.com/images/gift-card-2.png"
    assert body["external_url"] == "https://shop.example.com/card/2"
    assert body["attributes"] == [
        {"trait_type": "Face Value", "value": "$25"},
        {"trait_type": "Purchase Price", "value": "8900 HIGHER"},
        {"trait_type": "Position", "value": 2, "max_value": 5},
    ]


def test_fractional_price_displayed():
    record = NftMetadataRecord(
        token_id=7,
        purchase_price=Decimal("4450.50"),
        face_value_usd=Decimal("25"),
        image_url="/images/gift-card-5.png",
        owner_address=TEST_BUYER,
    )
    body = build_token_metadata(record, "https://x.example", "Card", supply=5, token_symbol="TKN")
    assert body["attributes"][1]["value"] == "4450.5 TKN"
    assert body["attributes"][2]["value"] == 5
