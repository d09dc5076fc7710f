#!/usr/bin/env python3
"""
Run one verification in-process against a real chain, without the HTTP
server.

Requires ALCHEMY_API_KEY, ORACLE_RECIPIENT_ADDRESS and SIGNER_PRIVATE_KEY
in the environment (or a .env file). Uses the in-memory allocator, so the
token id is always 1 here.
"""
import logging
import os
import sys

from dotenv import load_dotenv

from mint_oracle import MintAuthorization, OracleSettings, VerificationOracle


def main():
    logging.basicConfig(level=logging.INFO)
    load_dotenv()

    if len(sys.argv) != 3:
        print("usage: offline_oracle_example.py <tx_hash> <wallet>")
        return 2

    os.environ.setdefault("ORACLE_ALLOCATOR", "memory")
    settings = OracleSettings.from_env()

    oracle = VerificationOracle(
        fetcher=settings.build_fetcher(),
        matcher=settings.build_matcher(),
        signer=settings.build_signer(),
        allocator=settings.build_allocator(),
        schedule=settings.price_tiers,
        recipient_address=settings.recipient_address,
        token_address=settings.token_address,
        nft_address=settings.nft_address
    )

    result = oracle.verify_and_authorize(sys.argv[1], sys.argv[2])
    if isinstance(result, MintAuthorization):
        print(f"Token ID: {result.token_id}")
        print(f"Signature: {result.signature}")
        return 0

    print(f"Rejected ({result.reason.value}): {result.error}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
