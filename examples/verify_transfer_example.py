#!/usr/bin/env python3
"""
Ask a running mint oracle to verify a payment and check the signature it
returns before handing it to the mint call.
"""
import argparse
import sys

import requests

from mint_oracle.signing import recover_mint_signer


def main():
    """Run the example."""
    parser = argparse.ArgumentParser(
        description="Verify a voucher payment against a mint oracle.")
    parser.add_argument(
        "tx_hash",
        help="Payment transaction hash"
    )
    parser.add_argument(
        "wallet",
        help="Buyer wallet that sent the payment"
    )
    parser.add_argument(
        "--oracle",
        help="Oracle base URL",
        default="http://localhost:8000"
    )
    parser.add_argument(
        "--signer",
        help="Expected oracle signer address (skip the check if omitted)"
    )
    args = parser.parse_args()

    response = requests.post(
        f"{args.oracle}/api/verify-transfer",
        json={"txHash": args.tx_hash, "walletAddress": args.wallet},
        timeout=30
    )
    body = response.json()
    print(f"HTTP {response.status_code}: {body}")

    if not body.get("verified"):
        print(f"Not verified ({body.get('reason')}): {body.get('error')}")
        return 1

    token_id = body["tokenId"]
    print(f"Authorized to mint token ID {token_id} for {body['expectedAmount']} tokens")

    if args.signer:
        recovered = recover_mint_signer(args.tx_hash, args.wallet, token_id, body["signature"])
        if recovered.lower() != args.signer.lower():
            print(f"Signature recovers to {recovered}, not {args.signer}")
            return 1
        print(f"Signature recovers to the oracle signer {recovered}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
