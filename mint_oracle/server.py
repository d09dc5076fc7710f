"""
HTTP surface of the mint oracle.

The storefront calls ``/api/verify-transfer`` after the buyer's payment is
broadcast, then mints with the returned signature and reports the result
through ``/api/nft-metadata`` and ``/api/purchases``.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type, TypeVar

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from starlette.concurrency import run_in_threadpool

from .config import OracleSettings
from .exceptions import MalformedRequestError, SigningUnavailableError, VerificationError
from .ledger.records import RecordBook
from .metadata import CACHE_CONTROL, build_token_metadata, image_path
from .models import (
    NftMetadataRecord,
    NftMetadataRequest,
    PurchaseRecord,
    PurchaseRequest,
    VerifyTransferRequest,
    VerifyTransferResponse,
)
from .oracle import VerificationOracle
from .version import __version__

logger = logging.getLogger(__name__)

M = TypeVar('M', bound=BaseModel)


@dataclass
class OracleComponents:
    """Objects shared by every request"""
    settings: OracleSettings
    oracle: VerificationOracle
    records: RecordBook


def build_components(settings: OracleSettings) -> OracleComponents:
    """Wire chain access, signer and ledger from settings."""
    allocator = settings.build_allocator()
    oracle = VerificationOracle(
        fetcher=settings.build_fetcher(),
        matcher=settings.build_matcher(),
        signer=settings.build_signer(),
        allocator=allocator,
        schedule=settings.price_tiers,
        recipient_address=settings.recipient_address,
        token_address=settings.token_address,
        nft_address=settings.nft_address
    )
    return OracleComponents(settings=settings, oracle=oracle, records=settings.build_records(allocator))


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "body"
    return f"{location}: {first.get('msg', 'invalid value')}"


async def _read_model(request: Request, model: Type[M]) -> M:
    """
    Parse and validate a JSON body.

    Raises:
        MalformedRequestError: If the body is not JSON or fails validation
    """
    try:
        body = await request.json()
    except ValueError:
        raise MalformedRequestError("Request body must be valid JSON") from None
    if not isinstance(body, dict):
        raise MalformedRequestError("Request body must be a JSON object")
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise MalformedRequestError(_describe(e)) from None


def create_app(
    settings: Optional[OracleSettings] = None,
    components: Optional[OracleComponents] = None
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to build components from (defaults to the environment)
        components: Pre-built components, mainly for tests

    Returns:
        Configured application
    """
    if components is None:
        components = build_components(settings or OracleSettings.from_env())

    app = FastAPI(
        title="Mint Oracle",
        description="Verifies voucher payments and authorizes NFT mints",
        version=__version__,
    )
    app.state.components = components

    def _components() -> OracleComponents:
        return app.state.components

    @app.exception_handler(MalformedRequestError)
    async def malformed_request(request: Request, exc: MalformedRequestError):
        logger.info(f"Malformed request to {request.url.path}: {exc}")
        return JSONResponse({"success": False, "error": str(exc)}, status_code=400)

    @app.post("/api/verify-transfer")
    async def verify_transfer(request: Request):
        try:
            claim = await _read_model(request, VerifyTransferRequest)
        except MalformedRequestError as e:
            return JSONResponse({"verified": False, "error": str(e)}, status_code=400)

        oracle = _components().oracle
        try:
            result = await run_in_threadpool(
                oracle.verify_and_authorize, claim.tx_hash, claim.wallet_address, claim.amount
            )
        except SigningUnavailableError as e:
            logger.error(f"Cannot authorize {claim.tx_hash}: {e}")
            return JSONResponse({"verified": False, "error": "Signing is not available"}, status_code=500)
        except Exception as e:
            logger.exception(f"Verification of {claim.tx_hash} failed unexpectedly")
            return JSONResponse({"verified": False, "error": str(e) or "Verification failed"}, status_code=500)

        return JSONResponse(VerifyTransferResponse.from_result(result).to_json())

    @app.get("/api/price-tiers")
    async def price_tiers() -> Dict[str, Any]:
        schedule = _components().settings.price_tiers
        return {"tiers": schedule.as_list(), "seriesLength": schedule.series_length}

    @app.post("/api/nft-metadata")
    async def nft_metadata(request: Request):
        payload = await _read_model(request, NftMetadataRequest)
        parts = _components()
        token_id = payload.token_id

        if payload.mint_tx:
            try:
                token_id = await run_in_threadpool(parts.oracle.record_mint, payload.mint_tx, token_id)
            except VerificationError as e:
                logger.warning(f"Mint {payload.mint_tx} not recorded: {e}")
                return JSONResponse(
                    {"success": False, "error": str(e), "reason": e.reason.value},
                    status_code=400
                )
        if token_id is None:
            raise MalformedRequestError("tokenId or mintTx is required")

        supply = parts.settings.price_tiers.series_length
        record = NftMetadataRecord(
            token_id=token_id,
            purchase_price=payload.purchase_price,
            face_value_usd=parts.settings.face_value_usd,
            image_url=image_path(token_id, supply),
            owner_address=payload.owner_address,
            payment_tx=payload.payment_tx,
            mint_tx=payload.mint_tx
        )
        await run_in_threadpool(parts.records.record_nft_metadata, record)
        return {"success": True, "tokenId": token_id, "imageUrl": record.image_url}

    @app.post("/api/purchases")
    async def purchases(request: Request):
        payload = await _read_model(request, PurchaseRequest)
        record = PurchaseRecord(
            wallet_address=payload.wallet_address,
            payment_tx=payload.tx_hash,
            fid=payload.fid,
            email=payload.email,
            mint_tx=payload.mint_tx,
            token_id=payload.token_id
        )
        await run_in_threadpool(_components().records.record_purchase, record)
        return {"success": True}

    @app.get("/tokens/{token_id}")
    async def token_metadata(token_id: str):
        headers = {"Cache-Control": CACHE_CONTROL}
        try:
            numeric_id = int(token_id)
        except ValueError:
            return JSONResponse({"error": "Invalid token ID"}, status_code=400, headers=headers)
        if numeric_id < 1:
            return JSONResponse({"error": "Invalid token ID"}, status_code=400, headers=headers)

        parts = _components()
        record = await run_in_threadpool(parts.records.get_nft_metadata, numeric_id)
        if record is None:
            return JSONResponse({"error": "Token not found"}, status_code=404, headers=headers)

        body = build_token_metadata(
            record,
            base_url=parts.settings.base_url,
            collection_name=parts.settings.collection_name,
            supply=parts.settings.price_tiers.series_length,
            token_symbol=parts.settings.token_symbol
        )
        return JSONResponse(body, headers=headers)

    return app
