from typing import Callable

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from activity import ActivityProfile, InvalidAddressError, is_valid_address


class AnalyzeRequest(BaseModel):
    address: str | None = None


API_FEATURES = [
    "Normal transaction analysis",
    "Internal transaction analysis",
    "ERC-20 token transfer analysis",
    "ERC-721/1155 NFT transfer analysis",
    "ETH received/sent/gas totals",
    "Per-token and per-collection statistics",
    "Daily activity heatmap and streaks",
    "Automatic API key rotation",
    "Automatic retry on failures",
]


def create_analysis_router(
    *,
    analyze_wallet: Callable[[str], ActivityProfile],
) -> APIRouter:
    router = APIRouter()

    @router.post("/api/analyze")
    def analyze(request: AnalyzeRequest):
        """Analyze a Base wallet and return its activity profile."""
        address = (request.address or "").strip()
        if not address:
            raise HTTPException(status_code=400, detail="Wallet address is required")
        if not is_valid_address(address):
            raise HTTPException(status_code=400, detail="Invalid wallet address")

        try:
            profile = analyze_wallet(address)
        except InvalidAddressError:
            raise HTTPException(status_code=400, detail="Invalid wallet address")
        except Exception as e:
            print(f"[API] Analysis failed for {address}: {e}", flush=True)
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error", "details": str(e)},
            )

        return profile.to_dict()

    @router.get("/api/analyze")
    def describe_api():
        """Describe the analyze endpoint."""
        return {
            "name": "Basescan Analyzer API",
            "version": "1.0.0",
            "description": "Analyzes wallet transactions on Base",
            "endpoints": {
                "POST": "/api/analyze - Analyze wallet",
                "GET": "/api/analyze - API information",
            },
            "features": API_FEATURES,
        }

    return router
