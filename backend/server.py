import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).parent.parent / ".env")

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from activity import analyze_wallet
from basescan import API_KEYS, API_URL, CHAIN_ID
from routers.analysis_router import create_analysis_router

app = FastAPI(title="Basescan Wallet Analyzer")

# CORS: support both local development and production
allowed_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
]
# Add production URL if set
public_url = os.getenv("PUBLIC_URL")
if public_url:
    allowed_origins.append(public_url.rstrip("/"))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

app.include_router(create_analysis_router(analyze_wallet=analyze_wallet))

print(f"[Init] Upstream: {API_URL} (chainid={CHAIN_ID})")
print(f"[Init] API keys available: {len(API_KEYS)}")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
