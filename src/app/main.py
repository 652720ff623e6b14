# src/app/main.py
from __future__ import annotations
import logging
import sys
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.app.config import get_settings
from src.app.deps import close_resolver
from src.app.routers.recipes import router as recipes_router

# Plain stdout logging (fine for dev and containers)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

app = FastAPI(title="Recipe Resolver API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(recipes_router)


@app.on_event("shutdown")
async def shutdown() -> None:
    await close_resolver()


@app.get("/health")
def health():
    return {"ok": True}
