from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException

from signalscout import config
from signalscout.services.analyze import analyze_products

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="SignalScout")


@app.get("/health")
def health():
    return {"ok": True, "range_months": config.RANGE_MONTHS, "max_points": config.MAX_POINTS}


@app.post("/analyze")
def analyze(payload: Optional[Dict[str, Any]] = Body(None)):
    """
    Signal bundles for a batch of Keepa product records plus the market view.

    Body: {"products": [<keepa product>, ...], "range_months": 24}
    A record without an asin or csv history comes back with status "error";
    it never fails the batch.
    """
    if not payload:
        raise HTTPException(status_code=422, detail="JSON body with a products list is required")

    products = payload.get("products")
    if not isinstance(products, list):
        raise HTTPException(status_code=422, detail="products must be a list of Keepa product records")

    range_months = payload.get("range_months")
    if range_months is not None:
        try:
            range_months = int(range_months)
        except (TypeError, ValueError):
            raise HTTPException(status_code=422, detail="range_months must be an integer")
        if range_months <= 0:
            raise HTTPException(status_code=422, detail="range_months must be positive")

    bundles, market = analyze_products(products, range_months=range_months)
    logger.info("POST /analyze products=%d market_products=%d", len(bundles), market.product_count)

    return {
        "products": [asdict(b) for b in bundles],
        "market": {
            **asdict(market),
            "seasonality_score": market.seasonality_score,
            "peak_months": market.peak_months,
            "trough_months": market.trough_months,
        },
    }
