import os

from dotenv import load_dotenv

load_dotenv()  # must run before the getenv calls below


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    try:
        return int(raw) if raw.strip() else default
    except ValueError:
        return default


# lookback window for trimming, in flat 30-day months
RANGE_MONTHS = _int_env("SIGNALSCOUT_RANGE_MONTHS", 24)

# per-series point budget after trimming
MAX_POINTS = _int_env("SIGNALSCOUT_MAX_POINTS", 365)

# longer markdowns are clearance, not promotions
MAX_PROMO_DAYS = _int_env("SIGNALSCOUT_MAX_PROMO_DAYS", 14)

LOG_LEVEL = os.getenv("SIGNALSCOUT_LOG_LEVEL", "INFO").upper()
