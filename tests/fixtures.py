from datetime import datetime, timedelta, timezone

from helpers import keepa_minutes

from signalscout.services.normalize import BUY_BOX_SHIPPING, COUNT_NEW, SALES

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def keepa_record(asin="B00TEST001", days=400, now=NOW, dip=(200, 206), stockout=(300, 310), december_rank=200):
    """
    Daily Keepa history ending at `now`: rank 1000 (lower in December),
    buy-box price $20.00 with a 20% dip and a stretch of -1 (no buy box).
    """
    start = now - timedelta(days=days)
    rank, buy_box, count_new = [], [], []
    for i in range(days):
        ts = start + timedelta(days=i)
        m = keepa_minutes(ts)
        rank += [m, december_rank if ts.month == 12 else 1000]
        if stockout and stockout[0] <= i < stockout[1]:
            price = -1
        elif dip and dip[0] <= i < dip[1]:
            price = 1600
        else:
            price = 2000
        buy_box += [m, price]
        count_new += [m, 4]

    csv = [None] * 19
    csv[SALES] = rank
    csv[BUY_BOX_SHIPPING] = buy_box
    csv[COUNT_NEW] = count_new
    return {"asin": asin, "title": "Test Widget", "brand": "Acme", "csv": csv}
