import random
from datetime import datetime, timedelta, timezone

from signalscout.services.normalize import (
    BUY_BOX_SHIPPING,
    COUNT_NEW,
    KEEPA_EPOCH,
    NEW,
    SALES,
    decode_field,
    decode_series,
    normalize_product,
    normalize_value,
    raw_field,
    select_price_series,
    validate_record,
)


def test_epoch_is_2011_utc():
    assert KEEPA_EPOCH == datetime(2011, 1, 1, tzinfo=timezone.utc)


def test_timestamp_is_epoch_plus_minutes():
    pts = decode_series([1440, 500])
    assert pts[0].timestamp == KEEPA_EPOCH + timedelta(days=1)
    assert pts[0].value == 500


def test_negative_one_sentinel():
    assert decode_series([0, -1]) == []
    pts = decode_series([0, -1], allow_negative_one=True)
    assert len(pts) == 1 and pts[0].value == -1


def test_zero_handling():
    assert decode_series([0, 0]) == []
    pts = decode_series([0, 0], allow_zero=True)
    assert len(pts) == 1 and pts[0].value == 0


def test_values_below_negative_one_are_absent_even_when_allowed():
    assert normalize_value(-2, allow_negative_one=True) is None
    assert normalize_value(-1) is None
    assert normalize_value("abc") is None
    assert normalize_value(float("nan")) is None


def test_include_nulls_keeps_gap_points():
    pts = decode_series([0, 1000, 60, -1, 120, 900], include_nulls=True)
    assert [p.value for p in pts] == [1000, None, 900]


def test_bad_offsets_are_skipped_and_odd_tail_ignored():
    pts = decode_series([-5, 100, "x", 200, 10, 300, 20])
    assert [p.value for p in pts] == [300]


def test_offsets_past_datetime_range_are_skipped():
    pts = decode_series([10 ** 15, 1000, 6 * 10 ** 9, 2000, 0, 500])
    assert [p.value for p in pts] == [500]
    assert pts[0].timestamp == KEEPA_EPOCH


def test_empty_and_non_list_input():
    assert decode_series([]) == []
    assert decode_series(None) == []
    assert decode_series([5]) == []


def test_output_sorted_even_when_pairs_shuffled():
    pairs = [(i * 37, 1000 + i) for i in range(50)]
    random.Random(7).shuffle(pairs)
    raw = [x for pair in pairs for x in pair]
    pts = decode_series(raw)
    stamps = [p.timestamp for p in pts]
    assert stamps == sorted(stamps)
    assert len(pts) == 50


def test_rank_example_decodes_to_four_points():
    pts = decode_series([0, 1000, 1440, 1000, 2880, 50000, 4320, 1000])
    assert [p.value for p in pts] == [1000, 1000, 50000, 1000]


def test_raw_field_accepts_list_and_dict_containers():
    csv_list = [None] * 19
    csv_list[SALES] = [0, 10]
    assert raw_field(csv_list, SALES) == [0, 10]
    assert raw_field(csv_list, NEW) == []
    assert raw_field(csv_list, 40) == []
    assert raw_field({"3": [0, 10]}, SALES) == [0, 10]
    assert raw_field({3: [0, 10]}, SALES) == [0, 10]
    assert raw_field("nope", SALES) == []


def test_field_rules_differ_for_shared_index():
    csv = {BUY_BOX_SHIPPING: [0, 1999, 60, -1], COUNT_NEW: [0, 0, 60, 3]}
    as_price = decode_field(csv, "buy_box_price")
    as_flag = decode_field(csv, "buy_box_shipping")
    assert [p.value for p in as_price] == [1999, None]
    assert [p.value for p in as_flag] == [1999, -1]
    assert [p.value for p in decode_field(csv, "count_new")] == [0, 3]


def test_price_source_priority():
    decoded = {
        "buy_box_price": [],
        "new_price": decode_series([0, 1500]),
        "amazon_price": decode_series([0, 1400]),
    }
    series, source = select_price_series(decoded)
    assert source == "new"
    assert series[0].value == 1500
    assert select_price_series({}) == ([], None)


def test_validate_record():
    assert validate_record({"asin": "B0001", "csv": []}) is None
    assert "asin" in validate_record({"csv": []})
    assert "csv" in validate_record({"asin": "B0001"})
    assert validate_record("garbage") is not None


def test_normalize_product_metadata_defaults():
    out = normalize_product({"asin": "B0001", "csv": [], "manufacturer": "Acme"})
    assert out["title"] == "Unknown Product"
    assert out["brand"] == "Acme"
    assert out["price"] == []
    assert out["price_source"] is None
    assert set(out["series"]) >= {"rank", "count_new", "lightning_deal", "buy_box_shipping"}
