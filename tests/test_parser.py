import io
from decimal import Decimal

import pytest

from vehiculos.ingestion.errors import FeedParseError
from vehiculos.ingestion.parser import materialize_feed, parse_feed


def _stream(text: str) -> io.BytesIO:
    return io.BytesIO(text.encode("utf-8"))


def test_parse_feed_yields_records_in_order():
    records = list(parse_feed(_stream("vehicle_id,new_price\nv1,100\nv2,250.50\n")))

    assert [record.vehicle_id for record in records] == ["v1", "v2"]
    assert records[1].new_price == Decimal("250.50")
    assert records[0].observed_at.tzinfo is not None


def test_parse_feed_is_lazy():
    rows = parse_feed(_stream("vehicle_id,new_price\nv1,100\nv2,oops\n"))

    first = next(rows)
    assert first.vehicle_id == "v1"
    with pytest.raises(FeedParseError) as excinfo:
        next(rows)
    assert excinfo.value.row == 2


def test_parse_feed_handles_bom_and_padded_headers():
    records = list(parse_feed(_stream("\ufeff vehicle_id , new_price \nv1, 99 \n")))

    assert records[0].vehicle_id == "v1"
    assert records[0].new_price == Decimal("99")


def test_parse_feed_empty_file_yields_nothing():
    assert list(parse_feed(_stream(""))) == []


def test_parse_feed_header_only_yields_nothing():
    assert list(parse_feed(_stream("vehicle_id,new_price\n"))) == []


def test_parse_feed_missing_column():
    with pytest.raises(FeedParseError, match="new_price"):
        list(parse_feed(_stream("vehicle_id,price\nv1,100\n")))


def test_parse_feed_custom_columns():
    records = list(parse_feed(_stream("id,price\nv9,10\n"), id_column="id", price_column="price"))

    assert records[0].vehicle_id == "v9"


@pytest.mark.parametrize(
    "row",
    ["v1,-5", "v1,", "v1,abc", ",100", "v1,NaN"],
)
def test_parse_feed_rejects_invalid_rows(row):
    with pytest.raises(FeedParseError):
        list(parse_feed(_stream(f"vehicle_id,new_price\n{row}\n")))


def test_materialize_feed_is_all_or_nothing():
    result = materialize_feed(_stream("vehicle_id,new_price\nv1,100\nv2,-1\nv3,300\n"), "feed.csv")

    assert not result.ok
    assert result.records == []
    assert "row 2" in str(result.error)


def test_materialize_feed_success():
    result = materialize_feed(_stream("vehicle_id,new_price\nv1,100\nv2,200\n"), "feed.csv")

    assert result.ok
    assert result.source == "feed.csv"
    assert len(result.records) == 2


def test_materialize_feed_rejects_undecodable_bytes():
    result = materialize_feed(io.BytesIO(b"vehicle_id,new_price\n\xff\xfe,1\n"), "feed.csv")

    assert not result.ok
    assert result.records == []


def test_parse_feed_accepts_long_identifiers():
    long_id = "stock-" + "x" * 60
    records = list(parse_feed(_stream(f"vehicle_id,new_price\n{long_id},100\n")))

    assert records[0].vehicle_id == long_id
