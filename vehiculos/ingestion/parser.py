"""CSV price feed parsing.

Parsing is all-or-nothing per file: ``parse_feed`` is a lazy, single-pass
iterator that raises on the first invalid row, and ``materialize_feed`` turns
that into a tagged result carrying either every record of the file or none.
"""

from __future__ import annotations

import codecs
import csv
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import BinaryIO

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from vehiculos.ingestion.errors import FeedParseError

DEFAULT_ID_COLUMN = "vehicle_id"
DEFAULT_PRICE_COLUMN = "new_price"


class PriceUpdateRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    vehicle_id: str = Field(min_length=1)
    new_price: Decimal = Field(ge=0, allow_inf_nan=False)
    observed_at: datetime


@dataclass
class FeedParseResult:
    source: str
    records: list[PriceUpdateRecord] = field(default_factory=list)
    error: FeedParseError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _describe(exc: ValidationError) -> str:
    return "; ".join(f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors())


def parse_feed(
    stream: BinaryIO,
    id_column: str = DEFAULT_ID_COLUMN,
    price_column: str = DEFAULT_PRICE_COLUMN,
) -> Iterator[PriceUpdateRecord]:
    reader = csv.DictReader(codecs.getreader("utf-8-sig")(stream))
    if reader.fieldnames is None:
        return
    headers = [name.strip() for name in reader.fieldnames]
    missing = [column for column in (id_column, price_column) if column not in headers]
    if missing:
        raise FeedParseError(f"missing required column(s): {', '.join(missing)}")
    reader.fieldnames = headers

    for row_number, row in enumerate(reader, start=1):
        raw_id = row.get(id_column)
        raw_price = row.get(price_column)
        if raw_price is None or not raw_price.strip():
            raise FeedParseError(f"empty {price_column}", row=row_number)
        try:
            yield PriceUpdateRecord(
                vehicle_id=(raw_id or "").strip(),
                new_price=raw_price.strip(),
                observed_at=datetime.now(timezone.utc),
            )
        except ValidationError as exc:
            raise FeedParseError(_describe(exc), row=row_number) from exc


def materialize_feed(
    stream: BinaryIO,
    source: str,
    id_column: str = DEFAULT_ID_COLUMN,
    price_column: str = DEFAULT_PRICE_COLUMN,
) -> FeedParseResult:
    try:
        records = list(parse_feed(stream, id_column=id_column, price_column=price_column))
    except FeedParseError as exc:
        return FeedParseResult(source=source, error=exc)
    except (UnicodeDecodeError, csv.Error) as exc:
        return FeedParseResult(source=source, error=FeedParseError(f"unreadable feed: {exc}"))
    return FeedParseResult(source=source, records=records)
