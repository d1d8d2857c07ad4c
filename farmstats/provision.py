"""
Schema provisioning and CSV import for the two stores.

Runs as a separate step before the API starts; the request path never
creates tables.

    python -m farmstats.provision --yield-csv data/yield.csv --farmers-csv data/farmers.csv
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

import pandas as pd
from sqlalchemy.engine import Engine

from farmstats import models
from farmstats.config import get_settings
from farmstats.db import FarmersBase, YieldBase, make_engine, sqlite_url
from farmstats.logging_config import setup_logging

log = logging.getLogger("farmstats.provision")

YIELD_COLUMNS = ["Date", "Yield_kg_per_hectare"]
FARMER_COLUMNS = ["Name", "Location", "Crop_Type", "Phone_Number", "Farm_Size", "Average_Yield"]


def open_store(path: Path, base) -> Engine:
    """Create the file (and its tables) if needed and return an engine on it."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    engine = make_engine(sqlite_url(path, create=True))
    base.metadata.create_all(bind=engine)
    return engine


def _require_columns(df: pd.DataFrame, columns: list[str], source: Path) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"{source}: missing column(s) {', '.join(missing)}")


def import_yield_csv(engine: Engine, csv_path: Path) -> int:
    """Append yield rows; dates are normalized to ISO so they sort as text."""
    csv_path = Path(csv_path)
    df = pd.read_csv(csv_path)
    _require_columns(df, YIELD_COLUMNS, csv_path)

    df = df[YIELD_COLUMNS].copy()
    df["Date"] = pd.to_datetime(df["Date"], errors="coerce")
    df["Yield_kg_per_hectare"] = pd.to_numeric(df["Yield_kg_per_hectare"], errors="coerce")
    before = len(df)
    df = df.dropna(subset=YIELD_COLUMNS)
    if len(df) < before:
        log.warning("Skipped %d unparseable yield row(s) from %s", before - len(df), csv_path)
    df["Date"] = df["Date"].dt.strftime("%Y-%m-%d")

    df.to_sql(models.YieldRecord.__tablename__, engine, if_exists="append", index=False)
    log.info("Imported %d yield row(s) from %s", len(df), csv_path)
    return len(df)


def import_farmers_csv(engine: Engine, csv_path: Path) -> int:
    csv_path = Path(csv_path)
    df = pd.read_csv(csv_path, dtype={"Phone_Number": str})
    _require_columns(df, FARMER_COLUMNS, csv_path)

    columns = FARMER_COLUMNS + (["deactivated"] if "deactivated" in df.columns else [])
    df = df[columns].copy()
    if "deactivated" in df.columns:
        df["deactivated"] = pd.to_numeric(df["deactivated"], errors="coerce").fillna(0).astype(bool).astype(int)
    else:
        df["deactivated"] = 0

    df.to_sql(models.Farmer.__tablename__, engine, if_exists="append", index=False)
    log.info("Imported %d farmer row(s) from %s", len(df), csv_path)
    return len(df)


def provision(
    yield_db: Path,
    farmers_db: Path,
    *,
    yield_csv: Optional[Path] = None,
    farmers_csv: Optional[Path] = None,
) -> dict:
    yield_engine = open_store(yield_db, YieldBase)
    farmers_engine = open_store(farmers_db, FarmersBase)
    try:
        counts = {"historical_yield": 0, "farmers": 0}
        if yield_csv:
            counts["historical_yield"] = import_yield_csv(yield_engine, yield_csv)
        if farmers_csv:
            counts["farmers"] = import_farmers_csv(farmers_engine, farmers_csv)
        return counts
    finally:
        yield_engine.dispose()
        farmers_engine.dispose()


def main(argv: Optional[list[str]] = None) -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Create the farm stats stores and optionally load CSV data.")
    parser.add_argument("--yield-db", type=Path, default=settings.yield_db_path, help="historical yield SQLite file")
    parser.add_argument("--farmers-db", type=Path, default=settings.farmers_db_path, help="farmers SQLite file")
    parser.add_argument("--yield-csv", type=Path, help="CSV with Date,Yield_kg_per_hectare")
    parser.add_argument("--farmers-csv", type=Path, help="CSV with farmers table columns")
    args = parser.parse_args(argv)

    setup_logging(settings.log_level)
    for p in (args.yield_csv, args.farmers_csv):
        if p and not p.is_file():
            raise SystemExit(f"File not found: {p}")

    counts = provision(
        args.yield_db,
        args.farmers_db,
        yield_csv=args.yield_csv,
        farmers_csv=args.farmers_csv,
    )
    log.info("Provisioned %s and %s: %s", args.yield_db, args.farmers_db, counts)


if __name__ == "__main__":
    main()
