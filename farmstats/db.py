# farmstats/db.py
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

log = logging.getLogger("farmstats.db")

# One declarative base per store; the two files never share a schema
YieldBase = declarative_base()
FarmersBase = declarative_base()


def sqlite_url(path: Union[str, Path], *, create: bool = False) -> str:
    """
    Build a SQLite URL for a store file.
    Without `create` the file is opened read-write only, so a missing
    database is reported as an error instead of silently created empty.
    """
    posix = Path(path).resolve().as_posix()
    if create:
        return f"sqlite:///{posix}"
    return f"sqlite:///file:{posix}?mode=rw&uri=true"


def make_engine(url: str) -> Engine:
    return create_engine(url, connect_args={"check_same_thread": False})


@dataclass
class StoreContext:
    """Process-wide handles for both stores, built once at startup."""

    yield_engine: Engine
    farmers_engine: Engine
    YieldSession: sessionmaker = field(init=False, repr=False)
    FarmersSession: sessionmaker = field(init=False, repr=False)

    def __post_init__(self):
        self.YieldSession = sessionmaker(autocommit=False, autoflush=False, bind=self.yield_engine)
        self.FarmersSession = sessionmaker(autocommit=False, autoflush=False, bind=self.farmers_engine)

    @classmethod
    def open(cls, yield_db_path: Union[str, Path], farmers_db_path: Union[str, Path]) -> "StoreContext":
        return cls(
            yield_engine=make_engine(sqlite_url(yield_db_path)),
            farmers_engine=make_engine(sqlite_url(farmers_db_path)),
        )

    def probe(self) -> dict:
        """Try one connection per store and log the outcome; never raises."""
        status = {}
        for name, engine in (("historical_yield", self.yield_engine), ("farmers", self.farmers_engine)):
            try:
                with engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
            except SQLAlchemyError as e:
                log.error("Error connecting to %s store: %s", name, getattr(e, "orig", None) or e)
                status[name] = False
            else:
                log.info("Connected to %s store", name)
                status[name] = True
        return status

    def dispose(self) -> None:
        self.yield_engine.dispose()
        self.farmers_engine.dispose()
