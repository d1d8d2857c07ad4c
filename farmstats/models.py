# farmstats/models.py
from sqlalchemy import Boolean, Column, Float, Integer, String, text
from .db import FarmersBase, YieldBase


class YieldRecord(YieldBase):
    __tablename__ = "historical_yield"

    # never exposed; reads select Date/Yield only so legacy tables without it still work
    id = Column("id", Integer, primary_key=True, autoincrement=True)
    date = Column("Date", String, nullable=False, index=True)       # ISO date, sorts lexically
    yield_kg_per_hectare = Column("Yield_kg_per_hectare", Float, nullable=False)


class Farmer(FarmersBase):
    __tablename__ = "farmers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column("id", Integer, primary_key=True, autoincrement=True)
    name = Column("Name", String)
    location = Column("Location", String)
    crop_type = Column("Crop_Type", String, index=True)
    phone_number = Column("Phone_Number", String)
    farm_size = Column("Farm_Size", Float)
    average_yield = Column("Average_Yield", Float)
    deactivated = Column(Boolean, nullable=False, default=False, server_default=text("0"))
