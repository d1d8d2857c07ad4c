# farmstats/schemas.py
from pydantic import BaseModel
from typing import Optional


# ---------- requests ----------
# Everything is optional at the schema level: presence rules live in crud,
# which needs to tell an absent key from a falsy value.

class FarmerCreate(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    crop: Optional[str] = None
    phone_number: Optional[str] = None
    farm_size: Optional[float] = None
    average_yield: Optional[float] = None


class FarmerUpdate(FarmerCreate):
    deactivated: Optional[bool] = None


# ---------- responses ----------

class YieldOut(BaseModel):
    date: str
    yield_kg_per_hectare: Optional[float] = None


class CropCount(BaseModel):
    crop_type: Optional[str] = None
    count: int


class FarmerOut(BaseModel):
    id: int
    name: Optional[str] = None
    location: Optional[str] = None
    crop_type: Optional[str] = None
    phone_number: Optional[str] = None
    farm_size: Optional[float] = None
    average_yield: Optional[float] = None
    deactivated: bool = False

    class Config:
        from_attributes = True


class Message(BaseModel):
    message: str


class FarmerCreated(Message):
    id: int


class FarmerUpdated(Message):
    deactivated: bool
