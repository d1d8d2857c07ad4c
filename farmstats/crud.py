import logging
import re
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from farmstats import models, schemas
from farmstats.errors import NotFoundError, StorageError, ValidationError

log = logging.getLogger("farmstats.crud")

MSG_ADDED = "Farmer added successfully"
MSG_UPDATED = "Farmer updated successfully"
MSG_DEACTIVATED = "Farmer deactivated successfully"
MSG_MISSING = "Missing required fields"
MSG_NOTHING = "No fields to update"
MSG_NOT_FOUND = "Farmer not found"

# SQLite INTEGER range
ROW_ID_MIN, ROW_ID_MAX = -(2 ** 63), 2 ** 63 - 1
_ROW_ID = re.compile(r"-?[0-9]+")

# ---------- tiny, single-purpose helpers ----------

@contextmanager
def _storage(db: Session, what: str):
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        err = StorageError.from_exc(e)
        log.error("Error %s: %s", what, err.message)
        raise err from e


def _row_id(farmer_id: Any) -> Optional[int]:
    # ids arrive from the URL path; anything that isn't a plain 64-bit integer can't match a row
    text = str(farmer_id)
    if not _ROW_ID.fullmatch(text):
        return None
    value = int(text)
    if not ROW_ID_MIN <= value <= ROW_ID_MAX:
        return None
    return value


def _missing_create_fields(payload: schemas.FarmerCreate) -> List[str]:
    """Strings must be non-empty; numbers only have to be sent (0 is fine)."""
    sent = payload.model_fields_set
    missing = [f for f in ("name", "location", "crop", "phone_number") if not getattr(payload, f)]
    missing += [f for f in ("farm_size", "average_yield") if f not in sent]
    return missing


def update_values(payload: schemas.FarmerUpdate) -> Dict[str, Any]:
    """
    Column values for a partial update.
    Strings are kept only when truthy, so "" never overwrites.
    Numbers and `deactivated` are kept whenever the key was sent,
    so 0 and false still apply.
    """
    sent = payload.model_fields_set
    values: Dict[str, Any] = {}
    if payload.name:
        values["name"] = payload.name
    if payload.location:
        values["location"] = payload.location
    if payload.crop:
        values["crop_type"] = payload.crop
    if payload.phone_number:
        values["phone_number"] = payload.phone_number
    if "farm_size" in sent:
        values["farm_size"] = payload.farm_size
    if "average_yield" in sent:
        values["average_yield"] = payload.average_yield
    if "deactivated" in sent:
        values["deactivated"] = bool(payload.deactivated)
    return values

# ---------- reads ----------

def list_yield_history(db: Session) -> List[schemas.YieldOut]:
    stmt = (
        select(
            models.YieldRecord.date.label("date"),
            models.YieldRecord.yield_kg_per_hectare.label("yield_kg_per_hectare"),
        )
        .order_by(models.YieldRecord.date.desc())
    )
    with _storage(db, "fetching data"):
        rows = db.execute(stmt).all()
    return [schemas.YieldOut.model_validate(dict(r._mapping)) for r in rows]


def crop_distribution(db: Session) -> List[schemas.CropCount]:
    # deactivated farmers are counted too
    stmt = (
        select(models.Farmer.crop_type.label("crop_type"), func.count().label("count"))
        .group_by(models.Farmer.crop_type)
    )
    with _storage(db, "fetching crop distribution"):
        rows = db.execute(stmt).all()
    return [schemas.CropCount.model_validate(dict(r._mapping)) for r in rows]


def list_farmers(db: Session) -> List[models.Farmer]:
    with _storage(db, "fetching farmers"):
        return list(db.scalars(select(models.Farmer).order_by(models.Farmer.id)))

# ---------- writes ----------

def create_farmer(db: Session, payload: schemas.FarmerCreate) -> int:
    missing = _missing_create_fields(payload)
    if missing:
        log.info("Rejected new farmer, missing %s", ", ".join(missing))
        raise ValidationError(MSG_MISSING)

    obj = models.Farmer(
        name=payload.name,
        location=payload.location,
        crop_type=payload.crop,
        phone_number=payload.phone_number,
        farm_size=payload.farm_size,
        average_yield=payload.average_yield,
        deactivated=False,
    )
    with _storage(db, "inserting farmer"):
        db.add(obj)
        db.commit()
        db.refresh(obj)
    log.info("Farmer %s added", obj.id)
    return obj.id


def update_farmer(db: Session, farmer_id: Any, payload: schemas.FarmerUpdate) -> bool:
    """Apply a partial update. Returns the submitted deactivated flag."""
    values = update_values(payload)
    if not values:
        raise ValidationError(MSG_NOTHING)

    row_id = _row_id(farmer_id)
    if row_id is None:
        raise NotFoundError(MSG_NOT_FOUND)

    stmt = (
        update(models.Farmer)
        .where(models.Farmer.id == row_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    with _storage(db, "updating farmer"):
        result = db.execute(stmt)
        db.commit()
    if result.rowcount == 0:
        log.warning("Update for unknown farmer %s", row_id)
        raise NotFoundError(MSG_NOT_FOUND)
    log.info("Farmer %s updated: %s", row_id, ", ".join(sorted(values)))
    return bool(payload.deactivated)


def deactivate_farmer(db: Session, farmer_id: Any) -> None:
    """Soft delete. Deactivating twice still matches the row."""
    row_id = _row_id(farmer_id)
    if row_id is None:
        raise NotFoundError(MSG_NOT_FOUND)

    stmt = (
        update(models.Farmer)
        .where(models.Farmer.id == row_id)
        .values(deactivated=True)
        .execution_options(synchronize_session=False)
    )
    with _storage(db, "deleting farmer"):
        result = db.execute(stmt)
        db.commit()
    if result.rowcount == 0:
        log.warning("Delete for unknown farmer %s", row_id)
        raise NotFoundError(MSG_NOT_FOUND)
    log.info("Farmer %s deactivated", row_id)
