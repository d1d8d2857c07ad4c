import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from farmstats import crud, models, schemas
from farmstats.db import FarmersBase, YieldBase
from farmstats.errors import NotFoundError, StorageError, ValidationError


def mk_create(**overrides) -> schemas.FarmerCreate:
    data = {
        "name": "Asha",
        "location": "Nakuru",
        "crop": "Maize",
        "phone_number": "0712345678",
        "farm_size": 2.5,
        "average_yield": 3100.0,
    }
    data.update(overrides)
    # drop keys explicitly passed as ... so the field counts as "not sent"
    return schemas.FarmerCreate(**{k: v for k, v in data.items() if v is not ...})


def mk_session(base):
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    base.metadata.create_all(bind=engine)
    return TestingSessionLocal()


@pytest.fixture(scope="function")
def farmers_db():
    """Fresh in-memory farmers store per test."""
    db = mk_session(FarmersBase)
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def yield_db():
    db = mk_session(YieldBase)
    try:
        yield db
    finally:
        db.close()


def reload(db, farmer_id) -> models.Farmer:
    db.expire_all()
    return db.get(models.Farmer, farmer_id)


def test_create_farmer_assigns_distinct_ids_and_starts_active(farmers_db):
    first = crud.create_farmer(farmers_db, mk_create())
    second = crud.create_farmer(farmers_db, mk_create(name="Brian"))

    assert isinstance(first, int)
    assert first != second
    obj = reload(farmers_db, first)
    assert obj.name == "Asha"
    assert obj.crop_type == "Maize"
    assert obj.deactivated is False


@pytest.mark.parametrize("field", ["name", "location", "crop", "phone_number", "farm_size", "average_yield"])
def test_create_farmer_rejects_missing_field(farmers_db, field):
    with pytest.raises(ValidationError) as exc:
        crud.create_farmer(farmers_db, mk_create(**{field: ...}))

    assert exc.value.status_code == 400
    assert exc.value.message == crud.MSG_MISSING
    assert crud.list_farmers(farmers_db) == []


def test_create_farmer_rejects_empty_string(farmers_db):
    with pytest.raises(ValidationError):
        crud.create_farmer(farmers_db, mk_create(location=""))


def test_create_farmer_accepts_zero_numbers(farmers_db):
    new_id = crud.create_farmer(farmers_db, mk_create(farm_size=0, average_yield=0))

    obj = reload(farmers_db, new_id)
    assert obj.farm_size == 0
    assert obj.average_yield == 0


def test_update_values_string_fields_use_truthiness():
    payload = schemas.FarmerUpdate(name="", location="Eldoret", phone_number="")

    assert crud.update_values(payload) == {"location": "Eldoret"}


def test_update_values_numbers_and_flag_use_presence():
    payload = schemas.FarmerUpdate(farm_size=0, average_yield=0, deactivated=False)

    assert crud.update_values(payload) == {"farm_size": 0, "average_yield": 0, "deactivated": False}


def test_update_values_maps_crop_to_crop_type():
    assert crud.update_values(schemas.FarmerUpdate(crop="Beans")) == {"crop_type": "Beans"}


def test_update_farmer_zero_farm_size_keeps_other_fields(farmers_db):
    new_id = crud.create_farmer(farmers_db, mk_create())

    deactivated = crud.update_farmer(farmers_db, new_id, schemas.FarmerUpdate(farm_size=0))

    assert deactivated is False
    obj = reload(farmers_db, new_id)
    assert obj.farm_size == 0
    assert obj.name == "Asha"
    assert obj.location == "Nakuru"
    assert obj.crop_type == "Maize"
    assert obj.phone_number == "0712345678"
    assert obj.average_yield == 3100.0


def test_update_farmer_without_fields_is_rejected_before_lookup(farmers_db):
    with pytest.raises(ValidationError) as exc:
        crud.update_farmer(farmers_db, 999999, schemas.FarmerUpdate(name=""))

    assert exc.value.message == crud.MSG_NOTHING


def test_update_farmer_unknown_id_is_not_found(farmers_db):
    crud.create_farmer(farmers_db, mk_create())

    with pytest.raises(NotFoundError):
        crud.update_farmer(farmers_db, 999999, schemas.FarmerUpdate(name="Ghost"))


def test_update_farmer_non_integer_id_is_not_found(farmers_db):
    with pytest.raises(NotFoundError):
        crud.update_farmer(farmers_db, "abc", schemas.FarmerUpdate(name="Ghost"))


@pytest.mark.parametrize("bad_id", [2 ** 63, -(2 ** 63) - 1, "1_0", "١٠", " 1"])
def test_deactivate_farmer_rejects_ids_sqlite_cannot_hold(farmers_db, bad_id):
    for _ in range(10):
        crud.create_farmer(farmers_db, mk_create())

    with pytest.raises(NotFoundError):
        crud.deactivate_farmer(farmers_db, bad_id)

    assert all(f.deactivated is False for f in crud.list_farmers(farmers_db))


def test_deactivate_farmer_max_integer_id_is_looked_up(farmers_db):
    with pytest.raises(NotFoundError):
        crud.deactivate_farmer(farmers_db, str(crud.ROW_ID_MAX))


def test_update_farmer_can_reactivate(farmers_db):
    new_id = crud.create_farmer(farmers_db, mk_create())
    crud.deactivate_farmer(farmers_db, new_id)

    result = crud.update_farmer(farmers_db, str(new_id), schemas.FarmerUpdate(deactivated=False))

    assert result is False
    assert reload(farmers_db, new_id).deactivated is False


def test_update_farmer_returns_submitted_flag(farmers_db):
    new_id = crud.create_farmer(farmers_db, mk_create())

    assert crud.update_farmer(farmers_db, new_id, schemas.FarmerUpdate(deactivated=True)) is True
    assert reload(farmers_db, new_id).deactivated is True


def test_deactivate_farmer_is_idempotent(farmers_db):
    new_id = crud.create_farmer(farmers_db, mk_create())

    crud.deactivate_farmer(farmers_db, new_id)
    crud.deactivate_farmer(farmers_db, new_id)

    assert reload(farmers_db, new_id).deactivated is True


def test_deactivate_farmer_unknown_id_is_not_found(farmers_db):
    crud.create_farmer(farmers_db, mk_create())

    with pytest.raises(NotFoundError) as exc:
        crud.deactivate_farmer(farmers_db, 999999)

    assert exc.value.status_code == 404
    assert all(f.deactivated is False for f in crud.list_farmers(farmers_db))


def test_crop_distribution_counts_deactivated_farmers(farmers_db):
    a = crud.create_farmer(farmers_db, mk_create(crop="Maize"))
    crud.create_farmer(farmers_db, mk_create(crop="Maize"))
    crud.create_farmer(farmers_db, mk_create(crop="Beans"))
    crud.deactivate_farmer(farmers_db, a)

    counts = {c.crop_type: c.count for c in crud.crop_distribution(farmers_db)}

    assert counts == {"Maize": 2, "Beans": 1}


def test_list_yield_history_newest_first(yield_db):
    yield_db.add_all(
        [
            models.YieldRecord(date="2021-06-01", yield_kg_per_hectare=2900.0),
            models.YieldRecord(date="2023-06-01", yield_kg_per_hectare=3300.0),
            models.YieldRecord(date="2022-06-01", yield_kg_per_hectare=3100.0),
        ]
    )
    yield_db.commit()

    rows = crud.list_yield_history(yield_db)

    assert [r.date for r in rows] == ["2023-06-01", "2022-06-01", "2021-06-01"]
    assert rows[0].yield_kg_per_hectare == 3300.0


def test_storage_failure_surfaces_driver_message():
    # no tables created
    engine = create_engine("sqlite:///:memory:")
    db = sessionmaker(bind=engine)()
    try:
        with pytest.raises(StorageError) as exc:
            crud.list_farmers(db)
    finally:
        db.close()

    assert exc.value.status_code == 500
    assert "no such table" in exc.value.message
