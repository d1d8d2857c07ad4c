import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session

from farmstats import crud, schemas
from farmstats.config import Settings, get_settings
from farmstats.db import StoreContext
from farmstats.deps import get_farmers_db, get_yield_db
from farmstats.errors import NotFoundError, install_error_handlers
from farmstats.logging_config import setup_logging

log = logging.getLogger("farmstats.api")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Both stores are opened once and shared by every request
        stores = StoreContext.open(settings.yield_db_path, settings.farmers_db_path)
        stores.probe()
        app.state.stores = stores
        try:
            yield
        finally:
            stores.dispose()

    app = FastAPI(title="Farm Stats API (SQLite)", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    @app.get("/api/data", response_model=List[schemas.YieldOut])
    def yield_history(db: Session = Depends(get_yield_db)):
        return crud.list_yield_history(db)

    @app.get("/api/crop_distribution", response_model=List[schemas.CropCount])
    def crop_distribution(db: Session = Depends(get_farmers_db)):
        return crud.crop_distribution(db)

    @app.get("/api/farmers", response_model=List[schemas.FarmerOut])
    def list_farmers(db: Session = Depends(get_farmers_db)):
        return crud.list_farmers(db)

    @app.post("/api/farmers", response_model=schemas.FarmerCreated)
    def create_farmer(
        payload: Optional[schemas.FarmerCreate] = None,
        db: Session = Depends(get_farmers_db),
    ):
        new_id = crud.create_farmer(db, payload or schemas.FarmerCreate())
        return {"id": new_id, "message": crud.MSG_ADDED}

    @app.put("/api/farmers/{farmer_id}", response_model=schemas.FarmerUpdated)
    def update_farmer(
        farmer_id: str,
        payload: Optional[schemas.FarmerUpdate] = None,
        db: Session = Depends(get_farmers_db),
    ):
        deactivated = crud.update_farmer(db, farmer_id, payload or schemas.FarmerUpdate())
        return {"message": crud.MSG_UPDATED, "deactivated": deactivated}

    @app.delete("/api/farmers/{farmer_id}", response_model=schemas.Message)
    def deactivate_farmer(farmer_id: str, db: Session = Depends(get_farmers_db)):
        crud.deactivate_farmer(db, farmer_id)
        return {"message": crud.MSG_DEACTIVATED}

    @app.get("/", include_in_schema=False)
    def index():
        if not settings.index_html.is_file():
            raise NotFoundError("Not found")
        return FileResponse(settings.index_html)

    # Front-end bundle last so the API routes above win
    if settings.static_dir.is_dir():
        app.mount("/", StaticFiles(directory=settings.static_dir), name="static")
    else:
        log.info("No static directory at %s, front-end not served", settings.static_dir)

    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    setup_logging(settings.log_level)
    log.info("Server running on http://localhost:%s", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
