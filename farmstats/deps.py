# farmstats/deps.py
from fastapi import Depends, Request

from farmstats.db import StoreContext


def get_context(request: Request) -> StoreContext:
    return request.app.state.stores


# FastAPI deps: one session per request from the shared per-store engine
def get_yield_db(ctx: StoreContext = Depends(get_context)):
    db = ctx.YieldSession()
    try:
        yield db
    finally:
        db.close()


def get_farmers_db(ctx: StoreContext = Depends(get_context)):
    db = ctx.FarmersSession()
    try:
        yield db
    finally:
        db.close()
