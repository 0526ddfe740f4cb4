import logging
import os

import psycopg2
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from upgrade_guard import app_context
from upgrade_guard.app.routes.access import router as access_router
from upgrade_guard.app.routes.activity import router as activity_router
from upgrade_guard.app.routes.catalog import router as catalog_router
from upgrade_guard.app.routes.reconciliation import router as reconciliation_router
from upgrade_guard.app.routes.rules import router as rules_router
from upgrade_guard.app.routes.webhooks import router as webhooks_router
from upgrade_guard.app.services.reconciliation import get_settings, shutdown_dispatcher
from upgrade_guard.config import load_db_config

load_dotenv()

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger("upgrade_guard")

DB_CFG = load_db_config()


def get_conn():
    return psycopg2.connect(**DB_CFG)


app_context.configure(get_conn=get_conn)

app = FastAPI(title="Upgrade Guard API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_allowed_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(webhooks_router)
app.include_router(rules_router)
app.include_router(activity_router)
app.include_router(catalog_router)
app.include_router(access_router)
app.include_router(reconciliation_router)


@app.get("/api/healthz")
def healthz():
    return {"ok": True}


@app.on_event("shutdown")
def _shutdown_dispatcher() -> None:
    logger.info("Waiting for in-flight reconciliation work")
    shutdown_dispatcher()

# run: uvicorn upgrade_guard.main:app --host 127.0.0.1 --port 8000 --reload
