import argparse
import logging
import uvicorn
from fastapi import FastAPI, Request, Depends
from fastapi.templating import Jinja2Templates
from fastapi.responses import HTMLResponse
from contextlib import asynccontextmanager

import sys
from pathlib import Path

# Add project root to path for package imports
base_dir = Path(__file__).parent
sys.path.insert(0, str(base_dir))

from db.database import init_db, get_db
from config import load_config, CONFIG_DIR
from routes import owners, pages, review, progress, chat, backups  # Import routers
from utils.items import ItemStore
from utils.log import setup_logging
from utils.memorization import run_daily_update
from utils.scheduler import create_scheduler
from utils.sessions import SessionStore

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(base_dir / "templates"))


def configure_logging(config: dict) -> None:
    logging_cfg = config["logging"]
    log_file = CONFIG_DIR / logging_cfg["file"] if logging_cfg.get("file") else None
    setup_logging(logging_cfg["level"], log_file)


# First-run init
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: config, logging, DB, daily trigger
    config = load_config()  # Ensures config exists
    configure_logging(config)
    init_db()
    scheduler = create_scheduler(config)
    if scheduler is not None:
        scheduler.start()
    logger.info("HifzCoach started")
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    logger.info("HifzCoach stopped")


app = FastAPI(
    title="HifzCoach",
    description="Spaced repetition planner for Quran memorization",
    lifespan=lifespan,
)
app.state.sessions = SessionStore()

# Include routers
app.include_router(owners.router, prefix="/owners", tags=["owners"])
app.include_router(pages.router, prefix="/pages", tags=["pages"])
app.include_router(review.router, prefix="/review", tags=["review"])
app.include_router(progress.router, prefix="/progress", tags=["progress"])
app.include_router(chat.router, prefix="/chat", tags=["chat"])
app.include_router(backups.router, prefix="/admin", tags=["admin"])

# Home page - list owners
@app.get("/", response_class=HTMLResponse)
async def home(request: Request, conn = Depends(get_db)):
    owners_list = ItemStore(conn).list_owners()
    return templates.TemplateResponse(request, "index.html", {"owners": owners_list})

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="HifzCoach App")
    parser.add_argument("--init", action="store_true", help="Initialize DB and config")
    parser.add_argument("--run-daily", action="store_true", help="Advance due ayahs for every owner once and exit")
    parser.add_argument("--dev", action="store_true", help="Run in dev mode with reload")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on")
    args = parser.parse_args()
    if args.init:
        load_config()  # Ensures config is copied if missing
        init_db()
        print("DB initialized and config copied to ~/.hifzcoach/")
        sys.exit(0)
    if args.run_daily:
        configure_logging(load_config())
        init_db()
        summary = run_daily_update()
        sys.exit(1 if summary["failed"] else 0)
    # Run server
    uvicorn.run("main:app", host="127.0.0.1", port=args.port, reload=args.dev, log_level="info")
