from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from db.database import get_db, snapshot_database
from utils.auth import require_admin_token

router = APIRouter(dependencies=[Depends(require_admin_token)])

@router.get("/backup")
def download_backup(conn = Depends(get_db)):
    """Take a fresh snapshot and send it as a SQLite file."""
    path = snapshot_database(conn, "download")
    return FileResponse(path, media_type="application/vnd.sqlite3", filename=path.name)
