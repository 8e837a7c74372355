from .database import get_conn, get_db, init_db

__all__ = ['get_conn', 'get_db', 'init_db']
