# ledger/db/engine.py

from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from ledger.config import get_settings


def get_engine(url: Optional[str] = None) -> Engine:
    settings = get_settings()
    url = url or settings.DATABASE_URL

    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    # echo=True if you want to see SQL printed in the terminal
    engine = create_engine(
        url,
        future=True,
        echo=settings.SQL_ECHO,
        connect_args=connect_args,
    )

    if url.startswith("sqlite"):
        _configure_sqlite(engine)

    return engine


def _configure_sqlite(engine: Engine) -> None:
    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT; take over
    # transaction control and turn on FK enforcement (off by default).
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")
