import os, time
from urllib.parse import urlparse

import psycopg2

DATABASE_URL = os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URI") or ""


def wait(url: str = DATABASE_URL) -> None:
    if not url or url.startswith("sqlite"):
        print("[wait_for_db] SQLite database, nothing to wait for.")
        return

    # SQLAlchemy URL may start with postgresql+psycopg2://
    url = url.replace("postgresql+psycopg2://", "postgresql://").replace("postgres://", "postgresql://")
    p = urlparse(url)

    host = p.hostname or "db"
    port = p.port or 5432
    user = p.username or "happydays"
    password = p.password or "happydays"
    dbname = (p.path or "/happydays").lstrip("/") or "happydays"

    timeout_s = int(os.getenv("DB_WAIT_TIMEOUT", "60"))
    start = time.time()

    print(f"[wait_for_db] Waiting for Postgres at {host}:{port} db={dbname} user={user} (timeout={timeout_s}s)")
    while True:
        try:
            conn = psycopg2.connect(host=host, port=port, user=user, password=password, dbname=dbname)
            conn.close()
            print("[wait_for_db] Postgres is ready.")
            return
        except psycopg2.OperationalError as e:
            if time.time() - start > timeout_s:
                print(f"[wait_for_db] Timed out waiting for DB. Last error: {e}")
                raise
            time.sleep(1)


if __name__ == "__main__":
    wait()
