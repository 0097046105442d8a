from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker
from booking_api.core.config import settings

connect_args = {}
backend = make_url(settings.DATABASE_URL).get_backend_name()
if backend.startswith("postgresql"):
    connect_args["options"] = (
        f"-c timezone=utc -c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"
    )
elif backend == "sqlite":
    connect_args["timeout"] = settings.db_timeout_seconds

engine = create_engine(
    settings.DATABASE_URL, pool_pre_ping=True, connect_args=connect_args
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
