# cartsync/data/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from cartsync.utils.settings import LOCAL_STORE_URL

engine = create_engine(LOCAL_STORE_URL, future=True, echo=False)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(bind=None):
    # import modeli zeby SQLAlchemy zarejestrowal je w Base.metadata
    from cartsync.data import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
