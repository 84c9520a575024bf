from sqlalchemy.engine import Engine

from consent_authz.db.base import Base
import consent_authz.models.consent  # noqa: F401
import consent_authz.models.access_log  # noqa: F401

def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)
