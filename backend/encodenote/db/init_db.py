import logging
from encodenote.db.base import Base, engine
from encodenote.models.vault import Vault

logger = logging.getLogger(__name__)


def init_db(bind=None):
    """Create all database tables"""
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    logger.info("Database tables ready at %s", bind.url.render_as_string(hide_password=True))


if __name__ == "__main__":
    init_db()
