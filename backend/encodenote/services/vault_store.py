"""Persistence of encrypted vault blobs.

Each vault is one row keyed by the client-supplied hash. The server stores
salt, iv and ciphertext exactly as received and never interprets them; the
only thing it owns is ``updated_at``.
"""
import logging
import re
import time
from typing import Optional

from sqlalchemy import case, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from encodenote.models.vault import Vault

logger = logging.getLogger(__name__)

_NON_HEX = re.compile(r"[^a-f0-9]", re.IGNORECASE)
PAYLOAD_FIELDS = ("salt", "iv", "ciphertext")


class VaultStoreError(Exception):
    pass


class MissingFieldsError(VaultStoreError, ValueError):
    """A write is missing salt, iv or ciphertext."""


class InvalidHashError(VaultStoreError, ValueError):
    """Nothing usable is left of the hash after sanitizing it."""


class StorageError(VaultStoreError):
    """The database rejected or failed the operation."""


def sanitize_hash(raw: str) -> str:
    """Strip every non-hex character from a client-supplied vault hash.

    This does not validate anything: the result is safe to use as a storage
    key, but two different inputs may map to the same key.
    """
    return _NON_HEX.sub("", raw or "")


def _insert_for(db: Session):
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert


def get_vault(db: Session, vault_hash: str) -> Optional[Vault]:
    key = sanitize_hash(vault_hash)
    if not key:
        return None
    try:
        return db.execute(select(Vault).where(Vault.hash == key)).scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.exception("Read failed for vault %s", key)
        raise StorageError("Read failed") from exc


def put_vault(
    db: Session,
    vault_hash: str,
    salt: str,
    iv: str,
    ciphertext: str,
    now: Optional[int] = None,
) -> Vault:
    """Create or fully replace the record for ``vault_hash``.

    The upsert is a single statement, so readers never see a mix of old and
    new fields. ``updated_at`` moves forward by at least one second per write
    even when the clock has not.
    """
    values = {"salt": salt, "iv": iv, "ciphertext": ciphertext}
    missing = [name for name in PAYLOAD_FIELDS if not isinstance(values[name], str) or not values[name]]
    if missing:
        raise MissingFieldsError("Missing fields: " + ", ".join(missing))

    key = sanitize_hash(vault_hash)
    if not key:
        raise InvalidHashError("Invalid hash")

    if now is None:
        now = int(time.time())

    insert = _insert_for(db)
    stmt = insert(Vault).values(hash=key, updated_at=now, **values)
    stmt = stmt.on_conflict_do_update(
        index_elements=["hash"],
        set_={
            "salt": stmt.excluded.salt,
            "iv": stmt.excluded.iv,
            "ciphertext": stmt.excluded.ciphertext,
            "updated_at": case(
                (Vault.updated_at >= stmt.excluded.updated_at, Vault.updated_at + 1),
                else_=stmt.excluded.updated_at,
            ),
        },
    )
    try:
        db.execute(stmt)
        db.commit()
        vault = db.execute(select(Vault).where(Vault.hash == key)).scalar_one()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Write failed for vault %s", key)
        raise StorageError("Write failed") from exc

    logger.debug("Stored vault %s (updated_at=%s)", key, vault.updated_at)
    return vault
