import json
import logging
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError
from sqlalchemy.orm import Session

from encodenote.models.vault import Vault
from encodenote.schemas.vault import JoinMessage, JoinedEvent, UpdatedEvent, UsersEvent
from encodenote.services.presence import Connection, PresenceHub
from encodenote.services.vault_store import put_vault, sanitize_hash

logger = logging.getLogger(__name__)


def publish_update(hub: PresenceHub, vault_hash: str) -> int:
    return hub.broadcast(vault_hash, UpdatedEvent().model_dump())


def write_vault(db: Session, hub: PresenceHub, vault_hash: str, payload: Mapping[str, Any]) -> Vault:
    """Store a write and notify everyone watching the vault.

    Errors from the store propagate before anything is broadcast.
    """
    vault = put_vault(
        db,
        vault_hash,
        payload.get("salt"),
        payload.get("iv"),
        payload.get("ciphertext"),
    )
    publish_update(hub, vault.hash)
    return vault


def join_vault(hub: PresenceHub, connection: Connection, vault_hash: str) -> int:
    count = hub.join(connection, vault_hash)
    if count:
        connection.send(JoinedEvent(users=count).model_dump())
        hub.broadcast(vault_hash, UsersEvent(count=count).model_dump(), exclude=connection)
    return count


def disconnect(hub: PresenceHub, connection: Connection) -> Optional[str]:
    """Tear down a connection and tell the rest of its vault."""
    connection.close()
    vault_hash = hub.leave(connection)
    if vault_hash is not None:
        hub.broadcast(vault_hash, UsersEvent(count=hub.count(vault_hash)).model_dump())
    return vault_hash


def handle_message(hub: PresenceHub, connection: Connection, raw: Union[str, bytes, None]) -> None:
    """Act on one inbound frame. Anything other than a valid join is ignored."""
    if raw is None:
        return
    try:
        message = JoinMessage.model_validate(json.loads(raw))
    except (ValueError, ValidationError):
        logger.debug("Ignoring malformed message")
        return

    vault_hash = sanitize_hash(message.hash)
    if not vault_hash:
        logger.debug("Ignoring join without a usable hash")
        return
    join_vault(hub, connection, vault_hash)
