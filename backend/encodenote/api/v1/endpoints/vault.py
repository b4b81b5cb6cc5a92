from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from encodenote.api.deps import get_db, get_hub, get_json_object
from encodenote.schemas.vault import VaultResponse, WriteResult
from encodenote.services import sync
from encodenote.services.presence import PresenceHub
from encodenote.services.vault_store import (
    InvalidHashError,
    MissingFieldsError,
    StorageError,
    get_vault,
)

router = APIRouter()

@router.get("/{vault_hash}", response_model=VaultResponse)
def read_vault(vault_hash: str, db: Session = Depends(get_db)):
    try:
        vault = get_vault(db, vault_hash)
    except StorageError:
        raise HTTPException(status_code=500, detail="Read failed")
    if not vault:
        raise HTTPException(status_code=404, detail="Not found")
    return vault

@router.put("/{vault_hash}", response_model=WriteResult)
def write_vault(
    vault_hash: str,
    payload: dict = Depends(get_json_object),
    db: Session = Depends(get_db),
    hub: PresenceHub = Depends(get_hub),
):
    try:
        sync.write_vault(db, hub, vault_hash, payload)
    except MissingFieldsError:
        raise HTTPException(status_code=400, detail="Missing fields")
    except InvalidHashError:
        raise HTTPException(status_code=400, detail="Invalid hash")
    except StorageError:
        raise HTTPException(status_code=500, detail="Write failed")
    return WriteResult()
