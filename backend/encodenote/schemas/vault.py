from typing import Literal
from pydantic import BaseModel


class VaultResponse(BaseModel):
    salt: str         # KDF salt, generated client-side
    iv: str           # AES-GCM nonce, generated client-side
    ciphertext: str   # never decrypted server-side

    model_config = {"from_attributes": True}


class WriteResult(BaseModel):
    ok: bool = True


class JoinMessage(BaseModel):
    type: Literal["join"]
    hash: str


class JoinedEvent(BaseModel):
    type: Literal["joined"] = "joined"
    users: int


class UsersEvent(BaseModel):
    type: Literal["users"] = "users"
    count: int


class UpdatedEvent(BaseModel):
    type: Literal["updated"] = "updated"
