from sqlalchemy import Column, String, Integer, Text
from encodenote.db.base import Base


class Vault(Base):
    __tablename__ = "vaults"

    hash = Column(String, primary_key=True)
    salt = Column(Text, nullable=False)
    iv = Column(String, nullable=False)
    ciphertext = Column(Text, nullable=False)
    updated_at = Column(Integer, nullable=False)   # epoch seconds, server clock
