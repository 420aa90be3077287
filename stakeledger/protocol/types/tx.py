# MIT License
# Copyright (c) 2025 Hashborn

import json
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from ..crypto.hash import sha256_hex
from .common import ActionType
from ..crypto.keys import sign as crypto_sign

class LedgerTx(BaseModel):
    """Signed request to run one ledger action on behalf of from_address."""
    action: ActionType
    from_address: str
    to_address: Optional[str] = None  # MINT, TRANSFER, ADD/REMOVE_MINTER, TRANSFER_ADMIN
    amount: int = 0                   # in minimal units
    nonce: int
    signature: str = ""               # hex ECDSA, default empty
    pub_key: str = ""                 # hex public key of sender
    payload: Dict[str, Any] = Field(default_factory=dict)  # UPGRADE plan, etc.

    def hash(self) -> str:
        to_addr = self.to_address if self.to_address else ""

        payload_str = (
            self.action.value
            + self.from_address
            + to_addr
            + str(self.amount)
            + str(self.nonce)
            + self.pub_key
            + json.dumps(self.payload, sort_keys=True, separators=(",", ":"))
        )
        return sha256_hex(payload_str.encode("utf-8"))

    def sign(self, priv_key_bytes: bytes):
        """Signs the transaction hash."""
        msg_hash = bytes.fromhex(self.hash())
        self.signature = crypto_sign(msg_hash, priv_key_bytes).hex()
