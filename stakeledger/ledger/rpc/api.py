# MIT License
# Copyright (c) 2025 Hashborn

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from typing import Optional
from ...protocol.types.common import LedgerError, ProtocolError
from ...protocol.types.tx import LedgerTx
from ..core.ledger import Ledger
from ..observability.metrics import get_metrics
import logging

logger = logging.getLogger(__name__)

app = FastAPI(title="StakeLedger Node RPC")

# Injected by the node CLI (or tests) before serving.
ledger: Optional[Ledger] = None

class TxResponse(BaseModel):
    tx_hash: str
    status: str

def _require_ledger() -> Ledger:
    if not ledger:
        raise HTTPException(status_code=503, detail="Node not initialized")
    return ledger

@app.exception_handler(ProtocolError)
async def protocol_error_handler(request, exc: ProtocolError):
    status_code = 403 if getattr(exc, "code", "") == "unauthorized" else 400
    return JSONResponse(
        status_code=status_code,
        content={"code": getattr(exc, "code", "error"), "detail": str(exc)},
    )

@app.get("/status")
async def get_status():
    return _require_ledger().status()

@app.get("/balance/{address}")
async def get_balance(address: str):
    node = _require_ledger()
    return {
        "address": address,
        "balance": str(node.balance_of(address)),
        "nonce": node.nonce_of(address),
    }

@app.get("/stake/{address}")
async def get_stake(address: str):
    node = _require_ledger()
    info = node.stake_info(address)
    # u256 values travel as strings
    for key in ("staked_amount", "banked_reward", "pending_reward"):
        info[key] = str(info[key])
    return info

@app.get("/events")
async def get_events(limit: int = 100, kind: Optional[str] = None):
    node = _require_ledger()
    return {"events": [e.model_dump() for e in node.events.recent(limit=limit, kind=kind)]}

@app.get("/metrics")
async def metrics():
    return Response(content=get_metrics(), media_type="text/plain; version=0.0.4")

@app.post("/tx", response_model=TxResponse)
async def submit_tx(tx: LedgerTx):
    node = _require_ledger()
    try:
        node.apply_transaction(tx)
    except LedgerError as e:
        logger.info(f"Tx {tx.hash()[:16]} rejected: {e.code}: {e}")
        raise
    return TxResponse(tx_hash=tx.hash(), status="committed")
