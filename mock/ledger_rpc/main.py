from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pathlib import Path
import json
import os

app = FastAPI(title="Mock Ledger RPC", version="1.0.0")
# Support both local development and Docker
DATA_DIR = Path("/ledger_stub") if os.path.exists("/ledger_stub") else Path(__file__).resolve().parents[1] / "ledger_stub"
STUB = json.loads((DATA_DIR / "ledger.json").read_text())


def _result(request_id, result):
    return JSONResponse(content={"jsonrpc": "2.0", "id": request_id, "result": result})


def _error(request_id, code, message):
    return JSONResponse(content={"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}})


@app.get("/health")
def health(): return {"status": "ok"}


@app.post("/")
async def rpc(request: Request):
    body = await request.json()
    request_id, method, params = body.get("id"), body.get("method"), body.get("params", [])

    if method == "getSignaturesForAddress":
        address, options = params[0], (params[1] if len(params) > 1 else {})
        history = STUB["signatures"].get(address, [])
        before = options.get("before")
        if before:
            signatures = [s["signature"] for s in history]
            history = history[signatures.index(before) + 1:] if before in signatures else []
        return _result(request_id, history[: options.get("limit", 1000)])

    if method == "getTransaction":
        return _result(request_id, STUB["transactions"].get(params[0]))

    if method == "getTokenAccountBalance":
        # Single-account stub: every token account reports the incubator balance
        return _result(request_id, {"context": {"slot": 250000300}, "value": STUB["incubator_token_balance"]})

    return _error(request_id, -32601, f"Method not found: {method}")
