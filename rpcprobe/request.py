"""The fixed JSON-RPC payload sent to every endpoint."""

import json
from types import MappingProxyType

# Latest block header only, no transaction bodies.
PROBE_REQUEST = MappingProxyType(
    {
        "jsonrpc": "2.0",
        "method": "eth_getBlockByNumber",
        "params": ("latest", False),
        "id": 1,
    }
)

PROBE_BODY: str = json.dumps(
    {
        "jsonrpc": PROBE_REQUEST["jsonrpc"],
        "method": PROBE_REQUEST["method"],
        "params": list(PROBE_REQUEST["params"]),
        "id": PROBE_REQUEST["id"],
    }
)
