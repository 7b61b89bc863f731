"""
receipts.py - Hashing and Audit Receipts

dual_hash() is the one digest used for trace hashes, group digests and root
digests. Receipts are the audit record of a run: a divination, a trace
verification or a config validation, appended one JSON object per line.

Never single hash. Always dual_hash (SHA256:BLAKE3).
"""

import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

import blake3

__all__ = [
    "TENANT_ID",
    "dual_hash",
    "emit_receipt",
    "write_receipt_jsonl",
    "append_receipt",
    "read_receipts",
    "StopRule",
]

TENANT_ID = "divination"


# =============================================================================
# HASHING
# =============================================================================

def dual_hash(data: Union[bytes, str]) -> str:
    """
    SHA256:BLAKE3 of data.

    Args:
        data: bytes, or a string hashed as its UTF-8 encoding

    Returns:
        str: "sha256_hex:blake3_hex"
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return f"{hashlib.sha256(data).hexdigest()}:{blake3.blake3(data).hexdigest()}"


# =============================================================================
# RECEIPTS
# =============================================================================

def emit_receipt(receipt_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Wrap a payload in the receipt envelope.

    The payload hash covers data only (canonical JSON, sorted keys), so two
    receipts for the same run differ only in ts.

    Args:
        receipt_type: "divination", "trace_verification", ...
        data: payload; tenant_id falls back to "default" when absent

    Returns:
        dict: {receipt_type, ts, tenant_id, payload_hash, **data}
    """
    return {
        "receipt_type": receipt_type,
        "ts": datetime.now(timezone.utc).isoformat(),
        "tenant_id": data.get("tenant_id", "default"),
        "payload_hash": dual_hash(json.dumps(data, sort_keys=True, ensure_ascii=False)),
        **data,
    }


def write_receipt_jsonl(receipt: Dict[str, Any], fh) -> None:
    """Write receipt as one compact JSON line to an open text handle."""
    fh.write(json.dumps(receipt, separators=(",", ":"), ensure_ascii=False) + "\n")


def append_receipt(path: Union[str, Path], receipt: Dict[str, Any]) -> None:
    """Append receipt to a JSONL ledger, creating the file if needed."""
    with open(path, "a", encoding="utf-8") as fh:
        write_receipt_jsonl(receipt, fh)


def _iter_lines(path: Union[str, Path]) -> Iterator[str]:
    with open(path, encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if line:
                yield line


def read_receipts(path: Union[str, Path], receipt_type: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Load a JSONL ledger, optionally keeping one receipt_type.

    Raises:
        FileNotFoundError: path does not exist
        json.JSONDecodeError: a line is not JSON
    """
    receipts = [json.loads(line) for line in _iter_lines(path)]
    if receipt_type is None:
        return receipts
    return [r for r in receipts if r.get("receipt_type") == receipt_type]


# =============================================================================
# STOPRULE EXCEPTION
# =============================================================================

class StopRule(Exception):
    """Raised when an integrity rule is broken. Never catch silently."""
    pass
