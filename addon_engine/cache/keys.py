"""
Cache key building. String keys are used verbatim, anything else is hashed
(sha256 over canonical JSON) so dict/list keys are stable across processes.
"""
import hashlib
import json
from typing import Any, Optional


def hash_key(key: Any) -> str:
    raw = json.dumps(key, sort_keys=True, ensure_ascii=False, default=str)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def build_key(key: Any, prefix: Optional[str] = None) -> str:
    k = key if isinstance(key, str) else hash_key(key)
    return f"{prefix}:{k}" if prefix else k
