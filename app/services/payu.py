from __future__ import annotations

import hashlib
import secrets
from collections.abc import Mapping

UDF_FIELDS = ("udf1", "udf2", "udf3", "udf4", "udf5")
# udf6..udf10 are unused but keep their slots in both hash sequences.
RESERVED_FIELDS = ("", "", "", "", "")


def _sha512_hex(value: str) -> str:
    return hashlib.sha512(value.encode("utf-8")).hexdigest()


def build_request_hash_string(params: Mapping[str, str], *, salt: str) -> str:
    # key|txnid|amount|productinfo|firstname|email|udf1..udf5||||||salt
    head = [params["key"], params["txnid"], params["amount"], params["productinfo"]]
    head += [params["firstname"], params["email"]]
    udfs = [params.get(field) or "" for field in UDF_FIELDS]
    return "|".join([*head, *udfs, *RESERVED_FIELDS, salt])


def build_response_hash_string(params: Mapping[str, str], *, salt: str) -> str:
    # salt|status||||||udf5|udf4|udf3|udf2|udf1|email|firstname|productinfo|amount|txnid|key
    udfs = [params.get(field) or "" for field in reversed(UDF_FIELDS)]
    tail = [
        params.get("email") or "",
        params.get("firstname") or "",
        params.get("productinfo") or "",
        params.get("amount") or "",
        params.get("txnid") or "",
        params.get("key") or "",
    ]
    return "|".join([salt, params.get("status") or "", *RESERVED_FIELDS, *udfs, *tail])


def build_request_hash(params: Mapping[str, str], *, salt: str) -> str:
    return _sha512_hex(build_request_hash_string(params, salt=salt))


def is_valid_response_hash(
    params: Mapping[str, str],
    *,
    salt: str,
    received_hash: str | None,
) -> bool:
    if not received_hash:
        return False
    expected = _sha512_hex(build_response_hash_string(params, salt=salt))
    return secrets.compare_digest(expected, received_hash.strip().lower())
