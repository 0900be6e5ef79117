"""
Verification result payload.

Shape POSTed to the `pb:publish-verification-results` link:

    {
      "success": false,
      "providerApplicationVersion": "1.2.3",
      "buildUrl": "https://ci/builds/42",          # optional
      "testResults": [                             # failures only
        {
          "interactionId": "...",
          "success": false,
          "description": "...",
          "mismatches": [{"attribute": "body", "identifier": "$.id", "description": "...", "diff": "..."}],
          "exception": {"message": "...", "exceptionClass": "..."}   # optional
        }
      ]
    }
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from halbroker.integrations.contracts.verification import Failure, VerificationOutcome

logger = logging.getLogger(__name__)

INTERACTION_ID = "interactionId"
TYPE = "type"
EXCEPTION = "exception"


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    if value is None:
        return []
    return [value]


def _body_mismatches(mismatch: Mapping[str, Any]) -> List[Dict[str, Any]]:
    comparison = mismatch.get("comparison")
    if not isinstance(comparison, Mapping):
        return [{"attribute": "body", "description": str(comparison)}]
    values = []
    for identifier, entries in comparison.items():
        if identifier == "diff":
            continue
        for entry in _as_list(entries):
            entry = entry if isinstance(entry, Mapping) else {"mismatch": entry}
            values.append({
                "attribute": "body",
                "identifier": identifier,
                "description": entry.get("mismatch"),
                "diff": entry.get("diff"),
            })
    return values


def mismatch_records(mismatch: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Render one mismatch into the broker's record shape(s)."""
    kind = mismatch.get(TYPE)
    if kind == "body":
        return _body_mismatches(mismatch)
    if kind == "status":
        return [{"attribute": "status", "description": mismatch.get("description")}]
    if kind in ("header", "metadata"):
        return [{
            ("attribute" if key == TYPE else key): value
            for key, value in mismatch.items()
            if key != INTERACTION_ID
        }]
    return [{key: value for key, value in mismatch.items() if key not in (INTERACTION_ID, TYPE)}]


def _exception_details(exc: Any) -> Dict[str, Any]:
    if isinstance(exc, BaseException):
        cls = type(exc)
        class_name = cls.__qualname__ if cls.__module__ == "builtins" else f"{cls.__module__}.{cls.__qualname__}"
        return {"message": str(exc), "exceptionClass": class_name}
    return {"message": str(exc), "exceptionClass": None}


def _interaction_results(result: Failure) -> List[Dict[str, Any]]:
    groups: Dict[Any, List[Mapping[str, Any]]] = {}
    for mismatch in result.mismatches:
        groups.setdefault(mismatch.get(INTERACTION_ID), []).append(mismatch)

    records = []
    for interaction_id, mismatches in groups.items():
        values: List[Dict[str, Any]] = []
        for mismatch in mismatches:
            if EXCEPTION not in mismatch:
                values.extend(mismatch_records(mismatch))

        record: Dict[str, Any] = {
            INTERACTION_ID: interaction_id,
            "success": False,
            "description": result.description,
            "mismatches": values,
        }
        exception_details = next((m for m in mismatches if EXCEPTION in m), None)
        if exception_details is not None:
            record[EXCEPTION] = _exception_details(exception_details[EXCEPTION])
        records.append(record)
    return records


def build_payload(result: VerificationOutcome, version: str, build_url: Optional[str] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"success": result.to_bool(), "providerApplicationVersion": version}
    if build_url is not None:
        payload["buildUrl"] = build_url

    logger.debug("Test result = %s", result)
    if isinstance(result, Failure) and result.mismatches:
        payload["testResults"] = _interaction_results(result)
    return payload
