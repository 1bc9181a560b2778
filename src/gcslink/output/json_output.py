"""JSON rendering for ``--format json``.

One-shot commands print a pretty envelope (``ok``/``command``/``timestamp``
plus ``data`` or ``error``).  Streaming commands print one compact viewer
message per line.  Payloads keep the device's camelCase wire keys.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic_core import to_jsonable_python

if TYPE_CHECKING:
    from pydantic import BaseModel


def _envelope(*, ok: bool, command: str, **body: Any) -> str:
    document = {"ok": ok, "command": command, **body}
    document["timestamp"] = datetime.now(UTC).isoformat()
    return json.dumps(to_jsonable_python(document, by_alias=True, serialize_unknown=True), indent=2)


def format_json_response(*, data: Any, command: str) -> str:
    """Wrap *data* (models, dataclasses and containers of them) in a success envelope."""
    return _envelope(ok=True, command=command, data=data)


def format_json_error(*, code: str, message: str, command: str, **extra: Any) -> str:
    """Error envelope; *code* is one of the stable codes from :func:`gcslink.cli.main.error_code`."""
    return _envelope(ok=False, command=command, error={"code": code, "message": message, **extra})


def format_json_line(message: BaseModel) -> str:
    return message.model_dump_json(by_alias=True)
