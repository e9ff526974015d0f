import json
from typing import Any, Dict, Iterable, Iterator, List

from pydantic import BaseModel

KEEPALIVE_FRAME = ": keepalive\n\n"


def encode_event(event: BaseModel) -> str:
    payload = event.model_dump(by_alias=True, exclude_none=True)
    data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return f"data: {data}\n\n"


def parse_event_lines(lines: Iterable[str]) -> Iterator[Dict[str, Any]]:
    """
    Decode an event stream line by line.

    Comment lines (starting with ":") are skipped, multi-line data fields are
    joined, and each blank line dispatches one JSON event. A trailing event
    with no terminating blank line is dropped.
    """
    data: List[str] = []
    for line in lines:
        line = line.rstrip("\r\n")
        if not line:
            if data:
                yield _decode("\n".join(data))
                data = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if field == "data":
            data.append(value[1:] if value.startswith(" ") else value)


def _decode(raw: str) -> Dict[str, Any]:
    try:
        event = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Malformed event payload: {raw!r}") from e
    if not isinstance(event, dict) or "type" not in event:
        raise ValueError(f"Event payload must be an object with a type field: {raw!r}")
    return event
