"""
time_tool.py -- current date and time for the model

Tools:
  get_current_time -- now, in the local zone or a named IANA zone
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def get_current_time(tz_name: Optional[str] = None, now: Optional[datetime] = None) -> dict:
    """Describe the current instant.

    ``now`` must be timezone-aware when given; it is converted to ``tz_name``
    (or the machine's local zone).
    """
    now = now or datetime.now(timezone.utc)
    if tz_name:
        try:
            local = now.astimezone(ZoneInfo(tz_name))
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {tz_name}")
    else:
        local = now.astimezone()

    return {
        "iso": local.isoformat(timespec="seconds"),
        "date": local.strftime("%Y-%m-%d"),
        "time": local.strftime("%H:%M:%S"),
        "weekday": local.strftime("%A"),
        "timezone": tz_name or local.tzname() or "local",
        "utc_offset": local.strftime("%z"),
        "unix": int(now.timestamp()),
    }


def _handle_get_current_time(args: dict, **kw) -> str:
    try:
        info = get_current_time(args.get("timezone") or None)
    except ValueError as e:
        return json.dumps({"error": str(e)})
    summary = f"{info['weekday']}, {info['date']} {info['time']} {info['timezone']} (UTC{info['utc_offset']})"
    return json.dumps({"result": summary, "details": info}, ensure_ascii=False)


GET_CURRENT_TIME_SCHEMA = {
    "name": "get_current_time",
    "description": (
        "Get the current date and time. Use this whenever the answer depends on "
        "today's date, e.g. 'latest' releases or relative dates."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "timezone": {
                "type": "string",
                "description": "IANA timezone such as 'Europe/Berlin' (default: local time)",
            },
        },
        "required": [],
    },
}


from tools.registry import registry

registry.register(
    name="get_current_time",
    toolset="time",
    schema=GET_CURRENT_TIME_SCHEMA,
    handler=_handle_get_current_time,
)
