"""JSON helpers with optional orjson support."""

try:
    import orjson as _json

    def json_loads(b):
        return _json.loads(b)

    def json_dumps(obj, pretty: bool = False) -> str:
        option = _json.OPT_INDENT_2 if pretty else 0
        return _json.dumps(obj, option=option).decode("utf-8")
except Exception:
    import json as _json

    def json_loads(b):
        if isinstance(b, (bytes, bytearray)):
            try:
                return _json.loads(b)
            except Exception:
                return _json.loads(b.decode("utf-8", "ignore"))
        return _json.loads(b)

    def json_dumps(obj, pretty: bool = False) -> str:
        return _json.dumps(obj, indent=2 if pretty else None)
