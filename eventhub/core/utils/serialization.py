from typing import Any


def normalize(value: Any) -> Any:
    if hasattr(value, "quantize"):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "value") and isinstance(getattr(value, "value"), str):
        return value.value
    if isinstance(value, (list, tuple, set)):
        return [normalize(v) for v in value]
    return value if isinstance(value, (str, int, float, bool, type(None))) else str(value)


def normalize_ctx(ctx: dict[str, Any]) -> dict[str, Any]:
    return {k: normalize(v) for k, v in ctx.items()}
