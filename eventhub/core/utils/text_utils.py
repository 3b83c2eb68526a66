def strip_text(v):
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v
