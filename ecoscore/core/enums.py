def enum_value(v) -> str:
    """Plain string for an enum member or an already-plain value."""
    return v.value if hasattr(v, "value") else str(v)
