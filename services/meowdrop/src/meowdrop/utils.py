SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]


def format_bytes(size: int | float, decimals: int = 2) -> str:
    """Человекочитаемый размер: 1536 -> '1.5 KB'."""
    if not size:
        return "0 Bytes"
    k = 1024
    dm = max(decimals, 0)
    i = 0
    while size >= k ** (i + 1) and i < len(SIZE_UNITS) - 1:
        i += 1
    value = round(size / k**i, dm)
    # 1.50 -> 1.5, 2.00 -> 2
    text = f"{value:.{dm}f}".rstrip("0").rstrip(".") if dm else f"{value:.0f}"
    return f"{text} {SIZE_UNITS[i]}"
