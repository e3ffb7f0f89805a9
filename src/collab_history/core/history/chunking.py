DEFAULT_THRESHOLD_MS = 100_000


def should_close_chunk(last_op_timestamp: int, current_op_timestamp: int, threshold_ms: int = DEFAULT_THRESHOLD_MS) -> bool:
    """Return True when the gap between two consecutive operations exceeds the threshold.

    Only the gap matters: timestamps are taken in log order and never re-sorted, so a
    clock that steps backwards simply yields a negative gap and keeps the chunk open.
    """
    return current_op_timestamp - last_op_timestamp > threshold_ms
