import time


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def format_ms_to_clock(milliseconds):
    """
    Converts elapsed milliseconds into a stopwatch readout.

    Returns ``HH:MM:SS.cc`` when at least one hour has elapsed, otherwise
    ``MM:SS.cc``. Every field is zero-padded to two digits and ``cc`` holds
    centiseconds.

    Raises:
        ValueError: If milliseconds is negative.
    """
    if milliseconds < 0:
        raise ValueError("Elapsed time cannot be negative.")

    milliseconds = int(milliseconds)
    total_seconds = milliseconds // 1000
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    centis = (milliseconds % 1000) // 10

    if hours > 0:
        return f"{hours:02}:{minutes:02}:{seconds:02}.{centis:02}"
    return f"{minutes:02}:{seconds:02}.{centis:02}"
