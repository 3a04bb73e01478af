MAX_PERCENT = 100


def percent_used(used: int | float, total: int | float) -> float:
    """
    Share of ``total`` taken by ``used`` as a 0-100 percentage, for gauges.

    A zero or negative total yields 0 rather than dividing by zero.
    """
    if total <= 0:
        return 0

    return min(max(used / total * MAX_PERCENT, 0), MAX_PERCENT)
