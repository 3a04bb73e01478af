import re
from datetime import timedelta

_TIME_PART = r"(?P<val>\d+(\.\d+)?)\s*(?P<unit>ms|[smhdw])?"
_TIME_AMOUNT = r"(\d+(\.\d+)?\s*(ms|[smhdw])\s*)*(\d+(\.\d+)?)?"


class TimeParser:
    def __init__(self, time_amount: str | int | float | None = None) -> None:
        self._units = {
            "ms": "milliseconds",
            "s": "seconds",
            "m": "minutes",
            "h": "hours",
            "d": "days",
            "w": "weeks",
        }

        self.time: float | None = None
        if time_amount is not None:
            self.time = self.parse(time_amount)

    def parse(self, time_amount: str | int | float) -> float:
        if isinstance(time_amount, (int, float)):
            return float(time_amount)

        time_amount = time_amount.strip()

        # only the last part may omit its unit, which then means seconds
        if not time_amount or re.fullmatch(_TIME_AMOUNT, time_amount, flags=re.I) is None:
            raise ValueError(f"Err. - could not parse time amount {time_amount!r}")

        parts: dict[str, float] = {}
        for match in re.finditer(_TIME_PART, time_amount, flags=re.I):
            unit = self._units[(match.group("unit") or "s").lower()]
            parts[unit] = parts.get(unit, 0) + float(match.group("val"))

        return float(timedelta(**parts).total_seconds())
