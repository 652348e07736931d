import re
from datetime import timedelta


class TimeParser:
    def __init__(self, time_amount: str | int | float | None = None) -> None:
        self._units = {
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

        return float(
            timedelta(
                **{
                    self._units.get(
                        m.group("unit").lower(),
                        "seconds"
                    ): float(
                        m.group("val")
                    )
                    for m in re.finditer(
                        r"(?P<val>\d+(\.\d+)?)(?P<unit>[smhdw]?)",
                        time_amount,
                        flags=re.I,
                    )
                }
            ).total_seconds()
        )
