"""Date and time tool: current time, day arithmetic and formatting."""

from datetime import datetime, timedelta, timezone
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field


class DateTimeInput(BaseModel):
    action: Literal["now", "add_days", "format"] = Field(
        "now", description="now: hora atual; add_days: soma dias a uma data; format: formata uma data"
    )
    timezone: str = Field("UTC", description="Fuso horário IANA, ex: America/Sao_Paulo")
    date: str | None = Field(None, description="Data ISO 8601 (add_days/format)")
    days: int = Field(0, description="Número de dias a somar (add_days)")
    format: str = Field("%Y-%m-%d %H:%M:%S", description="Formato strftime (format)")


def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def _parse(value: str | None, zone: ZoneInfo) -> datetime:
    if not value:
        raise ValueError("A 'date' is required for this action")
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone)
    return parsed


class DateTimeTool:
    """Date/time helper tool."""

    def __init__(self, clock=lambda: datetime.now(timezone.utc)):
        self._clock = clock

    @property
    def id(self) -> str:
        return "date_time"

    @property
    def name(self) -> str:
        return "date_time"

    @property
    def description(self) -> str:
        return (
            "Fornece a data e hora atual em um fuso horário, soma dias a uma data "
            "ISO 8601 ou formata uma data."
        )

    @property
    def input_model(self) -> type[BaseModel]:
        return DateTimeInput

    async def execute(
        self,
        action: str = "now",
        timezone: str = "UTC",
        date: str | None = None,
        days: int = 0,
        format: str = "%Y-%m-%d %H:%M:%S",
        **kwargs: Any,
    ) -> dict[str, Any]:
        zone = _zone(timezone)
        if action == "now":
            value = self._clock().astimezone(zone)
            return {"action": action, "timezone": timezone, "result": value.isoformat()}
        if action == "add_days":
            value = _parse(date, zone) + timedelta(days=days)
            return {"action": action, "timezone": timezone, "result": value.isoformat()}
        if action == "format":
            return {"action": action, "timezone": timezone, "result": _parse(date, zone).strftime(format)}
        raise ValueError(f"Unknown action: {action}")
