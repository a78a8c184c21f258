"""
Reading Models
==============
Pydantic models for the AirGradient measurement and its backup form.

An AirGradient sensor POSTs something like this every few seconds:

    {"wifi": -73, "pm02": 297, "rco2": 1009, "atmp": 26.10, "rhum": 51}

MeasurePayload is that body, exactly as the sensor sends it.
Reading is what we keep after ingest: the same numbers plus the instance
id (from the URL) and the server-side timestamp. Reading keeps the sensor's
short key names on the wire, so the backup file looks like:

    {"id": "sensor7", "ts": 1700000000, "wifi": -73, "pm02": 297,
     "rco2": 1009, "atmp": 26.1, "rhum": 51}
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Used whenever the instance id can't be worked out from the URL
NULL_INSTANCE_ID = "null"


def _none_to_zero(value):
    # JSON null leaves the field at its zero value, same as a missing key
    return 0 if value is None else value


# =============================================================================
# INCOMING BODY
# =============================================================================

class MeasurePayload(BaseModel):
    """
    JSON body of POST /sensors/{token}/measures.

    Unknown keys are ignored and missing keys default to zero. Zero matters:
    for pm02 and rco2 a non-positive number means "sensor had no valid
    value" and gets replaced by the last good one during ingest.

    Strict: "297", 297.0, true and NaN are not numbers the sensor sends,
    they are rejected instead of coerced.
    """
    model_config = ConfigDict(extra="ignore", strict=True, allow_inf_nan=False)

    wifi: int = Field(default=0, description="WiFi signal strength (dB)")
    pm02: int = Field(default=0, description="PM2.5 (ug/m3)")
    rco2: int = Field(default=0, description="CO2 (ppm)")
    atmp: float = Field(default=0.0, description="Temperature (Celsius)")
    rhum: int = Field(default=0, description="Relative humidity (%)")

    @field_validator("wifi", "pm02", "rco2", "atmp", "rhum", mode="before")
    @classmethod
    def null_is_zero(cls, value):
        return _none_to_zero(value)


# =============================================================================
# STORED READING
# =============================================================================

class Reading(BaseModel):
    """
    The one normalized snapshot the bridge holds.

    Frozen, so handing the same object to many readers is safe.
    Reading() with no arguments is the all-zero reading that /metrics shows
    when there is nothing to show.
    """
    model_config = ConfigDict(
        frozen=True, populate_by_name=True, extra="ignore", strict=True, allow_inf_nan=False
    )

    instance_id: str = Field(default=NULL_INSTANCE_ID, alias="id")
    # Server ingest time in epoch seconds. Old backups don't have it (0).
    timestamp: int = Field(default=0, alias="ts")

    wifi: int = 0
    pm25: int = Field(default=0, alias="pm02")
    co2: int = Field(default=0, alias="rco2")
    temperature: float = Field(default=0.0, alias="atmp")
    humidity: int = Field(default=0, alias="rhum")

    @field_validator(
        "timestamp", "wifi", "pm25", "co2", "temperature", "humidity", mode="before"
    )
    @classmethod
    def null_is_zero(cls, value):
        return _none_to_zero(value)

    @field_validator("instance_id", mode="before")
    @classmethod
    def never_empty(cls, value):
        return value or NULL_INSTANCE_ID

    @classmethod
    def from_payload(cls, payload: MeasurePayload, instance_id: str, timestamp: int) -> "Reading":
        return cls(
            instance_id=instance_id,
            timestamp=timestamp,
            wifi=payload.wifi,
            pm25=payload.pm02,
            co2=payload.rco2,
            temperature=payload.atmp,
            humidity=payload.rhum,
        )

    @classmethod
    def from_backup_json(cls, data: bytes) -> "Reading":
        """Decode a backup file. Raises pydantic.ValidationError on junk."""
        return cls.model_validate_json(data)

    def to_backup_json(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")
