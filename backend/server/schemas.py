"""Request models for the link control API."""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr


class ConnectRequest(BaseModel):
    """Body of POST /connect.

    The port is accepted loosely (number or numeric string) and coerced
    by the session, so an unparseable value is reported as an
    INVALID_TARGET link error rather than a validation failure. Booleans
    and other JSON types are rejected with 422.

    Example:
        ```json
        {"host": "vr-pc.local", "port": 9000}
        ```
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"host": "vr-pc.local", "port": 9000}}
    )

    host: str = Field(
        default="",
        description="Hostname or IP address of the OSC receiver",
        examples=["vr-pc.local", "192.168.1.20"],
    )
    port: Optional[Union[StrictInt, StrictFloat, StrictStr]] = Field(
        default=None,
        description="UDP port of the OSC receiver",
        examples=[9000, "9000"],
    )
