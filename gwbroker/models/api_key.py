"""API Key data model.

Whitelisted API keys. The key itself is the capability presented in the
request path, so records are stored as issued.
"""

from datetime import datetime

from sqlmodel import Field, SQLModel

from gwbroker.utils.datetime import utcnow


class ApiKey(SQLModel, table=True):
    """Whitelist entry issued to a client device.

    Keys are never removed once issued; ``last_used_at`` is refreshed on
    every authenticated request.
    """

    __tablename__ = "api_keys"

    key: str = Field(primary_key=True)
    device_label: str = Field(default="")
    created_at: datetime = Field(default_factory=utcnow)
    last_used_at: datetime = Field(default_factory=utcnow)
