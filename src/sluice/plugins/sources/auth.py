# src/sluice/plugins/sources/auth.py
"""Authentication config and header/query builders for HTTP sources.

Supported schemes:
    basic:   Authorization: Basic base64(username:password)
    bearer:  Authorization: Bearer <token>
    api_key: <key>: <value> as a header, or ?<key>=<value> in the query

Secrets stay in memory only. Nothing here logs header values.
"""

import base64
from typing import Literal

from pydantic import Field, model_validator

from sluice.contracts import AuthType
from sluice.plugins.config_base import PluginConfig


class AuthConfig(PluginConfig):
    """Credentials for one HTTP source.

    Example:
        auth:
          type: api_key
          key: X-Api-Key
          value: ${SHOP_API_KEY}
          in: header
    """

    type: AuthType
    username: str | None = None
    password: str | None = None
    token: str | None = None
    key: str | None = None
    value: str | None = None
    # "in" is a Python keyword; configs may use either name
    location: Literal["header", "query"] = Field(default="header", alias="in")

    model_config = {"extra": "forbid", "frozen": True, "populate_by_name": True}

    @model_validator(mode="after")
    def validate_required_fields(self) -> "AuthConfig":
        """Each scheme requires its own credential fields."""
        if self.type == AuthType.BASIC and (self.username is None or self.password is None):
            raise ValueError("basic auth requires username and password")
        if self.type == AuthType.BEARER and not self.token:
            raise ValueError("bearer auth requires token")
        if self.type == AuthType.API_KEY and (not self.key or self.value is None):
            raise ValueError("api_key auth requires key and value")
        return self


def build_auth_headers(headers: dict[str, str] | None, auth: AuthConfig | None) -> dict[str, str]:
    """Merge configured headers with the auth header, if any.

    Auth headers override configured headers of the same name.
    """
    result = dict(headers or {})
    if auth is None:
        return result

    match auth.type:
        case AuthType.BASIC:
            raw = f"{auth.username}:{auth.password}".encode()
            result["Authorization"] = f"Basic {base64.b64encode(raw).decode('ascii')}"
        case AuthType.BEARER:
            result["Authorization"] = f"Bearer {auth.token}"
        case AuthType.API_KEY:
            if auth.location == "header":
                result[auth.key or ""] = auth.value or ""
    return result


def build_auth_params(auth: AuthConfig | None) -> dict[str, str]:
    """Query parameters contributed by auth (api_key in query mode only)."""
    if auth is not None and auth.type == AuthType.API_KEY and auth.location == "query":
        return {auth.key or "": auth.value or ""}
    return {}
