"""Web-services response types for Jifty.

Pydantic model for the per-moniker result returned by
``/__jifty/webservices/yaml``. REST responses are returned to callers
undecorated, so only the action result has a model.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class ActionResult(BaseModel):
    """Result of a single action invocation.

    Jifty reports flags Perl-style, so ``1``, ``0``, ``""`` and missing
    values are all accepted and reduced to booleans.
    """

    model_config = ConfigDict(extra="allow")

    success: bool = False
    failure: bool = False
    message: str | None = None
    error: str | None = None
    field_errors: dict[str, Any] | None = None
    content: Any = None

    @field_validator("success", "failure", mode="before")
    @classmethod
    def _perl_truthiness(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value not in ("", "0")
        return bool(value)

    @field_validator("message", "error", mode="before")
    @classmethod
    def _scalar_text(cls, value: Any) -> str | None:
        # Perl YAML leaves numeric-looking messages unquoted
        if value is None or isinstance(value, str):
            return value
        return str(value)
