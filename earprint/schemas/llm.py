from typing import Literal, Optional

from earprint.schemas.base import CamelModel

LlmErrorType = Literal["auth", "rate-limit", "network", "parse", "unknown"]


class LlmApiError(CamelModel):
    type: LlmErrorType
    message: str
    status: Optional[int] = None


class LlmResult(CamelModel):
    ok: bool
    text: Optional[str] = None
    error: Optional[LlmApiError] = None


class ApiKeysUpdate(CamelModel):
    keys: dict[str, str]


class ApiKeysStatus(CamelModel):
    configured: list[str]
    encrypted: bool
