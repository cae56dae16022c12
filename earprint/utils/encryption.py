import json
from typing import Optional

from cryptography.fernet import Fernet

from earprint.config import get_settings


def get_fernet() -> Optional[Fernet]:
    """Fernet instance for the configured key, or ``None`` when no key is set."""
    settings = get_settings()
    if not settings.FERNET_KEY:
        return None
    key = settings.FERNET_KEY
    return Fernet(key.encode() if isinstance(key, str) else key)


def encrypt_api_keys(keys: dict[str, str], fernet: Fernet) -> str:
    """Encrypt a provider -> key mapping into a Fernet token string."""
    json_bytes = json.dumps(keys).encode("utf-8")
    return fernet.encrypt(json_bytes).decode("ascii")


def decrypt_api_keys(token: str, fernet: Fernet) -> dict[str, str]:
    """Decrypt a Fernet token back into the provider -> key mapping."""
    decrypted = fernet.decrypt(token.encode("ascii"))
    return json.loads(decrypted.decode("utf-8"))
