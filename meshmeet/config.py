import os
from dataclasses import dataclass
from typing import Optional

ENV_PREFIX = "MESHMEET_"


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "info"
    # Base used for room links; when unset the request Host header is used.
    public_url: Optional[str] = None

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        environ = os.environ if environ is None else environ

        def get(name, default=None):
            return environ.get(ENV_PREFIX + name, default)

        try:
            port = int(get("PORT", cls.port))
        except ValueError as e:
            raise ValueError(f"{ENV_PREFIX}PORT must be an integer, got {get('PORT')!r}") from e

        public_url = get("PUBLIC_URL") or None
        return cls(
            host=get("HOST", cls.host),
            port=port,
            log_level=get("LOG_LEVEL", cls.log_level).lower(),
            public_url=public_url.rstrip("/") if public_url else None,
        )
