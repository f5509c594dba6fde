from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    API_BASE_URL: str = "http://localhost:5000"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    SOCKET_URL: str | None = None
    SOCKET_PATH: str = "socket.io"
    SOCKET_CONNECT_TIMEOUT_SECONDS: float = 5.0
    SOCKET_RECONNECTION_ATTEMPTS: int = 0
    SOCKET_RECONNECTION_DELAY_SECONDS: float = 1.0
    SOCKET_RECONNECTION_DELAY_MAX_SECONDS: float = 5.0

    TYPING_TIMEOUT_SECONDS: float = 2.0
    REMOTE_TYPING_EXPIRY_SECONDS: float | None = None

    DIRECTORY_REORDER_ON_ACTIVITY: bool = False

    CHAT_USER_ID: str = ""
    CHAT_USER_NAME: str = ""

    LOG_LEVEL: str = "INFO"

    @property
    def socket_url(self) -> str:
        return (self.SOCKET_URL or self.API_BASE_URL).rstrip("/")

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
