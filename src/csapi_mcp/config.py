"""
Environment-driven settings.

Values are read from the process environment, after loading a local
.env file if one exists:

    CSAPI_SERVER_URL   default server for tools that omit server_url
    CSAPI_USERNAME     Basic auth user (optional)
    CSAPI_PASSWORD     Basic auth password (optional)
    CSAPI_TIMEOUT      request timeout in seconds (default 30)

License: Apache Software License, Version 2.0
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .client import FetchOptions

DEFAULT_SERVER_URL = "http://45.55.99.236:8080/sensorhub/api"


@dataclass(frozen=True)
class Settings:
    server_url: str = DEFAULT_SERVER_URL
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: float = 30.0

    def fetch_options(self) -> FetchOptions:
        """Auth headers for the configured credentials, if any."""
        if self.username:
            return FetchOptions.with_basic_auth(self.username, self.password or "")
        return FetchOptions()


def load_settings() -> Settings:
    load_dotenv()
    timeout = os.getenv("CSAPI_TIMEOUT")
    return Settings(
        server_url=os.getenv("CSAPI_SERVER_URL") or DEFAULT_SERVER_URL,
        username=os.getenv("CSAPI_USERNAME") or None,
        password=os.getenv("CSAPI_PASSWORD") or None,
        timeout=float(timeout) if timeout else 30.0,
    )
