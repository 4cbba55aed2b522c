"""JoAi API credential definition."""

import logging
from typing import Dict, Optional, Tuple

import httpx
from pydantic import BaseModel, Field, SecretStr, field_validator

from core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class JoaiApiCredentials(BaseModel):
    """API key and base URL used for every call to the JoAi API."""

    name: str = Field(default="joaiApi", frozen=True)
    api_key: SecretStr = Field(..., description="Your JoAi API key")
    base_url: str = Field(default="https://api.joai.com", description="The base URL for the JoAi API")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if not v:
            raise ValueError("base_url is required")
        return v.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "JoaiApiCredentials":
        """Build credentials from JOAI_API_KEY / JOAI_BASE_URL."""
        settings = settings or get_settings()
        if not settings.JOAI_API_KEY:
            raise ValueError("JOAI_API_KEY is not configured")
        return cls(api_key=settings.JOAI_API_KEY, base_url=settings.JOAI_BASE_URL)

    def auth_headers(self) -> Dict[str, str]:
        """Headers injected into every authenticated request."""
        return {
            "Authorization": f"Bearer {self.api_key.get_secret_value()}",
            "Content-Type": "application/json",
        }

    async def test_connection(
        self,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> Tuple[bool, Optional[str]]:
        """
        Check the credentials against the API root.
        Returns: (is_valid, error_message)
        """
        try:
            async with httpx.AsyncClient(transport=transport) as client:
                response = await client.get(
                    f"{self.base_url}/",
                    headers=self.auth_headers(),
                    timeout=timeout
                )

                if response.status_code < 400:
                    return True, None
                elif response.status_code in (401, 403):
                    return False, "Invalid credentials"
                else:
                    return False, f"API error: {response.status_code}"

        except httpx.HTTPError as e:
            logger.error(f"Credential test against {self.base_url} failed: {e}")
            return False, f"Connection failed: {e}"
