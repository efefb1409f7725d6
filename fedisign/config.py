"""Configuration settings."""

from pathlib import Path

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = ConfigDict(
        env_file=[".env", "../.env"],
        extra="ignore",
    )

    # Local actor
    actor_domain: str = "localhost"
    actor_username: str = "alice"

    # Key material
    private_key_path: Path = Path("private.pem")
    public_key_path: Path = Path("public.pem")
    key_bits: int = 2048

    # Signature verification
    signature_max_clock_skew: int = 300
    include_query_in_request_target: bool = False
    key_cache_ttl: float = 3600.0
    key_cache_max_entries: int = 10000
    key_fetch_timeout: float = 10.0
    key_fetch_max_attempts: int = 3
    sign_key_fetches: bool = False

    # Delivery
    delivery_timeout: float = 30.0
    user_agent: str = "fedisign/0.1.0"

    @property
    def app_version(self) -> str:
        """Read app version from pyproject.toml."""
        import re

        pyproject = Path(__file__).parent.parent / "pyproject.toml"
        try:
            text = pyproject.read_text(encoding="utf-8")
        except OSError:
            return "unknown"
        match = re.search(r'(?m)^version\s*=\s*"([^"]+)"', text)
        return match.group(1) if match else "unknown"


settings = Settings()


def get_settings() -> Settings:
    """Get application settings (for dependency injection)."""
    return settings
