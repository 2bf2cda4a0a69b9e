"""
SaaS Kit CLI Configuration

Handles environment variables for Supabase access, webhook signing and the
API the CLI talks to. Configuration is loaded from environment variables or
a .env file.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional, List

from dotenv import load_dotenv

# Load environment from .env file if present
env_file = Path.home() / ".saaskit" / ".env"
if env_file.exists():
    load_dotenv(env_file)
else:
    load_dotenv()  # Try current directory


@dataclass
class ApiConfig:
    """Backend API location."""
    base_url: str
    api_prefix: str

    @classmethod
    def from_env(cls) -> "ApiConfig":
        """Load API config from environment variables."""
        return cls(
            base_url=os.environ.get("SAASKIT_API_URL", "http://localhost:8000").rstrip("/"),
            api_prefix=os.environ.get("API_V1_STR", "/api/v1"),
        )

    def url(self, path: str, base_url: Optional[str] = None) -> str:
        """Full endpoint URL; `base_url` overrides SAASKIT_API_URL."""
        base = base_url.rstrip("/") if base_url else self.base_url
        return f"{base}{self.api_prefix}{path}"


@dataclass
class WebhookConfig:
    """Standard Webhooks signing secret shared with Dodo Payments."""
    secret: str

    @classmethod
    def from_env(cls) -> "WebhookConfig":
        return cls(secret=os.environ.get("DODO_PAYMENTS_WEBHOOK_KEY", ""))


@dataclass
class SupabaseConfig:
    """Supabase configuration for database access."""
    url: str
    service_role_key: str

    @classmethod
    def from_env(cls) -> "SupabaseConfig":
        """Load Supabase config from environment variables."""
        return cls(
            url=os.environ.get("SUPABASE_URL", ""),
            service_role_key=os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")
        )


@dataclass
class Config:
    """Main CLI configuration."""
    api: ApiConfig
    webhook: WebhookConfig
    supabase: SupabaseConfig

    @classmethod
    def load(cls) -> "Config":
        """Load all configuration from environment."""
        return cls(
            api=ApiConfig.from_env(),
            webhook=WebhookConfig.from_env(),
            supabase=SupabaseConfig.from_env()
        )

    def validate(self) -> List[str]:
        """
        Validate configuration and return list of missing fields.

        Returns:
            List of missing/invalid configuration items
        """
        missing = []

        if not self.webhook.secret:
            missing.append("DODO_PAYMENTS_WEBHOOK_KEY (whsec_... signing secret)")

        if not self.supabase.url:
            missing.append("SUPABASE_URL")
        if not self.supabase.service_role_key:
            missing.append("SUPABASE_SERVICE_ROLE_KEY")

        return missing


# Singleton config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def get_supabase_client():
    """Create a Supabase client with service role key."""
    from supabase import create_client
    config = get_config()
    return create_client(config.supabase.url, config.supabase.service_role_key)
