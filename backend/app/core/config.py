"""
Core configuration settings for the application.
"""
import json
from typing import List, Optional, Union
from pydantic import Field, ConfigDict, field_validator
from pydantic_settings import BaseSettings


DEFAULT_MODEL_PRIORITY = [
    "nvidia/nemotron-nano-12b-v2-vl:free",
    "deepseek/deepseek-chat-v3.1:free",
    "google/gemini-2.5-flash-lite",
    "minimax/minimax-m2",
    "z-ai/glm-4.5-air:free",
    "meta-llama/llama-3.3-70b-instruct:free",
    "openrouter/auto",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase Configuration
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_service_role_key: str = Field(..., description="Supabase service role key")
    supabase_jwt_secret: Optional[str] = Field(
        default=None,
        description="Supabase JWT secret - enables local token verification instead of a round trip",
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT algorithm used by Supabase Auth")

    # FastAPI Configuration
    api_v1_str: str = Field(default="/api/v1", description="API v1 prefix")
    project_name: str = Field(default="saas-starter-api", description="Project name")
    environment: str = Field(default="dev", description="Environment (dev, staging, production)")
    debug: bool = Field(default=False, description="Debug mode - set True only for local development")
    app_url: str = Field(default="https://yourapp.vercel.app", description="Public URL of the frontend")

    # CORS Configuration
    allowed_origins: List[str] = Field(
        default=["https://yourapp.vercel.app"],
        description="Allowed CORS origins (production)"
    )
    cors_origin_patterns: List[str] = Field(
        default=[r"https://.*\.vercel\.app$"],
        description="Regex patterns for allowed CORS origins"
    )
    forwarded_allow_ips: List[str] = Field(
        default=["127.0.0.1"],
        description="Proxy addresses trusted for X-Forwarded-For and X-Forwarded-Proto"
    )

    @field_validator(
        'allowed_origins', 'cors_origin_patterns', 'forwarded_allow_ips', 'ai_model_priority', mode='before'
    )
    @classmethod
    def parse_string_list(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse list settings from a JSON array string or a comma-separated string."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except (json.JSONDecodeError, ValueError):
                return [item.strip() for item in v.split(',') if item.strip()]
        return v

    # Dodo Payments Configuration
    dodo_payments_api_key: Optional[str] = Field(default=None, description="Dodo Payments REST API key")
    dodo_payments_environment: str = Field(
        default="test_mode",
        description="Dodo Payments environment: test_mode or live_mode"
    )
    dodo_payments_webhook_key: Optional[str] = Field(
        default=None,
        description="Standard Webhooks signing secret (whsec_...) for Dodo Payments"
    )
    webhook_rate_limit: str = Field(default="120/minute", description="Per-IP limit on the webhook endpoint")

    # OpenRouter Configuration
    openrouter_api_key: Optional[str] = Field(default=None, description="OpenRouter API key")
    openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1", description="OpenRouter API base URL")
    openrouter_app_title: str = Field(default="AI Service", description="X-Title header sent to OpenRouter")
    openrouter_timeout_seconds: float = Field(default=60.0, description="Per-model request timeout")
    ai_model_priority: List[str] = Field(
        default=list(DEFAULT_MODEL_PRIORITY),
        description="Ordered model tier: free models first, paid fallbacks last"
    )
    ai_default_temperature: float = Field(default=0.7, description="Default sampling temperature")
    ai_default_max_tokens: int = Field(default=1000, description="Default completion token budget")

    # Rate Limiting Configuration
    ai_daily_limit_free: int = Field(default=20, description="Chat requests per UTC day for free users")
    ai_daily_limit_paid: int = Field(default=500, description="Chat requests per UTC day for subscribers")
    skip_subscription_check_in_dev: bool = Field(
        default=True,
        description="Skip the subscription gate on the chat proxy in development environments"
    )

    @property
    def is_production_environment(self) -> bool:
        """Check if running in production environment."""
        return self.environment in ["production", "prod"]

    @property
    def is_development_environment(self) -> bool:
        """Check if running in a local development environment."""
        return self.environment in ["dev", "development", "local", "local-dev"]

    @property
    def dodo_base_url(self) -> str:
        """Dodo Payments API base URL for the configured environment."""
        if self.dodo_payments_environment == "live_mode":
            return "https://live.dodopayments.com"
        return "https://test.dodopayments.com"

    @property
    def effective_cors_origins(self) -> List[str]:
        """
        Get CORS origins based on environment.

        - Production: Only configured origins
        - Development: Adds localhost origins for local testing
        """
        origins = list(self.allowed_origins)

        if not self.is_production_environment and self.debug:
            for origin in ["http://localhost:3000", "http://127.0.0.1:3000"]:
                if origin not in origins:
                    origins.append(origin)

        return origins

    model_config = ConfigDict(
        env_file=".env.dev",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
settings = Settings()
