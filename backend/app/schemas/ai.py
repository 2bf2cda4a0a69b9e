"""
Pydantic schemas for the AI chat proxy.
"""
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Chat request; accepts both `maxTokens` and `max_tokens`."""
    model_config = ConfigDict(populate_by_name=True)

    messages: List[ChatMessage] = Field(default_factory=list)
    model: Optional[str] = Field(None, description="Preferred model, tried first")
    temperature: Optional[float] = Field(None, ge=0, le=2)
    max_tokens: Optional[int] = Field(None, alias="maxTokens", gt=0)


class TokenUsage(BaseModel):
    model_config = ConfigDict(extra="allow")

    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


class ChatResponse(BaseModel):
    content: str
    usage: Optional[TokenUsage] = None
    model_used: str
    fallback_used: bool = False


class SubscriptionDebugInfo(BaseModel):
    """Returned alongside a 403 so the frontend can explain the missing subscription."""
    userEmail: Optional[str] = None
    customerId: Optional[str] = None
    subscriptionsFound: int = 0
    subscriptions: List[dict] = Field(default_factory=list)


class UsageStats(BaseModel):
    total_requests: int = 0
    total_tokens: int = 0
    total_prompt_tokens: int = 0
    total_completion_tokens: int = 0
    today_requests: int = 0
    today_tokens: int = 0
    most_used_model: str = "N/A"


class ModelTierResponse(BaseModel):
    models: List[str]
    default_temperature: float
    default_max_tokens: int
