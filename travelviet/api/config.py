# travelviet/api/config.py
"""Configuration management for the TravelViet API."""
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class ChatClientConfig:
    """Connection settings handed to ``StreamingChatClient``."""

    gateway_url: str
    api_token: str
    timeout: float = 60.0
    chunk_size: int = 1024


def get_ai_api_key():
    """Get the key for the upstream chat completion API."""
    api_key = os.getenv("GROQ_API_KEY") or os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ValueError("GROQ_API_KEY / OPENAI_API_KEY not set")
    return api_key


def get_llm_config():
    """Get upstream model configuration for the AI planner gateway."""
    return {
        # Any OpenAI-compatible endpoint works; Groq is the default provider.
        "base_url": os.getenv("OPENAI_BASE_URL", "https://api.groq.com/openai/v1"),
        "model": os.getenv("OPENAI_CHAT_MODEL", "llama-3.3-70b-versatile"),
        "temperature": float(os.getenv("AI_TEMPERATURE", "0.7")),
        "max_tokens": int(os.getenv("AI_MAX_TOKENS", "4096")),
    }


def get_chat_client_config():
    """Build the streaming chat client configuration from the environment."""
    gateway_url = os.getenv("AI_GATEWAY_URL")
    if not gateway_url:
        port = get_port()
        gateway_url = f"http://localhost:{port}/api/ai-planner"
    return ChatClientConfig(
        gateway_url=gateway_url,
        api_token=get_gateway_token(),
        timeout=float(os.getenv("CHAT_STREAM_TIMEOUT", "60")),
        chunk_size=int(os.getenv("CHAT_STREAM_CHUNK_SIZE", "1024")),
    )


def get_gateway_token():
    """Bearer token shared by the AI planner gateway and its clients; empty disables the check."""
    return os.getenv("AI_GATEWAY_TOKEN", "")


def get_database_url():
    """Get SQLAlchemy database URL."""
    return os.getenv("DATABASE_URL", "sqlite:///travelviet.db")


def get_google_maps_config():
    """Get Google Maps configuration."""
    return {
        "api_key": os.getenv("GOOGLE_MAPS_API_KEY", ""),
        "region": os.getenv("GOOGLE_MAPS_REGION", "vn"),
        "language": os.getenv("GOOGLE_MAPS_LANGUAGE", "vi"),
    }


def get_port():
    """Get port configuration."""
    return int(os.getenv("PORT", 5000))


def get_share_base_url():
    """Public base URL used when building share links."""
    return os.getenv("SHARE_BASE_URL", f"http://localhost:{get_port()}/travel/share")


def get_websocket_config():
    """Get WebSocket configuration."""
    return {
        "ping_interval": int(os.getenv("WEBSOCKET_PING_INTERVAL", "25")),
        "ping_timeout": int(os.getenv("WEBSOCKET_PING_TIMEOUT", "60")),
        "cors_allowed_origins": os.getenv("WEBSOCKET_CORS_ORIGINS", "*").split(","),
    }


def validate_config():
    """Validate that the gateway and client settings fit together."""
    get_ai_api_key()
    client_config = get_chat_client_config()

    if not client_config.gateway_url.startswith(("http://", "https://")):
        raise ValueError("AI_GATEWAY_URL must be an http(s) URL")
    if client_config.timeout <= 0:
        raise ValueError("CHAT_STREAM_TIMEOUT must be positive")
    if client_config.chunk_size <= 0:
        raise ValueError("CHAT_STREAM_CHUNK_SIZE must be positive")

    llm_config = get_llm_config()
    if not 0 <= llm_config["temperature"] <= 2:
        raise ValueError("AI_TEMPERATURE must be between 0 and 2")

    return True
