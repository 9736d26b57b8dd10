"""Application configuration."""
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # LLM gateway (OpenAI-compatible chat completions)
    llm_api_key: str = ""
    llm_base_url: str = "https://ai.gateway.lovable.dev/v1"
    voice_model: str = "google/gemini-2.5-flash-lite"
    chat_model: str = "google/gemini-2.5-flash"

    # OpenAI speech (Whisper / TTS)
    openai_api_key: str = ""
    stt_model: str = "whisper-1"
    tts_model: str = "tts-1"
    tts_voice: str = "alloy"

    # Database
    database_url: str = "sqlite+aiosqlite:///./khorcha.db"

    # Function endpoints used by the call and chat clients
    functions_base_url: str = "http://localhost:8000/functions/v1"
    functions_api_key: Optional[str] = None
    # Where the call flow sends transcripts: "gateway" calls the LLM directly,
    # "voice-chat" goes through the voice-chat function
    call_extraction: Literal["gateway", "voice-chat"] = "gateway"

    # Call timing (seconds)
    ring_seconds: float = 3.0
    relisten_delay_seconds: float = 0.5
    close_delay_seconds: float = 1.0

    assistant_name: str = "Khorcha AI"
    currency_name: str = "taka"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
