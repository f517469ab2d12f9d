from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # API configuration
    api_version: str = "1.0"
    log_level: str = "INFO"

    # OpenAI configuration
    openai_api_key: str = ""
    openai_base_url: str | None = None

    # Route pick runs with web search grounding, the tagline wants low latency
    openai_model: str = "gpt-4o-mini"
    openai_tagline_model: str = "gpt-4o-mini"
    openai_analysis_model: str = "o4-mini"
    openai_chat_model: str = "gpt-4o"
    analysis_reasoning_effort: str | None = "medium"
    enable_web_search: bool = True

    # Seconds before a pending LLM call is abandoned
    llm_timeout_seconds: float = 60.0

    # Session state limits
    history_limit: int = 5
    max_chat_messages: int = 40

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
