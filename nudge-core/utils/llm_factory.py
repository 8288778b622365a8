from langchain_openai import ChatOpenAI

from config import AppConfig


def build_llm(config: AppConfig) -> ChatOpenAI:
    provider = (config.llm_provider or "openai").lower()
    common = {
        "temperature": config.llm_temperature,
        "timeout": config.llm_timeout_seconds,
        "max_retries": 1,
    }
    if provider == "ollama":
        base_url = config.ollama_base_url.rstrip("/")
        return ChatOpenAI(
            model=config.ollama_model,
            api_key="ollama",
            base_url=f"{base_url}/v1",
            **common,
        )
    if provider == "groq":
        return ChatOpenAI(
            model=config.groq_model,
            api_key=config.groq_api_key,
            base_url=config.groq_api_base,
            **common,
        )
    if provider == "openrouter":
        return ChatOpenAI(
            model=config.openrouter_model,
            api_key=config.openrouter_api_key,
            base_url=config.openrouter_api_base,
            **common,
        )
    return ChatOpenAI(
        model=config.openai_model,
        api_key=config.openai_api_key,
        **common,
    )
