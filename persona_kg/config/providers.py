"""
Provider Configurations

Default model configurations for each LLM provider.

When a provider is selected, appropriate model defaults are applied:
    >>> config = AgentConfig(llm_provider="openai")
    >>> # Automatically sets:
    >>> #   llm_model = "gpt-4o"
    >>> #   llm_model_deep = "gpt-5.1"
"""

# Provider default models
PROVIDER_DEFAULTS = {
    "google": {
        "llm_model": "gemini-2.5-flash",
        "llm_model_deep": "gemini-2.5-pro",
        "llm_model_cheap": "gemini-flash-latest",
        "image_model": "gemini-2.5-flash-image",
    },
    "openai": {
        "llm_model": "gpt-4o",
        "llm_model_deep": "gpt-5.1",
        "llm_model_cheap": "gpt-4o-mini",
        "image_model": "gpt-4.1",
    },
}

# Environment variable holding each provider's API key
API_KEY_ENV = {
    "google": "GOOGLE_API_KEY",
    "openai": "OPENAI_API_KEY",
}
