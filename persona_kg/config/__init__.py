"""
Configuration System

Manages configuration for persona_kg with a layered approach.

Configuration Priority (highest to lowest):
    1. Programmatic (passed to AgentConfig())
    2. Environment variables (PERSONA_* prefix)
    3. Provider defaults (config/providers.py)
    4. Built-in defaults

Modules:
    settings: AgentConfig class
    providers: Provider-specific model defaults
    pricing: Model pricing for cost telemetry
"""

from persona_kg.config.settings import AgentConfig

__all__ = ["AgentConfig"]
