"""
AgentConfig - Configuration Management

Sensible defaults with full override capability.

Example:
    >>> # Use defaults (reads from environment)
    >>> config = AgentConfig()

    >>> # Explicit configuration
    >>> config = AgentConfig(
    ...     llm_provider="openai",
    ...     llm_model="gpt-4o",
    ... )

    >>> # From config file
    >>> config = AgentConfig.from_file("./persona.toml")

Environment Variables:
    PERSONA_LLM_PROVIDER - LLM provider name ("google" or "openai")
    PERSONA_LLM_MODEL - Default model for agent tools
    PERSONA_ROOT_NODE_ID - Id of the persona root node in the knowledge graph
    PERSONA_QUEUE_HISTORY_LIMIT - Queued-request records retained for failure analysis
    PERSONA_COST_DEBUG - Attach per-call cost reports to tool results ("1"/"true")
    PERSONA_COST_DEBUG_WARN_THRESHOLD_USD - Warn when one tool call exceeds this cost
    GOOGLE_API_KEY - Google API key (standard name)
    OPENAI_API_KEY - OpenAI API key
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, cast

from persona_kg.config.providers import PROVIDER_DEFAULTS
from persona_kg.types.graph import DEFAULT_ROOT_ID

# TOML support: tomllib is built-in for Python 3.11+, use tomli for 3.10
try:
    import tomllib

    def _load_toml(path: Path) -> dict[str, Any]:
        with open(path, "rb") as f:
            return cast(dict[str, Any], tomllib.load(f))

    _HAS_TOML = True
except ImportError:
    try:
        import tomli

        def _load_toml(path: Path) -> dict[str, Any]:
            with open(path, "rb") as f:
                return cast(dict[str, Any], tomli.load(f))

        _HAS_TOML = True
    except ImportError:
        def _load_toml(path: Path) -> dict[str, Any]:
            raise ImportError(
                "TOML parsing requires 'tomli' on Python 3.10. "
                "Install with: pip install tomli"
            )

        _HAS_TOML = False


_TRUTHY = {"1", "true", "yes", "on"}


class AgentConfig:
    """Configuration for the persona agent tool engine."""

    # === LLM Configuration ===

    llm_provider: str = "google"
    """LLM provider: "google", "openai" """

    llm_model: str = "gemini-2.5-flash"
    """Default model for agent tools"""

    llm_model_deep: str = "gemini-2.5-pro"
    """Model used by transcend when the default model is active"""

    llm_model_cheap: str = "gemini-flash-latest"
    """Model for cheap pre-filter calls (synthesize_knowledge stage 1)"""

    image_model: str = "gemini-2.5-flash-image"
    """Model for generate_image / edit_image"""

    # === API Keys ===

    google_api_key: str | None = None
    openai_api_key: str | None = None

    # === Knowledge Graph ===

    root_node_id: str = DEFAULT_ROOT_ID
    """Id of the persona root node (insight parent, merge fallback parent)"""

    # === Request Queue ===

    queue_history_limit: int = 200
    """Queued-request records retained for failure analysis"""

    # === Tool Dispatch ===

    audit_result_max_chars: int = 500
    """Maximum characters of a tool result copied into its audit event"""

    result_summary_max_chars: int = 200
    """Maximum characters of a completion kept as a queued-request summary"""

    # === Cost Telemetry Configuration ===

    cost_debug: bool = False
    """Attach a CostDebugReport to every tool result"""

    cost_debug_warn_threshold_usd: float | None = None
    """Optional warning threshold for per-call estimated cost in cost_debug mode"""

    def __init__(self, **kwargs: Any) -> None:
        """
        Initialize configuration.

        Args:
            **kwargs: Override any configuration option
        """
        # Provider defaults first, so an explicit model override wins
        provider = kwargs.get("llm_provider")
        self._load_from_env()
        if provider:
            self.llm_provider = provider
        self._apply_provider_defaults()

        # Apply explicit overrides
        for key, value in kwargs.items():
            if hasattr(self, key) and not key.startswith("_"):
                setattr(self, key, value)
            else:
                raise ValueError(f"Unknown configuration option: {key}")

    def _apply_provider_defaults(self) -> None:
        """Apply model defaults for the selected provider (env model wins)."""
        import os

        defaults = PROVIDER_DEFAULTS.get(self.llm_provider)
        if defaults is None:
            raise ValueError(
                f"Unknown LLM provider: {self.llm_provider}. "
                f"Use one of: {', '.join(sorted(PROVIDER_DEFAULTS))}"
            )
        for key, value in defaults.items():
            setattr(self, key, value)
        if model := os.getenv("PERSONA_LLM_MODEL"):
            self.llm_model = model

    def _load_from_env(self) -> None:
        """Load configuration from environment variables."""
        import os

        # API keys (standard names)
        self.google_api_key = os.getenv("GOOGLE_API_KEY")
        self.openai_api_key = os.getenv("OPENAI_API_KEY")

        # PERSONA_* prefixed settings
        if provider := os.getenv("PERSONA_LLM_PROVIDER"):
            self.llm_provider = provider
        if root_id := os.getenv("PERSONA_ROOT_NODE_ID"):
            self.root_node_id = root_id
        if limit := os.getenv("PERSONA_QUEUE_HISTORY_LIMIT"):
            self.queue_history_limit = int(limit)
        if cost_debug := os.getenv("PERSONA_COST_DEBUG"):
            self.cost_debug = cost_debug.strip().lower() in _TRUTHY
        if threshold := os.getenv("PERSONA_COST_DEBUG_WARN_THRESHOLD_USD"):
            self.cost_debug_warn_threshold_usd = float(threshold)

    @property
    def api_key(self) -> str | None:
        """API key for the selected provider."""
        if self.llm_provider == "openai":
            return self.openai_api_key
        return self.google_api_key

    def deep_model_for(self, model_name: str) -> str:
        """Model transcend should use when the agent runs on model_name."""
        if model_name == self.llm_model:
            return self.llm_model_deep
        return model_name

    @classmethod
    def from_file(cls, path: str | Path) -> "AgentConfig":
        """
        Load configuration from TOML file.

        The TOML file can contain any configuration option as a key.
        Nested sections are flattened with underscores.

        Example TOML:
            [llm]
            provider = "openai"
            model = "gpt-4o"

            [graph]
            root_node_id = "Persona_Core"

            [api_keys]
            openai = "sk-..."

        Args:
            path: Path to TOML configuration file

        Returns:
            AgentConfig instance with values from file

        Raises:
            FileNotFoundError: If config file doesn't exist
            ImportError: If tomli not installed on Python 3.10
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        data = _load_toml(path)

        flat_config: dict[str, Any] = {}

        # Map section names to config key prefixes
        section_mapping = {
            "llm": "llm_",
            "api_keys": "",  # api_keys.openai -> openai_api_key
            "graph": "",
            "queue": "queue_",
            "tools": "",
            "cost_telemetry": "cost_debug_",
        }

        for section, prefix in section_mapping.items():
            if section in data:
                for key, value in data[section].items():
                    if section == "api_keys":
                        flat_config[f"{key}_api_key"] = value
                    elif section == "llm" and key == "image_model":
                        flat_config["image_model"] = value
                    elif section == "cost_telemetry" and key == "enabled":
                        flat_config["cost_debug"] = value
                    else:
                        flat_config[f"{prefix}{key}"] = value

        # Also support flat top-level keys
        for key, value in data.items():
            if key not in section_mapping and not isinstance(value, dict):
                flat_config[key] = value

        return cls(**flat_config)

    @classmethod
    def from_env(cls) -> "AgentConfig":
        """Load configuration from environment variables only."""
        return cls()

    def to_file(self, path: str | Path) -> None:
        """
        Save configuration to TOML file.

        API keys are excluded for security.

        Args:
            path: Path to write TOML configuration file
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        sections: dict[str, dict[str, str | int | float | bool | None]] = {
            "llm": {
                "provider": self.llm_provider,
                "model": self.llm_model,
                "model_deep": self.llm_model_deep,
                "model_cheap": self.llm_model_cheap,
                "image_model": self.image_model,
            },
            "graph": {
                "root_node_id": self.root_node_id,
            },
            "queue": {
                "history_limit": self.queue_history_limit,
            },
            "tools": {
                "audit_result_max_chars": self.audit_result_max_chars,
                "result_summary_max_chars": self.result_summary_max_chars,
            },
            "cost_telemetry": {
                "enabled": self.cost_debug,
                "warn_threshold_usd": self.cost_debug_warn_threshold_usd,
            },
        }

        # Build TOML string manually (avoids extra dependency)
        lines = ["# persona-kg Configuration", ""]

        for section_name, section_values in sections.items():
            lines.append(f"[{section_name}]")
            for key, value in section_values.items():
                if isinstance(value, str):
                    lines.append(f'{key} = "{value}"')
                elif isinstance(value, bool):
                    lines.append(f"{key} = {str(value).lower()}")
                elif isinstance(value, (int, float)):
                    lines.append(f"{key} = {value}")
            lines.append("")

        lines.extend([
            "# API keys should be set via environment variables:",
            "# GOOGLE_API_KEY, OPENAI_API_KEY",
            "",
        ])

        path.write_text("\n".join(lines))

    def with_overrides(self, **kwargs: Any) -> "AgentConfig":
        """Return new config with specified overrides."""
        new_config = AgentConfig.__new__(AgentConfig)
        for key in dir(self):
            if not key.startswith("_") and not callable(getattr(self, key)) and key != "api_key":
                setattr(new_config, key, getattr(self, key))
        for key, value in kwargs.items():
            setattr(new_config, key, value)
        return new_config
