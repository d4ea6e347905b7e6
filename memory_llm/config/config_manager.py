"""
Centralized Configuration Management System

This module provides the configuration system for the LLM layer:
- Centralizes all configuration settings
- Supports environment-specific overrides
- Validates configuration on startup
- Provides type-safe access to configuration values

Configuration is read once per process. Nothing here watches files or
reloads values behind the back of running requests.
"""

import os
import json
import yaml
import logging
from typing import Any, Dict, Optional, Union
from pathlib import Path
from dataclasses import dataclass, field
from enum import Enum
import threading

from memory_llm.llm.interfaces.llm_provider_interface import (
    ClientPurpose,
    LLMConfigurationError,
)
from memory_llm.llm.provider_config import (
    DEFAULT_AZURE_API_VERSION,
    DEFAULT_EMBEDDING_MODEL,
    MAX_OPENAI_API_REQUEST_ATTEMPTS,
    OPENAI_API_TIMEOUT,
    ProviderConfig,
    ServiceType,
)


class Environment(Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


EMBEDDING_SERVICES = ("local", "openai")


def _to_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


@dataclass
class AzureOpenAIConfig:
    """Azure OpenAI deployment names"""

    llm_deployment: Optional[str] = None
    embedding_deployment: Optional[str] = None
    api_version: str = DEFAULT_AZURE_API_VERSION


@dataclass
class LLMConfig:
    """Large Language Model client configuration"""

    service: str = "openai"
    model: str = "gpt-3.5-turbo"
    api_key: Optional[str] = None
    openai_endpoint: Optional[str] = None
    azure_openai_endpoint: Optional[str] = None
    azure_openai: AzureOpenAIConfig = field(default_factory=AzureOpenAIConfig)
    openai_org_id: Optional[str] = None
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    max_attempts: int = MAX_OPENAI_API_REQUEST_ATTEMPTS
    timeout: float = OPENAI_API_TIMEOUT


@dataclass
class EmbeddingsConfig:
    """Embedding settings for one document type"""

    enabled: bool = False
    service: str = "local"
    dimensions: int = 384


@dataclass
class MessageSummarizerConfig:
    """Whether conversation summaries are maintained"""

    enabled: bool = True


@dataclass
class MessagesExtractorConfig:
    embeddings: EmbeddingsConfig = field(default_factory=EmbeddingsConfig)
    summarizer: MessageSummarizerConfig = field(default_factory=MessageSummarizerConfig)


@dataclass
class DocumentsExtractorConfig:
    embeddings: EmbeddingsConfig = field(default_factory=EmbeddingsConfig)


@dataclass
class ExtractorsConfig:
    """Per document type extractor configuration"""

    messages: MessagesExtractorConfig = field(default_factory=MessagesExtractorConfig)
    documents: DocumentsExtractorConfig = field(default_factory=DocumentsExtractorConfig)


@dataclass
class SummarizerConfig:
    """Rolling summary configuration"""

    window_size: int = 12
    min_pending_count: int = 0
    max_output_tokens: int = 512
    compaction_threshold: float = 0.8


@dataclass
class NLPConfig:
    """Local NLP server serving embeddings for the "local" service"""

    server_url: str = "http://localhost:5557"
    timeout: float = 30.0


@dataclass
class APIConfig:
    """API keys and authentication configuration"""

    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None


@dataclass
class LoggingConfig:
    """Logging configuration"""

    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    enable_console: bool = True
    json_format: bool = False


@dataclass
class AppConfig:
    """Main application configuration"""

    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False

    llm: LLMConfig = field(default_factory=LLMConfig)
    embeddings_client: LLMConfig = field(default_factory=LLMConfig)
    extractors: ExtractorsConfig = field(default_factory=ExtractorsConfig)
    summarizer: SummarizerConfig = field(default_factory=SummarizerConfig)
    nlp: NLPConfig = field(default_factory=NLPConfig)
    api: APIConfig = field(default_factory=APIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def provider_config(self, purpose: ClientPurpose = ClientPurpose.COMPLETION) -> ProviderConfig:
        """
        Build the immutable provider configuration for a client.

        Completion clients read the ``llm`` section, embedding clients the
        ``embeddings_client`` section. A section without its own API key gets
        the key of its service from the ``api`` section.

        Raises:
            LLMConfigurationError: If the service name is unknown
        """
        section = self.llm if purpose is ClientPurpose.COMPLETION else self.embeddings_client
        service = ServiceType.parse(section.service)

        api_key = section.api_key
        if not api_key:
            if service is ServiceType.ANTHROPIC:
                api_key = self.api.anthropic_api_key
            else:
                api_key = self.api.openai_api_key

        return ProviderConfig(
            service=service,
            model=section.model,
            api_key=api_key,
            custom_endpoint=section.openai_endpoint or None,
            azure_endpoint=section.azure_openai_endpoint or None,
            azure_deployment=section.azure_openai.llm_deployment or None,
            azure_embedding_deployment=section.azure_openai.embedding_deployment or None,
            azure_api_version=section.azure_openai.api_version,
            organization_id=section.openai_org_id or None,
            embedding_model=section.embedding_model,
            max_attempts=section.max_attempts,
            timeout=section.timeout,
        )

    def uses_openai_embeddings(self) -> bool:
        """True if any enabled extractor embeds through the OpenAI-compatible client."""
        return any(
            embeddings.enabled and embeddings.service == "openai"
            for embeddings in (
                self.extractors.messages.embeddings,
                self.extractors.documents.embeddings,
            )
        )


class ConfigValidationError(Exception):
    """Raised when configuration validation fails"""

    pass


class ConfigManager:
    """
    Centralized configuration manager with support for:
    - Environment-specific configurations
    - Configuration validation
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    def __new__(cls, *args, **kwargs):
        """Singleton pattern implementation"""
        if not cls._instance:
            with cls._lock:
                if not cls._instance:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, config_dir: Optional[Union[str, Path]] = None):
        # Avoid re-initialization in singleton
        if hasattr(self, "_initialized"):
            return

        self._initialized = True
        if config_dir:
            self.config_dir = Path(config_dir)
        else:
            # Look for config directory relative to project root
            project_root = Path(__file__).parent.parent.parent
            self.config_dir = project_root / "config"

        self.config: AppConfig = AppConfig()
        self.loaded_files = []
        self.logger = logging.getLogger(__name__)

        self._load_configuration()

    @classmethod
    def reset(cls):
        """Forget the singleton so the next construction loads afresh."""
        with cls._lock:
            cls._instance = None

    def _load_configuration(self):
        """Load configuration from multiple sources in priority order"""
        # 1. Load default configuration
        self.config = AppConfig()

        # 2. Load base configuration file
        self._load_from_file("config.yaml")
        self._load_from_file("config.json")

        # 3. Load environment-specific configuration
        env = os.getenv("ENVIRONMENT", "development").lower()
        self._load_from_file(f"environments/config.{env}.yaml")
        self._load_from_file(f"environments/config.{env}.json")

        # 4. Load from environment variables (highest priority)
        self._load_from_environment()

        # 5. Validate configuration
        self._validate_configuration()

    def _load_from_file(self, filename: str):
        """Load configuration from YAML/JSON file"""
        file_path = self.config_dir / filename
        if not file_path.exists():
            return

        try:
            with open(file_path, "r") as f:
                if filename.endswith(".yaml") or filename.endswith(".yml"):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigValidationError(f"Failed to load configuration from {filename}: {e}")

        if data:
            self._update_config_from_dict(data)
            self.loaded_files.append(str(file_path))
            self.logger.info(f"Loaded configuration from {filename}")

    def _load_from_environment(self):
        """Load configuration from environment variables"""
        env_mappings = {
            # Environment
            "ENVIRONMENT": ("environment", lambda x: Environment(x.lower())),
            "DEBUG": ("debug", _to_bool),
            # LLM
            "LLM_SERVICE": ("llm.service", str),
            "LLM_MODEL": ("llm.model", str),
            "LLM_OPENAI_ENDPOINT": ("llm.openai_endpoint", str),
            "LLM_AZURE_OPENAI_ENDPOINT": ("llm.azure_openai_endpoint", str),
            "LLM_AZURE_OPENAI_LLM_DEPLOYMENT": ("llm.azure_openai.llm_deployment", str),
            "LLM_AZURE_OPENAI_EMBEDDING_DEPLOYMENT": (
                "llm.azure_openai.embedding_deployment",
                str,
            ),
            "LLM_AZURE_OPENAI_API_VERSION": ("llm.azure_openai.api_version", str),
            "LLM_OPENAI_ORG_ID": ("llm.openai_org_id", str),
            "LLM_MAX_ATTEMPTS": ("llm.max_attempts", int),
            "LLM_TIMEOUT": ("llm.timeout", float),
            # Embeddings client
            "EMBEDDINGS_CLIENT_SERVICE": ("embeddings_client.service", str),
            "EMBEDDINGS_CLIENT_MODEL": ("embeddings_client.model", str),
            "EMBEDDINGS_CLIENT_EMBEDDING_MODEL": ("embeddings_client.embedding_model", str),
            "EMBEDDINGS_CLIENT_OPENAI_ENDPOINT": ("embeddings_client.openai_endpoint", str),
            "EMBEDDINGS_CLIENT_AZURE_OPENAI_ENDPOINT": (
                "embeddings_client.azure_openai_endpoint",
                str,
            ),
            "EMBEDDINGS_CLIENT_AZURE_OPENAI_EMBEDDING_DEPLOYMENT": (
                "embeddings_client.azure_openai.embedding_deployment",
                str,
            ),
            # Extractors
            "MESSAGE_EMBEDDINGS_ENABLED": ("extractors.messages.embeddings.enabled", _to_bool),
            "MESSAGE_EMBEDDINGS_SERVICE": ("extractors.messages.embeddings.service", str),
            "MESSAGE_EMBEDDINGS_DIMENSIONS": ("extractors.messages.embeddings.dimensions", int),
            "DOCUMENT_EMBEDDINGS_ENABLED": ("extractors.documents.embeddings.enabled", _to_bool),
            "DOCUMENT_EMBEDDINGS_SERVICE": ("extractors.documents.embeddings.service", str),
            "DOCUMENT_EMBEDDINGS_DIMENSIONS": ("extractors.documents.embeddings.dimensions", int),
            "SUMMARIZER_ENABLED": ("extractors.messages.summarizer.enabled", _to_bool),
            # Summarizer
            "SUMMARIZER_WINDOW_SIZE": ("summarizer.window_size", int),
            "SUMMARIZER_MAX_OUTPUT_TOKENS": ("summarizer.max_output_tokens", int),
            # NLP server
            "NLP_SERVER_URL": ("nlp.server_url", str),
            # API Keys
            "OPENAI_API_KEY": ("api.openai_api_key", str),
            "ANTHROPIC_API_KEY": ("api.anthropic_api_key", str),
            # Logging
            "LOG_LEVEL": ("logging.level", lambda x: LogLevel(x.upper())),
            "LOG_FORMAT": ("logging.format", str),
            "LOG_FILE": ("logging.file_path", str),
            "LOG_JSON": ("logging.json_format", _to_bool),
        }

        for env_var, (config_path, converter) in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                try:
                    self._set_nested_attr(self.config, config_path, converter(value))
                except (ValueError, TypeError) as e:
                    self.logger.warning(f"Invalid value for {env_var}: {value}, error: {e}")

    def _update_config_from_dict(self, data: Dict[str, Any], prefix: str = ""):
        """Update configuration from dictionary recursively"""
        for key, value in data.items():
            config_path = f"{prefix}.{key}" if prefix else key

            if isinstance(value, dict):
                self._update_config_from_dict(value, config_path)
            else:
                try:
                    # Handle enum conversions for file-based config
                    if config_path == "environment" and isinstance(value, str):
                        value = Environment(value.lower())
                    elif config_path == "logging.level" and isinstance(value, str):
                        value = LogLevel(value.upper())

                    self._set_nested_attr(self.config, config_path, value)

                except AttributeError:
                    self.logger.warning(f"Unknown configuration key: {config_path}")
                except ValueError as e:
                    self.logger.warning(f"Invalid value for {config_path}: {value}, error: {e}")

    def _set_nested_attr(self, obj: Any, path: str, value: Any):
        """Set nested attribute using dot notation"""
        parts = path.split(".")
        for part in parts[:-1]:
            obj = getattr(obj, part)
        if not hasattr(obj, parts[-1]):
            raise AttributeError(path)
        setattr(obj, parts[-1], value)

    def _validate_configuration(self):
        """Validate configuration settings"""
        errors = []

        for section_name in ("llm", "embeddings_client"):
            section = getattr(self.config, section_name)
            try:
                ServiceType.parse(section.service)
            except LLMConfigurationError:
                errors.append(f"{section_name}.service '{section.service}' is not supported")
            if section.openai_endpoint and section.azure_openai_endpoint:
                errors.append(
                    f"only one of {section_name}.openai_endpoint or "
                    f"{section_name}.azure_openai_endpoint can be set"
                )
            if section.max_attempts < 1:
                errors.append(f"{section_name}.max_attempts must be at least 1")
            if section.timeout <= 0:
                errors.append(f"{section_name}.timeout must be positive")

        for doc_type in ("messages", "documents"):
            embeddings = getattr(self.config.extractors, doc_type).embeddings
            if embeddings.service not in EMBEDDING_SERVICES:
                errors.append(
                    f"extractors.{doc_type}.embeddings.service must be one of "
                    f"{', '.join(EMBEDDING_SERVICES)}"
                )
            if embeddings.enabled and embeddings.dimensions <= 0:
                errors.append(f"extractors.{doc_type}.embeddings.dimensions must be positive")

        summarizer = self.config.summarizer
        if summarizer.window_size < 1:
            errors.append("summarizer.window_size must be at least 1")
        if summarizer.min_pending_count < 0:
            errors.append("summarizer.min_pending_count cannot be negative")
        if not 0 < summarizer.compaction_threshold <= 1:
            errors.append("summarizer.compaction_threshold must be in (0, 1]")

        if errors:
            raise ConfigValidationError(f"Configuration validation failed: {'; '.join(errors)}")

        self.logger.info("Configuration validation passed")

    def get(self, path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation"""
        try:
            obj = self.config
            for part in path.split("."):
                obj = getattr(obj, part)
            return obj
        except AttributeError:
            return default

    def get_provider_config(
        self, purpose: ClientPurpose = ClientPurpose.COMPLETION
    ) -> ProviderConfig:
        """Provider configuration for a completion or embeddings client."""
        return self.config.provider_config(purpose)

    def uses_openai_embeddings(self) -> bool:
        return self.config.uses_openai_embeddings()

    def to_dict(self, redact_secrets: bool = True) -> Dict[str, Any]:
        """Convert configuration to dictionary"""

        def _asdict_recursive(obj):
            if hasattr(obj, "__dict__"):
                result = {}
                for key, value in obj.__dict__.items():
                    if isinstance(value, Enum):
                        result[key] = value.value
                    elif hasattr(value, "__dict__"):
                        result[key] = _asdict_recursive(value)
                    elif redact_secrets and key.endswith("api_key") and value:
                        result[key] = "***"
                    else:
                        result[key] = value
                return result
            return obj

        return _asdict_recursive(self.config)


# Global configuration instance
_config_manager: Optional[ConfigManager] = None


def get_config() -> ConfigManager:
    """Get the global configuration manager instance"""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def init_config(config_dir: Optional[Union[str, Path]] = None) -> ConfigManager:
    """Initialize the global configuration manager"""
    global _config_manager
    ConfigManager.reset()
    _config_manager = ConfigManager(config_dir)
    return _config_manager
