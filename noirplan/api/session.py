"""
Single entry point for building a mystery session.

Used by the CLI. All dependencies (LLM provider, gateway, storage, pipeline
settings) are built from config and passed in; no global singletons. The
persisted document is the source of truth between invocations.
"""

import logging
from typing import Any, Dict, Optional

from noirplan.llm import GenerationGateway, LLMProvider, OllamaClient
from noirplan.memory import DocumentStore, InMemoryState, KeyValueState, LocalFileState
from noirplan.orchestrator import MysterySession, PipelineSettings

logger = logging.getLogger(__name__)


def _create_llm(config: Dict[str, Any]) -> LLMProvider:
    llm_config = config.get("llm", {}) or {}
    provider = llm_config.get("provider", "ollama")

    if provider == "gemini":
        from noirplan.llm.gemini_client import GeminiClient
        return GeminiClient(
            model=llm_config.get("model", "gemini-flash-latest"),
            api_key=llm_config.get("api_key")
        )

    if provider != "ollama":
        raise ValueError(f"Unknown LLM provider: {provider}")

    return OllamaClient(
        model=llm_config.get("model", "llama3.1:70b"),
        base_url=llm_config.get("base_url", "http://localhost:11434"),
        timeout=llm_config.get("timeout", 300)
    )


def _create_gateway(config: Dict[str, Any], llm_provider: LLMProvider) -> GenerationGateway:
    gateway_config = config.get("gateway", {}) or {}
    llm_config = config.get("llm", {}) or {}
    return GenerationGateway(
        llm_provider,
        max_retries=gateway_config.get("max_retries", 3),
        initial_delay=gateway_config.get("initial_delay_seconds", 2.0),
        temperature=llm_config.get("temperature", 0.7)
    )


def _create_storage(config: Dict[str, Any]) -> KeyValueState:
    """Build the key-value state backing the document from config."""
    storage_config = config.get("storage", {}) or {}
    provider = storage_config.get("provider", "local")

    if provider == "memory":
        return InMemoryState()
    if provider != "local":
        raise ValueError(f"Unknown storage provider: {provider}")

    local_config = storage_config.get("local", {}) or {}
    return LocalFileState(storage_dir=local_config.get("data_dir", "./data"))


def create_session(
    config: Optional[Dict[str, Any]] = None,
    llm_provider: Optional[LLMProvider] = None,
    state: Optional[KeyValueState] = None
) -> MysterySession:
    """
    Build a session from config.

    Args:
        config: App config (llm, gateway, storage, pipeline). If None, defaults.
        llm_provider: Use this provider instead of the configured one
        state: Use this key-value state instead of the configured storage

    Returns:
        MysterySession with the persisted mystery restored
    """
    config = config or {}

    llm_provider = llm_provider or _create_llm(config)
    gateway = _create_gateway(config, llm_provider)
    store = DocumentStore(state if state is not None else _create_storage(config))
    settings = PipelineSettings.from_config(config)

    logger.debug(
        f"Session ready: model={llm_provider.get_model_name()}, stage={store.stage.value}"
    )
    return MysterySession(store, gateway, settings)
