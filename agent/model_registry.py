"""
Provider and model registry for subagent model selection.

Declares the inference providers Lantern can talk to and turns the ones
with credentials into the candidate pool consumed by ``agent.model_policy``.
Nothing here touches the network; availability is decided from environment
variables and config alone.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from agent.model_policy import CandidateModel
from lantern_constants import (
    ANTHROPIC_OPENAI_COMPAT_URL,
    GOOGLE_OPENAI_COMPAT_URL,
    OPENAI_BASE_URL,
    OPENROUTER_BASE_URL,
)

logger = logging.getLogger(__name__)

EnvGetter = Callable[[str], Optional[str]]


@dataclass(frozen=True)
class ProviderMeta:
    id: str
    label: str
    default_base_url: str = ""
    api_key_env_vars: Tuple[str, ...] = ()
    base_url_env_var: Optional[str] = None
    curated_models: Tuple[str, ...] = ()
    aliases: Tuple[str, ...] = ()


PROVIDERS: Dict[str, ProviderMeta] = {
    "anthropic": ProviderMeta(
        id="anthropic",
        label="Anthropic",
        default_base_url=ANTHROPIC_OPENAI_COMPAT_URL,
        api_key_env_vars=("ANTHROPIC_API_KEY",),
        base_url_env_var="ANTHROPIC_BASE_URL",
        curated_models=(
            "claude-opus-4-5-20251101",
            "claude-sonnet-4-5-20250929",
            "claude-haiku-4-5-20251001",
        ),
        aliases=("claude",),
    ),
    "openai": ProviderMeta(
        id="openai",
        label="OpenAI",
        default_base_url=OPENAI_BASE_URL,
        api_key_env_vars=("OPENAI_API_KEY",),
        curated_models=("gpt-5.2", "gpt-5.1", "gpt-5-mini"),
    ),
    "google": ProviderMeta(
        id="google",
        label="Google Gemini",
        default_base_url=GOOGLE_OPENAI_COMPAT_URL,
        api_key_env_vars=("GEMINI_API_KEY", "GOOGLE_API_KEY"),
        base_url_env_var="GEMINI_BASE_URL",
        curated_models=("gemini-2.5-pro", "gemini-2.5-flash", "gemini-3-pro-preview"),
        aliases=("gemini",),
    ),
    "openrouter": ProviderMeta(
        id="openrouter",
        label="OpenRouter",
        default_base_url=OPENROUTER_BASE_URL,
        api_key_env_vars=("OPENROUTER_API_KEY",),
        base_url_env_var="OPENROUTER_BASE_URL",
        curated_models=(
            "anthropic/claude-opus-4.6",
            "anthropic/claude-sonnet-4.5",
            "anthropic/claude-haiku-4.5",
            "openai/gpt-5.2",
            "google/gemini-3-pro-preview",
        ),
    ),
    "custom": ProviderMeta(
        id="custom",
        label="Custom endpoint",
        default_base_url="",
        api_key_env_vars=("CUSTOM_API_KEY",),
        base_url_env_var="CUSTOM_BASE_URL",
        curated_models=(),
        aliases=("local",),
    ),
}

_ALIAS_TO_PROVIDER: Dict[str, str] = {}
for _pid, _meta in PROVIDERS.items():
    _ALIAS_TO_PROVIDER[_pid] = _pid
    for _alias in _meta.aliases:
        _ALIAS_TO_PROVIDER[_alias.lower()] = _pid


def normalize_provider_id(provider_id: Optional[str], default: str = "openrouter") -> str:
    """Normalize a provider ID or alias to a canonical ID."""
    if not provider_id:
        return default
    key = provider_id.strip().lower()
    if not key:
        return default
    return _ALIAS_TO_PROVIDER.get(key, key)


def get_provider(provider_id: str) -> Optional[ProviderMeta]:
    return PROVIDERS.get(normalize_provider_id(provider_id))


def list_provider_ids() -> List[str]:
    return list(PROVIDERS)


def resolve_provider_api_key(
    provider_id: str,
    *,
    env_get: EnvGetter = os.getenv,
    explicit_api_key: Optional[str] = None,
) -> Optional[str]:
    if explicit_api_key:
        return explicit_api_key
    meta = get_provider(provider_id)
    if not meta:
        return None
    for env_var in meta.api_key_env_vars:
        value = env_get(env_var)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def resolve_provider_base_url(
    provider_id: str,
    *,
    env_get: EnvGetter = os.getenv,
    explicit_base_url: Optional[str] = None,
) -> Optional[str]:
    if explicit_base_url:
        return explicit_base_url.strip()
    meta = get_provider(provider_id)
    if not meta:
        return None
    if meta.base_url_env_var:
        env_value = env_get(meta.base_url_env_var)
        if isinstance(env_value, str) and env_value.strip():
            return env_value.strip().rstrip("/")
    if meta.default_base_url:
        return meta.default_base_url.rstrip("/")
    return None


def has_any_provider_key(provider_id: str, *, env_get: EnvGetter = os.getenv) -> bool:
    return resolve_provider_api_key(provider_id, env_get=env_get) is not None


def is_provider_available(provider_id: str, *, env_get: EnvGetter = os.getenv) -> bool:
    """A provider is usable once it has an API key and somewhere to send requests."""
    return has_any_provider_key(provider_id, env_get=env_get) and bool(
        resolve_provider_base_url(provider_id, env_get=env_get)
    )


def parse_model_ref(ref: str) -> Optional[CandidateModel]:
    """Parse ``provider:model-id`` into a CandidateModel (provider alias-normalized)."""
    if not isinstance(ref, str) or ":" not in ref:
        return None
    provider, model_id = ref.split(":", 1)
    provider, model_id = provider.strip(), model_id.strip()
    if not provider or not model_id:
        return None
    return CandidateModel(provider=normalize_provider_id(provider), id=model_id)


def available_models(
    *,
    env_get: EnvGetter = os.getenv,
    extra_models: Sequence[str] = (),
) -> List[CandidateModel]:
    """Candidate pool for model selection.

    Curated models of every provider with a configured key, in table order,
    followed by ``extra_models`` (``provider:id`` strings from config) whose
    provider is available too. Duplicates are dropped, first one wins.
    """
    seen = set()
    pool: List[CandidateModel] = []

    def _add(candidate: CandidateModel) -> None:
        if candidate.ref in seen:
            return
        seen.add(candidate.ref)
        pool.append(candidate)

    for pid, meta in PROVIDERS.items():
        if not is_provider_available(pid, env_get=env_get):
            continue
        for model_id in meta.curated_models:
            _add(CandidateModel(provider=pid, id=model_id))

    for ref in extra_models:
        candidate = parse_model_ref(ref)
        if candidate is None:
            logger.warning("Ignoring malformed model reference %r", ref)
            continue
        if not is_provider_available(candidate.provider, env_get=env_get):
            logger.debug("Skipping %s: provider has no API key", candidate.ref)
            continue
        _add(candidate)

    return pool
