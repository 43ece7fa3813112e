"""Agent internals -- model selection, configuration and subagent execution.

Module Overview
---------------
**model_policy.py**
    Tier-based model selection. Scores candidates against per-tier
    patterns (opus/sonnet/haiku, gpt-5, gemini pro/flash), breaks ties on
    stability, version, and provider, and maps tiers to reasoning effort.

**model_registry.py**
    Provider table (anthropic, openai, google, openrouter, custom), API key
    and base URL resolution, and the candidate pool for selection.

**config.py**
    ``$LANTERN_HOME`` .env loading and config.yaml access with defaults.

**subagent_executor.py**
    Streaming chat-completions loop with tool calls, usage and abort.

**skills.py**
    SKILL.md lookup by name for subagent system prompts.

**run_logger.py**
    Per-run JSONL logs for subagent executions.

**session_title.py**
    Short session titles from the first user message.

**async_bridge.py**
    Running coroutines from sync code (tool dispatch).

Architecture
------------
1. **Stateless utilities**: selection and formatting functions take all
   state as arguments and never read globals beyond the environment.

2. **No circular imports**: modules depend on external packages,
   ``lantern_constants`` and lower layers of this package only.
"""
