"""Model tier selection for subagents.

Given a capability tier and the pool of models the runtime can currently
reach, pick the single best model and the reasoning effort to run it with.

Selection is a pure function of ``(tier, candidates)``:

1. Every candidate is scored by the *best* (lowest-index) tier pattern it
   matches: ``100 - 10 * index``. Unmatched candidates score 0. Matches are
   never summed, so two weak matches cannot outrank one strong match.
2. The pool is walked once, keeping a running best. Ties are broken by
   stability, then version (same pattern family only), then known provider,
   then the lexicographically smaller ``provider:id``.

The pattern tables are intentionally fuzzy because providers name the same
capability class differently (``claude-3-opus-20240229`` vs
``claude-opus-4-5-20251101`` vs ``anthropic/claude-opus-4.6``).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Pattern, Sequence, Tuple

logger = logging.getLogger(__name__)


class NoModelsAvailable(RuntimeError):
    """Raised when the candidate pool is empty."""

    def __init__(self, message: str = "No available models found in model registry."):
        super().__init__(message)


class Tier(str, Enum):
    """Capability/cost class requested for a task."""

    COMPLEX = "complex"
    STANDARD = "standard"
    SIMPLE = "simple"


class ReasoningEffort(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


TIER_EFFORT = {
    Tier.COMPLEX: ReasoningEffort.HIGH,
    Tier.STANDARD: ReasoningEffort.MEDIUM,
    Tier.SIMPLE: ReasoningEffort.LOW,
}


@dataclass(frozen=True)
class CandidateModel:
    provider: str
    id: str

    @property
    def ref(self) -> str:
        return f"{self.provider}:{self.id}"


VersionVector = List[int]
VersionExtractor = Callable[[str], Optional[VersionVector]]


@dataclass(frozen=True)
class TierPattern:
    kind: str
    pattern: Pattern[str]
    version: Optional[VersionExtractor] = None

    def matches(self, model_id: str) -> bool:
        return bool(self.pattern.search(model_id) or self.pattern.search(normalize_model_id(model_id)))


@dataclass(frozen=True)
class SelectionResult:
    model: CandidateModel
    tier: Tier
    reasoning_effort: ReasoningEffort

    @property
    def model_id(self) -> str:
        return self.model.id


# ---------------------------------------------------------------------------
# Version parsing
# ---------------------------------------------------------------------------

_VERSION_SPLIT_RE = re.compile(r"[._-]")
_DATE_TOKEN_RE = re.compile(r"^(19|20)\d{6}$")
_UNDELIMITED_NUMBER_RE = re.compile(r"^[0-9]{4,}$")


def normalize_model_id(model_id: str) -> str:
    return re.sub(r"\s+", "", model_id.lower())


def sanitize_version_string(raw: Optional[str]) -> Optional[str]:
    """Reject strings that look like dates or build numbers rather than versions.

    ``"20240229"`` and ``"2024.10.22"`` must never beat ``"3.5"``.
    """
    if not raw:
        return None
    value = raw.strip()
    if not value:
        return None

    if _UNDELIMITED_NUMBER_RE.match(value):
        return None

    parts = [p for p in _VERSION_SPLIT_RE.split(value) if p]
    if len(parts) >= 2 and parts[0].isdecimal() and int(parts[0]) >= 1900:
        return None

    return value


def parse_version_parts(value: str) -> VersionVector:
    """Split ``"4-5-20251101"`` into ``[4, 5]``, stopping at a date suffix."""
    out: VersionVector = []
    for part in _VERSION_SPLIT_RE.split(value):
        if not part:
            continue
        if out and _DATE_TOKEN_RE.match(part):
            break
        if part.isdecimal():
            out.append(int(part))
    return out


def compare_versions(a: Optional[VersionVector], b: Optional[VersionVector]) -> int:
    """Three-way compare; a present vector beats ``None``, missing trailing parts count as 0."""
    if a is None and b is None:
        return 0
    if b is None:
        return 1
    if a is None:
        return -1

    for idx in range(max(len(a), len(b))):
        av = a[idx] if idx < len(a) else 0
        bv = b[idx] if idx < len(b) else 0
        if av != bv:
            return 1 if av > bv else -1
    return 0


_NUM = r"(\d+(?:[._-]\d+)*)"


def _first_version(model_id: str, expressions: Iterable[str]) -> Optional[VersionVector]:
    for expr in expressions:
        match = re.search(expr, model_id, re.IGNORECASE)
        value = sanitize_version_string(match.group(1) if match else None)
        if value:
            return parse_version_parts(value)
    return None


def extract_claude_family_version(model_id: str, family: str) -> Optional[VersionVector]:
    """Version for Anthropic ids in old (``claude-3-opus``) and new (``claude-opus-4-5``) styles."""
    return _first_version(
        model_id,
        (
            rf"claude[-_ ]?v?{_NUM}[-_ ]?{family}",
            rf"claude[-_ ]?{family}[-_ ]?v?{_NUM}",
            rf"{family}[-_ ]?v?{_NUM}",
        ),
    )


def extract_gpt_version(model_id: str) -> Optional[VersionVector]:
    return _first_version(model_id, (rf"gpt[-_ ]?v?{_NUM}",))


# ---------------------------------------------------------------------------
# Pattern tables
# ---------------------------------------------------------------------------


def _token(word: str) -> Pattern[str]:
    return re.compile(rf"(?:^|[-_ ]){word}(?:$|[-_ ])", re.IGNORECASE)


def _claude(family: str) -> TierPattern:
    return TierPattern(
        kind=f"claude-{family}",
        pattern=_token(family),
        version=lambda model_id: extract_claude_family_version(model_id, family),
    )


_GEMINI_PRO = TierPattern(kind="gemini-pro", pattern=re.compile(r"gemini.*pro", re.IGNORECASE))

TIER_PATTERNS = {
    Tier.COMPLEX: (
        _claude("opus"),
        TierPattern(
            kind="gpt-5",
            pattern=re.compile(r"gpt[-_ ]?5(?:[._-]\d+)?", re.IGNORECASE),
            version=extract_gpt_version,
        ),
        _GEMINI_PRO,
    ),
    Tier.STANDARD: (
        _claude("sonnet"),
        TierPattern(kind="gpt-5", pattern=re.compile(r"gpt[-_ ]?5", re.IGNORECASE), version=extract_gpt_version),
        _GEMINI_PRO,
    ),
    Tier.SIMPLE: (
        _claude("haiku"),
        TierPattern(kind="gemini-flash", pattern=re.compile(r"flash", re.IGNORECASE)),
    ),
}

UNSTABLE_PATTERNS = (
    re.compile(r"preview", re.IGNORECASE),
    re.compile(r"experimental", re.IGNORECASE),
    re.compile(r"beta", re.IGNORECASE),
)

_KNOWN_PROVIDER_RE = re.compile(r"openai|anthropic|google", re.IGNORECASE)


def is_unstable_model_id(model_id: str) -> bool:
    return any(p.search(model_id) for p in UNSTABLE_PATTERNS)


def is_known_major_provider(provider: str) -> bool:
    return bool(_KNOWN_PROVIDER_RE.search(provider))


def best_tier_pattern_match(model_id: str, tier: Tier) -> Optional[Tuple[int, TierPattern]]:
    for idx, pattern in enumerate(TIER_PATTERNS[Tier(tier)]):
        if pattern.matches(model_id):
            return idx, pattern
    return None


def score_model_for_tier(model: CandidateModel, tier: Tier) -> int:
    match = best_tier_pattern_match(model.id, tier)
    if match is None:
        return 0
    return 100 - match[0] * 10


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


def _prefer_challenger(best: CandidateModel, challenger: CandidateModel, tier: Tier) -> bool:
    """Resolve a score tie. Returns True when ``challenger`` should replace ``best``."""
    best_unstable = is_unstable_model_id(best.id)
    challenger_unstable = is_unstable_model_id(challenger.id)
    if best_unstable != challenger_unstable:
        return best_unstable

    best_match = best_tier_pattern_match(best.id, tier)
    challenger_match = best_tier_pattern_match(challenger.id, tier)
    if best_match and challenger_match and best_match[1].kind == challenger_match[1].kind:
        extractor = best_match[1].version
        if extractor is not None:
            cmp = compare_versions(extractor(challenger.id), extractor(best.id))
            if cmp != 0:
                return cmp > 0

    best_known = is_known_major_provider(best.provider)
    challenger_known = is_known_major_provider(challenger.provider)
    if best_known != challenger_known:
        return challenger_known

    return challenger.ref < best.ref


def resolve_best_available(tier: Tier, candidates: Sequence[CandidateModel]) -> CandidateModel:
    if not candidates:
        raise NoModelsAvailable()

    tier = Tier(tier)
    best: Optional[CandidateModel] = None
    best_score = -1

    for candidate in candidates:
        score = score_model_for_tier(candidate, tier)
        if best is None or score > best_score:
            best, best_score = candidate, score
        elif score == best_score and _prefer_challenger(best, candidate, tier):
            best = candidate

    if best_score == 0:
        logger.debug("No %s tier pattern matched; falling back to %s", tier.value, best.ref)
    return best


def tier_to_effort(tier: Tier) -> ReasoningEffort:
    return TIER_EFFORT[Tier(tier)]


def select_model(
    tier: Tier,
    candidates: Sequence[CandidateModel],
    effort: Optional[ReasoningEffort] = None,
) -> SelectionResult:
    """Pick the best model for ``tier`` from ``candidates``.

    Args:
        tier: Requested capability tier.
        candidates: Snapshot of available models. Read only.
        effort: Optional caller override for the reasoning effort. Always wins
            over the tier default and is not validated against the tier.

    Raises:
        NoModelsAvailable: If ``candidates`` is empty.
    """
    tier = Tier(tier)
    model = resolve_best_available(tier, candidates)
    reasoning_effort = ReasoningEffort(effort) if effort is not None else tier_to_effort(tier)
    logger.debug("Selected %s for tier=%s effort=%s", model.ref, tier.value, reasoning_effort.value)
    return SelectionResult(model=model, tier=tier, reasoning_effort=reasoning_effort)


# ---------------------------------------------------------------------------
# Subagent tier estimation
# ---------------------------------------------------------------------------

ORACLE_COMPLEX_KEYWORDS = (
    "architecture", "design", "refactor", "debug", "root cause", "race condition",
    "performance", "optimize", "threat model", "security", "plan", "migration",
)

REVIEWER_COMPLEX_KEYWORDS = (
    "security", "vulnerability", "auth", "permission", "sqli", "xss", "csrf", "rce",
    "perf", "performance", "latency", "memory", "leak", "concurrency",
)

REVIEWER_LARGE_DIFF_KEYWORDS = ("files changed", "diff", "patch")

LOOKOUT_EXPLAIN_KEYWORDS = (
    "explain", "how does", "walk me through", "trace", "data flow", "control flow", "end-to-end",
)


def _includes_any(text: str, needles: Iterable[str]) -> bool:
    return any(n in text for n in needles)


def estimate_tier(subagent: str, message: str) -> Tier:
    """Heuristic tier for a subagent request based on keywords and length."""
    text = (message or "").lower()

    if subagent == "jester":
        return Tier.SIMPLE

    if subagent == "oracle":
        if _includes_any(text, ORACLE_COMPLEX_KEYWORDS):
            return Tier.COMPLEX
        return Tier.STANDARD if len(text) < 200 else Tier.COMPLEX

    if subagent == "reviewer":
        if _includes_any(text, REVIEWER_COMPLEX_KEYWORDS):
            return Tier.COMPLEX
        if _includes_any(text, REVIEWER_LARGE_DIFF_KEYWORDS) and len(text) > 2000:
            return Tier.COMPLEX
        return Tier.STANDARD

    if subagent == "lookout":
        if _includes_any(text, LOOKOUT_EXPLAIN_KEYWORDS):
            return Tier.STANDARD
        return Tier.SIMPLE

    return Tier.STANDARD


def select_subagent_model(
    subagent: str,
    message: str,
    candidates: Sequence[CandidateModel],
    *,
    tier: Optional[Tier] = None,
    effort: Optional[ReasoningEffort] = None,
) -> SelectionResult:
    """Estimate the tier for ``subagent`` (unless forced) and select a model."""
    resolved_tier = Tier(tier) if tier is not None else estimate_tier(subagent, message)
    return select_model(resolved_tier, candidates, effort=effort)
