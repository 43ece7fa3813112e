"""Unit tests for agent.model_policy."""

import pytest

from agent import model_policy as mp
from agent.model_policy import CandidateModel, NoModelsAvailable, ReasoningEffort, Tier


def _pool(*refs):
    out = []
    for ref in refs:
        provider, model_id = ref.split(":", 1)
        out.append(CandidateModel(provider=provider, id=model_id))
    return out


# ---------------------------------------------------------------------------
# Version parsing
# ---------------------------------------------------------------------------


class TestSanitizeVersionString:
    @pytest.mark.parametrize("raw", ["20240229", "2024", "12345", "2024.10.22", "1999-01", ""])
    def test_rejects_dates_and_build_numbers(self, raw):
        assert mp.sanitize_version_string(raw) is None

    def test_rejects_none(self):
        assert mp.sanitize_version_string(None) is None

    def test_superscript_lead_does_not_raise(self):
        assert mp.sanitize_version_string("\u00b2-4") == "\u00b2-4"

    @pytest.mark.parametrize("raw", ["4", "4.5", "4-5-20251101", "3_5", "123"])
    def test_keeps_versions(self, raw):
        assert mp.sanitize_version_string(raw) == raw


class TestParseVersionParts:
    def test_splits_on_all_delimiters(self):
        assert mp.parse_version_parts("4.5") == [4, 5]
        assert mp.parse_version_parts("4_5-1") == [4, 5, 1]

    def test_stops_at_date_suffix(self):
        assert mp.parse_version_parts("4-5-20251101") == [4, 5]

    def test_leading_date_token_is_not_a_suffix(self):
        assert mp.parse_version_parts("20251101") == [20251101]

    def test_skips_non_numeric_parts(self):
        assert mp.parse_version_parts("5.x.1") == [5, 1]

    def test_non_decimal_digit_characters_are_skipped(self):
        assert mp.parse_version_parts("4.\u00b2") == [4]
        assert mp.parse_version_parts("\u00b9\u00b2-5") == [5]


class TestCompareVersions:
    def test_numeric_not_lexicographic(self):
        assert mp.compare_versions([4, 10], [4, 5]) == 1
        assert mp.compare_versions([4, 5], [4, 10]) == -1

    def test_missing_trailing_parts_are_zero(self):
        assert mp.compare_versions([4], [4, 0]) == 0
        assert mp.compare_versions([4], [4, 1]) == -1

    def test_present_beats_none(self):
        assert mp.compare_versions([1], None) == 1
        assert mp.compare_versions(None, [1]) == -1
        assert mp.compare_versions(None, None) == 0


class TestVersionExtractors:
    @pytest.mark.parametrize(
        "model_id,family,expected",
        [
            ("claude-3-opus-20240229", "opus", [3]),
            ("claude-3.5-sonnet", "sonnet", [3, 5]),
            ("claude-3-5-sonnet-20241022", "sonnet", [3, 5]),
            ("claude-opus-4-5-20251101", "opus", [4, 5]),
            ("anthropic/claude-opus-4.6", "opus", [4, 6]),
            ("opus-4.5", "opus", [4, 5]),
            ("claude-haiku-4-5", "haiku", [4, 5]),
        ],
    )
    def test_claude_family(self, model_id, family, expected):
        assert mp.extract_claude_family_version(model_id, family) == expected

    def test_claude_date_only_yields_none(self):
        assert mp.extract_claude_family_version("claude-opus-20240229", "opus") is None
        assert mp.extract_claude_family_version("opus-20240229", "opus") is None

    @pytest.mark.parametrize(
        "model_id,expected",
        [("gpt-5.2", [5, 2]), ("gpt_5-1", [5, 1]), ("openai/gpt-5", [5]), ("GPT 5.1 Codex", [5, 1])],
    )
    def test_gpt(self, model_id, expected):
        assert mp.extract_gpt_version(model_id) == expected

    def test_gpt_missing(self):
        assert mp.extract_gpt_version("o3-mini") is None


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


class TestScoring:
    def test_best_pattern_index_only(self):
        assert mp.score_model_for_tier(CandidateModel("anthropic", "claude-opus-4-5"), Tier.COMPLEX) == 100
        assert mp.score_model_for_tier(CandidateModel("openai", "gpt-5.2"), Tier.COMPLEX) == 90
        assert mp.score_model_for_tier(CandidateModel("google", "gemini-2.5-pro"), Tier.COMPLEX) == 80

    def test_multiple_matches_are_not_summed(self):
        # Matches both gpt-5 (index 1) and gemini-pro (index 2); still scores as index 1.
        weird = CandidateModel("x", "gpt-5-gemini-pro")
        assert mp.score_model_for_tier(weird, Tier.COMPLEX) == 90

    def test_unmatched_scores_zero(self):
        assert mp.score_model_for_tier(CandidateModel("x", "llama-3-70b"), Tier.SIMPLE) == 0

    def test_opus_is_a_token_not_a_substring(self):
        assert mp.score_model_for_tier(CandidateModel("x", "magnum-opusx"), Tier.COMPLEX) == 0

    def test_normalized_id_is_matched(self):
        model = CandidateModel("google", "Gemini 2.5 Flash")
        assert mp.score_model_for_tier(model, Tier.SIMPLE) == 90

    @pytest.mark.parametrize("model_id", ["gemini-3-pro-preview", "o4-EXPERIMENTAL", "foo-beta-2"])
    def test_unstable_markers(self, model_id):
        assert mp.is_unstable_model_id(model_id)

    def test_known_providers(self):
        assert mp.is_known_major_provider("Anthropic")
        assert mp.is_known_major_provider("google-vertex")
        assert not mp.is_known_major_provider("openrouter")


# ---------------------------------------------------------------------------
# select_model
# ---------------------------------------------------------------------------


class TestSelectModel:
    @pytest.mark.parametrize("tier", list(Tier))
    def test_empty_pool_fails_for_every_tier(self, tier):
        with pytest.raises(NoModelsAvailable):
            mp.select_model(tier, [])

    def test_example_scenario_prefers_newer_opus(self):
        pool = _pool(
            "anthropic:claude-3-opus-20240229",
            "anthropic:claude-opus-4-5-20251101",
            "openai:gpt-5.2",
        )
        result = mp.select_model(Tier.COMPLEX, pool)
        assert result.model == CandidateModel("anthropic", "claude-opus-4-5-20251101")
        assert result.tier is Tier.COMPLEX
        assert result.reasoning_effort is ReasoningEffort.HIGH

    def test_order_of_pool_does_not_matter(self):
        refs = [
            "openai:gpt-5.2",
            "anthropic:claude-opus-4-5-20251101",
            "anthropic:claude-3-opus-20240229",
        ]
        forward = mp.select_model(Tier.COMPLEX, _pool(*refs))
        backward = mp.select_model(Tier.COMPLEX, _pool(*reversed(refs)))
        assert forward == backward

    def test_deterministic(self):
        pool = _pool("openai:gpt-5", "google:gemini-2.5-pro", "anthropic:claude-sonnet-4-5")
        results = {mp.select_model(Tier.STANDARD, pool) for _ in range(5)}
        assert len(results) == 1

    def test_priority_dominance(self):
        pool = _pool("openai:gpt-5.2-preview", "zzz:opus")
        assert mp.select_model(Tier.COMPLEX, pool).model.id == "opus"

    def test_version_ordering_is_numeric(self):
        pool = _pool("anthropic:claude-opus-4-5", "anthropic:claude-opus-4-10")
        assert mp.select_model(Tier.COMPLEX, pool).model.id == "claude-opus-4-10"
        pool.reverse()
        assert mp.select_model(Tier.COMPLEX, pool).model.id == "claude-opus-4-10"

    def test_gpt_versions(self):
        pool = _pool("openai:gpt-5.2", "openai:gpt-5.1")
        assert mp.select_model(Tier.STANDARD, pool).model.id == "gpt-5.2"

    def test_version_beats_missing_version(self):
        pool = _pool("anthropic:claude-opus-20240229", "anthropic:claude-opus-4")
        assert mp.select_model(Tier.COMPLEX, pool).model.id == "claude-opus-4"

    def test_stability_tie_break(self):
        pool = _pool("google:gemini-3-pro-preview", "google:gemini-2.5-pro")
        assert mp.select_model(Tier.COMPLEX, pool).model.id == "gemini-2.5-pro"

    def test_stability_beats_version(self):
        pool = _pool("anthropic:claude-opus-5-beta", "anthropic:claude-opus-4-5")
        assert mp.select_model(Tier.COMPLEX, pool).model.id == "claude-opus-4-5"

    def test_known_provider_tie_break(self):
        pool = _pool("acme:gemini-2.5-pro", "google:gemini-2.5-pro")
        assert mp.select_model(Tier.COMPLEX, pool).model.provider == "google"

    def test_total_fallback_is_lexicographic(self):
        pool = _pool("zeta:llama-3", "alpha:mistral-large")
        result = mp.select_model(Tier.SIMPLE, pool)
        assert result.model.ref == "alpha:mistral-large"

    def test_fallback_prefers_known_provider_before_lexicographic(self):
        pool = _pool("alpha:llama-3", "openai:o3")
        assert mp.select_model(Tier.SIMPLE, pool).model.ref == "openai:o3"

    def test_duplicates_are_harmless(self):
        pool = _pool("openai:gpt-5", "openai:gpt-5")
        assert mp.select_model(Tier.STANDARD, pool).model.ref == "openai:gpt-5"

    def test_pool_is_not_mutated(self):
        pool = _pool("openai:gpt-5", "anthropic:claude-sonnet-4-5")
        snapshot = list(pool)
        mp.select_model(Tier.STANDARD, pool)
        assert pool == snapshot

    @pytest.mark.parametrize(
        "tier,effort",
        [(Tier.COMPLEX, ReasoningEffort.HIGH), (Tier.STANDARD, ReasoningEffort.MEDIUM), (Tier.SIMPLE, ReasoningEffort.LOW)],
    )
    def test_effort_mapping(self, tier, effort):
        assert mp.tier_to_effort(tier) is effort
        assert mp.select_model(tier, _pool("x:anything")).reasoning_effort is effort

    def test_effort_override_is_unchecked(self):
        result = mp.select_model(Tier.COMPLEX, _pool("anthropic:claude-opus-4-5"), effort=ReasoningEffort.LOW)
        assert result.reasoning_effort is ReasoningEffort.LOW

    def test_accepts_plain_strings(self):
        result = mp.select_model("simple", _pool("anthropic:claude-haiku-4-5"), effort="high")
        assert result.tier is Tier.SIMPLE
        assert result.reasoning_effort is ReasoningEffort.HIGH


# ---------------------------------------------------------------------------
# Subagent tier estimation
# ---------------------------------------------------------------------------


class TestEstimateTier:
    def test_jester_is_always_simple(self):
        assert mp.estimate_tier("jester", "design a distributed architecture") is Tier.SIMPLE

    def test_oracle(self):
        assert mp.estimate_tier("oracle", "Find the root cause of this crash") is Tier.COMPLEX
        assert mp.estimate_tier("oracle", "Which name reads better?") is Tier.STANDARD
        assert mp.estimate_tier("oracle", "x" * 250) is Tier.COMPLEX

    def test_reviewer(self):
        assert mp.estimate_tier("reviewer", "check auth handling") is Tier.COMPLEX
        assert mp.estimate_tier("reviewer", "small rename") is Tier.STANDARD
        big_diff = "diff --git a/x b/x\n" + "+line\n" * 500
        assert mp.estimate_tier("reviewer", big_diff) is Tier.COMPLEX

    def test_lookout(self):
        assert mp.estimate_tier("lookout", "Explain how requests are routed") is Tier.STANDARD
        assert mp.estimate_tier("lookout", "where is the config loader") is Tier.SIMPLE

    def test_unknown_and_scout_default_to_standard(self):
        assert mp.estimate_tier("scout", "anything") is Tier.STANDARD
        assert mp.estimate_tier("mystery", "") is Tier.STANDARD

    def test_select_subagent_model_forced_tier(self):
        pool = _pool("anthropic:claude-haiku-4-5", "anthropic:claude-opus-4-5")
        estimated = mp.select_subagent_model("jester", "joke please", pool)
        assert estimated.model.id == "claude-haiku-4-5"
        forced = mp.select_subagent_model("jester", "joke please", pool, tier=Tier.COMPLEX)
        assert forced.model.id == "claude-opus-4-5"
        assert forced.reasoning_effort is ReasoningEffort.HIGH
