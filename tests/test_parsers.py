import json

import pytest

from buildpath.parsers import (
    PARSE_ERROR,
    clamp_score,
    extract_json,
    parse_feature_map,
    parse_opportunity_score,
    parse_personas,
    parse_pillars,
    parse_risk_radar,
    parse_section_payload,
    parse_section_result,
)


@pytest.mark.parametrize(
    "raw",
    [
        '{"score": 4}',
        'Here you go:\n```json\n{"score": 4}\n```',
        'Sure! {"score": 4} Hope that helps.',
    ],
)
def test_extract_json_finds_object(raw: str) -> None:
    assert extract_json(raw) == {"score": 4}


@pytest.mark.parametrize("raw", [None, "", "not json at all", "{broken"])
def test_extract_json_returns_none(raw) -> None:
    assert extract_json(raw) is None


def test_pillars_survive_integers_past_the_digit_limit() -> None:
    raw = '{"pillars": [{"pillarId": "feasibility", "score": ' + "9" * 5000 + "}]}"

    assert parse_pillars(raw)[5]["score"] == 5


def test_clamp_score_falls_back_on_unrepresentable_numbers() -> None:
    assert clamp_score(10**400, upper=10, default=5) == 5
    assert clamp_score("1e400", default=7) == 7
    assert clamp_score(float("nan"), default=3) == 3


def test_huge_pillar_score_keeps_default() -> None:
    raw = '{"pillars": [{"pillarId": "audienceFit", "score": 1' + "0" * 400 + "}]}"

    pillars = parse_pillars(raw)

    assert len(pillars) == 7
    assert pillars[0]["score"] == 5


def test_opportunity_score_with_huge_integer_is_zero() -> None:
    assert parse_opportunity_score('{"score": 1' + "0" * 400 + "}")["score"] == 0


def test_clamp_score_rounds_half_up_and_clamps() -> None:
    assert clamp_score(72.5) == 73
    assert clamp_score(140) == 100
    assert clamp_score(-3) == 0
    assert clamp_score("55%") == 55
    assert clamp_score("n/a", default=5) == 5
    assert clamp_score(True) == 0


def test_pillars_always_seven_in_canonical_order() -> None:
    raw = json.dumps({"pillars": [{"pillarId": "market_size", "score": 12}, {"pillarId": "bogus", "score": 9}]})

    pillars = parse_pillars(raw)

    assert [pillar["pillarId"] for pillar in pillars] == [
        "audienceFit",
        "problemClarity",
        "solutionStrength",
        "competition",
        "marketSize",
        "feasibility",
        "monetisation",
    ]
    assert pillars[4]["score"] == 10
    assert pillars[4]["pillarName"] == "Market Size (TAM/SAM)"
    assert all(pillar["score"] == 5 for index, pillar in enumerate(pillars) if index != 4)


def test_pillars_fallback_on_garbage() -> None:
    pillars = parse_pillars("model had a bad day")

    assert len(pillars) == 7
    assert pillars[0]["strength"] == "Need stronger signals for Audience Fit."


def test_personas_skip_nameless_and_cap_features() -> None:
    raw = json.dumps(
        [
            {"name": "", "role": "ghost"},
            {"name": "Ana", "age": "34", "neededFeatures": ["a", "b", "c", "d", "e"]},
        ]
    )

    personas = parse_personas(raw)

    assert len(personas) == 1
    assert personas[0]["age"] == 34
    assert personas[0]["neededFeatures"] == ["a", "b", "c", "d"]


def test_personas_default_missing_age_to_zero() -> None:
    personas = parse_personas('{"personas": [{"name": "A"}, {"name": "B", "age": "unknown"}]}')

    assert [persona["age"] for persona in personas] == [0, 0]


def test_feature_map_accepts_wrapped_object() -> None:
    raw = json.dumps({"features": {"must": ["Login"], "avoid": ["Blockchain", 3]}})

    assert parse_feature_map(raw) == {"must": ["Login"], "should": [], "could": [], "avoid": ["Blockchain"]}


def test_risk_radar_accepts_american_spelling() -> None:
    radar = parse_risk_radar(json.dumps({"riskRadar": {"monetization": 44.4, "market": 101}}))

    assert radar["monetisation"] == 44
    assert radar["market"] == 100
    assert radar["commentary"] == []


def test_opportunity_score_fallback() -> None:
    assert parse_opportunity_score("") == {
        "score": 0,
        "breakdown": {"marketMomentum": 0, "audienceEnthusiasm": 0, "feasibility": 0},
        "rationale": "",
    }


def test_section_result_limits_and_defaults() -> None:
    raw = json.dumps(
        {
            "score": 81,
            "summary": "Strong pull from clinics.",
            "actions": [f"Action {n}" for n in range(8)],
            "suggestions": {"copy": [f"Line {n}" for n in range(9)]},
        }
    )

    result = parse_section_result(raw)

    assert len(result["actions"]) == 5
    assert result["insightBreakdown"]["discoveries"] == "Strong pull from clinics."
    assert len(result["suggestions"]["copy"]) == 6
    assert result["suggestions"]["features"] == []


def test_section_payload_returns_fallback_with_error() -> None:
    fallback = {"assets": [], "nested": {"items": []}}

    blob = parse_section_payload("Sorry, I cannot help with that.", fallback)

    assert blob["error"] == PARSE_ERROR
    assert blob["raw"] == "Sorry, I cannot help with that."
    assert blob["assets"] == []
    blob["nested"]["items"].append("mutated")
    assert fallback["nested"]["items"] == []


def test_section_payload_passes_objects_through() -> None:
    assert parse_section_payload('{"assets": ["Tweet"]}', {"assets": []}) == {"assets": ["Tweet"]}
