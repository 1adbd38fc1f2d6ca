import pytest

from entscheidsuche.mcp.prompts import (
    PROMPTS,
    case_analysis,
    compare_jurisdictions,
    court_decisions,
    legal_research,
    render_prompt,
    search_legal_precedents,
)


def test_search_legal_precedents():
    text = search_legal_precedents("Mietrecht", "ZH")
    assert '"Mietrecht" in jurisdiction ZH' in text
    assert "in jurisdiction" not in search_legal_precedents("Mietrecht")


def test_compare_jurisdictions_splits_canton_list():
    text = compare_jurisdictions("Kündigungsschutz", " ZH, BE ,GE,")
    assert '"ZH", "BE", "GE"' in text
    assert '"Kündigungsschutz"' in text


def test_court_decisions_default_timeframe():
    assert "within the last 1 year" in court_decisions("Bundesgericht")
    assert "within the last 6 months" in court_decisions("Bundesgericht", "6 months")


def test_legal_research_builds_search_query():
    text = legal_research("Datenschutz", "CH", "DSG Art. 8")
    assert "Focus on jurisdiction: CH" in text
    assert "Additional keywords: DSG Art. 8" in text
    assert 'with this query: "Datenschutz CH DSG Art. 8"' in text

    bare = legal_research("Datenschutz")
    assert "Focus on jurisdiction" not in bare
    assert 'with this query: "Datenschutz"' in bare


def test_case_analysis():
    text = case_analysis("CH_BGer_1", "CH_BGer", "costs")
    assert 'signature "CH_BGer_1" from CH_BGer.' in text
    assert "Please focus particularly on: costs" in text
    assert "get_document tool" in text


def test_registry_names():
    assert set(PROMPTS) == {
        "search-legal-precedents",
        "compare-jurisdictions",
        "court-decisions",
        "legal-research",
        "case-analysis",
    }


def test_render_prompt_maps_argument_names():
    text = render_prompt("compare-jurisdictions", {"legalIssue": "Asyl", "cantons": "ZH,BE"})
    assert text == compare_jurisdictions("Asyl", "ZH,BE")


def test_render_prompt_optional_arguments_may_be_missing():
    assert render_prompt("court-decisions", {"court": "BGer"}) == court_decisions("BGer")


def test_render_prompt_errors():
    with pytest.raises(ValueError):
        render_prompt("no-such-prompt", {})
    with pytest.raises(ValueError):
        render_prompt("search-legal-precedents", {"jurisdiction": "ZH"})
