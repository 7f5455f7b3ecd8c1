"""
Tests for the curated ESG dataset.
"""

from esg_core.esg.curated_data import (
    get_available_sectors,
    get_available_symbols,
    get_curated_esg_data,
    get_esg_laggards,
    get_stocks_by_min_esg,
    get_stocks_by_sector,
    get_top_esg_performers,
    load_curated_dataset,
)


def test_risk_scores_are_normalized_on_load():
    msft = get_curated_esg_data("MSFT")
    assert msft is not None
    assert msft.esg_score == 87
    assert msft.environmental_score == 88
    assert msft.company_name == "Microsoft Corporation"


def test_lookup_is_case_insensitive():
    assert get_curated_esg_data("nesn.sw").symbol == "NESN.SW"
    assert get_curated_esg_data("UNKNOWN") is None
    assert get_curated_esg_data("") is None


def test_filters_and_rankings():
    assert "ORSTED.CO" in get_available_symbols()
    assert all(s.sector == "Healthcare" for s in get_stocks_by_sector("healthcare"))
    strong = get_stocks_by_min_esg(85)
    assert strong and all(s.esg_score >= 85 for s in strong)
    assert [s.esg_score for s in strong] == sorted((s.esg_score for s in strong), reverse=True)
    assert get_top_esg_performers(1)[0].symbol == "ORSTED.CO"
    assert get_esg_laggards(1)[0].symbol == "XOM"
    assert "Utilities" in get_available_sectors()


def test_load_custom_file(tmp_path):
    path = tmp_path / "esg.yaml"
    path.write_text(
        "provider: FMP\n"
        "last_updated: '2025-06-30'\n"
        "stocks:\n"
        "  abc: {company_name: ABC Corp, sector: Tech, esg_risk: 70, environmental: 60, social: 50, governance: 40}\n"
        "  broken: 5\n",
        encoding="utf-8",
    )
    dataset = load_curated_dataset(path)
    assert list(dataset) == ["ABC"]
    assert dataset["ABC"].esg_score == 70
    assert dataset["ABC"].last_updated == "2025-06-30"
