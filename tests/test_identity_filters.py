# tests/test_identity_filters.py
import pytest

from listing_watch.lib import differ, filters, identity
from listing_watch.lib.models import Company, Listing

GOOGLE_PATTERN = r"/jobs/results/(\d+)-"


def _listing(title="Software Engineer", location="Remote", url="https://example.com/jobs/1", company=Company.DISCORD):
    return Listing(title=title, location=location, url=url, found_date="2025-01-01 12:00:00 AM", company=company)


# ----------------------------------------------------------------------
# Identity
# ----------------------------------------------------------------------
def test_google_pattern_extracts_numeric_id():
    url = "https://www.google.com/about/careers/applications/jobs/results/123456789-software-engineer?q=x"
    assert identity.listing_identity(Company.GOOGLE, url, pattern=GOOGLE_PATTERN) == "GOOGLE-123456789"


def test_pattern_without_groups_uses_whole_match():
    url = "https://example.com/req/R-4242/apply"
    assert identity.listing_identity(Company.RIOT_GAMES, url, pattern=r"R-\d+") == "RIOT-R-4242"


def test_pattern_miss_falls_back_to_strategy():
    url = "https://www.google.com/about/careers/applications/jobs/saved"
    assert identity.listing_identity(Company.GOOGLE, url, pattern=GOOGLE_PATTERN) == "GOOGLE-/about/careers/applications/jobs/saved"


def test_last_segment_strategy_ignores_trailing_slash_and_query():
    assert identity.listing_identity(Company.DISCORD, "https://discord.com/jobs/7654321/?gh_src=x", strategy="last_segment") == "DISCORD-7654321"


def test_path_strategy_keeps_full_path():
    assert identity.listing_identity(Company.RIOT_GAMES, "https://riotgames.com/a/b/") == "RIOT-/a/b"


def test_empty_path_falls_back_to_url():
    assert identity.listing_identity(Company.DISCORD, "https://discord.com") == "DISCORD-https://discord.com"


def test_identity_is_deterministic_and_company_scoped():
    url = "https://example.com/jobs/99"
    first = identity.listing_identity(Company.DISCORD, url)
    assert first == identity.listing_identity(Company.DISCORD, url)
    assert first != identity.listing_identity(Company.RIOT_GAMES, url)


def test_distinct_urls_give_distinct_ids():
    urls = [
        "https://example.com/jobs/1",
        "https://example.com/jobs/2",
        "https://example.com/team-a/jobs/1",
        "https://example.com/jobs/1/apply",
        "https://example.com/careers/engineering/backend",
    ]
    ids = {identity.listing_identity(Company.DISCORD, u) for u in urls}
    assert len(ids) == len(urls)


def test_unknown_strategy_raises():
    with pytest.raises(ValueError):
        identity.listing_identity(Company.DISCORD, "https://x.com/1", strategy="hash")


def test_generated_corpus_ids_are_unique_per_strategy():
    paths = [f"https://example.com/jobs/{n}" for n in range(1000)]
    paths += [f"https://example.com/team-{n % 7}/role-{n}/" for n in range(1000)]
    for strategy in identity.STRATEGIES:
        ids = {identity.listing_identity(Company.RIOT_GAMES, u, strategy=strategy) for u in paths}
        assert len(ids) == len(paths)

    numeric = [f"https://careers.example.com/jobs/results/{n}-software-engineer" for n in range(1000)]
    ids = {identity.listing_identity(Company.GOOGLE, u, pattern=GOOGLE_PATTERN) for u in numeric}
    assert ids == {f"GOOGLE-{n}" for n in range(1000)}


# ----------------------------------------------------------------------
# Filters
# ----------------------------------------------------------------------
def test_no_rules_accepts_everything():
    assert filters.passes_filters(_listing(), None)
    assert filters.passes_filters(_listing(), filters.FilterRules())


def test_title_include_is_case_sensitive():
    rules = filters.FilterRules(title_include=("Software",))
    assert filters.passes_filters(_listing(title="Senior Software Engineer"), rules)
    assert not filters.passes_filters(_listing(title="software engineer"), rules)


def test_title_exclude_beats_include():
    rules = filters.FilterRules(title_include=("Software",), title_exclude=("Staff", "Principal", "Manager"))
    assert not filters.passes_filters(_listing(title="Staff Software Engineer"), rules)
    assert not filters.passes_filters(_listing(title="Software Engineering Manager"), rules)
    assert filters.passes_filters(_listing(title="Software Engineer II"), rules)


def test_location_gates():
    rules = filters.FilterRules(location_include=("San Francisco", "Remote"), location_exclude=("Canada",))
    assert filters.passes_filters(_listing(location="San Francisco, CA"), rules)
    assert not filters.passes_filters(_listing(location="New York, NY"), rules)
    assert not filters.passes_filters(_listing(location="Remote - Canada"), rules)


def test_missing_location_fails_location_include():
    rules = filters.FilterRules(location_include=("Remote",))
    assert not filters.passes_filters(_listing(location="n/a"), rules)


def test_adding_exclude_terms_never_admits_more():
    titles = ["Software Engineer", "Staff Software Engineer", "Designer", "Software Manager"]
    loose = filters.FilterRules(title_exclude=("Staff",))
    strict = filters.FilterRules(title_exclude=("Staff", "Manager"))
    loose_pass = {t for t in titles if filters.passes_filters(_listing(title=t), loose)}
    strict_pass = {t for t in titles if filters.passes_filters(_listing(title=t), strict)}
    assert strict_pass <= loose_pass


def test_adding_include_terms_never_admits_less():
    titles = ["Software Engineer", "Data Scientist", "Designer", "Site Reliability Engineer"]
    narrow = filters.FilterRules(title_include=("Software",))
    wide = filters.FilterRules(title_include=("Software", "Data"))
    narrow_pass = {t for t in titles if filters.passes_filters(_listing(title=t), narrow)}
    wide_pass = {t for t in titles if filters.passes_filters(_listing(title=t), wide)}
    assert narrow_pass <= wide_pass
    assert wide_pass == {"Software Engineer", "Data Scientist"}


def test_from_mapping_accepts_single_string_and_rejects_unknown_keys():
    rules = filters.FilterRules.from_mapping({"title_include": "Software"})
    assert rules.title_include == ("Software",)
    assert rules.title_exclude is None
    with pytest.raises(ValueError):
        filters.FilterRules.from_mapping({"titleInclude": ["Software"]})


# ----------------------------------------------------------------------
# Differ
# ----------------------------------------------------------------------
def test_new_entries_keeps_current_order_and_values():
    a, b, c = _listing(url="https://x/1"), _listing(url="https://x/2"), _listing(url="https://x/3")
    previous = {"A": a, "B": b}
    current = {"C": c, "A": a, "B": b}
    fresh = differ.new_entries(previous, current)
    assert list(fresh) == ["C"]
    assert fresh["C"] is c


def test_new_entries_empty_cases():
    a = _listing()
    assert differ.new_entries({}, {}) == {}
    assert differ.new_entries({"A": a}, {}) == {}
    assert differ.new_entries({}, {"A": a}) == {"A": a}


def test_new_entries_of_identical_snapshots_is_empty():
    snapshot = {f"DISCORD-/jobs/{n}": _listing(url=f"https://x/{n}") for n in range(5)}
    assert differ.new_entries(snapshot, snapshot) == {}
    assert differ.new_entries(snapshot, dict(snapshot)) == {}
