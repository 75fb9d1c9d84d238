"""
Built-in site configurations, used when no SITES_PATH is given.

Same shape as a sites file; parsed through config.parse_sites().
"""

from __future__ import annotations

from typing import Any

_EXCLUDE_SENIOR = ["Staff", "Principal", "Manager"]

DEFAULT_SITES: list[dict[str, Any]] = [
    {
        "company": "Google",
        "kind": "selector",
        "url": (
            "https://www.google.com/about/careers/applications/u/1/jobs/results"
            "?sort_by=date&location=United%20States&target_level=MID&q=%22Software%20Engineer%22"
            "&degree=BACHELORS&employment_type=FULL_TIME"
        ),
        "wait_until": "networkidle",
        "selectors": {
            "list_container": "ul.spHGqe > li > div > div > div:first-child > div",
            "title": "div:first-child > div > h3",
            "location": "div:nth-child(3) > p > span > span",
            "url": "div > div > a",
        },
        "filters": {"title_exclude": _EXCLUDE_SENIOR},
        "identity": {"pattern": r"/jobs/results/(\d+)-"},
    },
    {
        "company": "Discord",
        "kind": "selector",
        "url": "https://discord.com/careers",
        "wait_until": "networkidle",
        "selectors": {
            "list_container": "div.jobs-list > a",
            "title": "h3.heading-28px",
            "location": "p.paragraph-white-opacity50",
            "url": "href",
        },
        "filters": {
            "title_include": ["Software"],
            "title_exclude": _EXCLUDE_SENIOR,
            "location_include": ["San Francisco", "SF Bay Area", "Remote"],
        },
        "identity": {"strategy": "last_segment"},
    },
    {
        "company": "Riot Games",
        "kind": "selector",
        "url": "https://www.riotgames.com/en/work-with-us/jobs",
        "wait_until": "domcontentloaded",
        "selectors": {
            "list_container": "ul.job-list__body.list--unstyled > li > a",
            "title": "div.job-row__col--primary",
            "location": "div.job-row__col--secondary",
            "location_index": 2,
            "url": "href",
        },
        "filters": {
            "title_include": ["Software"],
            "title_exclude": _EXCLUDE_SENIOR,
            "location_include": ["Los Angeles", "Mercer Island", "SF Bay Area"],
        },
        "identity": {"strategy": "last_segment"},
    },
]
