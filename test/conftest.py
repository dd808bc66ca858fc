import os
import sys
from datetime import datetime

import pytest

# Add project root to sys.path to allow importing bromley_bins modules
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from bromley_bins.collection_dates import LONDON
from bromley_bins.data_fetchers.base_fetcher import PageFetcher

# Sunday 4th May 2025, mid-morning in London
TEST_NOW = LONDON.localize(datetime(2025, 5, 4, 10, 0))


class FakeClock:
    """Mutable stand-in for now_london()."""

    def __init__(self, now=TEST_NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


class FakePageFetcher(PageFetcher):
    """PageFetcher whose render() replays a scripted list of markup strings or exceptions."""

    def __init__(self, outcomes=None, attempts=3):
        super().__init__(attempts=attempts)
        self.outcomes = list(outcomes or [])
        self.calls = []

    async def render(self, url, ready_predicate):
        self.calls.append((url, ready_predicate))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def build_results_page(sections):
    """
    Builds markup shaped like the Bromley "Your collections" page.
    `sections` is a list of (heading, next_text, last_text); None omits that row.
    """
    parts = ['<html><body><h2 class="govuk-heading-l">Your collections</h2>']
    for heading, next_text, last_text in sections:
        parts.append('<div class="waste-service-grid">')
        parts.append(f'<h3 class="govuk-heading-m waste-service-name">\n  {heading}\n</h3>')
        parts.append('<dl class="govuk-summary-list">')
        parts.append('<div class="govuk-summary-list__row"><dt class="govuk-summary-list__key">Frequency</dt>'
                     '<dd class="govuk-summary-list__value">Every week</dd></div>')
        if next_text is not None:
            parts.append('<div class="govuk-summary-list__row"><dt class="govuk-summary-list__key">Next collection</dt>'
                         f'<dd class="govuk-summary-list__value">\n    {next_text}\n  </dd></div>')
        if last_text is not None:
            parts.append('<div class="govuk-summary-list__row"><dt class="govuk-summary-list__key">Last collection</dt>'
                         f'<dd class="govuk-summary-list__value">\n    {last_text}\n  </dd></div>')
        parts.append('</dl></div>')
    parts.append('</body></html>')
    return '\n'.join(parts)


STANDARD_SECTIONS = [
    ("Food Waste", "Monday, 5th May", "Monday, 28th April, at 7:05am"),
    ("Paper & Cardboard", "Tuesday, 6th May", "Tuesday, 22nd April, at 10:15am"),
]


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def results_page():
    return build_results_page(STANDARD_SECTIONS)


@pytest.fixture
def make_page_fetcher():
    def _make(*outcomes, attempts=3):
        return FakePageFetcher(outcomes, attempts=attempts)
    return _make


@pytest.fixture
def page_builder():
    return build_results_page
