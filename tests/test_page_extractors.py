"""Tests for the rendered vacancy page strategies."""

from datetime import datetime

from bs4 import BeautifulSoup

from vacancy_api.config import DEFAULT_STORE_NAME
from vacancy_api.infrastructure.models import VacancyStatus
from vacancy_api.services.page_extractors import (
    availability_from_rows,
    availability_from_selectors,
    clock_from_selectors,
    extract_availability,
    extract_last_updated,
    extract_store_name,
    first_match,
    name_from_scripts,
    name_from_selectors,
    name_from_table,
    name_from_title,
    normalize_vacancy_page,
)

NOW = datetime(2025, 1, 15, 23, 7, 30)


def soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


class TestFirstMatch:
    def test_returns_first_non_none(self):
        calls = []

        def miss(_):
            calls.append("miss")
            return None

        def hit(_):
            calls.append("hit")
            return "value"

        def never(_):
            calls.append("never")
            return "other"

        assert first_match((miss, hit, never), soup("")) == "value"
        assert calls == ["miss", "hit"]

    def test_all_miss(self):
        assert first_match((lambda _: None,), soup("")) is None


class TestStoreName:
    def test_table_lookup(self):
        strategy = name_from_table({"20333": "Sagamihara"}, "20333")
        assert strategy(soup("")) == "Sagamihara"

    def test_table_ignores_placeholder(self):
        strategy = name_from_table({"20333": DEFAULT_STORE_NAME}, "20333")
        assert strategy(soup("")) is None

    def test_script_snake_case(self):
        doc = soup('<script>var store_name = "快活CLUB 新宿店";</script>')
        assert name_from_scripts(doc) == "快活CLUB 新宿店"

    def test_script_camel_case(self):
        doc = soup("<script>window.cfg = { storeName: 'Shibuya' };</script>")
        assert name_from_scripts(doc) == "Shibuya"

    def test_script_placeholder_is_skipped(self):
        doc = soup(f'<script>store_name = "{DEFAULT_STORE_NAME}";</script>')
        assert name_from_scripts(doc) is None

    def test_selector_skips_page_heading(self):
        doc = soup('<h1>空席照会</h1><div class="page-title">Ikebukuro</div>')
        assert name_from_selectors(doc) == "Ikebukuro"

    def test_selector_order(self):
        doc = soup('<h1>Heading</h1><span class="shop-name">Shop</span>')
        assert name_from_selectors(doc) == "Shop"

    def test_title_prefix(self):
        doc = soup("<title>Umeda｜空席情報</title>")
        assert name_from_title(doc) == "Umeda"

    def test_title_without_separator(self):
        assert name_from_title(soup("<title>Umeda</title>")) is None

    def test_cascade_falls_through_to_title(self):
        doc = soup("<html><head><title>Namba | 空席</title></head><body></body></html>")
        assert extract_store_name(doc, "99999", {}) == "Namba"

    def test_cascade_prefers_table(self):
        doc = soup('<script>store_name = "Script";</script>')
        assert extract_store_name(doc, "20333", {"20333": "Table"}) == "Table"

    def test_nothing_found(self):
        assert extract_store_name(soup("<p>nothing</p>"), "99999", {}) is None


class TestAvailability:
    def test_selector_available_of_total(self):
        doc = soup('<div class="dart-vacancy">空き 2 / 8台</div>')
        availability = availability_from_selectors(doc)
        assert (availability.available, availability.total) == (2, 8)
        assert availability.status == VacancyStatus.CROWDED

    def test_selector_with_total_marker(self):
        doc = soup('<div data-type="dart">5台 (全8台)</div>')
        availability = availability_from_selectors(doc)
        assert (availability.available, availability.total) == (5, 8)
        assert availability.status == VacancyStatus.VACANT

    def test_selector_single_count(self):
        doc = soup('<p id="dartVacancy">0台</p>')
        availability = availability_from_selectors(doc)
        assert (availability.available, availability.total) == (0, 0)
        assert availability.status == VacancyStatus.UNKNOWN

    def test_selector_without_count(self):
        assert availability_from_selectors(soup('<div class="dart-vacancy">-</div>')) is None

    def test_row_scan(self):
        doc = soup("<table><tr><td>ビリヤード</td><td>1台</td></tr><tr><td>ダーツ</td><td>4台</td></tr></table>")
        availability = availability_from_rows(doc)
        assert (availability.available, availability.total) == (4, 4)
        assert availability.status == VacancyStatus.VACANT

    def test_row_scan_english_keyword(self):
        doc = soup("<ul><li>DARTS 0台</li></ul>")
        availability = availability_from_rows(doc)
        assert availability.available == 0
        assert availability.status == VacancyStatus.UNKNOWN

    def test_defaults(self):
        availability = extract_availability(soup("<p>no data</p>"))
        assert (availability.available, availability.total) == (0, 0)
        assert availability.status == VacancyStatus.UNKNOWN


class TestLastUpdated:
    def test_clock(self):
        doc = soup('<span class="update-time">10:30更新</span>')
        assert extract_last_updated(doc, NOW) == datetime(2025, 1, 15, 10, 30)

    def test_invalid_clock_is_skipped(self):
        doc = soup('<span class="last-updated">99:99</span><span class="vacancy-time">更新: 9:05</span>')
        assert clock_from_selectors(doc).hour == 9

    def test_missing_falls_back_to_now(self):
        assert extract_last_updated(soup(""), NOW) == NOW


def test_normalize_vacancy_page():
    html = """
    <html>
      <head><title>快活CLUB 空席</title></head>
      <body>
        <script>var storeName = "Machida";</script>
        <div class="dart-vacancy">3 / 6台</div>
        <span class="last-updated">23:02</span>
      </body>
    </html>
    """
    record = normalize_vacancy_page(html, "12345", {}, now=lambda: NOW)

    assert record.store_code == "12345"
    assert record.store_name == "Machida"
    assert record.availability.available == 3
    assert record.availability.total == 6
    assert record.availability.status == VacancyStatus.VACANT
    assert record.upstream_updated_at == datetime(2025, 1, 15, 23, 2)
    assert record.fetched_at == NOW


def test_normalize_empty_page_is_well_formed():
    record = normalize_vacancy_page("", "12345", {}, now=lambda: NOW)
    assert record.store_name == DEFAULT_STORE_NAME
    assert record.availability.status == VacancyStatus.UNKNOWN
    assert record.upstream_updated_at == NOW
