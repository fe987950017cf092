"""
Unit tests for the template engine.
Tests the renderer registry, intent layouts, structured data and escaping.
"""

import json
from datetime import timedelta

import pytest
from bs4 import BeautifulSoup

from src.common.models import ALL_INTENTS, BusinessRecord, UpdateRecord
from src.page_engine.template_engine import (
    BusinessData,
    IntentData,
    PageData,
    SEOData,
    TemplateRenderer,
    UpdateData,
    build_structured_data,
    build_voice_faqs,
    get_renderer,
    register_renderer,
    registered_renderers,
    render_page,
    schema_type_for,
)
from src.page_engine.template_engine.helpers import availability, safe_url, script_safe_json
from src.page_engine.template_engine.schema import (
    build_breadcrumb_schema,
    build_business_schema,
    clean_schema,
)


@pytest.fixture
def renderer(site) -> TemplateRenderer:
    return TemplateRenderer(site=site)


def _page(business, update, intent="local", with_faqs=True, now=None) -> PageData:
    page = PageData(
        business=BusinessData.from_record(business),
        update=UpdateData.from_record(update) if update is not None else None,
        seo=SEOData(
            title="Half-Price Breakfast Today",
            description="Joe's Diner is offering 50% off all services today only.",
        ),
        intent=IntentData(
            type=intent,
            file_path=f"/us/wa/seattle/food-dining/{intent}-page",
            slug=f"{intent}-page",
            page_variant=f"{intent}-deal",
        ),
    )
    if with_faqs and now is not None:
        page.faqs = build_voice_faqs(page, now)
    return page


@pytest.fixture
def page(business, update, fixed_now) -> PageData:
    return _page(business, update, now=fixed_now)


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


def _graph(html: str) -> list[dict]:
    script = _soup(html).find("script", attrs={"type": "application/ld+json"})
    return json.loads(script.string)["@graph"]


# === Registry ===


class TestRegistry:
    def test_all_intents_registered(self):
        keys = registered_renderers()
        for intent in ALL_INTENTS:
            assert intent.value in keys
        assert "business" in keys

    def test_duplicate_registration_raises(self):
        with pytest.raises(ValueError, match="already registered"):
            register_renderer("local")(lambda page, context: ("local.html", {}))

    def test_unknown_key_raises(self, renderer, page, fixed_now):
        with pytest.raises(KeyError):
            get_renderer("billboard")
        with pytest.raises(KeyError):
            renderer.render("billboard", page, now=fixed_now)


# === Rendering ===


class TestRender:
    @pytest.mark.parametrize("intent,heading", [
        ("direct", "Joe's Diner: Half-Price Breakfast Today"),
        ("local", "Restaurant & Dining Near You in Seattle, WA"),
        ("category", "Professional Restaurant & Dining Services"),
        ("branded-local", "Joe's Diner - Seattle, WA"),
        ("service-urgent", "Immediate Restaurant & Dining Available"),
        ("competitive", "Restaurant & Dining Provider - Joe's Diner"),
    ])
    def test_headings(self, renderer, business, update, fixed_now, intent, heading):
        html = renderer.render(intent, _page(business, update, intent, now=fixed_now), now=fixed_now)
        assert _soup(html).h1.get_text(strip=True) == heading

    def test_pure_given_now(self, renderer, page, fixed_now):
        assert renderer.render("local", page, now=fixed_now) == renderer.render("local", page, now=fixed_now)

    def test_naive_now_is_site_local(self, renderer, page, fixed_now):
        naive = fixed_now.replace(tzinfo=None)
        assert renderer.render("local", page, now=naive) == renderer.render("local", page, now=fixed_now)

    def test_meta_tags(self, renderer, page, fixed_now):
        soup = _soup(renderer.render("local", page, now=fixed_now))
        assert soup.title.get_text() == "Half-Price Breakfast Today"
        assert soup.find("link", rel="canonical")["href"] == (
            "https://locraven.com/us/wa/seattle/food-dining/local-page"
        )
        assert soup.find("meta", attrs={"name": "geo.region"})["content"] == "US-WA"
        assert soup.find("meta", attrs={"name": "geo.placename"})["content"] == "Seattle"
        assert soup.find("meta", attrs={"name": "geo.position"})["content"] == "47.6145;-122.3278"
        assert soup.find("meta", attrs={"name": "ICBM"})["content"] == "47.6145, -122.3278"
        assert soup.find("meta", attrs={"name": "page-intent"})["content"] == "local"
        assert soup.find("meta", attrs={"property": "og:title"})["content"] == "Half-Price Breakfast Today"

    def test_availability_shown(self, renderer, page, fixed_now):
        soup = _soup(renderer.render("direct", page, now=fixed_now))
        assert soup.find(class_="availability").get_text(strip=True) == "Open now until 9:00 PM"

    def test_overnight_hours_carry_into_next_morning(self, renderer, page, fixed_now):
        page.business.structured_hours = {"mon": {"open": "18:00", "close": "02:00"}}
        tuesday_1am = fixed_now.replace(day=20, hour=1)

        soup = _soup(renderer.render("direct", page, now=tuesday_1am))

        assert soup.find(class_="availability").get_text(strip=True) == "Open now until 2:00 AM"

    def test_overnight_hours(self, page, fixed_now):
        page.business.structured_hours = {"mon": {"open": "18:00", "close": "02:00"}}
        monday_night = fixed_now.replace(hour=23)
        tuesday_1am = fixed_now.replace(day=20, hour=1)
        tuesday_3am = fixed_now.replace(day=20, hour=3)

        assert availability(page.business, monday_night).closes_at == "2:00 AM"
        assert availability(page.business, tuesday_1am).closes_at == "2:00 AM"
        assert availability(page.business, tuesday_3am).state == "unknown"
        assert availability(page.business, fixed_now).label == "Closed now"

    def test_category_lists_before_contact(self, renderer, business, update, fixed_now):
        html = renderer.render("category", _page(business, update, "category", now=fixed_now), now=fixed_now)
        assert html.index("credentials-specialties") < html.index('class="contact')
        assert "credentials-certifications" not in html

    def test_competitive_credentials_order(self, renderer, business, update, fixed_now):
        html = renderer.render("competitive", _page(business, update, "competitive", now=fixed_now), now=fixed_now)
        assert html.index("credentials-awards") < html.index("credentials-certifications")
        assert html.index("credentials-certifications") < html.index("credentials-specialties")
        assert html.index("credentials-specialties") < html.index('class="contact')

    def test_urgent_emphasizes_phone(self, renderer, business, update, fixed_now):
        soup = _soup(renderer.render("service-urgent", _page(business, update, "service-urgent", now=fixed_now), now=fixed_now))
        call = soup.find(class_="call-now")
        assert call.get_text(strip=True) == "Call now: (206) 555-0100"
        assert call.a["href"] == "tel:+12065550100"

    def test_branded_local_update_heading(self, renderer, business, update, fixed_now):
        soup = _soup(renderer.render("branded-local", _page(business, update, "branded-local", now=fixed_now), now=fixed_now))
        assert soup.find(class_="update").h2.get_text() == "Latest from Joe's Diner"

    def test_local_area_served(self, renderer, page, fixed_now):
        soup = _soup(renderer.render("local", page, now=fixed_now))
        assert "Capitol Hill and Downtown Seattle" in soup.find(class_="area-served").get_text()

    def test_business_profile(self, renderer, business, fixed_now):
        page = _page(business, None, "business", now=fixed_now)
        soup = _soup(renderer.render("business", page, now=fixed_now))
        assert soup.h1.get_text(strip=True) == "Joe's Diner"
        assert soup.find(class_="about") is not None
        assert soup.find(class_="update") is None

    def test_render_page_convenience(self, page, fixed_now):
        assert "<h1>" in render_page("direct", page, now=fixed_now)


class TestOnlyPopulatedFields:
    def test_minimal_business(self, renderer, minimal_business, fixed_now):
        page = PageData(
            business=BusinessData.from_record(minimal_business),
            seo=SEOData(title="Corner Shop"),
            intent=IntentData(type="direct", file_path="/us/or/portland/corner-shop/news", slug="news"),
        )
        html = renderer.render("direct", page, now=fixed_now)
        assert "None" not in html
        assert "Not specified" not in html
        soup = _soup(html)
        assert soup.find(class_="details") is None
        assert soup.find(class_="phone") is None
        assert soup.find("meta", attrs={"name": "description"}) is None
        assert soup.find("meta", attrs={"name": "geo.position"}) is None
        assert soup.find(class_="availability") is None


class TestFAQs:
    def test_faq_section_and_schema_present(self, renderer, page, fixed_now):
        html = renderer.render("direct", page, now=fixed_now)
        assert _soup(html).find(class_="faq") is not None
        assert "FAQPage" in [node["@type"] for node in _graph(html)]

    def test_no_faqs_no_faq_section_or_schema(self, renderer, business_data, update_data, fixed_now):
        business_data["business_faqs"] = []
        update_data["update_faqs"] = []
        page = _page(BusinessRecord(**business_data), UpdateRecord(**update_data), "direct", with_faqs=False)

        html = renderer.render("direct", page, now=fixed_now)

        assert _soup(html).find(class_="faq") is None
        assert [node["@type"] for node in _graph(html)] == ["Restaurant", "BreadcrumbList", "WebPage"]

    def test_duplicate_questions_merged(self, renderer, page, fixed_now):
        html = renderer.render("direct", page, now=fixed_now)
        questions = [h3.get_text() for h3 in _soup(html).find(class_="faq").find_all("h3")]
        assert len(questions) == len(set(questions))
        assert questions.count("Do you take reservations?") == 1

    def test_hours_answer_follows_render_time(self, renderer, page, fixed_now):
        # FAQs were built Monday at noon; the page is rendered the next Sunday
        sunday = fixed_now + timedelta(days=6)

        html = renderer.render("direct", page, now=sunday)

        assert "open now until" not in html.lower()
        soup = _soup(html)
        assert soup.find(class_="availability").get_text(strip=True) == "Closed today"
        faq_page = next(node for node in _graph(html) if node["@type"] == "FAQPage")
        answers = {q["name"]: q["acceptedAnswer"]["text"] for q in faq_page["mainEntity"]}
        assert answers["What are Joe's Diner's hours?"].startswith("Joe's Diner is currently closed.")
        # stored page data is untouched
        assert page.faqs[0].answer == "Joe's Diner is open now until 9:00 PM."


class TestEscaping:
    def test_user_text_is_escaped(self, renderer, page, fixed_now):
        page.update.content_text = "<script>alert('x')</script> & more"
        page.business.name = "Bob's <b>Bait</b>"

        html = renderer.render("direct", page, now=fixed_now)

        assert "<script>alert" not in html
        assert "&lt;script&gt;alert(" in html
        assert "<b>Bait</b>" not in html
        soup = _soup(html)
        assert soup.find(class_="update-content").get_text() == "<script>alert('x')</script> & more"
        assert len(soup.find_all("script")) == 1

    def test_json_ld_is_script_safe(self, renderer, page, fixed_now):
        page.seo.description = "</script><script>alert(1)</script>"

        html = renderer.render("direct", page, now=fixed_now)

        assert "</script><script>" not in html
        assert "\\u003c/script\\u003e" in html
        webpage = _graph(html)[-1]
        assert webpage["description"] == "</script><script>alert(1)</script>"

    def test_script_safe_json(self):
        text = str(script_safe_json({"a": "<b> & </b>"}))
        assert "<" not in text and ">" not in text and "&" not in text
        assert json.loads(text) == {"a": "<b> & </b>"}

    def test_unsafe_website_not_linked(self, renderer, page, fixed_now):
        page.business.website = "javascript:alert(1)"

        html = renderer.render("direct", page, now=fixed_now)

        assert "javascript:" not in html
        assert _soup(html).find(class_="website") is None
        assert _graph(html)[0]["url"].startswith("https://locraven.com/")

    @pytest.mark.parametrize("value,expected", [
        ("https://joesdiner.example", "https://joesdiner.example"),
        (" http://joesdiner.example/menu ", "http://joesdiner.example/menu"),
        ("javascript:alert(1)", ""),
        ("JavaScript:alert(1)", ""),
        ("data:text/html,hi", ""),
        ("joesdiner.example", ""),
        (None, ""),
    ])
    def test_safe_url(self, value, expected):
        assert safe_url(value) == expected


# === Structured data ===


class TestStructuredData:
    def test_graph_order(self, page, site, fixed_now):
        graph = build_structured_data(page, site, fixed_now)["@graph"]
        assert [node["@type"] for node in graph] == ["Restaurant", "FAQPage", "BreadcrumbList", "WebPage"]

    @pytest.mark.parametrize("category,schema_type", [
        ("food-dining", "Restaurant"),
        ("shopping", "Store"),
        ("beauty-grooming", "BeautySalon"),
        ("health-medical", "MedicalBusiness"),
        ("repairs-services", "AutoRepair"),
        ("professional-services", "ProfessionalService"),
        ("activities-entertainment", "EntertainmentBusiness"),
        ("education-training", "EducationalOrganization"),
        ("creative-digital", "LocalBusiness"),
        ("transportation-delivery", "MovingCompany"),
        ("something-else", "LocalBusiness"),
        (None, "LocalBusiness"),
    ])
    def test_schema_type_table(self, category, schema_type):
        assert schema_type_for(category) == schema_type

    def test_business_schema_fields(self, page, site):
        schema = build_business_schema(page, site)
        assert schema["address"]["addressLocality"] == "Seattle"
        assert schema["geo"] == {"@type": "GeoCoordinates", "latitude": 47.6145, "longitude": -122.3278}
        assert len(schema["openingHoursSpecification"]) == 6
        assert schema["openingHoursSpecification"][0] == {
            "@type": "OpeningHoursSpecification", "dayOfWeek": "Monday", "opens": "07:00", "closes": "21:00",
        }
        assert schema["aggregateRating"]["ratingValue"] == 4.6
        assert schema["makesOffer"]["description"] == "Half price on all menu items, dine-in only."
        assert schema["award"] == ["Best Breakfast 2024"]
        assert schema["foundingDate"] == "1998"
        assert schema["sameAs"] == ["https://instagram.com/joesdiner"]

    def test_empty_values_pruned(self, minimal_business, site):
        page = PageData(business=BusinessData.from_record(minimal_business))
        schema = build_business_schema(page, site)
        assert "geo" not in schema
        assert "telephone" not in schema
        assert "aggregateRating" not in schema
        assert set(schema["address"]) == {"@type", "addressLocality", "addressRegion"}

    def test_clean_schema(self):
        assert clean_schema({"a": None, "b": "", "c": [], "d": {"e": None}, "f": 0, "g": [None, "x"]}) == {
            "f": 0, "g": ["x"],
        }

    def test_breadcrumbs(self, page, site):
        crumbs = build_breadcrumb_schema(page, site)["itemListElement"]
        assert [c["name"] for c in crumbs] == ["Home", "WA", "Seattle", "Restaurant & Dining", "Joe's Diner"]
        assert [c["position"] for c in crumbs] == [1, 2, 3, 4, 5]
        assert crumbs[-1]["item"] == "https://locraven.com/us/wa/seattle/joes-diner"

    def test_webpage_dates(self, page, site, fixed_now):
        webpage = build_structured_data(page, site, fixed_now)["@graph"][-1]
        assert webpage["datePublished"] == "2026-10-19T09:00:00-07:00"
        assert webpage["dateModified"] == fixed_now.isoformat()
        assert webpage["speakable"]["cssSelector"][0] == ".speakable-summary"
