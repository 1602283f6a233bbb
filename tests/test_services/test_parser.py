"""Tests for parser service — shared HTML/text helpers."""
import pytest

from propfeed.services.parser_service import (
    card_link,
    classify_property_type,
    clean_text,
    collect_images,
    extract_area,
    extract_features,
    extract_price,
    extract_rooms,
    find_contact,
    find_listing_cards,
    first_text,
    normalize_city,
    parse_html,
    parse_next_page,
)


class TestCleanText:
    def test_collapses_whitespace(self):
        assert clean_text("  Villa\n\n  in   Riyadh \t") == "Villa in Riyadh"

    def test_none_is_empty(self):
        assert clean_text(None) == ""


class TestExtractPrice:
    def test_sale_price_with_commas(self):
        price = extract_price("1,200,000 SAR")
        assert price.amount == 1_200_000
        assert price.currency == "SAR"
        assert price.period == "sale"

    def test_monthly_rent(self):
        assert extract_price("4,500 SAR / month").period == "monthly"

    def test_yearly_rent_arabic(self):
        price = extract_price("45,000 ريال / سنة")
        assert price.amount == 45_000
        assert price.period == "yearly"

    def test_dotted_thousands(self):
        assert extract_price("1.200.000 SAR").amount == 1_200_000

    def test_no_number(self):
        assert extract_price("Price on request").amount == 0


class TestExtractArea:
    def test_sqm_default(self):
        size = extract_area("250 m²")
        assert size.area == 250
        assert size.unit == "sqm"

    def test_sqft(self):
        size = extract_area("1,500 sqft")
        assert size.area == 1_500
        assert size.unit == "sqft"


class TestExtractRooms:
    def test_english(self):
        rooms = extract_rooms("3 Bedrooms, 2 Bathrooms")
        assert rooms.bedrooms == 3
        assert rooms.bathrooms == 2

    def test_arabic(self):
        rooms = extract_rooms("4 غرف نوم و 3 حمام")
        assert rooms.bedrooms == 4
        assert rooms.bathrooms == 3

    def test_missing(self):
        rooms = extract_rooms("Land plot")
        assert rooms.bedrooms is None
        assert rooms.bathrooms is None


class TestClassifyPropertyType:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Luxury Villa for sale", "villa"),
            ("فيلا دوبلكس", "villa"),
            ("Office space in KAFD", "office"),
            ("أرض سكنية", "land"),
            ("Commercial showroom", "commercial"),
            ("2BR flat near metro", "apartment"),
        ],
    )
    def test_text_rules(self, text, expected):
        assert classify_property_type(text) == expected

    def test_url_checked_first(self):
        url_rules = (("villa", ("villa",)),)
        assert classify_property_type("Office space", url="https://x.sa/villas/riyadh", url_rules=url_rules) == "villa"


class TestExtractFeatures:
    def test_bilingual_keywords(self):
        table = (("Parking", ("parking", "موقف")), ("Swimming Pool", ("pool", "مسبح")), ("Gym", ("gym",)))
        assert extract_features("Private PARKING and مسبح", table) == ["Parking", "Swimming Pool"]


class TestNormalizeCity:
    def test_arabic_to_english(self):
        assert normalize_city("حي النرجس، الرياض") == "Riyadh"

    def test_unknown(self):
        assert normalize_city("Abha") is None


class TestFindContact:
    def test_phone_and_email(self):
        contact = find_contact("Call +966 512345678 or mail agent@broker.sa", agent="Broker")
        assert contact.phone == "+966 512345678"
        assert contact.email == "agent@broker.sa"
        assert contact.agent == "Broker"

    def test_nothing_found(self):
        assert find_contact("No contact details") is None


class TestImagesAndLinks:
    def test_collect_images_absolute_and_filtered(self):
        soup = parse_html(
            '<div><img src="/a.jpg"><img data-src="/b.jpg"><img src="/logo.png">'
            '<img src="data:image/png;base64,xx"><img src="/a.jpg"></div>'
        )
        images = collect_images(soup, "https://example.sa", ("logo",))
        assert images == ["https://example.sa/a.jpg", "https://example.sa/b.jpg"]

    def test_card_link(self):
        card = parse_html('<div><h2>T</h2><a href="/property/9">View</a></div>').div
        assert card_link(card, "https://example.sa", 'a[href*="/property/"]') == "https://example.sa/property/9"

    def test_first_text_skips_empty(self):
        soup = parse_html('<div><span class="price"> </span><span class="amount">100 SAR</span></div>')
        assert first_text(soup, (".price", ".amount")) == "100 SAR"

    def test_first_text_tolerates_bad_selector(self):
        soup = parse_html('<div><h2>Title</h2></div>')
        assert first_text(soup, ("[[bad", "h2")) == "Title"


class TestFindListingCards:
    def test_selector_match(self):
        soup = parse_html('<div class="card">A</div><div class="card">B</div>')
        assert len(find_listing_cards(soup, (".missing", ".card"), "a")) == 2

    def test_anchor_heuristic(self):
        soup = parse_html(
            "<section>"
            '<article><h3>One</h3><a href="/ad/1">x</a><a href="/ad/1#photos">y</a></article>'
            '<article><h3>Two</h3><a href="/ad/2">x</a></article>'
            "</section>"
        )
        cards = find_listing_cards(soup, (".card",), 'a[href*="/ad/"]')
        assert [card.h3.get_text() for card in cards] == ["One", "Two"]


class TestParseNextPage:
    def test_finds_next_page(self):
        soup = parse_html('<a rel="next" href="?page=2">Next</a>')
        assert parse_next_page(soup, "https://example.sa/list", ('a[rel="next"]',)) == "https://example.sa/list?page=2"

    def test_disabled_next(self):
        soup = parse_html('<a class="next-page disabled" href="?page=3">Next</a>')
        assert parse_next_page(soup, "https://example.sa/list", ("a.next-page",)) is None

    def test_no_next(self):
        assert parse_next_page(parse_html("<p>end</p>"), "https://example.sa", ('a[rel="next"]',)) is None
