from themesite.theme import DEFAULT_THEME, build_theme_from_branding, sanitize_css_var_map, theme_css_vars
from themesite.utils import (
    build_share_url,
    format_date,
    normalise_id,
    normalized_ip,
    sanitize_html,
    summarise_text,
)


def test_theme_defaults_without_branding():
    theme = build_theme_from_branding(None)

    assert theme["site_name"] == DEFAULT_THEME["site_name"]
    assert theme["primary_color"] == DEFAULT_THEME["primary_color"]
    assert theme["logo_layout"] == "inline"


def test_theme_secondary_falls_back_to_primary():
    theme = build_theme_from_branding({"name": "Acme", "primaryColor": "#abc"}, "https://acme.test", "FullWidth")

    assert theme["brand_name"] == "Acme"
    assert theme["site_name"] == "Acme"
    assert theme["primary_color"] == "#ABC"
    assert theme["secondary_color"] == "#ABC"
    assert theme["site_url"] == "https://acme.test"
    assert theme["logo_layout"] == "fullwidth"


def test_theme_ignores_invalid_colors_and_layout():
    theme = build_theme_from_branding({"primaryColor": "red; }", "secondaryColor": "#123456"}, logo_layout="huge")

    assert theme["primary_color"] == DEFAULT_THEME["primary_color"]
    assert theme["secondary_color"] == "#123456"
    assert theme["logo_layout"] == "inline"


def test_css_vars_are_sanitised():
    assert sanitize_css_var_map({"--ok": "#fff", "bad": "#000", "--evil": "red;}", "--empty": ""}) == {"--ok": "#fff"}
    css_vars = theme_css_vars(build_theme_from_branding({"primaryColor": "#112233"}))
    assert css_vars["--theme-primary"] == "#112233"
    assert css_vars["--theme-border"] == DEFAULT_THEME["border_color"]


def test_normalise_id_variants():
    assert normalise_id({"_id": "abc"}) == "abc"
    assert normalise_id({"id": 7}) == "7"
    assert normalise_id("") is None
    assert normalise_id(True) is None


def test_summarise_and_format_helpers():
    assert summarise_text("<p>Fish &amp; chips</p>") == "Fish & chips"
    assert summarise_text("word " * 100, 20).endswith("…")
    assert format_date("2024-03-05T00:00:00Z") == "5 March 2024"
    assert format_date("yesterday") == "yesterday"
    assert format_date(None) is None


def test_sanitize_html_strips_scripts_and_unsafe_links():
    cleaned = sanitize_html('<p onclick="x()">Hi</p><script>alert(1)</script><a href="javascript:x()">y</a>')

    assert "onclick" not in cleaned
    assert "<script>" not in cleaned
    assert "javascript:" not in cleaned
    assert "<p>Hi</p>" in cleaned


def test_share_urls_encode_title_and_url():
    url = "https://site.test/content/a b"

    assert build_share_url("facebook", "T", url) == "https://www.facebook.com/sharer/sharer.php?u=https%3A%2F%2Fsite.test%2Fcontent%2Fa%20b"
    assert "text=Hello%20world" in build_share_url("x", "Hello world", url)
    assert build_share_url("whatsapp", "Hi", "https://s.test").endswith("Hi%20https%3A%2F%2Fs.test")
    assert build_share_url("unknown", "Hi", url) == url


def test_normalized_ip():
    assert normalized_ip("10.0.0.1, 172.16.0.1") == "10.0.0.1"
    assert normalized_ip("not-an-ip") == ""
    assert normalized_ip(None) == ""
