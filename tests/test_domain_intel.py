from url_threat_scoring.domain.url.tables import build_tables
from url_threat_scoring.tools.intel.domain_intel import (
    DomainIntelPolicy,
    check_brand_squat,
    check_typosquat,
    has_excessive_hyphens,
    has_excessive_subdomains,
    has_high_entropy,
    impersonated_brand,
    normalize_label,
    shannon_entropy,
    typosquat_target,
)


def test_normalize_label_undoes_digit_lookalikes():
    assert normalize_label("g00gle") == "google"
    assert normalize_label("paypa1") == "paypal"
    assert normalize_label("micro-soft") == "microsoft"


def test_shannon_entropy_bounds():
    assert shannon_entropy("") == 0.0
    assert shannon_entropy("aaaa") == 0.0
    assert round(shannon_entropy("abcd"), 6) == 2.0


def test_brand_as_label_on_foreign_domain_is_squat():
    assert impersonated_brand("paypal-secure-login.com") == "paypal"
    assert impersonated_brand("paypal.account-check.net") == "paypal"
    assert check_brand_squat("login.paypal.com") is True
    assert check_brand_squat("paypal.co.uk") is True
    assert check_brand_squat("paypal.edu.tk") is False


def test_brand_inside_a_longer_word_is_not_squat():
    assert check_brand_squat("targeted-ads.com") is True
    assert check_brand_squat("upsilon.org") is True


def test_typosquat_lookalikes_and_single_edits():
    assert typosquat_target("g00gle.com") == "google"
    assert typosquat_target("amaz0n.com") == "amazon"
    assert typosquat_target("paypai.com") == "paypal"
    assert typosquat_target("www.micros0ft.com") == "microsoft"


def test_typosquat_skips_canonical_and_regional_domains():
    assert check_typosquat("google.com") is True
    assert check_typosquat("mail.google.com") is True
    assert check_typosquat("google.co.uk") is True
    assert check_typosquat("example.com") is True


def test_short_brands_only_match_exactly():
    # "uber" and "dhl" are too short for edit distance.
    assert check_typosquat("ubes.com") is True
    assert check_typosquat("ub3r.com") is False
    assert check_typosquat("d-h-l.com") is True


def test_custom_tables_drive_brand_checks():
    tables = build_tables(brands={"contoso": "contoso.com"})
    assert check_brand_squat("contoso-login.net", tables) is False
    assert check_brand_squat("paypal-login.net", tables) is True
    assert check_typosquat("c0ntoso.com", tables) is False


def test_high_entropy_labels():
    assert has_high_entropy("xk7qz9wv2mp4rt8.com") is True
    assert has_high_entropy("paypal-secure-login.com") is False
    # TLD labels are never measured.
    assert has_high_entropy("example.abcdefghijklmnop") is False


def test_hyphen_and_subdomain_limits():
    assert has_excessive_hyphens("my-very-long-name.com") is True
    assert has_excessive_hyphens("paypal-secure-login.com") is False
    assert has_excessive_subdomains("a.b.c.d.example.com") is True
    assert has_excessive_subdomains("www.example.com") is False
    assert has_excessive_subdomains("a.b.example.com", DomainIntelPolicy(subdomain_label_limit=4)) is True
