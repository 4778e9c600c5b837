import pytest

from app.services.verification.source_verifier import sanity_check
from app.services.verification.url_sanity import is_likely_hallucinated, is_private_target


class TestHallucinationHeuristics:
    def test_ordinary_article_urls_pass(self):
        assert not is_likely_hallucinated("https://www.bbc.com/news/world-12345678")
        assert not is_likely_hallucinated("https://apnews.com/article/election-results-2024")
        assert not is_likely_hallucinated("https://example.com/")

    def test_too_many_path_segments(self):
        url = "https://example.com/" + "/".join(["abc"] * 16)
        assert is_likely_hallucinated(url)

    def test_short_segments_are_not_counted(self):
        url = "https://example.com/" + "/".join(["ab"] * 30)
        assert not is_likely_hallucinated(url)

    def test_long_hyphenated_slug_with_trailing_number(self):
        url = "https://example.com/this-is-a-very-long-made-up-article-slug-about-news-2024"
        assert is_likely_hallucinated(url)
        assert is_likely_hallucinated(url + ".html")

    def test_long_numeric_run_flagged_on_news_sites(self):
        assert is_likely_hallucinated("https://example.com/article/12345678901234")

    def test_long_numeric_run_allowed_on_id_bearing_platforms(self):
        assert not is_likely_hallucinated("https://twitter.com/user/status/1234567890123456789")
        assert not is_likely_hallucinated("https://www.youtube.com/watch?v=abc&t=12345678901234")

    def test_twelve_digit_run_is_still_fine(self):
        assert not is_likely_hallucinated("https://example.com/story/123456789012")


class TestPrivateTargets:
    @pytest.mark.parametrize(
        "host",
        [
            "127.0.0.1",
            "10.1.2.3",
            "172.16.5.4",
            "172.31.255.255",
            "192.168.0.1",
            "169.254.169.254",
            "0.0.0.0",
            "::1",
            "[::1]",
            "fe80::1",
            "fd00::1",
            "::ffff:127.0.0.1",
            "localhost",
            "LOCALHOST.",
            "api.localhost",
            "",
        ],
    )
    def test_private_hosts(self, host):
        assert is_private_target(host)

    @pytest.mark.parametrize("host", ["8.8.8.8", "172.32.0.1", "example.com", "2606:4700::1111", "10.example.com"])
    def test_public_hosts(self, host):
        assert not is_private_target(host)


class TestSanityCheck:
    def test_rejections(self):
        assert sanity_check(None).value == "no-url"
        assert sanity_check("").value == "no-url"
        assert sanity_check("SOURCE_UNAVAILABLE").value == "source-unavailable"
        assert sanity_check("ftp://example.com/file").value == "invalid-url"
        assert sanity_check("not a url").value == "invalid-url"
        assert sanity_check("http://192.168.1.1/admin").value == "private-ip-blocked"
        assert sanity_check("http://localhost:8080/").value == "private-ip-blocked"

    def test_accepts_public_url(self):
        assert sanity_check("https://example.com/page") is None
