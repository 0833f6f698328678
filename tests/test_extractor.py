import pytest

from core.extractor import DataExtractor

TX_HASH = "0x" + "ab" * 32


class TestTransactionId:
    @pytest.mark.parametrize("body", [
        TX_HASH,
        f'"{TX_HASH}"',
        f"  {TX_HASH}\n",
        TX_HASH.upper().replace("0X", "0x"),
    ])
    def test_well_formed(self, body):
        assert DataExtractor.extract_transaction_id(body) == body.strip().strip('"')

    @pytest.mark.parametrize("body", [
        "",
        "0x1234",
        TX_HASH + "ff",
        TX_HASH[2:],
        f'{{"tx": "{TX_HASH}"}}',
        "0x" + "zz" * 32,
    ])
    def test_malformed(self, body):
        assert DataExtractor.extract_transaction_id(body) is None
        assert not DataExtractor.is_well_formed_tx_hash(body)

    def test_none_body(self):
        assert DataExtractor.extract_transaction_id(None) is None


class TestRetryAfter:
    def test_header_wins(self):
        assert DataExtractor.parse_retry_after_seconds(
            "Try again in 10 seconds", retry_after_header="86000",
        ) == 86000.0

    def test_non_numeric_header_falls_back_to_body(self):
        assert DataExtractor.parse_retry_after_seconds(
            "Try again in 10 seconds",
            retry_after_header="Wed, 21 Oct 2015 07:28:00 GMT",
        ) == 10.0

    def test_hint_preferred_over_first_number(self):
        assert DataExtractor.parse_retry_after_seconds(
            "Limit 2 per day. Try again in 3600.5 seconds",
        ) == 3600.5

    def test_first_number_fallback(self):
        assert DataExtractor.parse_retry_after_seconds("wait 45s") == 45.0

    def test_no_hint(self):
        assert DataExtractor.parse_retry_after_seconds("Too many requests") is None
        assert DataExtractor.parse_retry_after_seconds("") is None
        assert DataExtractor.parse_retry_after_seconds(None) is None


class TestContainsText:
    def test_case_insensitive(self):
        assert DataExtractor.contains_text("Missing field `address`", "missing")
        assert not DataExtractor.contains_text("ok", "missing")
        assert not DataExtractor.contains_text(None, "missing")


class TestFindErrorText:
    def test_visible_text_matches(self):
        html = '<div class="error"><span>Invalid address format</span></div>'
        assert DataExtractor.find_error_text(html, "Invalid address") == (
            "Invalid address format"
        )

    def test_case_insensitive(self):
        assert DataExtractor.find_error_text(
            "<p>invalid ADDRESS</p>", "Invalid address",
        ) == "invalid ADDRESS"

    def test_attribute_values_ignored(self):
        html = '<input placeholder="Invalid address"><p>ok</p>'
        assert DataExtractor.find_error_text(html, "Invalid address") is None

    def test_attribute_skipped_but_later_text_found(self):
        html = (
            '<input aria-label="Invalid address">'
            "<p>Invalid address: checksum</p>"
        )
        assert DataExtractor.find_error_text(html, "Invalid address") == (
            "Invalid address: checksum"
        )

    def test_absent(self):
        assert DataExtractor.find_error_text("<p>Sent!</p>", "Invalid") is None
