"""Tests for the content detectors."""

import pytest

from clipsense.detectors import (
    Base64Detector,
    CodeDetector,
    ColorDetector,
    CoordinatesDetector,
    CryptoAddressDetector,
    DateDetector,
    EmailDetector,
    FilePathDetector,
    IPAddressDetector,
    JSONDetector,
    MarkdownDetector,
    PhoneDetector,
    SQLDetector,
    URLDetector,
    UUIDDetector,
    XMLDetector,
    default_detectors,
    hsl_to_rgb,
    rgb_to_hex,
    rgb_to_hsl,
)


class TestDefaultDetectors:
    def test_catalog_order(self):
        types = [d.type for d in default_detectors()]
        assert types == [
            "url",
            "email",
            "phone",
            "color",
            "json",
            "xml",
            "code",
            "ip_address",
            "crypto_address",
            "file_path",
            "coordinates",
            "date",
            "uuid",
            "base64",
            "markdown",
            "sql",
        ]

    def test_fresh_instances(self):
        assert default_detectors()[0] is not default_detectors()[0]


class TestURLDetector:
    def test_full_url(self):
        d = URLDetector()
        text = "https://example.com/path?x=1"
        assert d.detect(text)
        result = d.analyze(text)
        assert result.confidence == 0.9
        assert result.metadata == {
            "domain": "example.com",
            "protocol": "https:",
            "port": None,
            "path": "/path",
            "query": "?x=1",
            "hash": "",
        }
        assert result.preview == "example.com"

    def test_without_scheme(self):
        d = URLDetector()
        assert d.detect("example.com")
        result = d.analyze("example.com")
        assert result.metadata["protocol"] == "https:"
        assert result.metadata["path"] == "/"

    def test_port_and_fragment(self):
        result = URLDetector().analyze("http://localhost:3000/api#top")
        assert result.metadata["port"] == 3000
        assert result.metadata["hash"] == "#top"
        assert result.metadata["domain"] == "localhost"

    def test_bare_host_without_scheme_rejected(self):
        d = URLDetector()
        assert not d.detect("localhost:8080")
        assert not d.detect("192.168.1.1")

    def test_not_url(self):
        d = URLDetector()
        assert not d.detect("not a url")
        assert not d.detect("user@example.com")

    def test_suggestions(self):
        d = URLDetector()
        text = "https://example.com/path"
        suggestions = d.get_suggestions(text, d.analyze(text))
        assert [s.action_name for s in suggestions] == ["openUrl", "copyText"]
        assert suggestions[0].params == {"url": text}
        assert suggestions[1].params == {"text": "example.com"}
        assert suggestions[0].id != suggestions[1].id


class TestEmailDetector:
    def test_valid(self):
        d = EmailDetector()
        assert d.detect("john.doe@example.com")
        result = d.analyze("john.doe@example.com")
        assert result.confidence == 0.95
        assert result.metadata == {"localPart": "john.doe", "domain": "example.com", "isValid": True}

    def test_invalid(self):
        d = EmailDetector()
        assert not d.detect("john..doe@example.com")
        assert not d.detect(".john@example.com")
        assert not d.detect("john@localhost")
        assert not d.detect("not an email")

    def test_suggestions(self):
        d = EmailDetector()
        suggestions = d.get_suggestions("a@b.com", d.analyze("a@b.com"))
        assert suggestions[0].action_name == "composeEmail"
        assert suggestions[0].params == {"email": "a@b.com"}


class TestPhoneDetector:
    def test_international(self):
        d = PhoneDetector()
        assert d.detect("+1 (555) 123-4567")
        result = d.analyze("+1 (555) 123-4567")
        assert result.confidence == 0.8
        assert result.metadata["cleaned"] == "+15551234567"
        assert result.metadata["isInternational"] is True

    def test_too_short(self):
        assert not PhoneDetector().detect("12345")

    def test_letters_rejected(self):
        assert not PhoneDetector().detect("555-CALL-NOW")

    def test_suggestions(self):
        d = PhoneDetector()
        suggestions = d.get_suggestions("555 123 4567", d.analyze("555 123 4567"))
        assert [s.action_name for s in suggestions] == ["callPhone", "sendSMS"]
        assert suggestions[0].params == {"phone": "5551234567"}


class TestColorConversions:
    def test_rgb_to_hex(self):
        assert rgb_to_hex(255, 0, 128) == "#ff0080"

    def test_rgb_to_hsl(self):
        assert rgb_to_hsl(255, 0, 0) == (0, 100, 50)
        assert rgb_to_hsl(0, 255, 0) == (120, 100, 50)
        assert rgb_to_hsl(255, 255, 255) == (0, 0, 100)

    def test_hsl_to_rgb(self):
        assert hsl_to_rgb(0, 100, 50) == (255, 0, 0)
        assert hsl_to_rgb(240, 100, 50) == (0, 0, 255)
        assert hsl_to_rgb(0, 0, 0) == (0, 0, 0)


class TestColorDetector:
    def test_hex(self):
        d = ColorDetector()
        assert d.detect("#ff0000")
        result = d.analyze("#ff0000")
        assert result.confidence == 0.95
        assert result.metadata["rgb"] == {"r": 255, "g": 0, "b": 0}
        assert result.metadata["hex"] == "#ff0000"
        assert result.metadata["hsl"] == "hsl(0, 100%, 50%)"

    def test_short_hex(self):
        assert ColorDetector().analyze("#abc").metadata["hex"] == "#aabbcc"

    def test_rgb(self):
        result = ColorDetector().analyze("rgb(0, 128, 255)")
        assert result.metadata["hex"] == "#0080ff"
        assert result.metadata["rgb"] == {"r": 0, "g": 128, "b": 255}

    def test_hsl(self):
        result = ColorDetector().analyze("hsl(120, 100%, 50%)")
        assert result.metadata["rgb"] == {"r": 0, "g": 255, "b": 0}
        assert result.metadata["hex"] == "#00ff00"

    def test_not_color(self):
        d = ColorDetector()
        assert not d.detect("#ggg")
        assert not d.detect("red")
        assert not d.detect("#ff00")

    def test_suggestions(self):
        d = ColorDetector()
        suggestions = d.get_suggestions("#ff0000", d.analyze("#ff0000"))
        assert [s.label for s in suggestions] == [
            "Convert to RGB",
            "Convert to HEX",
            "Convert to HSL",
            "Generate Palette",
        ]
        assert suggestions[0].params == {"text": "rgb(255, 0, 0)"}


class TestJSONDetector:
    def test_object(self):
        d = JSONDetector()
        assert d.detect('{"a":1,"b":2}')
        result = d.analyze('{"a":1,"b":2}')
        assert result.confidence == 0.9
        assert result.metadata == {"isValid": True, "isArray": False, "keys": ["a", "b"], "length": 2}
        assert result.preview == "Object (2 keys)"

    def test_array(self):
        result = JSONDetector().analyze("[1, 2, 3]")
        assert result.metadata["isArray"] is True
        assert result.metadata["length"] == 3
        assert result.metadata["keys"] == []

    def test_scalars_rejected(self):
        d = JSONDetector()
        assert not d.detect('"just a string"')
        assert not d.detect("42")
        assert not d.detect("true")

    def test_malformed(self):
        assert not JSONDetector().detect('{"a": }')

    def test_suggestions(self):
        d = JSONDetector()
        suggestions = d.get_suggestions("{}", d.analyze("{}"))
        assert [s.action_name for s in suggestions] == ["formatJson", "validateJson", "minifyJson"]


class TestXMLDetector:
    def test_well_formed(self):
        d = XMLDetector()
        text = "<note><to>Tove</to></note>"
        assert d.detect(text)
        result = d.analyze(text)
        assert result.confidence == 0.85
        assert result.metadata == {"isWellFormed": True, "rootTag": "note", "childCount": 1}

    def test_tag_soup(self):
        result = XMLDetector().analyze("<div><br></div>")
        assert result.confidence == 0.6
        assert result.metadata["isWellFormed"] is False

    def test_not_markup(self):
        assert not XMLDetector().detect("a < b > c")

    def test_suggestions_only_when_well_formed(self):
        d = XMLDetector()
        assert d.get_suggestions("<div><br></div>", d.analyze("<div><br></div>")) == []
        assert len(d.get_suggestions("<a/>", d.analyze("<a/>"))) == 1


class TestCodeDetector:
    def test_python(self):
        d = CodeDetector()
        text = "def foo(x):\n    return x"
        assert d.detect(text)
        result = d.analyze(text)
        assert result.confidence == 0.8
        assert result.metadata["language"] == "python"
        assert result.metadata["lines"] == 2

    def test_javascript(self):
        result = CodeDetector().analyze("const x = 1;\nconsole.log(x);")
        assert result.metadata["language"] == "javascript"
        assert result.metadata["matchedPatterns"] == 2

    def test_c(self):
        assert CodeDetector().analyze("#include <stdio.h>").metadata["language"] == "c"

    def test_class_only_has_no_language(self):
        result = CodeDetector().analyze("class Foo")
        assert result.metadata["language"] is None

    def test_prose(self):
        assert not CodeDetector().detect("hello world")


class TestIPAddressDetector:
    def test_private_v4(self):
        d = IPAddressDetector()
        assert d.detect("192.168.1.1")
        result = d.analyze("192.168.1.1")
        assert result.confidence == 0.95
        assert result.metadata == {"version": "IPv4", "isPrivate": True, "isLoopback": False}

    def test_loopback_v6(self):
        result = IPAddressDetector().analyze("::1")
        assert result.metadata["version"] == "IPv6"
        assert result.metadata["isLoopback"] is True

    def test_invalid(self):
        d = IPAddressDetector()
        assert not d.detect("999.1.1.1")
        assert not d.detect("1.2.3")


class TestCryptoAddressDetector:
    def test_ethereum(self):
        d = CryptoAddressDetector()
        text = "0x" + "a1" * 20
        assert d.detect(text)
        result = d.analyze(text)
        assert result.confidence == 0.85
        assert result.metadata == {"currency": "ethereum", "format": "hex"}

    def test_bitcoin_legacy(self):
        result = CryptoAddressDetector().analyze("1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa")
        assert result.metadata == {"currency": "bitcoin", "format": "legacy"}

    def test_bitcoin_bech32(self):
        result = CryptoAddressDetector().analyze("bc1qar0srrr7xfkvy5l643lydnw9re59gtzzwf5mdq")
        assert result.metadata["format"] == "bech32"

    def test_not_address(self):
        assert not CryptoAddressDetector().detect("0x1234")


class TestFilePathDetector:
    def test_posix(self):
        d = FilePathDetector()
        assert d.detect("/usr/local/bin/python3")
        result = d.analyze("/usr/local/bin/python3")
        assert result.confidence == 0.75
        assert result.metadata == {
            "platform": "posix",
            "fileName": "python3",
            "extension": "",
            "directory": "/usr/local/bin",
        }

    def test_home_relative(self):
        result = FilePathDetector().analyze("~/Documents/report.pdf")
        assert result.metadata["extension"] == ".pdf"

    def test_windows(self):
        result = FilePathDetector().analyze("C:\\Users\\me\\file.txt")
        assert result.metadata["platform"] == "windows"
        assert result.metadata["fileName"] == "file.txt"

    def test_rejected(self):
        d = FilePathDetector()
        assert not d.detect("https://example.com/a")
        assert not d.detect("/a\n/b")
        assert not d.detect("relative/path")


class TestCoordinatesDetector:
    def test_lat_lng(self):
        d = CoordinatesDetector()
        assert d.detect("40.7128, -74.0060")
        result = d.analyze("40.7128, -74.0060")
        assert result.confidence == 0.85
        assert result.metadata == {"latitude": 40.7128, "longitude": -74.006}

    def test_integers_rejected(self):
        assert not CoordinatesDetector().detect("12, 34")

    def test_out_of_range(self):
        assert not CoordinatesDetector().detect("91.5, 10.0")

    def test_suggestions(self):
        d = CoordinatesDetector()
        suggestions = d.get_suggestions("1.5, 2.5", d.analyze("1.5, 2.5"))
        assert suggestions[0].params == {"latitude": 1.5, "longitude": 2.5}


class TestDateDetector:
    def test_iso(self):
        d = DateDetector()
        assert d.detect("2024-01-15")
        result = d.analyze("2024-01-15")
        assert result.confidence == 0.85
        assert result.metadata == {"iso": "2024-01-15T00:00:00", "format": "iso8601"}

    def test_us_format(self):
        result = DateDetector().analyze("01/15/2024")
        assert result.confidence == 0.75
        assert result.metadata["format"] == "%m/%d/%Y"
        assert result.preview == "2024-01-15"

    def test_long_month(self):
        assert DateDetector().detect("January 15, 2024")

    def test_invalid(self):
        d = DateDetector()
        assert not d.detect("not a date")
        assert not d.detect("2024-13-45")


class TestUUIDDetector:
    def test_v4(self):
        d = UUIDDetector()
        text = "550e8400-e29b-41d4-a716-446655440000"
        assert d.detect(text)
        result = d.analyze(text)
        assert result.confidence == 0.9
        assert result.metadata["version"] == 4

    def test_invalid(self):
        assert not UUIDDetector().detect("550e8400-e29b-41d4-a716")


class TestBase64Detector:
    def test_text_payload(self):
        d = Base64Detector()
        assert d.detect("SGVsbG8gV29ybGQ=")
        result = d.analyze("SGVsbG8gV29ybGQ=")
        assert result.confidence == 0.8
        assert result.metadata == {"decodedSize": 11, "isText": True, "decodedPreview": "Hello World"}

    def test_plain_words_rejected(self):
        d = Base64Detector()
        assert not d.detect("abcdefgh")
        assert not d.detect("12345678")

    def test_short_or_misaligned_rejected(self):
        d = Base64Detector()
        assert not d.detect("abc=")
        assert not d.detect("SGVsbG8gV29ybGQ")


class TestMarkdownDetector:
    def test_features(self):
        d = MarkdownDetector()
        text = "# Title\n\n- item\n- [link](http://example.com)"
        assert d.detect(text)
        result = d.analyze(text)
        assert result.metadata["features"] == ["heading", "list", "link"]
        assert result.confidence == pytest.approx(0.85)

    def test_single_feature_confidence(self):
        assert MarkdownDetector().analyze("**bold**").confidence == pytest.approx(0.55)

    def test_confidence_capped(self):
        text = "# H\n- a\n[l](u)\n**b**\n```\n> q"
        assert MarkdownDetector().analyze(text).confidence == 0.9

    def test_plain(self):
        assert not MarkdownDetector().detect("plain sentence")


class TestSQLDetector:
    def test_select(self):
        d = SQLDetector()
        text = "SELECT * FROM users WHERE id = 1"
        assert d.detect(text)
        result = d.analyze(text)
        assert result.confidence == 0.85
        assert result.metadata == {"statementType": "SELECT", "tables": ["users"]}

    def test_join_tables(self):
        result = SQLDetector().analyze("select a from orders o join customers c on o.cid = c.id")
        assert result.metadata["tables"] == ["orders", "customers"]

    def test_no_clause_low_confidence(self):
        assert SQLDetector().analyze("select something").confidence == 0.5

    def test_not_sql(self):
        assert not SQLDetector().detect("please select one")
