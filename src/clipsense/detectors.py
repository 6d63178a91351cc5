"""Content detectors.

Each detector owns one content category and answers three questions about a
piece of text: does it look like mine (``detect``), how sure am I and what
can I say about it (``analyze``), and what could the user do with it
(``get_suggestions``). Detectors hold no state; the analyzer runs them in
the order given by :func:`default_detectors`.
"""

import base64
import binascii
import colorsys
import ipaddress
import json
import re
import uuid
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import PurePosixPath, PureWindowsPath
from typing import Any
from urllib.parse import urlsplit

from clipsense.models import Suggestion


@dataclass
class AnalysisResult:
    confidence: float
    metadata: dict[str, Any] = field(default_factory=dict)
    preview: str | None = None


def _suggestion(label: str, action_name: str, params: dict[str, Any], icon: str) -> Suggestion:
    return Suggestion(id=str(uuid.uuid4()), label=label, action_name=action_name, params=params, icon=icon)


class Detector(ABC):
    type: str
    name: str

    @abstractmethod
    def detect(self, content: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def analyze(self, content: str) -> AnalysisResult:
        raise NotImplementedError

    def get_suggestions(self, content: str, analysis: AnalysisResult) -> list[Suggestion]:
        return []


class URLDetector(Detector):
    type = "url"
    name = "URL"

    _URL_RE = re.compile(
        r"^(?:(?:https?|ftp)://)?"
        r"(?:localhost|(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}|\d{1,3}(?:\.\d{1,3}){3})"
        r"(?::\d{1,5})?"
        r"(?:[/?#]\S*)?$",
        re.IGNORECASE,
    )

    def detect(self, content: str) -> bool:
        url = content.strip()
        if not self._URL_RE.match(url):
            return False
        # Without a scheme, "localhost" and bare IPs belong to other detectors.
        if "://" not in url:
            host = re.split(r"[:/?#]", url, maxsplit=1)[0]
            if host.lower() == "localhost" or re.fullmatch(r"[\d.]+", host):
                return False
        return True

    def analyze(self, content: str) -> AnalysisResult:
        url = content.strip()
        if "://" not in url:
            url = f"https://{url}"
        try:
            parts = urlsplit(url)
            port = parts.port
        except ValueError:
            return AnalysisResult(confidence=0)

        return AnalysisResult(
            confidence=0.9,
            metadata={
                "domain": parts.hostname or "",
                "protocol": f"{parts.scheme}:",
                "port": port,
                "path": parts.path or "/",
                "query": f"?{parts.query}" if parts.query else "",
                "hash": f"#{parts.fragment}" if parts.fragment else "",
            },
            preview=parts.hostname,
        )

    def get_suggestions(self, content: str, analysis: AnalysisResult) -> list[Suggestion]:
        return [
            _suggestion("Open URL", "openUrl", {"url": content.strip()}, "external-link"),
            _suggestion("Copy Domain", "copyText", {"text": analysis.metadata.get("domain", "")}, "copy"),
        ]


class EmailDetector(Detector):
    type = "email"
    name = "Email"

    _EMAIL_RE = re.compile(
        r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]{1,64}@"
        r"(?:[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?\.)+[A-Za-z]{2,63}$"
    )

    def _is_valid(self, email: str) -> bool:
        if not self._EMAIL_RE.match(email):
            return False
        local_part = email.split("@", 1)[0]
        return not (local_part.startswith(".") or local_part.endswith(".") or ".." in local_part)

    def detect(self, content: str) -> bool:
        return self._is_valid(content.strip())

    def analyze(self, content: str) -> AnalysisResult:
        email = content.strip()
        local_part, _, domain = email.partition("@")
        return AnalysisResult(
            confidence=0.95,
            metadata={"localPart": local_part, "domain": domain, "isValid": self._is_valid(email)},
            preview=domain,
        )

    def get_suggestions(self, content: str, analysis: AnalysisResult) -> list[Suggestion]:
        return [
            _suggestion("Compose Email", "composeEmail", {"email": content.strip()}, "mail"),
            _suggestion("Copy Domain", "copyText", {"text": analysis.metadata.get("domain", "")}, "copy"),
        ]


class PhoneDetector(Detector):
    type = "phone"
    name = "Phone Number"

    _PHONE_RE = re.compile(r"^\+?[1-9]\d{0,15}$")
    _SEPARATORS_RE = re.compile(r"[\s\-()]")

    def detect(self, content: str) -> bool:
        cleaned = self._SEPARATORS_RE.sub("", content)
        return bool(self._PHONE_RE.match(cleaned)) and len(cleaned) >= 7

    def analyze(self, content: str) -> AnalysisResult:
        cleaned = self._SEPARATORS_RE.sub("", content)
        return AnalysisResult(
            confidence=0.8,
            metadata={"original": content.strip(), "cleaned": cleaned, "isInternational": cleaned.startswith("+")},
            preview=content.strip(),
        )

    def get_suggestions(self, content: str, analysis: AnalysisResult) -> list[Suggestion]:
        phone = analysis.metadata.get("cleaned", content.strip())
        return [
            _suggestion("Call Number", "callPhone", {"phone": phone}, "phone"),
            _suggestion("Send SMS", "sendSMS", {"phone": phone}, "message-square"),
        ]


def rgb_to_hex(r: int, g: int, b: int) -> str:
    return f"#{r:02x}{g:02x}{b:02x}"


def rgb_to_hsl(r: int, g: int, b: int) -> tuple[int, int, int]:
    h, lightness, s = colorsys.rgb_to_hls(r / 255, g / 255, b / 255)
    return round(h * 360) % 360, round(s * 100), round(lightness * 100)


def hsl_to_rgb(h: float, s: float, lightness: float) -> tuple[int, int, int]:
    r, g, b = colorsys.hls_to_rgb((h % 360) / 360, lightness / 100, s / 100)
    return round(r * 255), round(g * 255), round(b * 255)


class ColorDetector(Detector):
    type = "color"
    name = "Color"

    _HEX_RE = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")
    _RGB_RE = re.compile(r"^rgb\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*\)$", re.IGNORECASE)
    _HSL_RE = re.compile(r"^hsl\(\s*(\d+)\s*,\s*(\d+)%\s*,\s*(\d+)%\s*\)$", re.IGNORECASE)

    def detect(self, content: str) -> bool:
        color = content.strip()
        return bool(self._HEX_RE.match(color) or self._RGB_RE.match(color) or self._HSL_RE.match(color))

    def analyze(self, content: str) -> AnalysisResult:
        color = content.strip()
        hex_match = self._HEX_RE.match(color)
        rgb_match = self._RGB_RE.match(color)
        hsl_match = self._HSL_RE.match(color)
        if hex_match:
            digits = hex_match.group(1)
            if len(digits) == 3:
                digits = "".join(c * 2 for c in digits)
            r, g, b = (int(digits[i:i + 2], 16) for i in (0, 2, 4))
        elif rgb_match:
            r, g, b = (min(255, int(v)) for v in rgb_match.groups())
        elif hsl_match:
            h, s, lightness = (int(v) for v in hsl_match.groups())
            r, g, b = hsl_to_rgb(h, min(100, s), min(100, lightness))
        else:
            return AnalysisResult(confidence=0)

        h, s, lightness = rgb_to_hsl(r, g, b)
        return AnalysisResult(
            confidence=0.95,
            metadata={
                "original": color,
                "rgb": {"r": r, "g": g, "b": b},
                "hex": rgb_to_hex(r, g, b),
                "hsl": f"hsl({h}, {s}%, {lightness}%)",
            },
            preview=color,
        )

    def get_suggestions(self, content: str, analysis: AnalysisResult) -> list[Suggestion]:
        rgb = analysis.metadata.get("rgb", {})
        return [
            _suggestion(
                "Convert to RGB",
                "copyText",
                {"text": f"rgb({rgb.get('r', 0)}, {rgb.get('g', 0)}, {rgb.get('b', 0)})"},
                "palette",
            ),
            _suggestion("Convert to HEX", "copyText", {"text": analysis.metadata.get("hex", "")}, "hash"),
            _suggestion("Convert to HSL", "copyText", {"text": analysis.metadata.get("hsl", "")}, "droplet"),
            _suggestion("Generate Palette", "generatePalette", {"color": content.strip()}, "swatches"),
        ]


class JSONDetector(Detector):
    type = "json"
    name = "JSON"

    def detect(self, content: str) -> bool:
        text = content.strip()
        if not text or text[0] not in "{[":
            return False
        try:
            json.loads(text)
        except ValueError:
            return False
        return True

    def analyze(self, content: str) -> AnalysisResult:
        try:
            parsed = json.loads(content.strip())
        except ValueError as e:
            return AnalysisResult(confidence=0, metadata={"isValid": False, "error": str(e)})

        is_array = isinstance(parsed, list)
        keys = list(parsed.keys()) if isinstance(parsed, dict) else []
        length = len(parsed) if is_array else len(keys)
        return AnalysisResult(
            confidence=0.9,
            metadata={"isValid": True, "isArray": is_array, "keys": keys, "length": length},
            preview=f"Array ({length} items)" if is_array else f"Object ({length} keys)",
        )

    def get_suggestions(self, content: str, analysis: AnalysisResult) -> list[Suggestion]:
        return [
            _suggestion("Format JSON", "formatJson", {"json": content}, "code"),
            _suggestion("Validate JSON", "validateJson", {"json": content}, "check-circle"),
            _suggestion("Minify JSON", "minifyJson", {"json": content}, "minimize"),
        ]


class XMLDetector(Detector):
    type = "xml"
    name = "XML"

    def detect(self, content: str) -> bool:
        text = content.strip()
        return text.startswith("<") and text.endswith(">")

    def analyze(self, content: str) -> AnalysisResult:
        try:
            root = ET.fromstring(content.strip())
        except ET.ParseError:
            # Tag soup such as HTML fragments still reads as markup.
            return AnalysisResult(confidence=0.6, metadata={"isWellFormed": False})
        tag = root.tag.split("}", 1)[-1]
        return AnalysisResult(
            confidence=0.85,
            metadata={"isWellFormed": True, "rootTag": tag, "childCount": len(root)},
            preview=f"<{tag}>",
        )

    def get_suggestions(self, content: str, analysis: AnalysisResult) -> list[Suggestion]:
        if not analysis.metadata.get("isWellFormed"):
            return []
        return [_suggestion("Format XML", "formatXml", {"xml": content}, "code")]


class CodeDetector(Detector):
    type = "code"
    name = "Code"

    PATTERNS: list[tuple[str, re.Pattern]] = [
        ("javascript", re.compile(r"function\s+\w+\s*\(")),
        ("javascript", re.compile(r"import\s+.*\sfrom\s")),
        ("javascript", re.compile(r"console\.log\(")),
        ("javascript", re.compile(r"\b(?:const|let)\s+\w+\s*=")),
        ("python", re.compile(r"^\s*def\s+\w+\s*\(.*\)\s*(?:->.*)?:", re.MULTILINE)),
        ("python", re.compile(r"^\s*from\s+[\w.]+\s+import\s+\w+", re.MULTILINE)),
        ("c", re.compile(r"^\s*#include\s*[<\"]", re.MULTILINE)),
        ("php", re.compile(r"\$\w+\s*=")),
        (None, re.compile(r"\bclass\s+\w+")),
    ]

    def _matches(self, content: str) -> list[str | None]:
        return [language for language, pattern in self.PATTERNS if pattern.search(content)]

    def detect(self, content: str) -> bool:
        return bool(self._matches(content))

    def analyze(self, content: str) -> AnalysisResult:
        matches = self._matches(content)
        languages = [lang for lang in matches if lang]
        language = max(languages, key=languages.count) if languages else None
        return AnalysisResult(
            confidence=0.8,
            metadata={"language": language, "matchedPatterns": len(matches), "lines": content.count("\n") + 1},
            preview=language,
        )


class IPAddressDetector(Detector):
    type = "ip_address"
    name = "IP Address"

    def detect(self, content: str) -> bool:
        try:
            ipaddress.ip_address(content.strip())
        except ValueError:
            return False
        return True

    def analyze(self, content: str) -> AnalysisResult:
        ip = ipaddress.ip_address(content.strip())
        return AnalysisResult(
            confidence=0.95,
            metadata={
                "version": f"IPv{ip.version}",
                "isPrivate": ip.is_private,
                "isLoopback": ip.is_loopback,
            },
            preview=str(ip),
        )

    def get_suggestions(self, content: str, analysis: AnalysisResult) -> list[Suggestion]:
        return [_suggestion("Copy IP", "copyText", {"text": content.strip()}, "copy")]


class CryptoAddressDetector(Detector):
    type = "crypto_address"
    name = "Crypto Address"

    FORMATS: list[tuple[str, str, re.Pattern]] = [
        ("bitcoin", "bech32", re.compile(r"^bc1[ac-hj-np-z02-9]{11,71}$")),
        ("bitcoin", "legacy", re.compile(r"^[13][a-km-zA-HJ-NP-Z1-9]{25,34}$")),
        ("ethereum", "hex", re.compile(r"^0x[a-fA-F0-9]{40}$")),
    ]

    def _identify(self, content: str) -> tuple[str, str] | None:
        text = content.strip()
        for currency, fmt, pattern in self.FORMATS:
            if pattern.match(text):
                return currency, fmt
        return None

    def detect(self, content: str) -> bool:
        return self._identify(content) is not None

    def analyze(self, content: str) -> AnalysisResult:
        identified = self._identify(content)
        if identified is None:
            return AnalysisResult(confidence=0)
        currency, fmt = identified
        return AnalysisResult(
            confidence=0.85,
            metadata={"currency": currency, "format": fmt},
            preview=currency.title(),
        )


class FilePathDetector(Detector):
    type = "file_path"
    name = "File Path"

    _POSIX_RE = re.compile(r"^(?:~|\.{1,2})?/[^\0\n]*$")
    _WINDOWS_RE = re.compile(r"^(?:[A-Za-z]:\\|\\\\)[^\0\n<>\"|?*]*$")

    def detect(self, content: str) -> bool:
        text = content.strip()
        if "\n" in text or "://" in text:
            return False
        return bool(self._POSIX_RE.match(text) or self._WINDOWS_RE.match(text))

    def analyze(self, content: str) -> AnalysisResult:
        text = content.strip()
        if self._WINDOWS_RE.match(text):
            path, platform = PureWindowsPath(text), "windows"
        else:
            path, platform = PurePosixPath(text), "posix"
        return AnalysisResult(
            confidence=0.75,
            metadata={
                "platform": platform,
                "fileName": path.name,
                "extension": path.suffix,
                "directory": str(path.parent),
            },
            preview=path.name or text,
        )

    def get_suggestions(self, content: str, analysis: AnalysisResult) -> list[Suggestion]:
        suggestions = [_suggestion("Reveal in Finder", "revealPath", {"path": content.strip()}, "folder")]
        if analysis.metadata.get("fileName"):
            suggestions.append(
                _suggestion("Copy File Name", "copyText", {"text": analysis.metadata["fileName"]}, "copy")
            )
        return suggestions


class CoordinatesDetector(Detector):
    type = "coordinates"
    name = "Coordinates"

    _COORD_RE = re.compile(r"^\(?\s*(-?\d{1,3}(?:\.\d+)?)\s*[,;\s]\s*(-?\d{1,3}(?:\.\d+)?)\s*\)?$")

    def _parse(self, content: str) -> tuple[float, float] | None:
        match = self._COORD_RE.match(content.strip())
        if not match:
            return None
        lat, lng = float(match.group(1)), float(match.group(2))
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            return None
        return lat, lng

    def detect(self, content: str) -> bool:
        # Require a decimal point so "12, 34" is not read as a location.
        return "." in content and self._parse(content) is not None

    def analyze(self, content: str) -> AnalysisResult:
        parsed = self._parse(content)
        if parsed is None:
            return AnalysisResult(confidence=0)
        lat, lng = parsed
        return AnalysisResult(
            confidence=0.85,
            metadata={"latitude": lat, "longitude": lng},
            preview=f"{lat}, {lng}",
        )

    def get_suggestions(self, content: str, analysis: AnalysisResult) -> list[Suggestion]:
        return [
            _suggestion(
                "Open in Maps",
                "openMap",
                {"latitude": analysis.metadata.get("latitude"), "longitude": analysis.metadata.get("longitude")},
                "map-pin",
            )
        ]


class DateDetector(Detector):
    type = "date"
    name = "Date"

    FORMATS = [
        "%m/%d/%Y",
        "%d.%m.%Y",
        "%Y/%m/%d",
        "%B %d, %Y",
        "%b %d, %Y",
        "%d %B %Y",
        "%d %b %Y",
    ]

    def _parse(self, content: str) -> tuple[datetime, str] | None:
        text = content.strip()
        if len(text) > 40:
            return None
        if re.match(r"^\d{4}-\d{2}-\d{2}", text):
            try:
                return datetime.fromisoformat(text.replace("Z", "+00:00")), "iso8601"
            except ValueError:
                return None
        for fmt in self.FORMATS:
            try:
                return datetime.strptime(text, fmt), fmt
            except ValueError:
                continue
        return None

    def detect(self, content: str) -> bool:
        return self._parse(content) is not None

    def analyze(self, content: str) -> AnalysisResult:
        parsed = self._parse(content)
        if parsed is None:
            return AnalysisResult(confidence=0)
        value, fmt = parsed
        return AnalysisResult(
            confidence=0.85 if fmt == "iso8601" else 0.75,
            metadata={"iso": value.isoformat(), "format": fmt},
            preview=value.strftime("%Y-%m-%d"),
        )

    def get_suggestions(self, content: str, analysis: AnalysisResult) -> list[Suggestion]:
        return [_suggestion("Copy as ISO 8601", "copyText", {"text": analysis.metadata.get("iso", "")}, "calendar")]


class UUIDDetector(Detector):
    type = "uuid"
    name = "UUID"

    _UUID_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")

    def detect(self, content: str) -> bool:
        return bool(self._UUID_RE.match(content.strip()))

    def analyze(self, content: str) -> AnalysisResult:
        value = uuid.UUID(content.strip())
        return AnalysisResult(
            confidence=0.9,
            metadata={"version": value.version, "variant": value.variant},
            preview=str(value),
        )

    def get_suggestions(self, content: str, analysis: AnalysisResult) -> list[Suggestion]:
        return [_suggestion("Copy Uppercase", "copyText", {"text": content.strip().upper()}, "type")]


class Base64Detector(Detector):
    type = "base64"
    name = "Base64"

    _BASE64_RE = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")

    def _decode(self, content: str) -> bytes | None:
        text = content.strip()
        if len(text) < 8 or len(text) % 4 or not self._BASE64_RE.match(text):
            return None
        # Plain words and numbers are valid base64 alphabets too.
        if text.isalpha() or text.isdigit():
            return None
        try:
            return base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError):
            return None

    def detect(self, content: str) -> bool:
        return self._decode(content) is not None

    def analyze(self, content: str) -> AnalysisResult:
        decoded = self._decode(content)
        if decoded is None:
            return AnalysisResult(confidence=0)
        try:
            text = decoded.decode("utf-8")
        except UnicodeDecodeError:
            text = None
        is_text = text is not None and text.isprintable()
        metadata: dict[str, Any] = {"decodedSize": len(decoded), "isText": is_text}
        if is_text:
            metadata["decodedPreview"] = text[:100]
        return AnalysisResult(confidence=0.8, metadata=metadata, preview=f"{len(decoded)} bytes")

    def get_suggestions(self, content: str, analysis: AnalysisResult) -> list[Suggestion]:
        return [_suggestion("Decode Base64", "decodeBase64", {"data": content.strip()}, "unlock")]


class MarkdownDetector(Detector):
    type = "markdown"
    name = "Markdown"

    FEATURES: list[tuple[str, re.Pattern]] = [
        ("heading", re.compile(r"^#{1,6}\s+\S", re.MULTILINE)),
        ("list", re.compile(r"^\s*(?:[-*+]|\d+\.)\s+\S", re.MULTILINE)),
        ("link", re.compile(r"\[[^\]\n]+\]\([^)\s]+\)")),
        ("emphasis", re.compile(r"(\*\*|__)[^*_\n]+\1")),
        ("codeFence", re.compile(r"^```", re.MULTILINE)),
        ("blockquote", re.compile(r"^>\s+\S", re.MULTILINE)),
    ]

    def _features(self, content: str) -> list[str]:
        return [name for name, pattern in self.FEATURES if pattern.search(content)]

    def detect(self, content: str) -> bool:
        return bool(self._features(content))

    def analyze(self, content: str) -> AnalysisResult:
        features = self._features(content)
        return AnalysisResult(
            confidence=min(0.9, 0.4 + 0.15 * len(features)),
            metadata={"features": features},
        )

    def get_suggestions(self, content: str, analysis: AnalysisResult) -> list[Suggestion]:
        return [_suggestion("Render Markdown", "renderMarkdown", {"markdown": content}, "file-text")]


class SQLDetector(Detector):
    type = "sql"
    name = "SQL"

    _STATEMENT_RE = re.compile(r"^\s*(SELECT|INSERT|UPDATE|DELETE|CREATE|ALTER|DROP|WITH)\b", re.IGNORECASE)
    _CLAUSE_RE = re.compile(r"\b(FROM|INTO|SET|TABLE|VALUES|WHERE|JOIN)\b", re.IGNORECASE)
    _TABLE_RE = re.compile(r"\b(?:FROM|JOIN|INTO|UPDATE|TABLE)\s+([`\"\[]?[\w.]+[`\"\]]?)", re.IGNORECASE)

    def detect(self, content: str) -> bool:
        return bool(self._STATEMENT_RE.match(content))

    def analyze(self, content: str) -> AnalysisResult:
        statement = self._STATEMENT_RE.match(content).group(1).upper()
        has_clause = bool(self._CLAUSE_RE.search(content))
        tables: list[str] = []
        for match in self._TABLE_RE.finditer(content):
            table = match.group(1).strip('`"[]')
            if table not in tables:
                tables.append(table)
        return AnalysisResult(
            confidence=0.85 if has_clause else 0.5,
            metadata={"statementType": statement, "tables": tables},
            preview=statement,
        )

    def get_suggestions(self, content: str, analysis: AnalysisResult) -> list[Suggestion]:
        return [_suggestion("Format SQL", "formatSql", {"sql": content}, "database")]


def default_detectors() -> list[Detector]:
    """The built-in catalog, in evaluation (and tie-break) order."""
    return [
        URLDetector(),
        EmailDetector(),
        PhoneDetector(),
        ColorDetector(),
        JSONDetector(),
        XMLDetector(),
        CodeDetector(),
        IPAddressDetector(),
        CryptoAddressDetector(),
        FilePathDetector(),
        CoordinatesDetector(),
        DateDetector(),
        UUIDDetector(),
        Base64Detector(),
        MarkdownDetector(),
        SQLDetector(),
    ]
