"""Fetch a web page over http(s), refusing internal addresses, and render HTML as Markdown."""

from __future__ import annotations

import ipaddress
import re
import socket
from collections.abc import Callable, Sequence
from html.parser import HTMLParser
from typing import Any, Optional
from urllib.parse import urlsplit

import httpx

from kncode.tools.traits import (
    ExecutionFailed,
    TextContent,
    Tool,
    ToolContext,
    ToolResult,
    ValidationFailed,
)

USER_AGENT = "kncode/0.1.0"
TIMEOUT_SECONDS = 30.0
MAX_REDIRECTS = 5
DEFAULT_MAX_LENGTH = 1_000_000

_PRIVATE_V4 = tuple(
    ipaddress.IPv4Network(net)
    for net in (
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "169.254.0.0/16",
        "100.64.0.0/10",
        "127.0.0.0/8",
    )
)
_BLOCKED_HOSTS = frozenset({"localhost", "127.0.0.1", "0.0.0.0", "169.254.169.254"})
_BLOCKED_SUFFIXES = (".internal", ".local", ".lan", ".consul", ".vault")

Resolver = Callable[[str], Sequence[str]]


def is_private_ip(host: str) -> bool:
    """True if ``host`` is an IP literal in a loopback, private or link-local range."""
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return False
    if isinstance(ip, ipaddress.IPv4Address):
        return ip.is_loopback or any(ip in net for net in _PRIVATE_V4)
    if ip.is_loopback:
        return True
    first = int(ip) >> 112
    return (first & 0xFE00) == 0xFC00 or (first & 0xFFC0) == 0xFE80 or first == 0xFD00


_DIGITS = {8: re.compile(r"[0-7]*"), 10: re.compile(r"[0-9]+"), 16: re.compile(r"[0-9a-fA-F]*")}


def _ipv4_number(part: str) -> Optional[int]:
    if part[:2].lower() == "0x":
        digits, base = part[2:], 16
    elif len(part) > 1 and part[0] == "0":
        digits, base = part[1:], 8
    else:
        digits, base = part, 10
    if not _DIGITS[base].fullmatch(digits):
        return None
    return int(digits or "0", base)


def _normalize_ipv4(host: str) -> Optional[str]:
    """Read the numeric IPv4 spellings a URL host may use (decimal, hex, octal, short forms)."""
    parts = host.split(".")
    if len(parts) > 1 and parts[-1] == "":
        parts.pop()
    if not parts or len(parts) > 4 or any(not part for part in parts):
        return None
    numbers = []
    for part in parts:
        number = _ipv4_number(part)
        if number is None:
            return None
        numbers.append(number)
    if any(number > 255 for number in numbers[:-1]):
        return None
    if numbers[-1] >= 256 ** (5 - len(numbers)):
        return None
    value = numbers[-1]
    for index, number in enumerate(numbers[:-1]):
        value += number << (8 * (3 - index))
    return str(ipaddress.IPv4Address(value))


def _split(url: str) -> tuple[str, str]:
    try:
        parts = urlsplit(url)
        parts.port
    except ValueError as error:
        raise ValueError(f"Invalid URL: {error}") from error
    if not parts.scheme:
        raise ValueError("Invalid URL: relative URL without a base")
    scheme = parts.scheme.lower()
    host = parts.hostname or ""
    if scheme in ("http", "https"):
        if not host:
            raise ValueError("Invalid URL: empty host")
        host = _normalize_ipv4(host) or host
    return scheme, host


def validate_url(url: str) -> None:
    """Raise ValueError unless ``url`` is http(s) and points at a public host."""
    scheme, host = _split(url)
    if scheme not in ("http", "https"):
        raise ValueError(f"Unsupported scheme: {scheme}. Only http and https are allowed.")
    if not host:
        raise ValueError("URL has no host")
    lower = host.lower()
    if (
        is_private_ip(host)
        or lower in _BLOCKED_HOSTS
        or lower.endswith(_BLOCKED_SUFFIXES)
    ):
        raise ValueError(f"Access to internal addresses is not allowed: {host}")


def _system_resolver(host: str) -> list[str]:
    infos = socket.getaddrinfo(host, None)
    return sorted({info[4][0].split("%", 1)[0] for info in infos})


def _utf8_prefix(text: str, limit: int) -> str:
    offset = 0
    for index, char in enumerate(text):
        if offset > limit:
            return text[:index]
        offset += len(char.encode("utf-8", "surrogatepass"))
    return text


class _MarkdownWriter(HTMLParser):
    _SKIP = frozenset({"script", "style", "head", "noscript", "template"})
    _BLOCKS = frozenset(
        {"p", "div", "section", "article", "header", "footer", "main", "nav",
         "table", "tr", "form", "figure", "aside"}
    )
    _HEADINGS = {f"h{level}": level for level in range(1, 7)}

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._parts: list[str] = []
        self._skip = 0
        self._pre = 0
        self._links: list[Optional[str]] = []
        self._lists: list[list] = []
        self._quotes: list[int] = []

    def _tail(self) -> str:
        return self._parts[-1] if self._parts else ""

    def _emit(self, text: str) -> None:
        if text:
            self._parts.append(text)

    def _newline(self) -> None:
        tail = self._tail()
        if tail and not tail.endswith("\n"):
            self._emit("\n")

    def _block(self) -> None:
        tail = self._tail()
        if not tail or tail.endswith("\n\n"):
            return
        self._emit("\n" if tail.endswith("\n") else "\n\n")

    def handle_starttag(self, tag: str, attrs: list) -> None:
        if tag in self._SKIP:
            self._skip += 1
            return
        if self._skip:
            return
        attributes = {key: value or "" for key, value in attrs}
        if tag in self._HEADINGS:
            self._block()
            self._emit("#" * self._HEADINGS[tag] + " ")
        elif tag in self._BLOCKS:
            self._block()
        elif tag in ("td", "th"):
            if not self._tail().endswith("\n"):
                self._emit(" ")
        elif tag == "br":
            self._emit("\n")
        elif tag == "hr":
            self._block()
            self._emit("---")
            self._block()
        elif tag in ("strong", "b"):
            self._emit("**")
        elif tag in ("em", "i"):
            self._emit("*")
        elif tag == "code" and not self._pre:
            self._emit("`")
        elif tag == "pre":
            self._block()
            self._emit("```\n")
            self._pre += 1
        elif tag == "a":
            self._links.append(attributes.get("href") or None)
            self._emit("[")
        elif tag == "img":
            self._emit(f"![{attributes.get('alt', '')}]({attributes.get('src', '')})")
        elif tag in ("ul", "ol"):
            if not self._lists:
                self._block()
            else:
                self._newline()
            self._lists.append([tag == "ol", 0])
        elif tag == "li":
            self._newline()
            indent = "  " * max(len(self._lists) - 1, 0)
            if self._lists and self._lists[-1][0]:
                self._lists[-1][1] += 1
                marker = f"{self._lists[-1][1]}. "
            else:
                marker = "* "
            self._emit(indent + marker)
        elif tag == "blockquote":
            self._block()
            self._quotes.append(len(self._parts))

    def handle_endtag(self, tag: str) -> None:
        if tag in self._SKIP:
            self._skip = max(self._skip - 1, 0)
            return
        if self._skip:
            return
        if tag in self._HEADINGS or tag in self._BLOCKS:
            self._block()
        elif tag in ("strong", "b"):
            self._emit("**")
        elif tag in ("em", "i"):
            self._emit("*")
        elif tag == "code" and not self._pre:
            self._emit("`")
        elif tag == "pre" and self._pre:
            self._pre -= 1
            self._newline()
            self._emit("```")
            self._block()
        elif tag == "a" and self._links:
            href = self._links.pop()
            self._emit(f"]({href})" if href else "]")
        elif tag in ("ul", "ol") and self._lists:
            self._lists.pop()
            if not self._lists:
                self._block()
        elif tag == "blockquote" and self._quotes:
            start = self._quotes.pop()
            inner = "".join(self._parts[start:]).strip("\n")
            del self._parts[start:]
            quoted = "\n".join(f"> {line}" if line else ">" for line in inner.split("\n"))
            self._emit(quoted)
            self._block()

    def handle_data(self, data: str) -> None:
        if self._skip:
            return
        if self._pre:
            self._emit(data)
            return
        text = re.sub(r"\s+", " ", data)
        tail = self._tail()
        if not tail or tail.endswith("\n"):
            text = text.lstrip()
        self._emit(text)

    def markdown(self) -> str:
        text = "".join(self._parts)
        text = re.sub(r"[ \t]+\n", "\n", text)
        text = re.sub(r"\n{3,}", "\n\n", text)
        return text.strip()


def html_to_markdown(html: str) -> str:
    """Render HTML as Markdown text."""
    writer = _MarkdownWriter()
    writer.feed(html)
    writer.close()
    return writer.markdown()


class WebFetchTool(Tool):
    """Fetches a URL; HTML is converted to Markdown."""

    name = "WebFetch"
    description = "Fetch content from a URL"
    prompt = "Use this to fetch web content. Converts HTML to markdown."
    is_read_only = True

    def __init__(
        self, client: Optional[httpx.Client] = None, resolver: Optional[Resolver] = None
    ) -> None:
        self._client = client
        self._resolver: Resolver = resolver or _system_resolver

    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "URL to fetch"},
                "max_length": {"type": "integer", "description": "Max characters to return"},
            },
            "required": ["url"],
        }

    def call(self, input: Any, context: ToolContext) -> ToolResult:
        if not isinstance(input, dict):
            raise ValidationFailed("input must be an object")
        if "url" not in input:
            raise ValidationFailed("missing field `url`")
        url = input["url"]
        if not isinstance(url, str):
            raise ValidationFailed("field `url` must be a string")
        max_length = input.get("max_length")
        if max_length is not None and (
            isinstance(max_length, bool) or not isinstance(max_length, int) or max_length < 0
        ):
            raise ValidationFailed("field `max_length` must be a non-negative integer")
        if max_length is None:
            max_length = DEFAULT_MAX_LENGTH

        try:
            validate_url(url)
        except ValueError as error:
            raise ValidationFailed(str(error)) from error

        response = self._fetch(url)
        if not response.is_success:
            return ToolResult(
                content=TextContent(
                    f"HTTP {response.status_code} {response.reason_phrase}: Failed to fetch {url}"
                )
            )

        content_type = response.headers.get("content-type", "")
        try:
            body = response.text
        except (httpx.HTTPError, UnicodeDecodeError, LookupError) as error:
            raise ExecutionFailed(f"Failed to read response: {error}") from error

        text = html_to_markdown(body) if "html" in content_type else body
        text_len = len(text.encode("utf-8", "surrogatepass"))
        truncated = text_len > max_length
        if truncated:
            text = f"{_utf8_prefix(text, max_length)}... (truncated, {text_len} total chars)"

        return ToolResult(
            content=TextContent(text),
            structured_content={
                "url": url,
                "content_type": content_type,
                "content_length": text_len,
                "truncated": truncated,
            },
        )

    def _fetch(self, url: str) -> httpx.Response:
        if self._client is not None:
            return self._follow(self._client, url)
        with httpx.Client(follow_redirects=False) as client:
            return self._follow(client, url)

    def _follow(self, client: httpx.Client, url: str) -> httpx.Response:
        previous: list[str] = []
        current = url
        while True:
            self._check_addresses(current)
            try:
                response = client.get(
                    current,
                    headers={"User-Agent": USER_AGENT},
                    timeout=TIMEOUT_SECONDS,
                    follow_redirects=False,
                )
            except httpx.HTTPError as error:
                raise ExecutionFailed(f"Failed to fetch URL: {error}") from error
            follow = response.next_request
            if follow is None:
                return response
            previous.append(current)
            target = str(follow.url)
            if len(previous) > MAX_REDIRECTS:
                raise ExecutionFailed(
                    f"Failed to fetch URL: error following redirect for url ({target}): "
                    "too many redirects"
                )
            try:
                validate_url(target)
            except ValueError as error:
                raise ExecutionFailed(
                    f"Failed to fetch URL: error following redirect for url ({target}): {error}"
                ) from error
            current = target

    def _check_addresses(self, url: str) -> None:
        _, host = _split(url)
        try:
            ipaddress.ip_address(host)
            return
        except ValueError:
            pass
        try:
            addresses = self._resolver(host)
        except OSError as error:
            raise ExecutionFailed(f"Failed to fetch URL: {error}") from error
        if not [address for address in addresses if not is_private_ip(address)]:
            raise ExecutionFailed(
                "Failed to fetch URL: All resolved addresses are in private/internal ranges"
            )