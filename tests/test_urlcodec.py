from email.utils import formatdate
from urllib.parse import quote, urlencode

import pytest

from rivetweb.urlcodec import (
    ExpiresFormat,
    UrlEscapeError,
    expires,
    split_params,
    unescape_url,
)

BASE = 1_000_000_000


@pytest.mark.parametrize("text", ["plain", "with space", "caf\u00e9", "\u4e2d\u6587", "a&b=c;d"])
def test_unescape_round_trip(text):
    assert unescape_url(quote(text, safe="")) == text
    assert unescape_url(quote(text, safe="").encode()) == text.encode("utf-8")


@pytest.mark.parametrize("char", ["A", "\u00e9", "\u20ac", "\u4e2d"])
def test_unicode_escape(char):
    assert unescape_url("%%u%04X" % ord(char)) == char
    assert unescape_url("x%%U%04xy" % ord(char)) == "x" + char + "y"


@pytest.mark.parametrize("text", ["100%zz", "50%", "%", "%g1"])
def test_malformed_escape_kept(text):
    assert unescape_url(text) == text


def test_strict_bad_escape():
    with pytest.raises(UrlEscapeError) as info:
        unescape_url("100%zz", strict=True)
    assert info.value.status == 400
    assert isinstance(info.value, ValueError)


def test_strict_bad_path():
    assert unescape_url("a%2Fb") == "a/b"
    with pytest.raises(UrlEscapeError) as info:
        unescape_url("a%2Fb", strict=True)
    assert info.value.status == 404


def test_strict_bad_escape_wins_over_bad_path():
    with pytest.raises(UrlEscapeError) as info:
        unescape_url("%2F%zz", strict=True)
    assert info.value.status == 400


def test_strict_accepts_clean_input():
    assert unescape_url(quote("caf\u00e9 au lait"), strict=True) == "caf\u00e9 au lait"


def test_split_params_basic():
    assert split_params("a=1&b=2;c") == [("a", "1"), ("b", "2"), ("c", "")]


def test_split_params_repeated_delimiters():
    assert split_params("a=1&&;b=2&") == [("a", "1"), ("b", "2")]


def test_split_params_leading_delimiter():
    assert split_params("&a=1") == [("", ""), ("a", "1")]


def test_split_params_value_keeps_equals():
    assert split_params("a=b=c") == [("a", "b=c")]


def test_split_params_empty():
    assert split_params("") == []


def test_split_params_round_trip():
    pairs = [("name", "John Smith"), ("city", "M\u00fcnchen"), ("q", "a&b=c"), ("q", "2+2")]
    assert split_params(urlencode(pairs)) == pairs


def test_expires_passthrough():
    assert expires(None) is None
    assert expires("bogus") == "bogus"


@pytest.mark.parametrize(
    "spec,delta",
    [
        ("+10s", 10),
        ("+5", 5),
        ("+3m", 60 * 3),
        ("+1h", 60 * 60),
        ("-2d", -2 * 60 * 60 * 24),
        ("+1M", 60 * 60 * 24 * 30),
        ("+1y", 60 * 60 * 24 * 365),
        ("now", 0),
        ("NOW", 0),
    ],
)
def test_expires_http(spec, delta):
    assert expires(spec, now=BASE) == formatdate(BASE + delta, usegmt=True)


def test_expires_cookie_format():
    assert expires("+1h", ExpiresFormat.COOKIE, now=0) == "Thu, 01-Jan-1970 01:00:00 GMT"


def test_expires_formats_agree_apart_from_separator():
    http = expires("+7d", ExpiresFormat.HTTP, now=BASE)
    cookie = expires("+7d", ExpiresFormat.COOKIE, now=BASE)
    assert http == formatdate(BASE + 7 * 86400, usegmt=True)
    assert cookie.replace("-", " ") == http


def test_expires_zero_time_returns_input():
    assert expires("-1m", now=60) == "-1m"