"""
Request helpers: pagination, input sanitizing, password strength and
user-agent parsing.
"""
import pytest
from fastapi import HTTPException

from scrapdesk.services.pagination import get_pagination
from scrapdesk.services.request_meta import extract_metadata, parse_user_agent
from scrapdesk.services.security import sanitize_object, sanitize_string, validate_password_strength


class TestPagination:
    @pytest.mark.parametrize(
        "page,limit,expected",
        [
            (None, None, (1, 10, 0)),
            (3, 20, (3, 20, 40)),
            (0, 500, (1, 100, 0)),
            (-2, 0, (1, 10, 0)),
        ],
    )
    def test_bounds(self, page, limit, expected):
        assert get_pagination(page, limit) == expected


class TestSanitize:
    def test_string_is_trimmed_and_capped(self):
        assert sanitize_string("  $where  ") == "where"
        assert len(sanitize_string("x" * 5000)) == 1000

    def test_operator_keys_are_dropped(self):
        data = {"name": " Swift ", "$gt": 1, "nested": [{"$ne": None, "ok": "$1"}]}
        assert sanitize_object(data) == {"name": "Swift", "nested": [{"ok": "1"}]}


class TestPasswordStrength:
    def test_strong_password_passes(self):
        validate_password_strength("Str0ng!pass")

    def test_too_long(self):
        with pytest.raises(HTTPException) as exc:
            validate_password_strength("Aa1!" * 40)
        assert exc.value.status_code == 400


class TestUserAgent:
    @pytest.mark.parametrize(
        "ua,expected",
        [
            (
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/120.0 Safari/537.36 Edg/120.0",
                {"device": "Desktop", "browser": "Edge", "os": "Windows"},
            ),
            (
                "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 Mobile/15E148 Safari/604.1",
                {"device": "Mobile", "browser": "Safari", "os": "iOS"},
            ),
            (
                "Mozilla/5.0 (X11; Linux x86_64; rv:120.0) Gecko/20100101 Firefox/120.0",
                {"device": "Desktop", "browser": "Firefox", "os": "Linux"},
            ),
            (None, {"device": "Unknown", "browser": "Unknown", "os": "Unknown"}),
        ],
    )
    def test_parse(self, ua, expected):
        assert parse_user_agent(ua) == expected

    def test_forwarded_ip_wins(self):
        meta = extract_metadata({"x-forwarded-for": "10.0.0.7, 172.16.0.1"}, "127.0.0.1")
        assert meta["ip"] == "10.0.0.7"
        assert extract_metadata({}, "127.0.0.1")["ip"] == "127.0.0.1"
