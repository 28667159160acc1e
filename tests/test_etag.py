"""
Tests for validation token helpers.
"""

import pytest

from web.etag import etag_matches, make_etag, to_base36


class TestToBase36:
    @pytest.mark.parametrize("value,expected", [
        (0, "0"),
        (35, "z"),
        (36, "10"),
        (1000, "rs"),
        (2 ** 64 - 1, "3w5e11264sgsf"),
    ])
    def test_values(self, value, expected):
        assert to_base36(value) == expected

    def test_matches_int_parse(self):
        for value in (1, 17, 123456789, 2 ** 40 + 3):
            assert int(to_base36(value), 36) == value


class TestMakeEtag:
    def test_format(self):
        assert make_etag(37, 1000) == 'W/"11-rs"'

    def test_deterministic(self):
        assert make_etag(5, 9) == make_etag(5, 9)

    def test_distinct_pairs_distinct_tokens(self):
        tokens = {make_etag(v, f) for v in range(40) for f in range(40)}
        assert len(tokens) == 40 * 40

    def test_initial_state(self):
        assert make_etag(0, 0) == 'W/"0-0"'


class TestEtagMatches:
    def test_exact(self):
        tag = make_etag(3, 3)
        assert etag_matches(tag, tag)

    def test_missing_header(self):
        assert not etag_matches(None, make_etag(1, 1))
        assert not etag_matches("", make_etag(1, 1))

    def test_stale_tag(self):
        assert not etag_matches(make_etag(1, 1), make_etag(2, 2))

    def test_list(self):
        tag = make_etag(4, 4)
        assert etag_matches(f'W/"x-y", {tag}', tag)

    def test_wildcard(self):
        assert etag_matches("*", make_etag(9, 9))

    def test_strong_form_matches_weakly(self):
        assert etag_matches('"2-2"', make_etag(2, 2))
