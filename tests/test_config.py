"""Tests for configuration parsing helpers."""

from app.core.config import parse_csv


class TestParseCsv:

    def test_empty(self):
        assert parse_csv("") == ()
        assert parse_csv(None) == ()

    def test_strips_and_drops_blanks(self):
        assert parse_csv(" did:kilt:a , ,did:kilt:b,") == ("did:kilt:a", "did:kilt:b")

    def test_removes_duplicates_keeping_order(self):
        assert parse_csv("twitter,github,twitter") == ("twitter", "github")
