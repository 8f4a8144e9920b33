"""Query composition: unset parameters never reach the upstream."""

from urllib.parse import parse_qsl

from core.query import build_url, compose_query


class TestComposeQuery:
    def test_absent_values_are_omitted(self):
        query = compose_query({"customer_id": "C100", "status": None, "limit": 10, "date_from": None})

        assert query == "customer_id=C100&limit=10"
        assert "status" not in query
        assert "date_from" not in query

    def test_every_subset_contains_exactly_the_present_keys(self):
        full = {"customer_id": "C100", "status": "active", "limit": 5}
        for absent in full:
            params = {k: (None if k == absent else v) for k, v in full.items()}
            pairs = dict(parse_qsl(compose_query(params)))
            assert set(pairs) == set(full) - {absent}

    def test_keys_and_values_are_url_encoded(self):
        query = compose_query({"name": "Smith & Sons", "date_created__gte": "2026-01-01"})

        assert query == "name=Smith+%26+Sons&date_created__gte=2026-01-01"
        assert dict(parse_qsl(query)) == {"name": "Smith & Sons", "date_created__gte": "2026-01-01"}

    def test_booleans_and_numbers_use_canonical_text(self):
        query = compose_query({"has_claims": True, "active": False, "min_premium": 1500.0, "ratio": 0.5})

        assert query == "has_claims=true&active=false&min_premium=1500&ratio=0.5"

    def test_insertion_order_is_kept(self):
        assert compose_query({"b": 1, "a": 2}) == "b=1&a=2"

    def test_empty_and_all_absent(self):
        assert compose_query({}) == ""
        assert compose_query(None) == ""
        assert compose_query({"x": None}) == ""


class TestBuildUrl:
    def test_no_query_means_no_question_mark(self):
        assert build_url("https://api.test/v1", "customers", {"x": None}) == "https://api.test/v1/customers"

    def test_trailing_slash_before_query(self):
        url = build_url("https://crm.test/api/v1/", "lead", {"_limit": 25}, trailing_slash=True)

        assert url == "https://crm.test/api/v1/lead/?_limit=25"
