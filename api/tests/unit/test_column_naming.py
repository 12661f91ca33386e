"""
Tests de la proyección nombre de campo -> columna y del orden por header.
"""
from app.application.services.column_naming import (
    project_row,
    resolve_header_value,
    sanitize_column_name,
)


class TestSanitizeColumnName:
    def test_spaces_and_symbols_become_underscores(self):
        assert sanitize_column_name("Start Date") == "Start_Date"
        assert sanitize_column_name("e-mail (work)") == "e_mail__work_"

    def test_safe_names_are_unchanged(self):
        assert sanitize_column_name("Role_2") == "Role_2"

    def test_non_ascii_letters_are_replaced(self):
        assert sanitize_column_name("Teléfono") == "Tel_fono"

    def test_truncates_to_postgres_identifier_limit(self):
        assert len(sanitize_column_name("x" * 100)) == 63

    def test_empty_name(self):
        assert sanitize_column_name("") == ""


class TestProjectRow:
    def test_exact_then_sanitized_match(self):
        values = {"Name": "Ava", "Start_Date": "2024-01-01"}

        assert resolve_header_value("Name", values) == "Ava"
        assert resolve_header_value("Start Date", values) == "2024-01-01"

    def test_missing_or_null_values_are_empty_strings(self):
        values = {"Name": None}

        assert resolve_header_value("Name", values) == ""
        assert resolve_header_value("Role", values) == ""

    def test_follows_header_order(self):
        headers = ["Role", "Name", "Unknown"]
        values = {"Name": "Ava", "Role": "Lead", "Extra": "x"}

        assert project_row(headers, values) == ["Lead", "Ava", ""]

    def test_empty_header_produces_empty_row(self):
        assert project_row([], {"Name": "Ava"}) == []

    def test_sanitized_lookup_covers_more_than_spaces(self):
        values = {"e_mail": "ava@example.com"}

        assert resolve_header_value("e-mail", values) == "ava@example.com"
