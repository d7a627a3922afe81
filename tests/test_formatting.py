import pytest

from odbc_agent.formatting import format_results

ROWS = [{"id": 1, "nome": "Ana"}, {"id": 2, "nome": "Bruno, Jr."}]


def test_json_returns_rows():
    assert format_results(ROWS, "json") is ROWS


def test_csv_uses_first_row_columns():
    csv_text = format_results(ROWS + [{"id": 3, "nome": None, "extra": "x"}], "csv")
    assert csv_text.splitlines() == ["id,nome", "1,Ana", '2,"Bruno, Jr."', "3,"]


def test_excel_falls_back_to_csv():
    assert format_results(ROWS, "excel") == format_results(ROWS, "csv")


def test_csv_of_no_rows_is_empty():
    assert format_results([], "csv") == ""


def test_unknown_format_raises():
    with pytest.raises(ValueError):
        format_results(ROWS, "xml")
