"""Tests for tokenizing, delimiter/header detection and the preview builder."""

from expense_importer.csv_reader import (
    detect_delimiter,
    get_csv_preview_data,
    is_header_row,
    parse_csv_line,
    split_lines,
    strip_quotes,
)


class TestDetectDelimiter:
    """Test cases for delimiter detection."""

    def test_more_commas_than_semicolons(self):
        assert detect_delimiter("a,b;c,d,e") == ","

    def test_more_semicolons_than_commas(self):
        assert detect_delimiter("a;b;c,d") == ";"

    def test_tie_falls_back_to_comma(self):
        assert detect_delimiter("a;b,c") == ","
        assert detect_delimiter("") == ","


class TestIsHeaderRow:
    """Test cases for header detection."""

    def test_english_header_with_amount(self):
        assert is_header_row("Date,Description,Amount") is True

    def test_english_header_with_category(self):
        assert is_header_row("DATE;DESCRIPTION;CATEGORY") is True

    def test_english_header_needs_description(self):
        assert is_header_row("Date,Payee,Amount") is False

    def test_greek_header(self):
        assert is_header_row("ΗΜ/ΝΙΑ;ΑΙΤΙΟΛΟΓΙΑ;ΠΟΣΟ") is True

    def test_data_row_is_not_header(self):
        assert is_header_row("2024-01-15,Groceries,45.50") is False


class TestParseCsvLine:
    """Test cases for the line tokenizer."""

    def test_quoted_field_with_delimiter(self):
        assert parse_csv_line('a,"b,c",d', ",") == ["a", "b,c", "d"]

    def test_escaped_quote(self):
        assert parse_csv_line('a,"b""c",d', ",") == ["a", 'b"c', "d"]

    def test_semicolon_delimiter_keeps_commas(self):
        assert parse_csv_line("15/01/2024;Coffee;-3,50", ";") == [
            "15/01/2024",
            "Coffee",
            "-3,50",
        ]

    def test_trailing_delimiter_emits_empty_field(self):
        assert parse_csv_line("a,b,", ",") == ["a", "b", ""]

    def test_empty_line_is_single_empty_field(self):
        assert parse_csv_line("", ",") == [""]

    def test_unterminated_quote_keeps_rest_of_line(self):
        assert parse_csv_line('a,"b,c', ",") == ["a", "b,c"]


class TestHelpers:
    """Test cases for line splitting and quote stripping."""

    def test_split_lines_handles_crlf_and_surrounding_whitespace(self):
        assert split_lines("\n a,b\r\nc,d\n\n") == ["a,b", "c,d"]

    def test_strip_quotes(self):
        assert strip_quotes('  "2024-01-15"  ') == "2024-01-15"
        assert strip_quotes("'x'") == "x"
        assert strip_quotes('""') == ""


class TestGetCsvPreviewData:
    """Test cases for the preview builder."""

    def test_bank_export_preview(self, bank_csv_content):
        preview = get_csv_preview_data(bank_csv_content)

        assert preview.delimiter == ";"
        assert preview.headers == ["Date", "Description", "Amount", "Category"]
        assert len(preview.sample_rows) == 5
        assert preview.sample_rows[0] == ["15/01/2024", "Supermarket", "-45,50", "Groceries"]
        # ";;;" has no content and is not counted
        assert preview.total_rows == 5
        assert preview.has_negative_amounts is True

    def test_export_preview_has_no_negative_amounts(self, export_csv_content):
        preview = get_csv_preview_data(export_csv_content)

        assert preview.delimiter == ","
        assert preview.total_rows == 3
        assert preview.sample_rows[2][1] == "Dinner, with friends"
        assert preview.has_negative_amounts is False

    def test_negative_detection_ignores_currency_and_quotes(self):
        preview = get_csv_preview_data('Date,Description,Amount\n2024-01-01,Shop," - €12.00"')
        assert preview.has_negative_amounts is True

    def test_dash_without_digit_is_not_negative(self):
        preview = get_csv_preview_data("Date,Description,Amount\n2024-01-01,-,12.00")
        assert preview.has_negative_amounts is False

    def test_blank_lines_are_dropped(self):
        preview = get_csv_preview_data("\n\nDate,Description,Amount\n\n2024-01-01,Shop,1.00\n\n")
        assert preview.headers == ["Date", "Description", "Amount"]
        assert preview.sample_rows == [["2024-01-01", "Shop", "1.00"]]
        assert preview.total_rows == 1

    def test_empty_content(self):
        preview = get_csv_preview_data("")
        assert preview.headers == []
        assert preview.sample_rows == []
        assert preview.total_rows == 0
        assert preview.delimiter == ","
        assert preview.has_negative_amounts is False

    def test_sample_rows_are_capped(self):
        lines = ["Date,Description,Amount"] + [
            f"2024-01-{day:02d},Item {day},{day}.00" for day in range(1, 11)
        ]
        preview = get_csv_preview_data("\n".join(lines))
        assert len(preview.sample_rows) == 5
        assert preview.total_rows == 10
