"""
Label Parser Tests

Covers delivery label parsing and traceability number normalization:
1. Two-line records consume both lines
2. Malformed lines are skipped one at a time
3. Label-number primaries are counted as excluded, never emitted
4. Normalization / validation / display formatting
"""

import pytest

from label_parser import (
    NO_IDENTIFIERS_MESSAGE,
    format_trace_number,
    is_label_number,
    is_valid_trace_number,
    normalize_trace_number,
    parse_label_text,
    split_lines,
)


TWO_LINE_LABEL = (
    "20251210|한우[설도]|서울길원초등학교(올본)|다짐|14.1kg|002192205667\n"
    "L0021922056671|음성농협축산물공판장\n"
)


class TestNormalize:
    """Traceability number normalization."""

    def test_strips_hyphens_and_spaces(self):
        assert normalize_trace_number("002-1234-5678-9") == "002123456789"
        assert normalize_trace_number("0021 9220 5667") == "002192205667"
        assert normalize_trace_number("") == ""

    def test_valid_trace_number(self):
        assert is_valid_trace_number("002-1919-1046-2")
        assert not is_valid_trace_number("12345")
        assert not is_valid_trace_number("0021922056671")
        assert not is_valid_trace_number("L00123456789")

    def test_label_number(self):
        assert is_label_number("L00123456789")
        assert is_label_number("l-0012")
        assert not is_label_number("002192205667")
        assert not is_label_number("")

    def test_format_trace_number(self):
        assert format_trace_number("002123456789") == "002-1234-5678-9"
        assert format_trace_number("12345") == "12345"


class TestSplitLines:

    def test_bom_crlf_and_blank_lines(self):
        text = "﻿line one\r\n\r\n  line two  \n\n"
        assert split_lines(text) == ["line one", "line two"]

    def test_empty(self):
        assert split_lines("") == []


class TestParseLabelText:
    """Record assembly from label text."""

    def test_two_line_record(self):
        """The secondary label line is consumed, not emitted."""
        result = parse_label_text(TWO_LINE_LABEL)

        assert len(result.records) == 1
        record = result.records[0]
        assert record.trace_number == "002192205667"
        assert record.production_or_birth_date == "2025-12-10"
        assert record.delivery.cut_name == "설도"
        assert record.delivery.processing_type == "다짐"
        assert record.delivery.weight_kg == "14.1"
        assert record.delivery.destination == "서울길원초등학교"
        assert record.breed_label == "한우 / 설도 (14.1kg)"

        assert result.record_count == 1
        assert result.skipped_lines == 0
        assert result.excluded_count == 0
        assert result.secondary_numbers == ["L0021922056671"]

    def test_malformed_leading_line_skipped(self):
        """A bad first line does not swallow the following record."""
        text = (
            "출고 라벨 목록\n"
            "20251210|한우[설도]|서울길원초등학교(올본)|다짐|14.1kg|002192205667\n"
        )
        result = parse_label_text(text)

        assert len(result.records) == 1
        assert result.records[0].trace_number == "002192205667"
        assert result.skipped_lines == 1

    def test_single_line_records_back_to_back(self):
        text = (
            "20251210|한우[설도]|A학교|다짐|14.1kg|002192205667\n"
            "20251211|한우[양지]|B학교(01)|슬라이스|3.5KG|002191046216\n"
        )
        result = parse_label_text(text)

        assert [r.trace_number for r in result.records] == ["002192205667", "002191046216"]
        assert result.records[1].delivery.weight_kg == "3.5"
        assert result.records[1].delivery.destination == "B학교"

    def test_label_number_primary_is_excluded(self):
        text = "20251210|한우[설도]|A학교|다짐|14.1kg|L00123456789\n"
        result = parse_label_text(text)

        assert result.records == []
        assert result.excluded_count == 1
        assert result.record_count == 1

    def test_missing_primary_number_skipped(self):
        text = "20251210|한우[설도]|A학교|다짐|14.1kg\n"
        result = parse_label_text(text)

        assert result.records == []
        assert result.skipped_lines == 1

    def test_product_without_part(self):
        text = "20251210|돼지고기|A학교|다짐|2kg|002192205667\n"
        record = parse_label_text(text).records[0]

        assert record.delivery.cut_name == "-"
        assert record.breed_label == "돼지고기 / - (2kg)"

    def test_empty_destination_is_none(self):
        text = "20251210|한우[설도]|(올본)|다짐|14.1kg|002192205667\n"
        record = parse_label_text(text).records[0]
        assert record.delivery.destination is None

    def test_lowercase_second_line_not_consumed(self):
        """Only an uppercase letter + 10 digits marks a secondary line."""
        text = (
            "20251210|한우[설도]|A학교|다짐|14.1kg|002192205667\n"
            "l0021922056671|음성농협축산물공판장\n"
        )
        result = parse_label_text(text)

        assert len(result.records) == 1
        assert result.secondary_numbers == []
        assert result.skipped_lines == 1

    @pytest.mark.parametrize("text", ["", "\n\n", "hello\nworld"])
    def test_nothing_found(self, text):
        result = parse_label_text(text)

        assert result.is_empty
        assert result.message == NO_IDENTIFIERS_MESSAGE

    def test_message_none_when_records_found(self):
        assert parse_label_text(TWO_LINE_LABEL).message is None


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
