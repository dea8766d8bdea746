"""Tests for the ``dipres_ley`` budget-law dialect."""

from __future__ import annotations

import datetime

import pytest

from factspine.core.errors import AmbiguityError
from factspine.parsing.fiscal_law import HEADER, METHOD, parse_fiscal_law

HEADER_LINE = ";".join(HEADER)


def _doc(*lines: str) -> bytes:
    return "\n".join([HEADER_LINE, *lines, ""]).encode("utf-8")


class TestAggregation:
    def test_sums_per_partida_in_thousands(self, fiscal_law_csv):
        result = parse_fiscal_law(fiscal_law_csv, "dipres_ley_2024")

        assert result.method == METHOD
        by_code = {c.dims["partida"]: c for c in result.candidates}
        assert by_code["01"].value == 600000000.0
        assert by_code["02"].value == 50000000.0

    def test_candidate_fields(self, fiscal_law_csv):
        result = parse_fiscal_law(fiscal_law_csv, "dipres_ley_2024")
        presidencia = next(c for c in result.candidates if c.dims["partida"] == "01")

        assert presidencia.entity_key == "presidencia_de_la_república"
        assert presidencia.entity_name == "Presidencia de la República"
        assert presidencia.metric_key == "presupuesto_ley"
        assert presidencia.period_start == datetime.date(2024, 1, 1)
        assert presidencia.period_end == datetime.date(2024, 12, 31)
        assert presidencia.dims == {"partida": "01", "monto_dolar": 5000}
        assert presidencia.location == "dipres_ley:partida=01:lines=2-5:rows=3"

    def test_sorted_by_entity_key(self, fiscal_law_csv):
        result = parse_fiscal_law(fiscal_law_csv, "dipres_ley_2024")
        assert [c.entity_key for c in result.candidates] == [
            "congreso_nacional",
            "presidencia_de_la_república",
        ]

    def test_row_order_does_not_change_values(self):
        rows = [
            "01;01;01;21;;;Presidencia;100000;",
            "02;01;01;21;;;Congreso;50000;",
            "01;01;01;22;;;Presidencia;200000;",
        ]
        forward = parse_fiscal_law(_doc(*rows), "dipres_ley_2024")
        backward = parse_fiscal_law(_doc(*reversed(rows)), "dipres_ley_2024")
        assert [(c.entity_key, c.value) for c in forward.candidates] == [
            (c.entity_key, c.value) for c in backward.candidates
        ]

    def test_first_name_wins_for_a_code(self):
        result = parse_fiscal_law(
            _doc("05;01;01;21;;;Ministerio del Interior;1;", "05;01;01;22;;;Interior;2;"),
            "dipres_ley_2024",
        )
        assert result.candidates[0].entity_name == "Ministerio del Interior"
        assert result.candidates[0].value == 3000.0


class TestRejects:
    def test_bad_rows_are_skipped(self):
        result = parse_fiscal_law(
            _doc(
                "01;01;01;21;;;Presidencia;100;",
                "01;01;01;21;;Presidencia;100;",
                ";01;01;21;;;Sin codigo;100;",
                "03;01;01;21;;;;100;",
                "01;01;01;21;;;Presidencia;1.5;",
            ),
            "dipres_ley_2024",
        )
        assert result.facts_count == 1
        assert [(r.reason_code, r.location) for r in result.rejects] == [
            ("FIELD_COUNT", "dipres_ley:line=3"),
            ("MISSING_CODE", "dipres_ley:line=4"),
            ("MISSING_ENTITY", "dipres_ley:line=5"),
            ("BAD_AMOUNT", "dipres_ley:line=6"),
        ]

    def test_non_ascii_and_underscored_integers_are_rejects(self):
        result = parse_fiscal_law(
            _doc(
                "01;01;01;21;;;Presidencia;100;",
                "01;01;01;22;;;Presidencia;1_000;",
                "01;01;01;23;;;Presidencia;１００;",
                "01;01;01;24;;;Presidencia;100;²",
            ),
            "dipres_ley_2024",
        )

        assert result.candidates[0].value == 100000.0
        assert [(r.reason_code, r.line_number) for r in result.rejects] == [
            ("BAD_AMOUNT", 3),
            ("BAD_AMOUNT", 4),
            ("BAD_AMOUNT", 5),
        ]

    def test_multiline_record_starts_its_line_range(self):
        result = parse_fiscal_law(
            _doc('01;01;01;21;;;"Presidencia\nde la República";100;', "01;01;01;22;;;P;200;"),
            "dipres_ley_2024",
        )
        assert result.candidates[0].location == "dipres_ley:partida=01:lines=2-4:rows=2"


class TestAmbiguity:
    def test_wrong_header(self):
        data = b"Wrong;Headers;Here;For;Testing;Invalid;Format;Columns;Data\n01;a;b;c;d;e;f;1;2\n"
        with pytest.raises(AmbiguityError) as exc_info:
            parse_fiscal_law(data, "dipres_ley_2024")
        assert exc_info.value.requirement == "header"

    def test_reordered_header(self):
        swapped = list(HEADER)
        swapped[7], swapped[8] = swapped[8], swapped[7]
        data = ";".join(swapped).encode() + b"\n01;01;01;21;;;Presidencia;100;5\n"
        with pytest.raises(AmbiguityError) as exc_info:
            parse_fiscal_law(data, "dipres_ley_2024")
        assert exc_info.value.requirement == "header"

    def test_header_missing_a_column(self):
        data = ";".join(HEADER[:-1]).encode() + b"\n01;01;01;21;;;Presidencia;100\n"
        with pytest.raises(AmbiguityError) as exc_info:
            parse_fiscal_law(data, "dipres_ley_2024")
        assert exc_info.value.requirement == "header"

    def test_header_must_match_exactly(self):
        data = HEADER_LINE.lower().encode() + b"\n"
        with pytest.raises(AmbiguityError):
            parse_fiscal_law(data, "dipres_ley_2024")

    def test_year_required_in_source_id(self, fiscal_law_csv):
        with pytest.raises(AmbiguityError) as exc_info:
            parse_fiscal_law(fiscal_law_csv, "dipres_ley")
        assert exc_info.value.requirement == "year"

    def test_bom_is_tolerated(self, fiscal_law_csv):
        result = parse_fiscal_law(b"\xef\xbb\xbf" + fiscal_law_csv, "dipres_ley_2024")
        assert result.facts_count == 2
