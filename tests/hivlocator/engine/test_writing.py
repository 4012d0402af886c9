import csv
from os import path

from pytest import fixture

from hivlocator.engine.exceptions.locator import QueryTooShortException
from hivlocator.engine.structures.locator import LocatedQuery, Locator, LocatorAlignment
from hivlocator.engine.writing import ALIGNMENT_FIELDS, LOCATOR_FIELDS, locator_to_line, write_locators_as_tsv


@fixture
def dummy_locator():
    return Locator(2648, 2659, 92, False, "ATGCATGCATGC", "ATGCATCCATGC")


def read_tsv(tsv_path):
    with open(tsv_path) as tsv_handle:
        return list(csv.reader(tsv_handle, delimiter="\t"))


def test_locator_line_is_tab_separated(dummy_locator):
    assert locator_to_line(dummy_locator) == "2648\t2659\t92\tfalse\tATGCATGCATGC\tATGCATCCATGC"


def test_reverse_complement_rendered_lower_case(dummy_locator):
    fields = locator_to_line(Locator(1, 4, 100, True, "ACGT", "ACGT")).split("\t")
    assert fields[3] == "true"
    assert len(fields) == len(LOCATOR_FIELDS)


def test_tsv_includes_failures(tmp_path, dummy_locator):
    output_path = path.join(tmp_path, "out.tsv")
    located_queries = [
        LocatedQuery(0, "ATGCATGCATGC", dummy_locator),
        LocatedQuery(1, "AT", None, QueryTooShortException("AT")),
    ]
    write_locators_as_tsv(located_queries, output_path, {0: "first"})
    lines = read_tsv(output_path)
    assert lines[0] == ["query_name", *LOCATOR_FIELDS, *ALIGNMENT_FIELDS, "error"]
    assert lines[1] == ["first", "2648", "2659", "92", "false", "ATGCATGCATGC", "ATGCATCCATGC", "", "", "", ""]
    assert lines[2][0] == "query_2"
    assert lines[2][1:-1] == [""] * (len(LOCATOR_FIELDS) + len(ALIGNMENT_FIELDS))
    assert lines[2][-1] == "Nucleotide sequence length too short"


def test_tsv_reports_indels_and_gapped_rows(tmp_path):
    output_path = path.join(tmp_path, "gapped.tsv")
    locator = Locator(11, 20, 80, False, "ACGTAACGT", "ACGTTAACGT")
    alignment = LocatorAlignment(True, "ACGT-AACGT", "ACGTTAACGT")
    write_locators_as_tsv([LocatedQuery(0, "ACGTAACGT", locator, alignment=alignment)], output_path)
    row = dict(zip(*read_tsv(output_path)))
    assert row["indel"] == "true"
    assert row["query_aligned"] == "ACGT-AACGT"
    assert row["reference_aligned"] == "ACGTTAACGT"
    assert row["error"] == ""
