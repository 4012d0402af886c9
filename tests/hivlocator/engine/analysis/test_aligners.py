import random
import warnings

import pytest
from pytest import fixture

from hivlocator.engine.alphabets import reverse_complement
from hivlocator.engine.analysis.aligners import ALIGNERS, align_accurate, align_fast, align_query, build_accurate_aligner
from hivlocator.engine.exceptions.locator import ReferenceTooShortException
from hivlocator.engine.structures.alignment import AlignmentResult
from hivlocator.engine.structures.genomics import Algorithm, QueryType

NT = QueryType.NUCLEOTIDE
AA = QueryType.AMINO_ACID


def substitute(sequence: str, position: int) -> str:
    replacement = "C" if sequence[position] != "C" else "G"
    return sequence[:position] + replacement + sequence[position + 1:]


@fixture
def genome(hxb2) -> str:
    return hxb2.sequence


@fixture(params=[align_accurate, align_fast])
def aligner(request):
    return request.param


class TestAligners:
    def test_exact_substring_is_placed_with_full_identity(self, genome, aligner):
        alignment = aligner(genome[1000:1030], genome, NT)
        assert (alignment.reference_start, alignment.reference_end) == (1000, 1030)
        assert alignment.identities == 30
        assert alignment.gaps == 0
        assert alignment.percent_identity == 100

    def test_algorithms_agree_on_exact_substrings(self, genome):
        query = genome[2200:2260]
        accurate = align_accurate(query, genome, NT)
        fast = align_fast(query, genome, NT)
        assert (accurate.reference_start, accurate.reference_end) == (fast.reference_start, fast.reference_end)
        assert accurate.percent_identity == fast.percent_identity == 100

    def test_single_substitution(self, genome, aligner):
        query = substitute(genome[700:740], 5)
        alignment = aligner(query, genome, NT)
        assert (alignment.reference_start, alignment.reference_end) == (700, 740)
        assert alignment.identities == 39
        assert alignment.percent_identity == 98

    def test_all_ambiguous_query_matches_anywhere(self, genome, aligner):
        alignment = aligner("N" * 10, genome, NT)
        assert alignment.percent_identity == 100
        assert alignment.reference_end - alignment.reference_start == 10

    def test_fast_scan_ties_go_to_lowest_offset(self, genome):
        assert align_fast("NNNNNNNNNN", genome, NT).reference_start == 0

    def test_reference_shorter_than_query(self, aligner):
        with pytest.raises(ReferenceTooShortException):
            aligner("ACGTACGTAC", "ACGT", NT)

    def test_dispatch_table_covers_both_algorithms(self):
        assert ALIGNERS[Algorithm.ACCURATE] is align_accurate
        assert ALIGNERS[Algorithm.FAST] is align_fast

    def test_aligner_configuration_raises_no_warnings(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            build_accurate_aligner(NT)
            build_accurate_aligner(AA)


class TestRepeats:
    @fixture
    def repeat_genome(self) -> str:
        rand = random.Random("repeat")
        left_flank, right_flank = ("".join(rand.choices("CG", k=200)) for _ in range(2))
        return left_flank + "A" * 1200 + right_flank

    def test_long_run_resolves_to_its_first_copy(self, repeat_genome, aligner):
        alignment = aligner("A" * 10, repeat_genome, NT)
        assert (alignment.reference_start, alignment.reference_end) == (200, 210)
        assert alignment.percent_identity == 100

    def test_algorithms_agree_inside_a_repeat(self, repeat_genome):
        query = "A" * 30
        accurate = align_accurate(query, repeat_genome, NT)
        fast = align_fast(query, repeat_genome, NT)
        assert (accurate.reference_start, accurate.reference_end) == (fast.reference_start, fast.reference_end) == (200, 230)

    def test_flanked_repeat_copy_still_found(self, repeat_genome):
        query = repeat_genome[190:215]
        assert align_accurate(query, repeat_genome, NT).reference_start == 190


class TestGappedPlacement:
    @fixture
    def deletion_query(self, genome):
        return genome[500:560] + genome[565:625]

    def test_accurate_models_the_deletion(self, genome, deletion_query):
        alignment = align_accurate(deletion_query, genome, NT)
        assert (alignment.reference_start, alignment.reference_end) == (500, 625)
        assert alignment.gaps == 5
        assert alignment.identities == 120
        assert alignment.aligned_length == 125
        assert alignment.percent_identity == 96
        assert alignment.indel
        assert alignment.aligned_reference == genome[500:625]
        assert alignment.aligned_query.count("-") == 5
        assert alignment.aligned_query.replace("-", "") == deletion_query

    def test_fast_stays_ungapped(self, genome, deletion_query):
        alignment = align_fast(deletion_query, genome, NT)
        assert alignment.reference_end - alignment.reference_start == len(deletion_query)
        assert alignment.reference_start in (500, 505)
        assert alignment.gaps == 0
        assert alignment.percent_identity < 100
        assert not alignment.indel
        assert alignment.aligned_query == deletion_query
        assert alignment.aligned_reference == genome[alignment.reference_start:alignment.reference_end]


@pytest.mark.parametrize("algorithm", list(Algorithm))
class TestAlignQuery:
    def test_reverse_complement_detected(self, genome, algorithm):
        query = reverse_complement(genome[200:240])
        alignment = align_query(query, (genome,), NT, algorithm)
        assert alignment.reverse_complement
        assert (alignment.reference_start, alignment.reference_end) == (200, 240)
        assert alignment.percent_identity == 100

    def test_forward_strand_wins_ties(self, genome, algorithm):
        palindrome = "GAATTCGAATTC"
        assert reverse_complement(palindrome) == palindrome
        target = genome[:300] + palindrome + genome[300:]
        alignment = align_query(palindrome, (target,), NT, algorithm)
        assert not alignment.reverse_complement
        assert alignment.reference_start == 300

    def test_lower_case_and_uracil_queries(self, genome, algorithm):
        query = genome[900:930].lower().replace("t", "u")
        alignment = align_query(query, (genome,), NT, algorithm)
        assert (alignment.reference_start, alignment.reference_end) == (900, 930)
        assert alignment.percent_identity == 100

    def test_amino_acid_query_found_in_its_frame(self, hxb2, algorithm):
        frame = hxb2.frames[1]
        start = next(index for index in range(50, len(frame)) if "*" not in frame[index:index + 10])
        alignment = align_query(frame[start:start + 10], hxb2.frames, AA, algorithm)
        assert alignment.frame == 1
        assert (alignment.reference_start, alignment.reference_end) == (start, start + 10)
        assert alignment.percent_identity == 100
        assert not alignment.reverse_complement


@pytest.mark.parametrize("identities,aligned_length,expected", [(11, 12, 92), (1, 8, 13), (0, 12, 0), (0, 0, 0), (12, 12, 100)])
def test_percent_identity_rounds_half_up(identities, aligned_length, expected):
    alignment = AlignmentResult(0, aligned_length, 0.0, identities, aligned_length, 0, False)
    assert alignment.percent_identity == expected
