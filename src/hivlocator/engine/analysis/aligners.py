import dataclasses
import logging
from itertools import islice
from typing import Callable, Sequence, Union

import numpy as np
from Bio.Align import PairwiseAligner

from hivlocator.engine.alphabets import compatibility_matrix, encode, reverse_complement, substitution_matrix
from hivlocator.engine.exceptions.locator import ReferenceTooShortException
from hivlocator.engine.structures.alignment import AlignmentResult
from hivlocator.engine.structures.genomics import Algorithm, QueryType

logger = logging.getLogger(__name__)

OPEN_GAP_SCORE = -6
EXTEND_GAP_SCORE = -1
# Co-optimal gap arrangements inspected once the placement end is fixed
MAX_OPTIMAL_ALIGNMENTS = 256
ANCHOR_LENGTH = 12

_UNAMBIGUOUS = {
    QueryType.NUCLEOTIDE: frozenset("ACGT"),
    QueryType.AMINO_ACID: frozenset("ACDEFGHIKLMNPQRSTVWY"),
}


def _check_lengths(query: str, target: str):
    if len(target) < len(query):
        raise ReferenceTooShortException(len(query), len(target))


def build_accurate_aligner(query_type: QueryType) -> PairwiseAligner:
    aligner = PairwiseAligner()
    aligner.mode = "global"
    aligner.substitution_matrix = substitution_matrix(query_type)
    aligner.open_gap_score = OPEN_GAP_SCORE
    aligner.extend_gap_score = EXTEND_GAP_SCORE
    # the whole query is placed; reference flanks on either side cost nothing
    aligner.end_deletion_score = 0
    return aligner


def aligned_strings(target: str, query: str, target_blocks, query_blocks) -> tuple[str, str]:
    """Gapped rows covering the placed reference span and the whole query."""
    reference_row = []
    query_row = []
    target_position = int(target_blocks[0][0])
    query_position = 0
    for (target_start, target_end), (query_start, query_end) in zip(target_blocks, query_blocks):
        target_start, target_end, query_start, query_end = int(target_start), int(target_end), int(query_start), int(query_end)
        if target_start > target_position:
            reference_row.append(target[target_position:target_start])
            query_row.append("-" * (target_start - target_position))
        if query_start > query_position:
            reference_row.append("-" * (query_start - query_position))
            query_row.append(query[query_position:query_start])
        reference_row.append(target[target_start:target_end])
        query_row.append(query[query_start:query_end])
        target_position = target_end
        query_position = query_end
    if query_position < len(query):
        reference_row.append("-" * (len(query) - query_position))
        query_row.append(query[query_position:])
    return "".join(reference_row), "".join(query_row)


def _leftmost_optimal_end(aligner: PairwiseAligner, query: str, target: str) -> int:
    # prefix scores never decrease with the prefix length
    best_score = aligner.score(target, query)
    low, high = 1, len(target)
    while low < high:
        middle = (low + high) // 2
        if aligner.score(target[:middle], query) >= best_score:
            high = middle
        else:
            low = middle + 1
    return high


def align_accurate(query: str, target: str, query_type: QueryType) -> AlignmentResult:
    """
    Gapped dynamic-programming placement of the whole query on the target.

    Co-optimal placements are ordered by where they end on the target, then
    by where they start, and the first is kept. The shortest target prefix
    that still reaches the optimal score fixes the end, so repeats of any
    length resolve to their leftmost copy. Identity counts compatible columns
    over aligned columns, internal gaps and any query residues left unaligned.
    """
    _check_lengths(query, target)
    aligner = build_accurate_aligner(query_type)
    end = _leftmost_optimal_end(aligner, query, target)
    # every optimal alignment of the prefix ends at its last residue
    top_alignment = min(
        islice(aligner.align(target[:end], query), MAX_OPTIMAL_ALIGNMENTS),
        key=lambda alignment: alignment.aligned[0][0][0])
    target_blocks, query_blocks = top_alignment.aligned

    _, table = compatibility_matrix(query_type)
    target_codes = encode(target, query_type)
    query_codes = encode(query, query_type)
    identities = 0
    block_columns = 0
    for (target_start, target_end), (query_start, query_end) in zip(target_blocks, query_blocks):
        identities += int(table[target_codes[target_start:target_end], query_codes[query_start:query_end]].sum())
        block_columns += int(target_end - target_start)

    reference_start = int(target_blocks[0][0])
    reference_end = int(target_blocks[-1][1])
    aligned_length = (reference_end - reference_start) + len(query) - block_columns
    aligned_reference, aligned_query = aligned_strings(target, query, target_blocks, query_blocks)
    return AlignmentResult(
        reference_start=reference_start,
        reference_end=reference_end,
        score=float(top_alignment.score),  # type: ignore
        identities=identities,
        aligned_length=aligned_length,
        gaps=aligned_length - block_columns,
        reverse_complement=False,
        aligned_reference=aligned_reference,
        aligned_query=aligned_query,
    )


def _anchor_offsets(query: str, target: str, query_type: QueryType) -> Union[np.ndarray, None]:
    window_count = len(target) - len(query) + 1
    unambiguous = _UNAMBIGUOUS[query_type]
    offsets = set()
    for query_position in range(0, len(query) - ANCHOR_LENGTH + 1, ANCHOR_LENGTH):
        anchor = query[query_position:query_position + ANCHOR_LENGTH]
        if not unambiguous.issuperset(anchor):
            continue
        hit = target.find(anchor)
        while hit != -1:
            offset = hit - query_position
            if 0 <= offset < window_count:
                offsets.add(offset)
            hit = target.find(anchor, hit + 1)
    if not offsets:
        return None
    return np.array(sorted(offsets), dtype=np.intp)


def align_fast(query: str, target: str, query_type: QueryType) -> AlignmentResult:
    """
    Ungapped placement: scores target windows by positional compatibility.

    Windows are seeded from exact anchor k-mer hits when the query has any;
    otherwise every offset is scanned. Ties go to the lowest offset.
    """
    _check_lengths(query, target)
    offsets = _anchor_offsets(query, target, query_type)
    if offsets is None:
        offsets = np.arange(len(target) - len(query) + 1, dtype=np.intp)

    _, table = compatibility_matrix(query_type)
    target_codes = encode(target, query_type)
    matches = np.zeros(len(offsets), dtype=np.int64)
    for query_position, query_code in enumerate(encode(query, query_type)):
        matches += table[query_code, target_codes[offsets + query_position]]

    best = int(np.argmax(matches))
    reference_start = int(offsets[best])
    identities = int(matches[best])
    return AlignmentResult(
        reference_start=reference_start,
        reference_end=reference_start + len(query),
        score=float(identities),
        identities=identities,
        aligned_length=len(query),
        gaps=0,
        reverse_complement=False,
        aligned_reference=target[reference_start:reference_start + len(query)],
        aligned_query=query,
    )


ALIGNERS: dict[Algorithm, Callable[[str, str, QueryType], AlignmentResult]] = {
    Algorithm.ACCURATE: align_accurate,
    Algorithm.FAST: align_fast,
}


def align_query(query: str, targets: Sequence[str], query_type: QueryType, algorithm: Algorithm) -> AlignmentResult:
    """
    Runs one aligner over every orientation or reading frame and keeps the best.

    Nucleotide queries are tried forward, then reverse complemented, against
    the single nucleotide target; amino-acid queries against each translated
    frame. The earliest candidate wins exact ties, so the forward strand and
    the lowest frame are preferred.
    """
    aligner = ALIGNERS[algorithm]
    normalised = query.upper()
    if query_type is QueryType.NUCLEOTIDE:
        normalised = normalised.replace("U", "T")
        candidates = [
            (normalised, targets[0], False, None),
            (reverse_complement(normalised), targets[0], True, None),
        ]
    else:
        candidates = [(normalised, target, False, frame) for frame, target in enumerate(targets)]

    alignments = []
    for candidate_query, target, reverse_complemented, frame in candidates:
        alignment = dataclasses.replace(
            aligner(candidate_query, target, query_type),
            reverse_complement=reverse_complemented,
            frame=frame)
        logger.debug(
            f"{algorithm.name.lower()} placement {alignment.reference_start}-{alignment.reference_end} "
            f"score={alignment.score} reverse_complement={reverse_complemented} frame={frame}")
        alignments.append(alignment)
    # max keeps the first of equal scores
    return max(alignments, key=lambda alignment: alignment.score)
