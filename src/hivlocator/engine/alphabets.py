from functools import cache

import numpy as np
from Bio.Align import substitution_matrices
from Bio.Seq import reverse_complement as _biopython_reverse_complement

from hivlocator.engine.exceptions.locator import InvalidAlphabetException, QueryTooShortException
from hivlocator.engine.structures.genomics import QueryType

MINIMUM_QUERY_LENGTH = 4

NUCLEOTIDE_RESIDUES = {
    "A": {"A"},
    "C": {"C"},
    "G": {"G"},
    "T": {"T"},
    "U": {"T"},
    "R": {"A", "G"},
    "Y": {"C", "T"},
    "S": {"G", "C"},
    "W": {"A", "T"},
    "K": {"G", "T"},
    "M": {"A", "C"},
    "B": {"C", "G", "T"},
    "D": {"A", "G", "T"},
    "H": {"A", "C", "T"},
    "V": {"A", "C", "G"},
    "N": {"A", "C", "G", "T"},
}

_STANDARD_AMINO_ACIDS = "ACDEFGHIKLMNPQRSTVWY"

AMINO_ACID_RESIDUES = {
    **{residue: {residue} for residue in _STANDARD_AMINO_ACIDS},
    "B": {"D", "N"},
    "Z": {"E", "Q"},
    "J": {"I", "L"},
    "X": set(_STANDARD_AMINO_ACIDS) | {"*"},
    # Stops only ever come from translated reference frames
    "*": {"*"},
}

QUERY_ALPHABETS = {
    QueryType.NUCLEOTIDE: frozenset(NUCLEOTIDE_RESIDUES),
    QueryType.AMINO_ACID: frozenset(AMINO_ACID_RESIDUES) - {"*"},
}

_CASE_INSENSITIVE_ALPHABETS = {
    query_type: alphabet | frozenset(letter.lower() for letter in alphabet)
    for query_type, alphabet in QUERY_ALPHABETS.items()
}

_RESIDUE_SETS = {
    QueryType.NUCLEOTIDE: NUCLEOTIDE_RESIDUES,
    QueryType.AMINO_ACID: AMINO_ACID_RESIDUES,
}

_QUERY_KIND = {
    QueryType.NUCLEOTIDE: "nucleotide",
    QueryType.AMINO_ACID: "amino acid",
}


def validate_query(raw_query: str, query_type: QueryType) -> str:
    """
    Checks a raw query against the alphabet of its declared type.

    Surrounding whitespace is trimmed and the result is returned with its
    original case. The length check runs first, so anything of three
    characters or fewer is reported as too short whatever it contains.
    """
    query = raw_query.strip()
    query_kind = _QUERY_KIND[query_type]
    if len(query) < MINIMUM_QUERY_LENGTH:
        raise QueryTooShortException(query, query_kind.capitalize())
    # checked before any case folding
    invalid = sorted(set(query) - _CASE_INSENSITIVE_ALPHABETS[query_type])
    if invalid:
        raise InvalidAlphabetException(query, "".join(invalid), query_kind)
    return query


def is_match(first: str, second: str, query_type: QueryType) -> bool:
    first = first.upper()
    second = second.upper()
    if first == second:
        return True
    residue_sets = _RESIDUE_SETS[query_type]
    if first not in residue_sets or second not in residue_sets:
        return False
    return bool(residue_sets[first] & residue_sets[second])


@cache
def compatibility_matrix(query_type: QueryType) -> tuple[str, np.ndarray]:
    """Tabulates is_match over every letter either side of an alignment may carry."""
    alphabet = "".join(_RESIDUE_SETS[query_type])
    table = np.array(
        [[is_match(first, second, query_type) for second in alphabet] for first in alphabet],
        dtype=bool)
    table.setflags(write=False)
    return alphabet, table


@cache
def _encoding_table(query_type: QueryType) -> np.ndarray:
    alphabet, _ = compatibility_matrix(query_type)
    lookup = np.full(256, -1, dtype=np.int16)
    for index, letter in enumerate(alphabet):
        lookup[ord(letter)] = index
        lookup[ord(letter.lower())] = index
    lookup.setflags(write=False)
    return lookup


def encode(sequence: str, query_type: QueryType) -> np.ndarray:
    codes = _encoding_table(query_type)[np.frombuffer(sequence.encode("ascii"), dtype=np.uint8)]
    if np.any(codes < 0):
        raise ValueError(f"Sequence contains letters outside the {_QUERY_KIND[query_type]} alphabet.")
    return codes.astype(np.intp)


@cache
def substitution_matrix(query_type: QueryType) -> substitution_matrices.Array:
    alphabet, table = compatibility_matrix(query_type)
    scores = np.where(table, 1.0, -1.0)
    return substitution_matrices.Array(alphabet, dims=2, data=scores)


def reverse_complement(sequence: str) -> str:
    return _biopython_reverse_complement(sequence)
