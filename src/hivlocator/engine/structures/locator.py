from dataclasses import dataclass
from typing import Union

from hivlocator.engine.exceptions.locator import LocatorException


@dataclass(frozen=True)
class Locator:
    start_pos: int
    end_pos: int
    similarity: int
    reverse_complement: bool
    query_seq: str
    reference_match: str


@dataclass(frozen=True)
class LocatorAlignment:
    """
    How the query lines up with the reference match.

    Rows are gapped with '-' and hold the residues that were aligned: the
    reverse complement for reverse-strand placements, translated codons
    for amino-acid queries.
    """
    indel: bool
    query_aligned: str
    reference_aligned: str


@dataclass(frozen=True)
class LocatedQuery:
    index: int
    query: str
    locator: Union[Locator, None]
    error: Union[LocatorException, None] = None
    alignment: Union[LocatorAlignment, None] = None

    @property
    def ok(self) -> bool:
        return self.locator is not None

    def below(self, min_similarity: int) -> bool:
        return self.locator is not None and self.locator.similarity < min_similarity
