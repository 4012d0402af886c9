import os
from dataclasses import dataclass
from typing import Union

from hivlocator.engine.structures.genomics import Algorithm, QueryType, ReferenceGenome


@dataclass(frozen=True)
class LocatorConfig:
    """Settings shared by every query of one batch."""
    reference: ReferenceGenome = ReferenceGenome.HXB2
    query_type: QueryType = QueryType.NUCLEOTIDE
    algorithm: Algorithm = Algorithm.ACCURATE
    max_workers: Union[int, None] = None
    # results under this similarity are still reported, only flagged
    min_similarity: int = 0

    def __post_init__(self):
        """Coerce plain names and numbers into the enums and validate ranges"""
        if not isinstance(self.reference, ReferenceGenome):
            object.__setattr__(self, "reference", ReferenceGenome.from_name(str(self.reference)))
        if not isinstance(self.query_type, QueryType):
            object.__setattr__(self, "query_type", QueryType.from_name(str(self.query_type)))
        if not isinstance(self.algorithm, Algorithm):
            object.__setattr__(self, "algorithm", Algorithm.from_value(self.algorithm))
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
        if not 0 <= self.min_similarity <= 100:
            raise ValueError(f"min_similarity must be between 0 and 100, got {self.min_similarity}")

    @property
    def worker_count(self) -> int:
        return self.max_workers or os.cpu_count() or 1
