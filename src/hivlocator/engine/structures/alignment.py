from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class AlignmentResult:
    reference_start: int  # 0-based, inclusive
    reference_end: int  # 0-based, exclusive
    score: float
    identities: int
    aligned_length: int
    gaps: int
    reverse_complement: bool
    frame: Union[int, None] = None
    # gapped rows over the placed span, in the aligned residues
    aligned_reference: str = ""
    aligned_query: str = ""

    @property
    def indel(self) -> bool:
        return self.gaps > 0

    @property
    def percent_identity(self) -> int:
        if self.aligned_length <= 0:
            return 0
        # half-up rounding to a whole percent
        return (200 * self.identities + self.aligned_length) // (2 * self.aligned_length)
