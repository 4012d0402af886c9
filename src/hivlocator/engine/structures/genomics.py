from dataclasses import dataclass
from enum import Enum, IntEnum


class ReferenceGenome(Enum):
    HXB2 = "HXB2"
    SIVmm239 = "SIVmm239"

    @property
    def accession(self) -> str:
        return _REFERENCE_ACCESSIONS[self]

    @classmethod
    def from_name(cls, name: str) -> "ReferenceGenome":
        for genome in cls:
            if genome.value.lower() == name.strip().lower():
                return genome
        raise ValueError("Reference genome must be either 'HXB2' or 'SIVmm239'")


# GenBank records the field numbers its coordinates against
_REFERENCE_ACCESSIONS = {
    ReferenceGenome.HXB2: "K03455.1",
    ReferenceGenome.SIVmm239: "M33262.1",
}


class QueryType(Enum):
    NUCLEOTIDE = "nt"
    AMINO_ACID = "aa"

    @classmethod
    def from_name(cls, name: str) -> "QueryType":
        for query_type in cls:
            if query_type.value == name.strip().lower():
                return query_type
        raise ValueError("Type of query must be either 'nt' or 'aa'")


class Algorithm(IntEnum):
    ACCURATE = 1
    FAST = 2

    @classmethod
    def from_value(cls, value) -> "Algorithm":
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            raise ValueError("Algorithm must be either 1 or 2") from None


@dataclass(frozen=True)
class ReferenceSequence:
    genome: ReferenceGenome
    sequence: str
    frames: tuple[str, str, str]
    origin: int = 1

    def __len__(self):
        return len(self.sequence)

    def targets(self, query_type: QueryType) -> tuple[str, ...]:
        if query_type is QueryType.AMINO_ACID:
            return self.frames
        return (self.sequence,)


@dataclass(frozen=True)
class NamedString:
    name: str
    sequence: str
