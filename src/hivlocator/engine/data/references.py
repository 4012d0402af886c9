import asyncio
import logging
import os
from os import path
from threading import Lock
from typing import Mapping, Union

from Bio import Entrez, SeqIO
from Bio.Seq import Seq

from hivlocator.engine.structures.genomics import QueryType, ReferenceGenome, ReferenceSequence

logger = logging.getLogger(__name__)

DEFAULT_CACHE_PATH = path.join(path.expanduser("~"), ".cache", "hivlocator")


def default_cache_path() -> str:
    return os.environ.get("HIVLOCATOR_CACHE", DEFAULT_CACHE_PATH)


def translate_frames(sequence: str) -> tuple[str, str, str]:
    frames = []
    for frame in range(3):
        codon_span = (len(sequence) - frame) // 3 * 3
        frames.append(str(Seq(sequence[frame:frame + codon_span]).translate()))
    return tuple(frames)  # type: ignore


def fetch_reference_fasta(genome: ReferenceGenome, fasta_path: str) -> str:
    Entrez.email = os.environ.get("ENTREZ_EMAIL", "hivlocator@users.noreply.github.com")
    logger.warning(f"Downloading {genome.value} ({genome.accession}) from NCBI into {fasta_path}")
    with Entrez.efetch(db="nucleotide", id=genome.accession, rettype="fasta", retmode="text") as fetch_stream:
        record = SeqIO.read(fetch_stream, "fasta")
    os.makedirs(path.dirname(fasta_path) or ".", exist_ok=True)
    with open(fasta_path, "w") as fasta_handle:
        SeqIO.write(record, fasta_handle, "fasta")
    return str(record.seq)


async def fetch_reference_fasta_async(genome: ReferenceGenome, fasta_path: str) -> str:
    return await asyncio.to_thread(fetch_reference_fasta, genome, fasta_path)


class ReferenceProvider:
    """
    Read-only source of the two reference genomes.

    Sequences are either handed in directly or read from a FASTA cache,
    downloading the GenBank record on first use. Each ReferenceSequence is
    built once and then shared, unmodified, by every locator thread.
    """

    def __init__(self, sequences: Union[Mapping[ReferenceGenome, str], None] = None, cache_path: Union[str, None] = None):
        self._sequences = dict(sequences) if sequences is not None else {}
        self._cache_path = cache_path if cache_path is not None else default_cache_path()
        self._references: dict[ReferenceGenome, ReferenceSequence] = {}
        self._lock = Lock()

    def get_reference_fasta_path(self, genome: ReferenceGenome) -> str:
        return path.join(self._cache_path, genome.value + ".fasta")

    def _read_sequence(self, genome: ReferenceGenome) -> str:
        if genome in self._sequences:
            return self._sequences[genome]
        fasta_path = self.get_reference_fasta_path(genome)
        if path.exists(fasta_path):
            return str(SeqIO.read(fasta_path, "fasta").seq)
        return fetch_reference_fasta(genome, fasta_path)

    def get(self, genome: ReferenceGenome) -> ReferenceSequence:
        with self._lock:
            if genome not in self._references:
                sequence = self._read_sequence(genome).upper()
                self._references[genome] = ReferenceSequence(genome, sequence, translate_frames(sequence))
                logger.debug(f"Loaded {genome.value} reference ({len(sequence)} nt)")
            return self._references[genome]

    def targets(self, genome: ReferenceGenome, query_type: QueryType) -> tuple[str, ...]:
        return self.get(genome).targets(query_type)
