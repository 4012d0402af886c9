import asyncio
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import AbstractContextManager
from queue import Queue
from typing import Iterable, Iterator, Sequence, Union

from hivlocator.engine.alphabets import validate_query
from hivlocator.engine.analysis.aligners import align_query
from hivlocator.engine.config import LocatorConfig
from hivlocator.engine.data.references import ReferenceProvider
from hivlocator.engine.exceptions.locator import EmptyQuerySetException, LocatorException
from hivlocator.engine.structures.alignment import AlignmentResult
from hivlocator.engine.structures.genomics import Algorithm, QueryType, ReferenceGenome, ReferenceSequence
from hivlocator.engine.structures.locator import LocatedQuery, Locator, LocatorAlignment

logger = logging.getLogger(__name__)


def build_locator(query: str, reference: ReferenceSequence, alignment: AlignmentResult) -> Locator:
    """
    Maps an alignment onto the reference genome's numbering.

    Amino-acid placements are first converted from frame residues to the
    codons they cover, so coordinates and the matched substring are always
    in reference nucleotides. The query is stored as submitted, even when
    its reverse complement produced the placement.
    """
    start = alignment.reference_start
    end = alignment.reference_end
    if alignment.frame is not None:
        start = alignment.frame + 3 * start
        end = alignment.frame + 3 * end
    return Locator(
        start_pos=start + reference.origin,
        end_pos=end - 1 + reference.origin,
        similarity=alignment.percent_identity,
        reverse_complement=alignment.reverse_complement,
        query_seq=query,
        reference_match=reference.sequence[start:end],
    )


def build_locator_alignment(alignment: AlignmentResult) -> LocatorAlignment:
    return LocatorAlignment(
        indel=alignment.indel,
        query_aligned=alignment.aligned_query,
        reference_aligned=alignment.aligned_reference,
    )


def place_query(
        raw_query: str,
        reference: ReferenceSequence,
        query_type: QueryType,
        algorithm: Algorithm) -> tuple[Locator, LocatorAlignment]:
    query = validate_query(raw_query, query_type)
    alignment = align_query(query, reference.targets(query_type), query_type, algorithm)
    return build_locator(query, reference, alignment), build_locator_alignment(alignment)


def locate_query(raw_query: str, reference: ReferenceSequence, query_type: QueryType, algorithm: Algorithm) -> Locator:
    locator, _ = place_query(raw_query, reference, query_type, algorithm)
    return locator


class LocatorEngine(AbstractContextManager):
    def __enter__(self):
        self._reference = self._reference_provider.get(self._config.reference)
        self._thread_pool = ThreadPoolExecutor(self._config.worker_count, thread_name_prefix="locator")
        return self

    def __init__(self, reference_provider: ReferenceProvider, config: LocatorConfig):
        self._reference_provider = reference_provider
        self._config = config
        self._submitted = 0
        self._collected = 0
        self._work_complete: Queue[Future] = Queue()

    def submit(self, index: int, query: str):
        work = self._thread_pool.submit(self.work, index, query)
        work.add_done_callback(self._work_complete.put)
        self._submitted += 1

    def work(self, index: int, query: str) -> LocatedQuery:
        try:
            locator, alignment = place_query(query, self._reference, self._config.query_type, self._config.algorithm)
        except LocatorException as e:
            logger.debug(f"Query #{index + 1} failed: {e}")
            return LocatedQuery(index, query, None, e)
        return LocatedQuery(index, query, locator, alignment=alignment)

    def completed(self) -> Iterator[LocatedQuery]:
        while self._collected < self._submitted:
            future = self._work_complete.get()
            self._collected += 1
            yield future.result()

    async def next_completed(self) -> Union[LocatedQuery, None]:
        if self._collected >= self._submitted:
            return None
        future = await asyncio.to_thread(self._work_complete.get)
        self._collected += 1
        return future.result()

    def __exit__(self, exc_type, exc_value, traceback):
        self.shutdown()

    def __aiter__(self):
        return self

    async def __anext__(self):
        result = await self.next_completed()
        if result is None:
            raise StopAsyncIteration
        return result

    def shutdown(self):
        self._thread_pool.shutdown(wait=True, cancel_futures=True)


def _prepare_batch(queries: Iterable[str], config: LocatorConfig) -> list[str]:
    queries = list(queries)
    if len(queries) == 0:
        raise EmptyQuerySetException()
    logger.info(
        f"Locating {len(queries)} {config.query_type.value} quer{'y' if len(queries) == 1 else 'ies'} "
        f"against {config.reference.value} with the {config.algorithm.name.lower()} algorithm "
        f"on {config.worker_count} worker(s)")
    return queries


def _report_batch(results: Sequence[LocatedQuery], config: LocatorConfig):
    for located in results:
        if located.below(config.min_similarity):
            logger.warning(
                f"Query #{located.index + 1} only reaches {located.locator.similarity}% similarity "  # type: ignore
                f"(minimum {config.min_similarity}%)")
    failures = sum(1 for located in results if not located.ok)
    logger.info(f"Located {len(results) - failures} of {len(results)} queries")


def locate_batch(queries: Iterable[str], config: LocatorConfig, reference_provider: Union[ReferenceProvider, None] = None) -> list[LocatedQuery]:
    queries = _prepare_batch(queries, config)
    results: list[LocatedQuery] = [None] * len(queries)  # type: ignore
    with LocatorEngine(reference_provider or ReferenceProvider(), config) as engine:
        for index, query in enumerate(queries):
            engine.submit(index, query)
        for located in engine.completed():
            results[located.index] = located
    _report_batch(results, config)
    return results


async def locate_batch_async(queries: Iterable[str], config: LocatorConfig, reference_provider: Union[ReferenceProvider, None] = None) -> list[LocatedQuery]:
    queries = _prepare_batch(queries, config)
    results: list[LocatedQuery] = [None] * len(queries)  # type: ignore
    with LocatorEngine(reference_provider or ReferenceProvider(), config) as engine:
        for index, query in enumerate(queries):
            engine.submit(index, query)
        async for located in engine:
            results[located.index] = located
    _report_batch(results, config)
    return results


def locate(
        queries: Iterable[str],
        reference: Union[ReferenceGenome, str] = ReferenceGenome.HXB2,
        query_type: Union[QueryType, str] = QueryType.NUCLEOTIDE,
        algorithm: Union[Algorithm, int] = Algorithm.ACCURATE,
        max_workers: Union[int, None] = None,
        min_similarity: int = 0,
        reference_provider: Union[ReferenceProvider, None] = None) -> list[LocatedQuery]:
    """
    Locates every query on the chosen reference genome.

    Returns one LocatedQuery per input, in input order. A query that fails
    validation or alignment carries its exception instead of a Locator and
    does not affect the others; only an empty batch raises.
    """
    config = LocatorConfig(reference, query_type, algorithm, max_workers, min_similarity)  # type: ignore
    return locate_batch(queries, config, reference_provider)


async def locate_async(
        queries: Iterable[str],
        reference: Union[ReferenceGenome, str] = ReferenceGenome.HXB2,
        query_type: Union[QueryType, str] = QueryType.NUCLEOTIDE,
        algorithm: Union[Algorithm, int] = Algorithm.ACCURATE,
        max_workers: Union[int, None] = None,
        min_similarity: int = 0,
        reference_provider: Union[ReferenceProvider, None] = None) -> list[LocatedQuery]:
    config = LocatorConfig(reference, query_type, algorithm, max_workers, min_similarity)  # type: ignore
    return await locate_batch_async(queries, config, reference_provider)
