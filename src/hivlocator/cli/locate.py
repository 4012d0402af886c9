import asyncio
import sys

from hivlocator.cli import program
from hivlocator.engine.analysis.locator import locate_batch_async
from hivlocator.engine.config import LocatorConfig
from hivlocator.engine.exceptions.locator import EmptyQuerySetException
from hivlocator.engine.reading import read_multiple_fastas
from hivlocator.engine.writing import locator_to_line, write_locators_as_tsv


parser = program.subparsers.add_parser(
    "locate",
    help="Locate query sequences on a reference genome."
)

parser.add_argument(
    "--query", "-q",
    nargs="+",
    action="extend",
    dest="queries",
    required=False,
    default=[],
    type=str,
    help="Query sequence(s), nucleotide or amino acid depending on --type-query. Multiple can be listed."
)

parser.add_argument(
    "--fasta", "-fa", "-fst",
    nargs="+",
    action="extend",
    dest="fastas",
    required=False,
    default=[],
    type=str,
    help="FASTA files whose sequences are used as queries. Multiple can be listed."
)

parser.add_argument(
    "--reference", "-r",
    dest="reference",
    default="HXB2",
    type=str,
    help="Reference genome, either HXB2 or SIVmm239."
)

parser.add_argument(
    "--type-query", "-t",
    dest="query_type",
    default="nt",
    type=str,
    help="Type of query, either nt or aa."
)

parser.add_argument(
    "--algorithm", "-a",
    dest="algorithm",
    default=1,
    type=int,
    help="Algorithm for the locator: 1 is accurate but slower, 2 is fast but less accurate, suitable for short queries."
)

parser.add_argument(
    "--threads",
    dest="threads",
    default=None,
    type=int,
    help="Number of worker threads. Defaults to the number of available CPUs."
)

parser.add_argument(
    "--min-similarity",
    dest="min_similarity",
    default=0,
    type=int,
    help="Warn about results whose similarity falls below this percentage. Results are reported regardless."
)

parser.add_argument(
    "--out", "-o",
    dest="out",
    default=None,
    type=str,
    help="Write a tab-separated table to this path instead of printing locator lines."
)


def print_error(message):
    print(f"Error: {message}", file=sys.stderr)


async def run(args) -> int:
    queries = list(args.queries)
    query_names = {index: f"query_{index + 1}" for index in range(len(queries))}
    async for named_string in read_multiple_fastas(args.fastas):
        query_names[len(queries)] = named_string.name
        queries.append(named_string.sequence)

    try:
        config = LocatorConfig(
            reference=args.reference,
            query_type=args.query_type,
            algorithm=args.algorithm,
            max_workers=args.threads,
            min_similarity=args.min_similarity)
        located_queries = await locate_batch_async(queries, config)
    except (ValueError, EmptyQuerySetException) as e:
        print_error(e)
        return 1

    if args.out is not None:
        write_locators_as_tsv(located_queries, args.out, query_names)
    for located in located_queries:
        if located.locator is None:
            print_error(located.error)
        elif args.out is None:
            print(locator_to_line(located.locator))
    return 0 if all(located.ok for located in located_queries) else 1


def run_asynchronously(args) -> int:
    return asyncio.run(run(args))


parser.set_defaults(func=run_asynchronously)
