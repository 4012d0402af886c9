import asyncio
from os import path

from hivlocator.cli import program
from hivlocator.engine.data.references import ReferenceProvider, fetch_reference_fasta_async
from hivlocator.engine.structures.genomics import ReferenceGenome


parser = program.subparsers.add_parser(
    "fetch-references",
    help="Download HXB2 and SIVmm239 from NCBI into the local reference cache."
)

parser.add_argument(
    "--cache", "-c",
    dest="cache_path",
    required=False,
    default=None,
    type=str,
    help="Directory to cache the reference FASTA files in. Defaults to $HIVLOCATOR_CACHE or ~/.cache/hivlocator."
)


async def run(args) -> int:
    reference_provider = ReferenceProvider(cache_path=args.cache_path)
    missing = [genome for genome in ReferenceGenome
               if not path.exists(reference_provider.get_reference_fasta_path(genome))]
    await asyncio.gather(
        *(fetch_reference_fasta_async(genome, reference_provider.get_reference_fasta_path(genome)) for genome in missing))
    for genome in ReferenceGenome:
        reference = reference_provider.get(genome)
        print(f"{genome.value}: {len(reference)} nt ({reference_provider.get_reference_fasta_path(genome)})")
    return 0


def run_asynchronously(args) -> int:
    return asyncio.run(run(args))


parser.set_defaults(func=run_asynchronously)
