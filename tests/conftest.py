import random

from pytest import fixture

from hivlocator.engine.data.references import ReferenceProvider
from hivlocator.engine.structures.genomics import ReferenceGenome

SCENARIO_POSITION = 1234
# one mismatch away from ATGCATGCATGC, followed by bases that keep its reverse complement off this site
SCENARIO_SITE = "ATGCATCCATGCGG"


def random_genome(seed: str, length: int) -> str:
    rand = random.Random(seed)
    return "".join(rand.choices("ACGT", k=length))


def synthetic_references() -> dict[ReferenceGenome, str]:
    hxb2 = random_genome("HXB2", 3000)
    hxb2 = hxb2[:SCENARIO_POSITION] + SCENARIO_SITE + hxb2[SCENARIO_POSITION:]
    return {
        ReferenceGenome.HXB2: hxb2,
        ReferenceGenome.SIVmm239: random_genome("SIVmm239", 3300),
    }


@fixture
def reference_provider():
    return ReferenceProvider(synthetic_references())


@fixture
def hxb2(reference_provider):
    return reference_provider.get(ReferenceGenome.HXB2)


@fixture
def synthetic_sequences():
    return synthetic_references()
