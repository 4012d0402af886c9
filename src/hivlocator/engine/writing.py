import csv
from os import PathLike
from typing import Iterable, Mapping, Union

from hivlocator.engine.structures.locator import LocatedQuery, Locator, LocatorAlignment

LOCATOR_FIELDS = ["start_pos", "end_pos", "similarity", "reverse_complement", "query_seq", "reference_match"]
ALIGNMENT_FIELDS = ["indel", "query_aligned", "reference_aligned"]


def locator_to_fields(locator: Locator) -> list[str]:
    return [
        str(locator.start_pos),
        str(locator.end_pos),
        str(locator.similarity),
        str(locator.reverse_complement).lower(),
        locator.query_seq,
        locator.reference_match,
    ]


def alignment_to_fields(alignment: Union[LocatorAlignment, None]) -> list[str]:
    if alignment is None:
        return [""] * len(ALIGNMENT_FIELDS)
    return [str(alignment.indel).lower(), alignment.query_aligned, alignment.reference_aligned]


def locator_to_line(locator: Locator) -> str:
    return "\t".join(locator_to_fields(locator))


def write_locators_as_tsv(
        located_queries: Iterable[LocatedQuery],
        handle: Union[str, bytes, PathLike[str], PathLike[bytes]],
        query_names: Union[Mapping[int, str], None] = None):
    header = ["query_name", *LOCATOR_FIELDS, *ALIGNMENT_FIELDS, "error"]
    with open(handle, "w", newline='') as filehandle:
        writer = csv.writer(filehandle, delimiter="\t")
        writer.writerow(header)
        for located in located_queries:
            query_name = (query_names or {}).get(located.index, f"query_{located.index + 1}")
            if located.locator is None:
                writer.writerow([query_name, *([""] * (len(LOCATOR_FIELDS) + len(ALIGNMENT_FIELDS))), str(located.error)])
            else:
                writer.writerow([query_name, *locator_to_fields(located.locator), *alignment_to_fields(located.alignment), ""])
