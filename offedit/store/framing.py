"""
Ordered-record encoding for the flat string blobs kept in a RecordStore.

A blob is a version header followed by length-prefixed records:

    offedit/1;12:{"a": "|||"}3:abc

The length counts characters of the record, so records may contain any
character, including ``:`` and the ``|||`` token used by the legacy format.
Blobs without the header are read as legacy ``|||``-joined blobs.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable

logger = logging.getLogger(__name__)

FORMAT_HEADER = "offedit/1;"
LEGACY_TOKEN = "|||"


def frame_record(payload: str) -> str:
    return f"{len(payload)}:{payload}"


def join_records(payloads: Iterable[str]) -> str:
    """Serialize records into a single framed blob."""
    return FORMAT_HEADER + "".join(frame_record(p) for p in payloads)


def append_record(blob: str | None, payload: str) -> str:
    """
    Append one record to an existing blob without re-framing the others.

    Legacy and empty blobs are rewritten in the framed format.
    """
    if blob and blob.startswith(FORMAT_HEADER):
        return blob + frame_record(payload)
    return join_records([*split_records(blob), payload])


def split_records(blob: str | None) -> list[str]:
    """
    Parse a blob into its records, in stored order.

    A framing error ends parsing: the records read so far are returned and
    the rest of the blob is dropped.
    """
    if not blob:
        return []

    if not blob.startswith(FORMAT_HEADER):
        return [item for item in blob.split(LEGACY_TOKEN) if item]

    records: list[str] = []
    pos = len(FORMAT_HEADER)
    end_of_blob = len(blob)
    while pos < end_of_blob:
        sep = blob.find(":", pos)
        length_text = blob[pos:sep] if sep != -1 else ""
        if not (length_text.isascii() and length_text.isdigit()):
            logger.warning(
                "Corrupt record framing at offset %d; dropping %d trailing characters",
                pos,
                end_of_blob - pos,
            )
            break

        start = sep + 1
        stop = start + int(length_text)
        if stop > end_of_blob:
            logger.warning(
                "Truncated record at offset %d (declared %s characters); dropping it",
                pos,
                length_text,
            )
            break

        records.append(blob[start:stop])
        pos = stop

    return records
