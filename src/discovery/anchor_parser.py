# src/discovery/anchor_parser.py — v1
"""Raw anchors → deduplicated Document Descriptors.

Shared by every discovery strategy. Entries without a recoverable identity
are discarded; duplicates are dropped by id, first seen wins.
"""

from __future__ import annotations

import logging
from typing import Iterable
from urllib.parse import quote, unquote, urljoin

from lexingest.core.models import DocumentDescriptor
from lexingest.extraction.kind_detector import infer_declared_kind
from lexingest.source.markup import legacy_document_id
from lexingest.source.models import RawAnchor

logger = logging.getLogger(__name__)

DIRECT_DOWNLOAD_PATH = "/pje/Processo/ConsultaProcesso/Detalhe/listAutosDigitais.seam"
_DOWNLOAD_ACTION = (
    "Processo%2FConsultaProcesso%2FDetalhe%2FlistAutosDigitais.xhtml"
    "%3AprocessoDocumentoBinHome.setDownloadInstance%28%29"
)


def anchor_identity(anchor: RawAnchor) -> str | None:
    """Identity parameter, else the legacy ``/documento/download/<id>`` form."""
    if anchor.identity_param:
        return anchor.identity_param.strip() or None
    return legacy_document_id(anchor.href)


def anchor_name(anchor: RawAnchor, document_id: str) -> str:
    if anchor.filename_param:
        return unquote(anchor.filename_param)
    text = anchor.link_text.strip()
    if len(text) > 3 and not text.isdigit():
        return text
    if anchor.title and anchor.title.strip():
        return anchor.title.strip()
    return f"Documento {document_id}"


def build_locator(anchor: RawAnchor, document_id: str, base_url: str = "") -> str:
    """Normalized download locator.

    When the anchor carries the binary id and document number, the direct
    download URL is rebuilt from them; otherwise the href is resolved
    against ``base_url``.
    """
    id_bin = anchor.params.get("idBin")
    doc_number = anchor.params.get("numeroDocumento")
    if id_bin and doc_number:
        filename = quote(unquote(anchor.filename_param or ""), safe="")
        return (
            f"{base_url.rstrip('/')}{DIRECT_DOWNLOAD_PATH}"
            f"?idBin={id_bin}&numeroDocumento={doc_number}"
            f"&nomeArqProcDocBin={filename}&idProcessoDocumento={document_id}"
            f"&actionMethod={_DOWNLOAD_ACTION}"
        )
    if base_url:
        return urljoin(base_url.rstrip("/") + "/", anchor.href)
    return anchor.href


def build_descriptors(
    anchors: Iterable[RawAnchor],
    source_tag: str,
    base_url: str = "",
    case_number: str | None = None,
) -> list[DocumentDescriptor]:
    """Build descriptors from raw anchors, discarding and deduplicating.

    Args:
        anchors: Anchors in page order.
        source_tag: Name of the discovering strategy.
        base_url: Origin used to resolve relative hrefs.
        case_number: Case number recorded in provenance, if known.

    Returns:
        Descriptors in first-seen order, unique by id.
    """
    descriptors: dict[str, DocumentDescriptor] = {}
    discarded = 0

    for anchor in anchors:
        document_id = anchor_identity(anchor)
        if document_id is None:
            discarded += 1
            continue
        if document_id in descriptors:
            continue

        locator = build_locator(anchor, document_id, base_url)
        name = anchor_name(anchor, document_id)

        provenance = {"href": anchor.href}
        if case_number:
            provenance["case_number"] = case_number
        declared_type = None
        if len(anchor.row_cells) > 1 and anchor.row_cells[1]:
            declared_type = anchor.row_cells[1]
        if len(anchor.row_cells) > 2 and anchor.row_cells[2]:
            provenance["date_joined"] = anchor.row_cells[2]

        descriptors[document_id] = DocumentDescriptor(
            id=document_id,
            locator=locator,
            name=name,
            kind=infer_declared_kind(locator, name),
            source=source_tag,
            declared_type=declared_type,
            provenance=provenance,
        )

    if discarded:
        logger.debug("Discarded %d anchors without identity", discarded)
    return list(descriptors.values())


def merge_unique(
    existing: list[DocumentDescriptor], incoming: Iterable[DocumentDescriptor],
) -> list[DocumentDescriptor]:
    """Append descriptors whose id is not already present."""
    seen = {d.id for d in existing}
    merged = list(existing)
    for descriptor in incoming:
        if descriptor.id not in seen:
            seen.add(descriptor.id)
            merged.append(descriptor)
    return merged
