"""
Rendering Engine - SENIAT TXT and XML retention declarations.

Responsibility:
    Turn numbered retention lines plus the agent's identity into the
    byte-level text SENIAT accepts: a ``;``-delimited TXT relation with
    CRLF line endings, or an XML relation with fixed element names per
    tax type.

Architecture position:
    Engines -- pure functions, zero I/O.  Voucher numbers arrive already
    allocated; rendering never numbers, validates or persists.

Invariants enforced:
    - Lines render in the order given; nothing is sorted.
    - Amounts go through ``format_amount``, tax IDs through
      ``normalize_tax_id``, dates through ``encode_date``.
    - Every free-text value placed in XML goes through ``escape_xml_text``.
    - TXT: one header row, records joined with CRLF, no trailing newline.
    - XML: UTF-8 declaration first, two-space indentation, LF newlines.

Failure modes:
    - InvalidDateError if a transaction date cannot be encoded (validation
      rejects such batches before rendering is reached).
    - ValueError if the number of voucher numbers differs from the number
      of transactions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Sequence

from retention_engines.tracer import traced_engine
from retention_kernel.domain.formatting import (
    encode_date,
    encode_period,
    escape_xml_text,
    format_amount,
    format_percentage,
    normalize_tax_id,
)
from retention_kernel.domain.models import (
    AgentConfiguration,
    ExportFormat,
    RetentionTransaction,
    TaxType,
)
from retention_kernel.logging_config import get_logger

logger = get_logger("engines.rendering")

TXT_LINE_BREAK = "\r\n"
TXT_SEPARATOR = ";"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
XML_INDENT = "  "

IVA_TXT_COLUMNS: tuple[str, ...] = (
    "RIF_AGENTE",
    "PERIODO",
    "RIF_RETENIDO",
    "NRO_COMPROBANTE",
    "FECHA",
    "NRO_FACTURA",
    "BASE_IMPONIBLE",
    "PORCENTAJE_RETENCION",
    "MONTO_RETENIDO",
)

ISLR_TXT_COLUMNS: tuple[str, ...] = (
    "RIF_AGENTE",
    "PERIODO",
    "RIF_RETENIDO",
    "NRO_COMPROBANTE",
    "FECHA",
    "NRO_FACTURA",
    "CONCEPTO",
    "BASE_IMPONIBLE",
    "PORCENTAJE_RETENCION",
    "MONTO_RETENIDO",
)

COMBINED_FILE_PREFIX = "RETENCIONES"


@dataclass(frozen=True)
class RenderSettings:
    """Values stamped into documents that come from configuration, not data."""

    software_name: str = "Sistema de Retenciones Fiscales"
    software_version: str = "1.0"
    iva_rate: Decimal = Decimal("0.16")


@dataclass(frozen=True)
class NumberedLine:
    """A transaction paired with the voucher number issued for it."""

    voucher_number: str
    transaction: RetentionTransaction


@dataclass(frozen=True)
class DeclarationHeader:
    """Who declares, for which period, and when the document was produced."""

    agent: AgentConfiguration
    period: str
    generated_at: datetime

    @property
    def agent_tax_id(self) -> str:
        return normalize_tax_id(self.agent.agent_rif)

    @property
    def compact_period(self) -> str:
        return encode_period(self.period)

    @property
    def generated_on(self) -> str:
        return self.generated_at.strftime("%Y%m%d")


def number_lines(
    transactions: Sequence[RetentionTransaction],
    voucher_numbers: Sequence[str],
) -> tuple[NumberedLine, ...]:
    """Pair transactions with voucher numbers position by position."""
    if len(transactions) != len(voucher_numbers):
        raise ValueError(
            f"{len(voucher_numbers)} voucher numbers for "
            f"{len(transactions)} transactions"
        )
    return tuple(
        NumberedLine(voucher_number=number, transaction=transaction)
        for transaction, number in zip(transactions, voucher_numbers)
    )


def export_file_name(
    tax_type: TaxType | None,
    period: str,
    fmt: ExportFormat,
) -> str:
    """``{TAXTYPE}_{YYYYMM}_SENIAT.{ext}``; combined exports use ``RETENCIONES``."""
    label = TaxType(tax_type).value if tax_type is not None else COMBINED_FILE_PREFIX
    return f"{label}_{encode_period(period)}_SENIAT.{ExportFormat(fmt).value}"


# ---------------------------------------------------------------------------
# TXT
# ---------------------------------------------------------------------------


def _iva_txt_record(header: DeclarationHeader, line: NumberedLine) -> str:
    t = line.transaction
    return TXT_SEPARATOR.join((
        header.agent_tax_id,
        header.compact_period,
        normalize_tax_id(t.counterparty_rif),
        line.voucher_number,
        encode_date(t.transaction_date),
        t.document_number,
        format_amount(t.taxable_base),
        format_percentage(t.retention_percentage),
        format_amount(t.retention_amount),
    ))


def _islr_txt_record(header: DeclarationHeader, line: NumberedLine) -> str:
    t = line.transaction
    return TXT_SEPARATOR.join((
        header.agent_tax_id,
        header.compact_period,
        normalize_tax_id(t.counterparty_rif),
        line.voucher_number,
        encode_date(t.transaction_date),
        t.document_number,
        t.concept_code or "",
        format_amount(t.taxable_base),
        format_percentage(t.retention_percentage),
        format_amount(t.retention_amount),
    ))


def render_iva_txt(header: DeclarationHeader, lines: Iterable[NumberedLine]) -> str:
    rows = [TXT_SEPARATOR.join(IVA_TXT_COLUMNS)]
    rows.extend(_iva_txt_record(header, line) for line in lines)
    return TXT_LINE_BREAK.join(rows)


def render_islr_txt(header: DeclarationHeader, lines: Iterable[NumberedLine]) -> str:
    rows = [TXT_SEPARATOR.join(ISLR_TXT_COLUMNS)]
    rows.extend(_islr_txt_record(header, line) for line in lines)
    return TXT_LINE_BREAK.join(rows)


def render_combined_txt(islr_document: str, iva_document: str) -> str:
    """ISLR relation, one blank line, then the IVA relation."""
    return TXT_LINE_BREAK.join((islr_document, "", iva_document))


# ---------------------------------------------------------------------------
# XML
# ---------------------------------------------------------------------------


def _element(depth: int, tag: str, text: str) -> str:
    return f"{XML_INDENT * depth}<{tag}>{text}</{tag}>"


def _summary(
    depth: int,
    lines: Sequence[NumberedLine],
    header: DeclarationHeader,
) -> list[str]:
    total_base = sum((line.transaction.taxable_base for line in lines), Decimal("0"))
    total_retained = sum((line.transaction.retention_amount for line in lines), Decimal("0"))
    pad = XML_INDENT * depth
    return [
        f"{pad}<Resumen>",
        _element(depth + 1, "TotalOperaciones", str(len(lines))),
        _element(depth + 1, "MontoTotalBase", format_amount(total_base)),
        _element(depth + 1, "MontoTotalRetenido", format_amount(total_retained)),
        _element(depth + 1, "FechaProcesamiento", header.generated_on),
        f"{pad}</Resumen>",
    ]


def _root_open(depth: int, tag: str, header: DeclarationHeader) -> str:
    return (
        f'{XML_INDENT * depth}<{tag} '
        f'RifAgente="{escape_xml_text(header.agent_tax_id)}" '
        f'Periodo="{escape_xml_text(header.compact_period)}">'
    )


def _iva_xml_body(
    header: DeclarationHeader,
    lines: Sequence[NumberedLine],
    settings: RenderSettings,
    depth: int,
) -> list[str]:
    agent = header.agent
    out = [
        _root_open(depth, "RelacionRetencionesIVA", header),
        f"{XML_INDENT * (depth + 1)}<Agente>",
        _element(depth + 2, "Rif", header.agent_tax_id),
        _element(depth + 2, "RazonSocial", escape_xml_text(agent.agent_name)),
        _element(depth + 2, "Direccion", escape_xml_text(agent.agent_address)),
        _element(depth + 2, "Telefono", escape_xml_text(agent.phone)),
        _element(depth + 2, "Email", escape_xml_text(agent.email)),
        f"{XML_INDENT * (depth + 1)}</Agente>",
        f"{XML_INDENT * (depth + 1)}<DetalleRetencion>",
    ]
    d = depth + 3
    for line in lines:
        t = line.transaction
        out.extend([
            f"{XML_INDENT * (depth + 2)}<LineaRetencion>",
            _element(d, "NumeroComprobante", line.voucher_number),
            _element(d, "FechaOperacion", encode_date(t.transaction_date)),
            _element(d, "NumeroFactura", escape_xml_text(t.document_number)),
            _element(d, "NumeroControl", escape_xml_text(t.control_number)),
            _element(d, "RifRetenido", normalize_tax_id(t.counterparty_rif)),
            _element(d, "NombreRetenido", escape_xml_text(t.counterparty_name)),
            _element(d, "Concepto", escape_xml_text(t.concept)),
            _element(d, "BaseImponible", format_amount(t.taxable_base)),
            _element(d, "MontoIVA", format_amount(t.taxable_base * settings.iva_rate)),
            _element(d, "PorcentajeRetencion", format_percentage(t.retention_percentage)),
            _element(d, "MontoRetenido", format_amount(t.retention_amount)),
            f"{XML_INDENT * (depth + 2)}</LineaRetencion>",
        ])
    out.append(f"{XML_INDENT * (depth + 1)}</DetalleRetencion>")
    out.extend(_summary(depth + 1, lines, header))
    out.append(f"{XML_INDENT * depth}</RelacionRetencionesIVA>")
    return out


def _islr_xml_body(
    header: DeclarationHeader,
    lines: Sequence[NumberedLine],
    settings: RenderSettings,
    depth: int,
) -> list[str]:
    agent = header.agent
    total_base = sum((line.transaction.taxable_base for line in lines), Decimal("0"))
    total_retained = sum((line.transaction.retention_amount for line in lines), Decimal("0"))
    e = depth + 2
    out = [
        _root_open(depth, "RelacionRetencionesISLR", header),
        f"{XML_INDENT * (depth + 1)}<Encabezado>",
        _element(e, "RifAgente", header.agent_tax_id),
        _element(e, "RazonSocial", escape_xml_text(agent.agent_name)),
        _element(e, "Direccion", escape_xml_text(agent.agent_address)),
        _element(e, "Periodo", header.compact_period),
        _element(e, "FechaGeneracion", header.generated_on),
        _element(e, "SoftwareUtilizado", escape_xml_text(settings.software_name)),
        _element(e, "VersionSoftware", escape_xml_text(settings.software_version)),
        _element(e, "CantidadOperaciones", str(len(lines))),
        _element(e, "MontoTotalBase", format_amount(total_base)),
        _element(e, "MontoTotalRetenido", format_amount(total_retained)),
        f"{XML_INDENT * (depth + 1)}</Encabezado>",
        f"{XML_INDENT * (depth + 1)}<Detalle>",
    ]
    d = depth + 3
    for line in lines:
        t = line.transaction
        out.extend([
            f"{XML_INDENT * (depth + 2)}<Retencion>",
            _element(d, "NumeroComprobante", line.voucher_number),
            _element(d, "RifRetenido", normalize_tax_id(t.counterparty_rif)),
            _element(d, "NombreRetenido", escape_xml_text(t.counterparty_name)),
            _element(d, "NumeroFactura", escape_xml_text(t.document_number)),
            _element(d, "NumeroControl", escape_xml_text(t.control_number)),
            _element(d, "FechaOperacion", encode_date(t.transaction_date)),
            _element(d, "CodigoConcepto", escape_xml_text(t.concept_code)),
            _element(d, "ConceptoRetencion", escape_xml_text(t.concept)),
            _element(d, "MontoOperacion", format_amount(t.total_amount)),
            _element(d, "BaseImponible", format_amount(t.taxable_base)),
            _element(d, "PorcentajeRetencion", format_percentage(t.retention_percentage)),
            _element(d, "MontoRetenido", format_amount(t.retention_amount)),
            f"{XML_INDENT * (depth + 2)}</Retencion>",
        ])
    out.append(f"{XML_INDENT * (depth + 1)}</Detalle>")
    out.extend(_summary(depth + 1, lines, header))
    out.append(f"{XML_INDENT * depth}</RelacionRetencionesISLR>")
    return out


def render_iva_xml(
    header: DeclarationHeader,
    lines: Sequence[NumberedLine],
    settings: RenderSettings | None = None,
) -> str:
    settings = settings or RenderSettings()
    return "\n".join([XML_DECLARATION, *_iva_xml_body(header, lines, settings, 0)])


def render_islr_xml(
    header: DeclarationHeader,
    lines: Sequence[NumberedLine],
    settings: RenderSettings | None = None,
) -> str:
    settings = settings or RenderSettings()
    return "\n".join([XML_DECLARATION, *_islr_xml_body(header, lines, settings, 0)])


def render_combined_xml(
    header: DeclarationHeader,
    islr_lines: Sequence[NumberedLine],
    iva_lines: Sequence[NumberedLine],
    settings: RenderSettings | None = None,
) -> str:
    """One declaration wrapping the ISLR relation followed by the IVA relation."""
    settings = settings or RenderSettings()
    return "\n".join([
        XML_DECLARATION,
        "<RelacionRetenciones>",
        *_islr_xml_body(header, islr_lines, settings, 1),
        *_iva_xml_body(header, iva_lines, settings, 1),
        "</RelacionRetenciones>",
    ])


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


@traced_engine(
    "declaration_rendering", "1.0", fingerprint_fields=("tax_type", "fmt")
)
def render_document(
    tax_type: TaxType,
    fmt: ExportFormat,
    header: DeclarationHeader,
    lines: Sequence[NumberedLine],
    settings: RenderSettings | None = None,
) -> str:
    """Render one tax type's relation in the requested format."""
    tax_type = TaxType(tax_type)
    fmt = ExportFormat(fmt)
    if fmt is ExportFormat.TXT:
        render = render_iva_txt if tax_type is TaxType.IVA else render_islr_txt
        document = render(header, lines)
    else:
        render = render_iva_xml if tax_type is TaxType.IVA else render_islr_xml
        document = render(header, lines, settings)

    logger.debug(
        "declaration_rendered",
        extra={
            "tax_type": tax_type.value,
            "export_format": fmt.value,
            "line_count": len(lines),
            "document_length": len(document),
        },
    )
    return document
