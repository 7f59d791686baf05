"""
retention_services.export_service -- The SENIAT fiscal export orchestrator.

Responsibility:
    Turns a batch of retention transactions into a finished IVA or ISLR
    declaration (TXT or XML): checks the export capability, loads the
    agent configuration, validates the batch, issues voucher numbers,
    renders the document and writes the advanced voucher counter back.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    The engines stay pure; this is the only place where the counter is
    read from and written to the configuration store.

    START -> CAPABILITY -> LOAD_CONFIG -> VALIDATE -(fail)-> ABORT
          -> ALLOCATE + RENDER -> PERSIST_COUNTER -> DONE

Invariants enforced:
    - Capability, configuration and validation failures abort before any
      voucher number is issued and before the store is written.
    - Transactions are exported in the order given; never sorted.
    - Only transactions of the requested tax type and period are exported.
    - A batch of N lines starting at counter C writes C+N back in a single
      ``update`` call.

Failure modes:
    - ExportNotPermittedError: the ``seniat_exports`` capability is off.
    - ConfigurationError: agent configuration missing, agent RIF or name
      blank, or an unusable voucher template.
    - ExportValidationError: one or more lines break the fiscal rules;
      the message lists every error.
    - VoucherSequenceOverflowError: the batch does not fit in the sequence.
    - Counter persistence failures are NOT raised: the document is already
      issued.  They are logged at CRITICAL with the issued range and
      returned on ``ExportResult.persistence_error``; retrying such an
      export may reissue the same numbers.

Usage:
    from retention_services import ExportService

    service = ExportService(config_store)
    result = service.export(
        transactions, TaxType.IVA, ExportFormat.TXT, ExportOptions("2025-01"),
    )
    write_export(result, "/srv/declaraciones")
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Sequence
from uuid import uuid4
from zoneinfo import ZoneInfo

from retention_config.bridges import (
    build_capability_gate,
    build_render_settings,
    build_retention_rules,
)
from retention_config.schema import SeniatConfig
from retention_engines.numbering import (
    DEFAULT_SEQUENCE_WIDTH,
    VoucherAllocation,
    VoucherSequence,
    check_voucher_template,
)
from retention_engines.rendering import (
    DeclarationHeader,
    RenderSettings,
    export_file_name,
    number_lines,
    render_combined_txt,
    render_combined_xml,
    render_document,
    render_islr_txt,
    render_iva_txt,
)
from retention_engines.rules import RetentionRules, default_rules
from retention_engines.validation import validate_batch, validate_period
from retention_kernel.domain.capabilities import SENIAT_EXPORTS, CapabilityGate
from retention_kernel.domain.clock import Clock, SystemClock
from retention_kernel.domain.models import (
    AgentConfiguration,
    ExportFormat,
    ExportOptions,
    RetentionTransaction,
    TaxType,
    ValidationResult,
)
from retention_kernel.exceptions import (
    ConfigurationError,
    CounterPersistenceError,
    ExportNotPermittedError,
    ExportValidationError,
    MissingAgentIdentityError,
    RetentionExportError,
)
from retention_kernel.logging_config import LogContext, get_logger
from retention_kernel.services.agent_config_store import AgentConfigurationStore
from retention_kernel.services.transaction_source import TransactionSource

logger = get_logger("services.export")

DEFAULT_TIMEZONE = "America/Caracas"


@dataclass(frozen=True)
class ExportResult:
    """
    A finished declaration and the numbering it consumed.

    ``tax_type`` is None for a combined (ISLR + IVA) declaration.
    ``persistence_error`` is set when the document was produced but the
    advanced counter could not be written back.
    """

    export_id: str
    tax_type: TaxType | None
    export_format: ExportFormat
    period: str
    document: str
    voucher_numbers: tuple[str, ...]
    starting_counter: int
    final_counter: int
    file_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)
    persistence_error: RetentionExportError | None = None

    @property
    def counter_persisted(self) -> bool:
        return self.persistence_error is None

    @property
    def line_count(self) -> int:
        return len(self.voucher_numbers)

    def encode(self) -> bytes:
        """The artifact bytes (UTF-8, line endings untouched)."""
        return self.document.encode("utf-8")


def write_export(result: ExportResult, directory: Path | str) -> Path:
    """Write ``result`` byte-exactly as ``directory/result.file_name``."""
    target = Path(directory) / result.file_name
    target.write_bytes(result.encode())
    logger.info(
        "export_written",
        extra={
            "export_id": result.export_id,
            "path": str(target),
            "size_bytes": len(result.encode()),
        },
    )
    return target


class ExportService:
    """
    Orchestrates SENIAT retention exports for one agent.

    Contract:
        Receives the agent configuration store and, optionally, a Clock,
        the validation rules, render settings, capability gate and fiscal
        timezone.  Holds no per-export state; each call reads the counter
        from the store.

    Non-goals:
        - Does NOT serialize concurrent exports of the same agent; callers
          wrap calls in ``AgentExportSerializer.serialize``.
        - Does NOT decide which transactions are declarable beyond the
          tax type and period filter.
    """

    def __init__(
        self,
        config_store: AgentConfigurationStore,
        clock: Clock | None = None,
        rules: RetentionRules | None = None,
        render_settings: RenderSettings | None = None,
        capability_gate: CapabilityGate | None = None,
        timezone: str = DEFAULT_TIMEZONE,
        sequence_width: int = DEFAULT_SEQUENCE_WIDTH,
    ) -> None:
        self._store = config_store
        self._clock = clock or SystemClock()
        self._rules = rules or default_rules()
        self._render_settings = render_settings or RenderSettings(
            iva_rate=self._rules.iva_rate
        )
        self._capabilities = capability_gate or CapabilityGate()
        self._timezone = ZoneInfo(timezone)
        self._sequence_width = sequence_width

    @classmethod
    def from_config(
        cls,
        config: SeniatConfig,
        config_store: AgentConfigurationStore,
        clock: Clock | None = None,
    ) -> ExportService:
        """Wire a service from the active configuration."""
        return cls(
            config_store,
            clock=clock,
            rules=build_retention_rules(config),
            render_settings=build_render_settings(config),
            capability_gate=build_capability_gate(config),
            timezone=config.timezone,
            sequence_width=config.voucher_sequence_width,
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def export(
        self,
        transactions: Sequence[RetentionTransaction],
        tax_type: TaxType,
        fmt: ExportFormat,
        options: ExportOptions,
    ) -> ExportResult:
        """Export the transactions of ``tax_type`` and ``options.period``."""
        self._require_capability()
        return self._export(transactions, TaxType(tax_type), ExportFormat(fmt), options)

    def export_from_source(
        self,
        source: TransactionSource,
        tax_type: TaxType,
        fmt: ExportFormat,
        options: ExportOptions,
    ) -> ExportResult:
        """Fetch the declarable transactions from ``source``, then export them."""
        self._require_capability()
        tax_type = TaxType(tax_type)
        transactions = source.list_transactions(tax_type, options.period)
        return self._export(transactions, tax_type, ExportFormat(fmt), options)

    def validate(
        self,
        transactions: Sequence[RetentionTransaction],
        tax_type: TaxType,
        period: str,
    ) -> ValidationResult:
        """
        Pre-flight check: the VALIDATE step alone.

        Issues no numbers, renders nothing and never touches the store.
        """
        tax_type = TaxType(tax_type)
        batch = self._select(transactions, tax_type, period)
        return self._validation_result(batch, tax_type, period)

    def export_combined(
        self,
        transactions: Sequence[RetentionTransaction],
        fmt: ExportFormat,
        options: ExportOptions,
    ) -> ExportResult:
        """
        One declaration holding the ISLR relation followed by the IVA one.

        Both batches must validate before any number is issued.  ISLR lines
        are numbered first, then IVA lines, from one contiguous range, and
        the counter is written back once.
        """
        self._require_capability()
        fmt = ExportFormat(fmt)
        period = options.period
        export_id = str(uuid4())

        with LogContext.bind(export_id=export_id, period=period, export_format=fmt.value):
            t0 = time.monotonic()
            logger.info(
                "combined_export_started",
                extra={"transaction_count": len(transactions)},
            )
            agent = self._load_agent()

            with LogContext.bind(agent_rif=agent.agent_rif):
                islr = self._select(transactions, TaxType.ISLR, period)
                iva = self._select(transactions, TaxType.IVA, period)

                period_result = self._period_result(period)
                islr_result = validate_batch(islr, TaxType.ISLR, self._rules)
                iva_result = validate_batch(iva, TaxType.IVA, self._rules)
                errors = list(period_result.errors)
                errors += [f"ISLR {e}" for e in islr_result.errors]
                errors += [f"IVA {e}" for e in iva_result.errors]
                warnings = period_result.warnings
                warnings += tuple(f"ISLR {w}" for w in islr_result.warnings)
                warnings += tuple(f"IVA {w}" for w in iva_result.warnings)
                if errors:
                    self._reject(errors, list(warnings), None, period)

                allocation = self._allocate(agent, len(islr) + len(iva))
                islr_lines = number_lines(islr, allocation.numbers[: len(islr)])
                iva_lines = number_lines(iva, allocation.numbers[len(islr):])
                header = DeclarationHeader(agent, period, self._local_now())

                if fmt is ExportFormat.TXT:
                    document = render_combined_txt(
                        render_islr_txt(header, islr_lines),
                        render_iva_txt(header, iva_lines),
                    )
                else:
                    document = render_combined_xml(
                        header, islr_lines, iva_lines, self._render_settings
                    )

                persistence_error = self._persist_counter(allocation)
                result = ExportResult(
                    export_id=export_id,
                    tax_type=None,
                    export_format=fmt,
                    period=period,
                    document=document,
                    voucher_numbers=allocation.numbers,
                    starting_counter=allocation.starting_counter,
                    final_counter=allocation.final_counter,
                    file_name=export_file_name(None, period, fmt),
                    warnings=warnings,
                    persistence_error=persistence_error,
                )
                self._log_completed(result, t0)
                return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _require_capability(self) -> None:
        try:
            self._capabilities.require(SENIAT_EXPORTS)
        except ExportNotPermittedError:
            logger.warning("export_not_permitted", extra={"capability": SENIAT_EXPORTS})
            raise

    def _export(
        self,
        transactions: Sequence[RetentionTransaction],
        tax_type: TaxType,
        fmt: ExportFormat,
        options: ExportOptions,
    ) -> ExportResult:
        period = options.period
        export_id = str(uuid4())

        with LogContext.bind(
            export_id=export_id,
            tax_type=tax_type.value,
            period=period,
            export_format=fmt.value,
        ):
            t0 = time.monotonic()
            logger.info(
                "export_started",
                extra={"transaction_count": len(transactions)},
            )

            # LOAD_CONFIG
            agent = self._load_agent()

            with LogContext.bind(agent_rif=agent.agent_rif):
                # VALIDATE
                batch = self._select(transactions, tax_type, period)
                validation = self._validation_result(batch, tax_type, period)
                if not validation.is_valid:
                    self._reject(
                        list(validation.errors),
                        list(validation.warnings),
                        tax_type,
                        period,
                    )

                # ALLOCATE + RENDER
                allocation = self._allocate(agent, len(batch))
                header = DeclarationHeader(agent, period, self._local_now())
                document = render_document(
                    tax_type,
                    fmt,
                    header,
                    number_lines(batch, allocation.numbers),
                    self._render_settings,
                )

                # PERSIST_COUNTER
                persistence_error = self._persist_counter(allocation)

                result = ExportResult(
                    export_id=export_id,
                    tax_type=tax_type,
                    export_format=fmt,
                    period=period,
                    document=document,
                    voucher_numbers=allocation.numbers,
                    starting_counter=allocation.starting_counter,
                    final_counter=allocation.final_counter,
                    file_name=export_file_name(tax_type, period, fmt),
                    warnings=validation.warnings,
                    persistence_error=persistence_error,
                )
                self._log_completed(result, t0)
                return result

    def _load_agent(self) -> AgentConfiguration:
        try:
            agent = self._store.get()
            missing = agent.missing_identity_fields()
            if missing:
                raise MissingAgentIdentityError(missing)
            check_voucher_template(agent.voucher_template, self._sequence_width)
        except ConfigurationError as exc:
            logger.error(
                "export_configuration_failed",
                extra={"error_code": exc.code, "detail": str(exc)},
            )
            raise

        logger.debug(
            "agent_configuration_loaded",
            extra={
                "agent_rif": agent.agent_rif,
                "voucher_counter": agent.voucher_counter,
            },
        )
        return agent

    @staticmethod
    def _select(
        transactions: Sequence[RetentionTransaction],
        tax_type: TaxType,
        period: str,
    ) -> list[RetentionTransaction]:
        return [
            t for t in transactions
            if t.tax_type is tax_type and t.period == period
        ]

    def _validation_result(
        self,
        batch: Sequence[RetentionTransaction],
        tax_type: TaxType,
        period: str,
    ) -> ValidationResult:
        return self._period_result(period).merge(
            validate_batch(batch, tax_type, self._rules)
        )

    def _period_result(self, period: str) -> ValidationResult:
        return validate_period(period, self._local_now().date(), self._rules)

    @staticmethod
    def _reject(
        errors: list[str],
        warnings: list[str],
        tax_type: TaxType | None,
        period: str,
    ) -> None:
        logger.warning(
            "export_validation_failed",
            extra={
                "error_count": len(errors),
                "warning_count": len(warnings),
                "errors": errors,
            },
        )
        raise ExportValidationError(
            errors,
            warnings,
            tax_type=tax_type.value if tax_type is not None else None,
            period=period,
        )

    def _allocate(self, agent: AgentConfiguration, count: int) -> VoucherAllocation:
        sequence = VoucherSequence(
            agent.voucher_template, agent.voucher_counter, self._sequence_width
        )
        allocation = sequence.allocate(count)
        logger.info(
            "voucher_numbers_allocated",
            extra={
                "issued_count": allocation.count,
                "first_voucher": allocation.first,
                "last_voucher": allocation.last,
                "starting_counter": allocation.starting_counter,
                "final_counter": allocation.final_counter,
            },
        )
        return allocation

    def _persist_counter(
        self, allocation: VoucherAllocation
    ) -> RetentionExportError | None:
        """Write the final counter back; failures are reported, not raised."""
        if allocation.count == 0:
            return None
        try:
            self._store.update(allocation.final_counter)
        except Exception as raw:
            # Any store failure; the document already carries the issued numbers.
            exc = (
                raw if isinstance(raw, RetentionExportError)
                else CounterPersistenceError(allocation.final_counter, str(raw))
            )
            logger.critical(
                "voucher_counter_persist_failed",
                extra={
                    "error_code": exc.code,
                    "detail": str(exc),
                    "first_voucher": allocation.first,
                    "last_voucher": allocation.last,
                    "issued_count": allocation.count,
                    "starting_counter": allocation.starting_counter,
                    "final_counter": allocation.final_counter,
                },
            )
            return exc

        logger.info(
            "voucher_counter_persisted",
            extra={"final_counter": allocation.final_counter},
        )
        return None

    def _local_now(self) -> datetime:
        return self._clock.now_utc().astimezone(self._timezone)

    @staticmethod
    def _log_completed(result: ExportResult, t0: float) -> None:
        logger.info(
            "export_completed",
            extra={
                "line_count": result.line_count,
                "file_name": result.file_name,
                "warning_count": len(result.warnings),
                "counter_persisted": result.counter_persisted,
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            },
        )
