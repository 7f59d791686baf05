"""
Typed Exception Hierarchy for the Retention Export Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A fiscal export either produces a complete, legally valid document or it
produces nothing.  Callers (UI workflows, batch jobs) must be able to tell
the failure categories apart without parsing message text:

    try:
        result = export_service.export(transactions, options)
    except MissingAgentIdentityError:
        redirect_to_company_setup()
    except ExportValidationError as e:
        show_offending_records(e.errors)      # full list, not a summary

Every class carries a ``code`` class attribute (machine-readable) and its
context as attributes (structured data survives logging and serialization).

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    RetentionExportError (base)
    |
    +-- ConfigurationError
    |   +-- AgentConfigurationNotFoundError
    |   +-- MissingAgentIdentityError
    |   +-- InvalidVoucherTemplateError
    |
    +-- ExportValidationError
    +-- InvalidPeriodError
    |
    +-- FormattingError
    |   +-- InvalidDateError
    |
    +-- VoucherSequenceError
    |   +-- InvalidVoucherCounterError
    |   +-- VoucherSequenceOverflowError
    |
    +-- PersistenceError
    |   +-- CounterPersistenceError
    |   +-- CounterRegressionError
    |
    +-- CapabilityError
        +-- ExportNotPermittedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                           | When Raised
--------------|--------------------------------|----------------------------------
Configuration | AGENT_CONFIGURATION_NOT_FOUND  | Store has no configuration row
              | MISSING_AGENT_IDENTITY         | Agent RIF or legal name empty
              | INVALID_VOUCHER_TEMPLATE       | Template not numeric / too short
--------------|--------------------------------|----------------------------------
Validation    | EXPORT_VALIDATION_FAILED       | One or more records break rules
              | INVALID_PERIOD                 | Period is not YYYY-MM
--------------|--------------------------------|----------------------------------
Formatting    | INVALID_DATE                   | Date cannot be parsed
--------------|--------------------------------|----------------------------------
Sequence      | INVALID_VOUCHER_COUNTER        | Counter < 1
              | VOUCHER_SEQUENCE_OVERFLOW      | Suffix exceeds its fixed width
--------------|--------------------------------|----------------------------------
Persistence   | COUNTER_PERSISTENCE_FAILED     | Counter write-back failed
              | COUNTER_REGRESSION             | Write would lower the counter
--------------|--------------------------------|----------------------------------
Capability    | EXPORT_NOT_PERMITTED           | seniat_exports capability absent

===============================================================================
PROPAGATION
===============================================================================

Configuration, validation and capability errors are raised before any
voucher number is issued or any counter is written.  A
CounterPersistenceError is NOT raised out of an export: the document is
already valid, so the error is attached to the ExportResult and logged at
CRITICAL (re-running the export may reuse the same voucher numbers).

===============================================================================
"""


class RetentionExportError(Exception):
    """
    Base exception for all retention export errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "RETENTION_EXPORT_ERROR"


# Configuration-related exceptions


class ConfigurationError(RetentionExportError):
    """Base exception for agent configuration errors (fatal, no side effects)."""

    code: str = "CONFIGURATION_ERROR"


class AgentConfigurationNotFoundError(ConfigurationError):
    """The configuration store holds no configuration for the agent."""

    code: str = "AGENT_CONFIGURATION_NOT_FOUND"

    def __init__(self, agent_rif: str | None = None):
        self.agent_rif = agent_rif
        if agent_rif:
            message = f"No agent configuration found for {agent_rif}"
        else:
            message = "No agent configuration found"
        super().__init__(message)


class MissingAgentIdentityError(ConfigurationError):
    """
    Agent RIF or legal name is missing.

    An export is impossible without a declared filer identity.
    """

    code: str = "MISSING_AGENT_IDENTITY"

    def __init__(self, missing_fields: list[str]):
        self.missing_fields = missing_fields
        super().__init__(
            "Complete la configuración de empresa antes de exportar datos SENIAT "
            f"(faltan: {', '.join(missing_fields)})"
        )


class InvalidVoucherTemplateError(ConfigurationError):
    """The initial voucher-number template cannot produce fixed-width numbers."""

    code: str = "INVALID_VOUCHER_TEMPLATE"

    def __init__(self, template: str, reason: str):
        self.template = template
        self.reason = reason
        super().__init__(f"Invalid voucher template {template!r}: {reason}")


# Validation-related exceptions


class ExportValidationError(RetentionExportError):
    """
    One or more transaction records fail fiscal business rules.

    The message carries the full, literal list of errors so a bookkeeper
    can fix every offending record in one pass.
    """

    code: str = "EXPORT_VALIDATION_FAILED"

    def __init__(
        self,
        errors: list[str],
        warnings: list[str] | None = None,
        tax_type: str | None = None,
        period: str | None = None,
    ):
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        self.tax_type = tax_type
        self.period = period
        super().__init__(
            f"Errores en datos de exportación: {', '.join(self.errors)}"
        )


class InvalidPeriodError(RetentionExportError):
    """Fiscal period is not a YYYY-MM string."""

    code: str = "INVALID_PERIOD"

    def __init__(self, period: str):
        self.period = period
        super().__init__(
            f"Formato de período inválido (debe ser YYYY-MM): {period!r}"
        )


# Formatting-related exceptions


class FormattingError(RetentionExportError):
    """Base exception for field encoding errors."""

    code: str = "FORMATTING_ERROR"


class InvalidDateError(FormattingError):
    """A date value could not be parsed as an ISO calendar date."""

    code: str = "INVALID_DATE"

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Cannot parse date from {value!r}")


# Voucher sequence exceptions


class VoucherSequenceError(RetentionExportError):
    """Base exception for voucher numbering errors."""

    code: str = "VOUCHER_SEQUENCE_ERROR"


class InvalidVoucherCounterError(VoucherSequenceError):
    """The sequence counter is not a positive integer."""

    code: str = "INVALID_VOUCHER_COUNTER"

    def __init__(self, counter: object):
        self.counter = counter
        super().__init__(f"Voucher counter must be an integer >= 1, got {counter!r}")


class VoucherSequenceOverflowError(VoucherSequenceError):
    """The sequence suffix no longer fits in its fixed width."""

    code: str = "VOUCHER_SEQUENCE_OVERFLOW"

    def __init__(self, template: str, counter: int, width: int):
        self.template = template
        self.counter = counter
        self.width = width
        super().__init__(
            f"Voucher sequence overflow: template {template} with counter "
            f"{counter} exceeds {width} digits"
        )


# Persistence exceptions


class PersistenceError(RetentionExportError):
    """Base exception for configuration store write failures."""

    code: str = "PERSISTENCE_ERROR"


class CounterPersistenceError(PersistenceError):
    """
    Voucher counter write-back failed after numbers were issued.

    Re-running the export may produce duplicate voucher numbers.
    """

    code: str = "COUNTER_PERSISTENCE_FAILED"

    def __init__(self, counter_value: int, reason: str):
        self.counter_value = counter_value
        self.reason = reason
        super().__init__(
            f"Failed to persist voucher counter {counter_value}: {reason}"
        )


class CounterRegressionError(PersistenceError):
    """A counter update would move the sequence backwards."""

    code: str = "COUNTER_REGRESSION"

    def __init__(self, current_value: int, requested_value: int):
        self.current_value = current_value
        self.requested_value = requested_value
        super().__init__(
            f"Voucher counter cannot decrease: current={current_value}, "
            f"requested={requested_value}"
        )


# Capability exceptions


class CapabilityError(RetentionExportError):
    """Base exception for capability checks."""

    code: str = "CAPABILITY_ERROR"


class ExportNotPermittedError(CapabilityError):
    """The fiscal export capability is not enabled."""

    code: str = "EXPORT_NOT_PERMITTED"

    def __init__(self, capability: str):
        self.capability = capability
        super().__init__(
            "Las exportaciones SENIAT no están disponibles en su licencia actual "
            f"(capability: {capability})"
        )
